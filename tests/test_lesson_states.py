import pytest

from lesson_engine.models import LessonStatus
from lesson_engine.services.lesson_states import (
    Allowed,
    Denied,
    LessonAction,
    allowed_actions,
    check_transition,
)


@pytest.mark.parametrize("status, action, target", [
    (LessonStatus.SCHEDULED, LessonAction.CONDUCT, LessonStatus.CONDUCTED),
    (LessonStatus.SCHEDULED, LessonAction.CANCEL, LessonStatus.CANCELLED),
    (LessonStatus.SCHEDULED, LessonAction.MARK_NO_SHOW, LessonStatus.NO_SHOW),
    (LessonStatus.SCHEDULED, LessonAction.RESCHEDULE, LessonStatus.SCHEDULED),
    (LessonStatus.MAKE_UP, LessonAction.CONDUCT, LessonStatus.CONDUCTED),
    (LessonStatus.MAKE_UP, LessonAction.RESCHEDULE, LessonStatus.MAKE_UP),
    (LessonStatus.CANCELLED, LessonAction.CREATE_MAKEUP, LessonStatus.CANCELLED),
])
def test_allowed_transitions(status, action, target):
    assert check_transition(status, action) == Allowed(status, target)


@pytest.mark.parametrize("status, action", [
    (LessonStatus.CONDUCTED, LessonAction.CANCEL),
    (LessonStatus.CONDUCTED, LessonAction.RESCHEDULE),
    (LessonStatus.NO_SHOW, LessonAction.CONDUCT),
    (LessonStatus.CANCELLED, LessonAction.CONDUCT),
    (LessonStatus.CANCELLED, LessonAction.CANCEL),
    (LessonStatus.SCHEDULED, LessonAction.CREATE_MAKEUP),
])
def test_denied_transitions(status, action):
    result = check_transition(status, action)
    assert isinstance(result, Denied)
    assert result.source == status
    assert result.action == action


def test_final_states_say_so():
    assert "final state" in check_transition(LessonStatus.NO_SHOW, LessonAction.CANCEL).reason


def test_allowed_actions():
    assert allowed_actions(LessonStatus.CANCELLED) == [LessonAction.CREATE_MAKEUP]
    assert allowed_actions(LessonStatus.CONDUCTED) == []
    assert LessonAction.CREATE_MAKEUP not in allowed_actions(LessonStatus.SCHEDULED)
