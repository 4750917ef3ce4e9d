"""Lesson status transition table.

Pure functions only; :mod:`lesson_engine.services.lifecycle` applies the
result to the store.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from lesson_engine.models import LessonStatus


class LessonAction(str, Enum):
    CONDUCT = "conduct"
    CANCEL = "cancel"
    MARK_NO_SHOW = "mark_no_show"
    RESCHEDULE = "reschedule"
    CREATE_MAKEUP = "create_makeup"


@dataclass(frozen=True)
class Allowed:
    source: LessonStatus
    target: LessonStatus


@dataclass(frozen=True)
class Denied:
    source: LessonStatus
    action: LessonAction
    reason: str


TransitionResult = Union[Allowed, Denied]

# Make-up lessons are live bookings and follow the same rules as scheduled ones.
_ACTIVE = (LessonStatus.SCHEDULED, LessonStatus.MAKE_UP)

TRANSITIONS: dict[LessonAction, dict[LessonStatus, LessonStatus]] = {
    LessonAction.CONDUCT: {s: LessonStatus.CONDUCTED for s in _ACTIVE},
    LessonAction.CANCEL: {s: LessonStatus.CANCELLED for s in _ACTIVE},
    LessonAction.MARK_NO_SHOW: {s: LessonStatus.NO_SHOW for s in _ACTIVE},
    LessonAction.RESCHEDULE: {s: s for s in _ACTIVE},
    # the original keeps its status; the new row is created as Make Up
    LessonAction.CREATE_MAKEUP: {LessonStatus.CANCELLED: LessonStatus.CANCELLED},
}

TERMINAL = frozenset({LessonStatus.CONDUCTED, LessonStatus.NO_SHOW})


def check_transition(status: LessonStatus, action: LessonAction) -> TransitionResult:
    target = TRANSITIONS[action].get(status)
    if target is None:
        if status in TERMINAL:
            reason = f"{status.value} is a final state"
        else:
            allowed = ", ".join(s.value for s in TRANSITIONS[action])
            reason = f"only allowed from {allowed}"
        return Denied(status, action, reason)
    return Allowed(status, target)


def allowed_actions(status: LessonStatus) -> list[LessonAction]:
    return [action for action, table in TRANSITIONS.items() if status in table]
