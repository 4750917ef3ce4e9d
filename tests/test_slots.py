from datetime import date, time

import pytest

from lesson_engine.errors import NotFoundError, ValidationError
from lesson_engine.models import GlobalScope, Lesson, LessonStatus, SemesterScope
from lesson_engine.services.generator import LessonGenerator
from lesson_engine.services.slot_repository import ScheduleSlotRepository


@pytest.fixture
def repo(session):
    return ScheduleSlotRepository(session)


def test_add_global_slot(repo, session, english):
    slot = repo.add(english.id, 0, time(10, 0), time(11, 0))
    session.commit()

    assert slot.is_global
    assert slot.scope == GlobalScope()
    assert repo.for_class(english.id) == [slot]


def test_add_semester_slot(repo, year, english):
    spring = year.semesters[1]
    slot = repo.add(english.id, 2, time(16, 0), time(17, 0), semester_id=spring.id)
    assert slot.scope == SemesterScope(spring.id)


@pytest.mark.parametrize("day_of_week, start, end", [
    (7, time(10, 0), time(11, 0)),
    (-1, time(10, 0), time(11, 0)),
    (0, time(11, 0), time(11, 0)),
    (0, time(12, 0), time(11, 0)),
])
def test_add_rejects_malformed_slot(repo, english, day_of_week, start, end):
    with pytest.raises(ValidationError):
        repo.add(english.id, day_of_week, start, end)


def test_overlapping_slots_need_different_semesters(repo, year, english):
    autumn, spring = year.semesters
    repo.add(english.id, 0, time(10, 0), time(11, 0), semester_id=autumn.id)

    # same weekday and time, other semester
    repo.add(english.id, 0, time(10, 30), time(11, 30), semester_id=spring.id)
    # a global slot overlaps both
    with pytest.raises(ValidationError):
        repo.add(english.id, 0, time(10, 45), time(11, 15))
    with pytest.raises(ValidationError):
        repo.add(english.id, 0, time(9, 30), time(10, 30), semester_id=autumn.id)
    # touching is fine
    repo.add(english.id, 0, time(11, 0), time(12, 0), semester_id=autumn.id)


def test_semester_must_belong_to_class_year(repo, factory, english):
    other_year = factory.year(start=date(2026, 9, 1), end=date(2027, 6, 30), is_active=False)
    with pytest.raises(ValidationError):
        repo.add(english.id, 0, time(10, 0), time(11, 0), semester_id=other_year.semesters[0].id)


def test_unknown_class_or_slot(repo):
    with pytest.raises(NotFoundError):
        repo.add(999, 0, time(10, 0), time(11, 0))
    with pytest.raises(NotFoundError):
        repo.get(999)


def test_replace_archives_old_slot_and_drops_its_future_lessons(repo, session, factory, english):
    old = factory.slot(english)
    LessonGenerator(session).generate(english.id, None, (date(2025, 9, 1), date(2025, 9, 30)),
                                      today=date(2025, 8, 1))
    today = date(2025, 9, 10)

    preview = repo.with_counts(old, today)
    assert (preview.past_lesson_count, preview.future_lesson_count) == (2, 3)

    replacement = repo.replace(old.id, 1, time(10, 0), time(11, 0), None, today)
    session.commit()

    assert replacement.future_lessons_deleted == 3
    assert replacement.old_slot.is_obsolete
    assert replacement.old_slot.obsoleted_at is not None
    assert repo.for_class(english.id) == [replacement.new_slot]
    assert repo.archived(english.id) == [replacement.old_slot]
    # lessons already held stay attributed to the archived slot
    kept = session.query(Lesson).filter_by(source_slot_id=old.id).order_by(Lesson.scheduled_date).all()
    assert [l.scheduled_date for l in kept] == [date(2025, 9, 1), date(2025, 9, 8)]
    assert all(l.status == LessonStatus.SCHEDULED for l in kept)


def test_replace_may_reuse_the_old_time(repo, session, factory, english):
    old = factory.slot(english)
    replacement = repo.replace(old.id, 0, time(10, 0), time(11, 30), None, date(2025, 9, 10))
    assert replacement.new_slot.end_time == time(11, 30)


def test_archived_slot_cannot_be_replaced(repo, factory, english):
    old = factory.slot(english, is_obsolete=True)
    with pytest.raises(ValidationError):
        repo.replace(old.id, 1, time(10, 0), time(11, 0), None, date(2025, 9, 10))
