from datetime import date, time

from lesson_engine.models import LessonStatus
from lesson_engine.services.conflicts import (
    BookedLesson,
    ConflictChecker,
    ConflictType,
    LessonCandidate,
    detect,
)

DAY = date(2025, 9, 8)


def booked(lesson_id=1, start=time(10, 0), end=time(11, 0), status=LessonStatus.SCHEDULED, teacher_id=None,
           classroom_id=None, student_ids=(), scheduled_date=DAY, class_id=20):
    return BookedLesson(lesson_id, class_id, scheduled_date, start, end, status, teacher_id, classroom_id,
                        frozenset(student_ids))


def candidate(start=time(10, 0), end=time(11, 0), teacher_id=1, classroom_id=1, student_ids=(), lesson_id=None):
    return LessonCandidate(10, DAY, start, end, teacher_id, classroom_id, frozenset(student_ids), lesson_id)


def test_teacher_clash():
    conflicts = detect(candidate(), [booked(start=time(10, 30), end=time(11, 30), teacher_id=1)])

    assert len(conflicts) == 1
    assert conflicts[0].conflict_type == ConflictType.TEACHER
    assert conflicts[0].conflicting_lesson_id == 1
    assert conflicts[0].conflicting_class_id == 20


def test_each_resource_reported_separately():
    conflicts = detect(candidate(student_ids={5, 6, 7}),
                       [booked(teacher_id=1, classroom_id=1, student_ids={6, 7, 8})])

    kinds = [c.conflict_type for c in conflicts]
    assert kinds == [ConflictType.TEACHER, ConflictType.CLASSROOM, ConflictType.STUDENT, ConflictType.STUDENT]
    assert [c.resource_id for c in conflicts if c.conflict_type == ConflictType.STUDENT] == [6, 7]


def test_touching_intervals_do_not_clash():
    assert detect(candidate(), [booked(start=time(11, 0), end=time(12, 0), teacher_id=1)]) == []
    assert detect(candidate(), [booked(start=time(9, 0), end=time(10, 0), teacher_id=1)]) == []


def test_other_dates_do_not_clash():
    assert detect(candidate(), [booked(teacher_id=1, scheduled_date=date(2025, 9, 9))]) == []


def test_cancelled_lessons_never_clash():
    assert detect(candidate(), [booked(teacher_id=1, status=LessonStatus.CANCELLED)]) == []


def test_missing_resources_never_match():
    assert detect(candidate(teacher_id=None, classroom_id=None), [booked()]) == []


def test_own_lesson_is_ignored():
    assert detect(candidate(lesson_id=1), [booked(lesson_id=1, teacher_id=1)]) == []


def test_describe_and_to_dict():
    conflict = detect(candidate(), [booked(teacher_id=1)])[0]

    assert conflict.describe().startswith("Teacher conflict on 2025-09-08 10:00-11:00")
    assert conflict.to_dict() == {
        "conflictType": "Teacher",
        "resourceId": 1,
        "conflictingLessonId": 1,
        "conflictingClassId": 20,
        "scheduledDate": "2025-09-08",
        "startTime": "10:00",
        "endTime": "11:00",
    }


def test_checker_loads_bookings_system_wide(session, factory, year, english):
    kai = english.enrollments[0].student
    drama = factory.tutoring_class(year, name="Drama", teacher=factory.teacher("Olga", "Ivanova"), students=[kai])
    lesson = factory.lesson(drama, DAY, start=time(10, 30), end=time(11, 30))

    result = ConflictChecker(session).precheck(english, DAY, time(10, 0), time(11, 0))

    assert result.has_conflicts
    assert [(c.conflict_type, c.resource_id) for c in result.conflicts] == [(ConflictType.STUDENT, kai.id)]
    assert result.conflicts[0].conflicting_lesson_id == lesson.id
    kinds = [s.kind for s in result.suggestions]
    assert kinds == ["next_weekday", "next_week"]
    assert result.suggestions[0].scheduled_date == date(2025, 9, 9)


def test_checker_ignores_inactive_enrollments(session, factory, year, english):
    enrollment = english.enrollments[0]
    drama = factory.tutoring_class(year, name="Drama", students=[enrollment.student])
    factory.lesson(drama, DAY)
    enrollment.is_active = False
    session.commit()

    result = ConflictChecker(session).precheck(english, DAY, time(10, 0), time(11, 0))

    assert not result.has_conflicts
    assert result.suggestions == []


def test_suggestions_skip_weekends_and_breaks(session, factory, year, teacher, english):
    other = factory.tutoring_class(year, teacher=teacher)
    friday = date(2025, 12, 19)
    factory.lesson(other, friday)
    checker = ConflictChecker(session)

    suggestions = checker.suggest_alternatives(english, friday, time(10, 0), time(11, 0),
                                               non_teaching={date(2025, 12, 22), date(2025, 12, 26)})

    # Monday 22 is a holiday, so the next weekday is Tuesday 23; Friday 26 is off too
    assert [(s.kind, s.scheduled_date) for s in suggestions] == [("next_weekday", date(2025, 12, 23))]
