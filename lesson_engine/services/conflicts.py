from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from enum import Enum
from typing import Iterable

from sqlalchemy.orm import Session

from lesson_engine.models import Enrollment, Lesson, LessonStatus, TutoringClass
from lesson_engine.utils import format_time, intervals_overlap, validate_time_range


class ConflictType(str, Enum):
    TEACHER = "Teacher"
    STUDENT = "Student"
    CLASSROOM = "Classroom"


@dataclass(frozen=True)
class BookedLesson:
    """An existing lesson together with the resources it occupies."""
    lesson_id: int
    class_id: int
    scheduled_date: date
    start_time: time
    end_time: time
    status: LessonStatus
    teacher_id: int | None = None
    classroom_id: int | None = None
    student_ids: frozenset[int] = frozenset()


@dataclass(frozen=True)
class LessonCandidate:
    class_id: int
    scheduled_date: date
    start_time: time
    end_time: time
    teacher_id: int | None = None
    classroom_id: int | None = None
    student_ids: frozenset[int] = frozenset()
    lesson_id: int | None = None  # set when moving an existing lesson

    def as_booked(self, lesson_id: int, status: LessonStatus = LessonStatus.SCHEDULED) -> BookedLesson:
        return BookedLesson(lesson_id, self.class_id, self.scheduled_date, self.start_time, self.end_time,
                            status, self.teacher_id, self.classroom_id, self.student_ids)


@dataclass(frozen=True)
class Conflict:
    conflict_type: ConflictType
    resource_id: int
    conflicting_lesson_id: int
    conflicting_class_id: int
    scheduled_date: date
    start_time: time
    end_time: time

    def describe(self) -> str:
        return (f"{self.conflict_type.value} conflict on {self.scheduled_date.isoformat()} "
                f"{format_time(self.start_time)}-{format_time(self.end_time)}: "
                f"{self.conflict_type.value.lower()} {self.resource_id} is booked by lesson "
                f"{self.conflicting_lesson_id} (class {self.conflicting_class_id})")

    def to_dict(self) -> dict:
        return {
            "conflictType": self.conflict_type.value,
            "resourceId": self.resource_id,
            "conflictingLessonId": self.conflicting_lesson_id,
            "conflictingClassId": self.conflicting_class_id,
            "scheduledDate": self.scheduled_date.isoformat(),
            "startTime": format_time(self.start_time),
            "endTime": format_time(self.end_time),
        }


def detect(candidate: LessonCandidate, existing: Iterable[BookedLesson]) -> list[Conflict]:
    """Every resource clash between ``candidate`` and ``existing``.

    Teacher, classroom and student clashes are reported independently, so a
    single existing lesson may yield several conflicts.
    """
    conflicts: list[Conflict] = []
    for other in existing:
        if other.status == LessonStatus.CANCELLED:
            continue
        if candidate.lesson_id is not None and other.lesson_id == candidate.lesson_id:
            continue
        if other.scheduled_date != candidate.scheduled_date:
            continue
        if not intervals_overlap(candidate.start_time, candidate.end_time, other.start_time, other.end_time):
            continue

        def _add(kind: ConflictType, resource_id: int) -> None:
            conflicts.append(Conflict(kind, resource_id, other.lesson_id, other.class_id,
                                      other.scheduled_date, other.start_time, other.end_time))

        if candidate.teacher_id is not None and candidate.teacher_id == other.teacher_id:
            _add(ConflictType.TEACHER, candidate.teacher_id)
        if candidate.classroom_id is not None and candidate.classroom_id == other.classroom_id:
            _add(ConflictType.CLASSROOM, candidate.classroom_id)
        for student_id in sorted(candidate.student_ids & other.student_ids):
            _add(ConflictType.STUDENT, student_id)
    return conflicts


@dataclass
class Suggestion:
    kind: str   # "next_weekday" | "next_week"
    label: str
    scheduled_date: date
    start_time: time
    end_time: time


@dataclass
class ConflictCheckResult:
    conflicts: list[Conflict] = field(default_factory=list)
    suggestions: list[Suggestion] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


class ConflictChecker:
    """Loads booked lessons from the store and runs :func:`detect` on them."""

    def __init__(self, session: Session):
        self.session = session

    def active_student_ids(self, class_ids: Iterable[int]) -> dict[int, frozenset[int]]:
        class_ids = set(class_ids)
        if not class_ids:
            return {}
        by_class: dict[int, set[int]] = defaultdict(set)
        rows = (self.session.query(Enrollment.class_id, Enrollment.student_id)
                .filter(Enrollment.class_id.in_(class_ids), Enrollment.is_active.is_(True))
                .all())
        for class_id, student_id in rows:
            by_class[class_id].add(student_id)
        return {cid: frozenset(by_class.get(cid, ())) for cid in class_ids}

    def booked_on(self, d: date) -> list[BookedLesson]:
        rows = (self.session.query(Lesson, TutoringClass.teacher_id, TutoringClass.classroom_id)
                .join(TutoringClass, Lesson.class_id == TutoringClass.id)
                .filter(Lesson.scheduled_date == d, Lesson.status != LessonStatus.CANCELLED)
                .all())
        students = self.active_student_ids(lesson.class_id for lesson, _, _ in rows)
        return [
            BookedLesson(lesson.id, lesson.class_id, lesson.scheduled_date, lesson.start_time, lesson.end_time,
                         lesson.status, teacher_id, classroom_id, students.get(lesson.class_id, frozenset()))
            for lesson, teacher_id, classroom_id in rows
        ]

    def candidate_for(self, tutoring_class: TutoringClass, d: date, start: time, end: time,
                      lesson_id: int | None = None, student_ids: frozenset[int] | None = None) -> LessonCandidate:
        if student_ids is None:
            student_ids = self.active_student_ids([tutoring_class.id])[tutoring_class.id]
        return LessonCandidate(tutoring_class.id, d, start, end, tutoring_class.teacher_id,
                               tutoring_class.classroom_id, student_ids, lesson_id)

    def check(self, tutoring_class: TutoringClass, d: date, start: time, end: time,
              exclude_lesson_id: int | None = None) -> list[Conflict]:
        candidate = self.candidate_for(tutoring_class, d, start, end, lesson_id=exclude_lesson_id)
        return detect(candidate, self.booked_on(d))

    def precheck(self, tutoring_class: TutoringClass, d: date, start: time, end: time,
                 exclude_lesson_id: int | None = None,
                 non_teaching: set[date] | None = None) -> ConflictCheckResult:
        """Conflicts for a proposed lesson, plus free alternatives when there are any."""
        validate_time_range(start, end)
        result = ConflictCheckResult(self.check(tutoring_class, d, start, end, exclude_lesson_id))
        if result.has_conflicts:
            result.suggestions = self.suggest_alternatives(tutoring_class, d, start, end,
                                                           exclude_lesson_id, non_teaching)
        return result

    def suggest_alternatives(self, tutoring_class: TutoringClass, d: date, start: time, end: time,
                             exclude_lesson_id: int | None = None,
                             non_teaching: set[date] | None = None) -> list[Suggestion]:
        """Offer the next weekday and the same weekday next week, when they are free."""
        non_teaching = non_teaching or set()
        next_weekday = d + timedelta(days=1)
        while next_weekday.weekday() >= 5 or next_weekday in non_teaching:
            next_weekday += timedelta(days=1)
        options = [
            ("next_weekday", f"Next weekday ({next_weekday.strftime('%a %b %d')})", next_weekday),
            ("next_week", f"Next week ({(d + timedelta(days=7)).strftime('%a %b %d')})", d + timedelta(days=7)),
        ]
        suggestions = []
        for kind, label, candidate_date in options:
            if candidate_date in non_teaching:
                continue
            if self.check(tutoring_class, candidate_date, start, end, exclude_lesson_id):
                continue
            suggestions.append(Suggestion(kind, label, candidate_date, start, end))
        return suggestions
