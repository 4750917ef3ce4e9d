from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import Iterable, Sequence

from sqlalchemy.orm import Session

from lesson_engine.config import settings
from lesson_engine.errors import ConflictError, SchedulingWindowError, ValidationError
from lesson_engine.extensions import unit_of_work
from lesson_engine.models import (
    AcademicYear,
    GenerationSource,
    GlobalScope,
    Lesson,
    LessonStatus,
    ScheduleSlot,
    Semester,
    TutoringClass,
)
from lesson_engine.services.calendar_provider import CalendarProvider, NonTeachingDay
from lesson_engine.services.conflicts import BookedLesson, ConflictChecker, LessonCandidate, detect
from lesson_engine.services.lesson_store import LessonStore
from lesson_engine.services.locks import class_lock, lock_class_row
from lesson_engine.utils import (
    clamp_window,
    dates_on_weekday,
    day_name,
    format_time,
    month_bounds,
    today as school_today,
    validate_day_of_week,
    validate_time_range,
)

log = logging.getLogger(__name__)


class GenerationMode(str, Enum):
    CUSTOM_RANGE = "CustomRange"
    SEMESTER = "Semester"
    MONTH = "Month"
    FULL_YEAR = "FullYear"


class SkipReason(str, Enum):
    TEACHING_BREAK = "teaching_break"
    EXISTING_LESSON = "existing_lesson"
    SCHEDULING_CONFLICT = "scheduling_conflict"
    PAST_DATE = "past_date"


@dataclass
class GenerationPolicy:
    skip_conflicts: bool = True


@dataclass
class SkippedDate:
    scheduled_date: date
    reason: SkipReason
    detail: str = ""


@dataclass
class SlotReport:
    slot_id: int
    day_of_week: int
    start_time: time
    end_time: time
    semester_id: int | None = None
    window: tuple[date, date] | None = None
    generated_count: int = 0
    skipped_conflict_count: int = 0
    skipped_past_date_count: int = 0
    skipped_existing_count: int = 0
    skipped_non_teaching_count: int = 0
    warnings: list[str] = field(default_factory=list)
    skipped: list[SkippedDate] = field(default_factory=list)
    generated_lesson_ids: list[int] = field(default_factory=list)

    def skip(self, d: date, reason: SkipReason, detail: str = "") -> None:
        self.skipped.append(SkippedDate(d, reason, detail))


@dataclass
class AcademicContext:
    academic_year_id: int
    academic_year_name: str
    semester_id: int | None = None
    semester_name: str | None = None
    non_teaching_days: int = 0


@dataclass
class GenerationReport:
    class_id: int
    window_start: date
    window_end: date
    slots: list[SlotReport] = field(default_factory=list)
    lesson_generation_warnings: list[str] = field(default_factory=list)
    academic_context: AcademicContext | None = None

    @property
    def generated_count(self) -> int:
        return sum(s.generated_count for s in self.slots)

    @property
    def skipped_conflict_count(self) -> int:
        return sum(s.skipped_conflict_count for s in self.slots)

    @property
    def skipped_past_date_count(self) -> int:
        return sum(s.skipped_past_date_count for s in self.slots)

    @property
    def skipped_existing_count(self) -> int:
        return sum(s.skipped_existing_count for s in self.slots)

    @property
    def skipped_non_teaching_count(self) -> int:
        return sum(s.skipped_non_teaching_count for s in self.slots)

    @property
    def warnings(self) -> list[str]:
        return [w for s in self.slots for w in s.warnings]

    @property
    def summary(self) -> str:
        return (f"{self.generated_count} lesson(s) generated, "
                f"{self.skipped_conflict_count} skipped due to conflicts, "
                f"{self.skipped_past_date_count} skipped as past dates")


def resolve_window(mode: GenerationMode, year: AcademicYear, start: date | None = None,
                   end: date | None = None, semester: Semester | None = None) -> tuple[date, date]:
    """Turn a generation mode into a concrete [from, to] window."""
    if mode == GenerationMode.FULL_YEAR:
        return year.start_date, year.end_date
    if mode == GenerationMode.SEMESTER:
        if semester is None:
            raise ValidationError("Semester generation requires a semester")
        return semester.start_date, semester.end_date
    if start is None:
        raise ValidationError(f"{mode.value} generation requires a start date")
    if mode == GenerationMode.MONTH:
        return month_bounds(start)
    if end is None:
        raise ValidationError("Custom range generation requires an end date")
    return start, end


class LessonGenerator:
    """Expands weekly schedule slots into dated lessons.

    One call is one transaction: with ``skip_conflicts`` every non-conflicting
    date is committed, otherwise the first conflict rolls back the whole call.
    Writes for a class are serialised through :func:`class_lock`.
    """

    def __init__(self, session: Session, calendar: CalendarProvider | None = None,
                 checker: ConflictChecker | None = None):
        self.session = session
        self.calendar = calendar or CalendarProvider(session)
        self.checker = checker or ConflictChecker(session)
        self.lessons = LessonStore(session)

    def generate(self, class_id: int, slots: Sequence[ScheduleSlot] | None, window: tuple[date, date],
                 policy: GenerationPolicy | None = None, *, year_id: int | None = None,
                 semester_id: int | None = None, today: date | None = None) -> GenerationReport:
        policy = policy or GenerationPolicy(skip_conflicts=settings.SKIP_CONFLICTS_DEFAULT)
        today = today or school_today()
        start, end = window
        if start > end:
            raise ValidationError(f"Window start {start} is after window end {end}")

        with class_lock(class_id), unit_of_work(self.session):
            tutoring_class = lock_class_row(self.session, class_id)
            if not tutoring_class.is_active:
                raise ValidationError(f"Class {class_id} is disabled; enable it before generating lessons")
            year = self.calendar.year(year_id or tutoring_class.academic_year_id)
            active_slots = self._validated_slots(tutoring_class, slots)

            semester = None
            bound = clamp_window(start, end, year.start_date, year.end_date)
            if semester_id is not None:
                semester = self.calendar.semester(semester_id)
                if semester.academic_year_id != year.id:
                    raise ValidationError(f"Semester {semester_id} is not part of academic year {year.id}")
                if bound is not None:
                    bound = clamp_window(*bound, semester.start_date, semester.end_date)
                active_slots = [s for s in active_slots if s.semester_id in (None, semester_id)]
            if bound is None:
                raise SchedulingWindowError(
                    f"Window {start}..{end} lies outside academic year {year.name}"
                    + (f" semester {semester.name}" if semester else "")
                    + "; check the academic calendar configuration")

            report = GenerationReport(class_id, bound[0], bound[1])
            non_teaching = {day.date: day for day in self.calendar.non_teaching_days(year.id, *bound)}
            report.academic_context = AcademicContext(
                year.id, year.name,
                semester.id if semester else None, semester.name if semester else None,
                len(non_teaching),
            )
            if bound != (start, end):
                report.lesson_generation_warnings.append(
                    f"Window {start}..{end} clamped to {bound[0]}..{bound[1]}")
            if not active_slots:
                report.lesson_generation_warnings.append(f"Class {class_id} has no active schedule slots")

            run = _GenerationRun(
                tutoring_class=tutoring_class,
                student_ids=self.checker.active_student_ids([class_id])[class_id],
                existing=self.lessons.live_keys(class_id, *bound),
                non_teaching=non_teaching,
                policy=policy,
                today=today,
            )
            for slot in active_slots:
                report.slots.append(self._expand_slot(run, slot, year, bound))

        log.info("Generated lessons for class %s over %s..%s: %s",
                 class_id, report.window_start, report.window_end, report.summary)
        return report

    def _validated_slots(self, tutoring_class: TutoringClass,
                         slots: Iterable[ScheduleSlot] | None) -> list[ScheduleSlot]:
        if slots is None:
            slots = (self.session.query(ScheduleSlot)
                     .filter(ScheduleSlot.class_id == tutoring_class.id, ScheduleSlot.is_obsolete.is_(False))
                     .order_by(ScheduleSlot.day_of_week, ScheduleSlot.start_time)
                     .all())
        slots = list(slots)
        for slot in slots:
            validate_day_of_week(slot.day_of_week)
            validate_time_range(slot.start_time, slot.end_time)
            if slot.class_id != tutoring_class.id:
                raise ValidationError(f"Schedule slot {slot.id} belongs to class {slot.class_id}, "
                                      f"not {tutoring_class.id}")
            if slot.is_obsolete:
                raise ValidationError(f"Schedule slot {slot.id} is archived and cannot generate lessons")
        return slots

    def _slot_window(self, slot: ScheduleSlot, year: AcademicYear,
                     bound: tuple[date, date]) -> tuple[date, date] | None:
        scope = slot.scope
        if isinstance(scope, GlobalScope):
            return clamp_window(*bound, year.start_date, year.end_date)
        semester = self.calendar.semester(scope.semester_id)
        return clamp_window(*bound, semester.start_date, semester.end_date)

    def _expand_slot(self, run: "_GenerationRun", slot: ScheduleSlot, year: AcademicYear,
                     bound: tuple[date, date]) -> SlotReport:
        report = SlotReport(slot.id, slot.day_of_week, slot.start_time, slot.end_time, slot.semester_id)
        label = f"{day_name(slot.day_of_week)} {format_time(slot.start_time)}-{format_time(slot.end_time)}"
        window = self._slot_window(slot, year, bound)
        report.window = window
        if window is None:
            report.warnings.append(f"Slot {slot.id} ({label}): semester lies outside the requested window")
            return report

        for d in dates_on_weekday(*window, slot.day_of_week):
            if d in run.non_teaching:
                off: NonTeachingDay = run.non_teaching[d]
                report.skipped_non_teaching_count += 1
                report.skip(d, SkipReason.TEACHING_BREAK, off.reason)
                continue
            if (d, slot.start_time) in run.existing:
                report.skipped_existing_count += 1
                report.skip(d, SkipReason.EXISTING_LESSON)
                continue

            # a strict run only aborts on dates it would actually write
            if d < run.today and not run.policy.skip_conflicts:
                report.skipped_past_date_count += 1
                report.skip(d, SkipReason.PAST_DATE)
                continue

            candidate = LessonCandidate(
                run.tutoring_class.id, d, slot.start_time, slot.end_time,
                run.tutoring_class.teacher_id, run.tutoring_class.classroom_id, run.student_ids,
            )
            conflicts = detect(candidate, run.booked(self.checker, d))
            if conflicts:
                if not run.policy.skip_conflicts:
                    raise ConflictError(
                        conflicts,
                        f"Slot {slot.id} ({label}) conflicts on {d.isoformat()}: "
                        + "; ".join(c.describe() for c in conflicts),
                    )
                report.skipped_conflict_count += 1
                for conflict in conflicts:
                    log.debug("Skipping %s for class %s: %s", d, run.tutoring_class.id, conflict.describe())
                    report.warnings.append(f"Skipped {d.isoformat()} {label}: {conflict.describe()}")
                report.skip(d, SkipReason.SCHEDULING_CONFLICT, conflicts[0].describe())
                continue

            if d < run.today:
                report.skipped_past_date_count += 1
                report.skip(d, SkipReason.PAST_DATE)
                continue

            lesson = Lesson(
                class_id=run.tutoring_class.id,
                scheduled_date=d,
                start_time=slot.start_time,
                end_time=slot.end_time,
                status=LessonStatus.SCHEDULED,
                generation_source=GenerationSource.AUTOMATIC,
                source_slot_id=slot.id,
            )
            if not self.lessons.try_insert(lesson):
                # lost a race against another writer; treat as already generated
                report.skipped_existing_count += 1
                report.skip(d, SkipReason.EXISTING_LESSON)
                continue
            run.existing.add((d, slot.start_time))
            run.booked(self.checker, d).append(candidate.as_booked(lesson.id))
            report.generated_count += 1
            report.generated_lesson_ids.append(lesson.id)

        if report.skipped_conflict_count:
            log.info("Slot %s (%s): %d date(s) skipped due to conflicts",
                     slot.id, label, report.skipped_conflict_count)
        return report


@dataclass
class _GenerationRun:
    """State shared by all slots of one generate() call."""
    tutoring_class: TutoringClass
    student_ids: frozenset[int]
    existing: set[tuple[date, time]]
    non_teaching: dict[date, NonTeachingDay]
    policy: GenerationPolicy
    today: date
    _booked: dict[date, list[BookedLesson]] = field(default_factory=dict)

    def booked(self, checker: ConflictChecker, d: date) -> list[BookedLesson]:
        # loaded once per date inside the writing transaction, then extended with our own inserts
        if d not in self._booked:
            self._booked[d] = checker.booked_on(d)
        return self._booked[d]
