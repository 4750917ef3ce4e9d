from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, time

from sqlalchemy.orm import Session

from lesson_engine.errors import NotFoundError, ValidationError
from lesson_engine.models import ScheduleSlot, Semester, TutoringClass
from lesson_engine.services.lesson_store import LessonStore
from lesson_engine.utils import (
    day_name,
    format_time,
    intervals_overlap,
    now,
    validate_day_of_week,
    validate_time_range,
)

log = logging.getLogger(__name__)


@dataclass
class SlotWithCounts:
    slot: ScheduleSlot
    past_lesson_count: int
    future_lesson_count: int


@dataclass
class SlotReplacement:
    old_slot: ScheduleSlot
    new_slot: ScheduleSlot
    future_lessons_deleted: int


class ScheduleSlotRepository:
    """Weekly templates of a class. Slots are archived, never deleted."""

    def __init__(self, session: Session):
        self.session = session
        self.lessons = LessonStore(session)

    def get(self, slot_id: int) -> ScheduleSlot:
        slot = self.session.get(ScheduleSlot, slot_id)
        if slot is None:
            raise NotFoundError("Schedule slot", slot_id)
        return slot

    def for_class(self, class_id: int, include_obsolete: bool = False) -> list[ScheduleSlot]:
        q = self.session.query(ScheduleSlot).filter(ScheduleSlot.class_id == class_id)
        if not include_obsolete:
            q = q.filter(ScheduleSlot.is_obsolete.is_(False))
        return q.order_by(ScheduleSlot.day_of_week.asc(), ScheduleSlot.start_time.asc()).all()

    def archived(self, class_id: int) -> list[ScheduleSlot]:
        return (self.session.query(ScheduleSlot)
                .filter(ScheduleSlot.class_id == class_id, ScheduleSlot.is_obsolete.is_(True))
                .order_by(ScheduleSlot.obsoleted_at.desc(), ScheduleSlot.id.desc())
                .all())

    def _validate(self, tutoring_class: TutoringClass, day_of_week: int, start: time, end: time,
                  semester_id: int | None, ignore_slot_id: int | None = None) -> None:
        validate_day_of_week(day_of_week)
        validate_time_range(start, end)
        if semester_id is not None:
            semester = self.session.get(Semester, semester_id)
            if semester is None:
                raise NotFoundError("Semester", semester_id)
            if semester.academic_year_id != tutoring_class.academic_year_id:
                raise ValidationError(
                    f"Semester {semester_id} does not belong to the academic year of class {tutoring_class.id}")

        for other in self.for_class(tutoring_class.id):
            if other.id == ignore_slot_id or other.day_of_week != day_of_week:
                continue
            # slots bound to two different semesters never run at the same time
            if other.semester_id is not None and semester_id is not None and other.semester_id != semester_id:
                continue
            if intervals_overlap(start, end, other.start_time, other.end_time):
                raise ValidationError(
                    f"Slot {day_name(day_of_week)} {format_time(start)}-{format_time(end)} overlaps "
                    f"slot {other.id} ({format_time(other.start_time)}-{format_time(other.end_time)})")

    def add(self, class_id: int, day_of_week: int, start: time, end: time,
            semester_id: int | None = None) -> ScheduleSlot:
        tutoring_class = self.session.get(TutoringClass, class_id)
        if tutoring_class is None:
            raise NotFoundError("Class", class_id)
        self._validate(tutoring_class, day_of_week, start, end, semester_id)
        slot = ScheduleSlot(class_id=class_id, day_of_week=day_of_week, start_time=start,
                            end_time=end, semester_id=semester_id)
        self.session.add(slot)
        self.session.flush()
        log.info("Added slot %s for class %s (%s %s-%s)", slot.id, class_id, day_name(day_of_week),
                 format_time(start), format_time(end))
        return slot

    def mark_obsolete(self, slot: ScheduleSlot) -> bool:
        if slot.is_obsolete:
            return False
        slot.is_obsolete = True
        slot.obsoleted_at = now()
        return True

    def with_counts(self, slot: ScheduleSlot, today: date) -> SlotWithCounts:
        past, future = self.lessons.slot_lesson_counts(slot.id, today)
        return SlotWithCounts(slot, past, future)

    def replace(self, slot_id: int, day_of_week: int, start: time, end: time,
                semester_id: int | None, today: date) -> SlotReplacement:
        """Archive a slot in favour of a new one.

        The old slot's future Scheduled lessons are deleted; past and already
        conducted ones stay attributed to it. Call :meth:`with_counts` first to
        show the caller how many lessons will go.
        """
        old = self.get(slot_id)
        if old.is_obsolete:
            raise ValidationError(f"Schedule slot {slot_id} is already archived")
        tutoring_class = self.session.get(TutoringClass, old.class_id)
        self._validate(tutoring_class, day_of_week, start, end, semester_id, ignore_slot_id=old.id)

        deleted = self.lessons.delete_future_scheduled(old.class_id, today, slot_id=old.id)
        self.mark_obsolete(old)
        new = ScheduleSlot(class_id=old.class_id, day_of_week=day_of_week, start_time=start,
                           end_time=end, semester_id=semester_id)
        self.session.add(new)
        self.session.flush()
        log.info("Replaced slot %s with %s for class %s, %d future lesson(s) removed",
                 old.id, new.id, old.class_id, deleted)
        return SlotReplacement(old, new, deleted)
