from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy.orm import Session

from lesson_engine.extensions import unit_of_work
from lesson_engine.models import Enrollment, TutoringClass
from lesson_engine.services.lesson_store import LessonStore
from lesson_engine.services.locks import class_lock, lock_class_row
from lesson_engine.services.slot_repository import ScheduleSlotRepository
from lesson_engine.utils import now, today as school_today

log = logging.getLogger(__name__)


@dataclass
class DisableResult:
    class_id: int
    class_name: str
    future_lessons_deleted: int
    enrollments_marked_inactive: int
    schedule_slots_marked_obsolete: int
    disabled_at: datetime


@dataclass
class EnableResult:
    class_id: int
    class_name: str
    enabled_at: datetime


class ClassArchiver:
    """Disabling a class removes its future plan; enabling only flips the flag back."""

    def __init__(self, session: Session):
        self.session = session
        self.lessons = LessonStore(session)
        self.slots = ScheduleSlotRepository(session)

    def disable(self, class_id: int, today: date | None = None) -> DisableResult:
        today = today or school_today()
        with class_lock(class_id), unit_of_work(self.session):
            tutoring_class = lock_class_row(self.session, class_id)
            if not tutoring_class.is_active:
                log.info("Class %s is already disabled, re-running cascade", class_id)

            deleted = self.lessons.delete_future_scheduled(class_id, today)

            obsoleted = 0
            for slot in self.slots.for_class(class_id):
                if self.slots.mark_obsolete(slot):
                    obsoleted += 1

            stamp = now()
            enrollments = (self.session.query(Enrollment)
                           .filter(Enrollment.class_id == class_id, Enrollment.is_active.is_(True))
                           .all())
            for enrollment in enrollments:
                enrollment.is_active = False
                enrollment.deactivated_at = stamp

            tutoring_class.is_active = False
            tutoring_class.disabled_at = stamp
            result = DisableResult(
                class_id=tutoring_class.id,
                class_name=tutoring_class.name,
                future_lessons_deleted=deleted,
                enrollments_marked_inactive=len(enrollments),
                schedule_slots_marked_obsolete=obsoleted,
                disabled_at=stamp,
            )

        log.info("Disabled class %s (%s): %d future lesson(s) deleted, %d enrollment(s) and %d slot(s) archived",
                 result.class_id, result.class_name, result.future_lessons_deleted,
                 result.enrollments_marked_inactive, result.schedule_slots_marked_obsolete)
        return result

    def enable(self, class_id: int) -> EnableResult:
        with class_lock(class_id), unit_of_work(self.session):
            tutoring_class = lock_class_row(self.session, class_id)
            stamp = now()
            tutoring_class.is_active = True
            tutoring_class.enabled_at = stamp
            result = EnableResult(tutoring_class.id, tutoring_class.name, stamp)
        log.info("Enabled class %s (%s)", result.class_id, result.class_name)
        return result
