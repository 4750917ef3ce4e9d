from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

from lesson_engine.extensions import db


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class LessonStatus(str, Enum):
    SCHEDULED = "Scheduled"
    CONDUCTED = "Conducted"
    CANCELLED = "Cancelled"
    MAKE_UP = "Make Up"
    NO_SHOW = "No Show"


class GenerationSource(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"
    MAKEUP = "makeup"


@dataclass(frozen=True)
class GlobalScope:
    """Slot applies to every semester of the class's academic year."""


@dataclass(frozen=True)
class SemesterScope:
    semester_id: int


SlotScope = Union[GlobalScope, SemesterScope]


class ScheduleSlot(db.Model):
    __tablename__ = "schedule_slots"
    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey("classes.id"), nullable=False)
    day_of_week = db.Column(db.Integer, nullable=False)  # Monday=0..Sunday=6
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    semester_id = db.Column(db.Integer, db.ForeignKey("semesters.id"))  # NULL = every semester
    is_obsolete = db.Column(db.Boolean, nullable=False, default=False)
    obsoleted_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    tutoring_class = db.relationship("TutoringClass", backref=db.backref("schedule_slots", order_by="ScheduleSlot.day_of_week"))
    semester = db.relationship("Semester")

    __table_args__ = (
        db.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_slot_valid_dow"),
        db.CheckConstraint("start_time < end_time", name="ck_slot_times"),
        db.Index("ix_slot_class", "class_id", "is_obsolete"),
    )

    @property
    def scope(self) -> SlotScope:
        if self.semester_id is None:
            return GlobalScope()
        return SemesterScope(self.semester_id)

    @property
    def is_global(self) -> bool:
        return self.semester_id is None

    def __repr__(self):
        return (f"<ScheduleSlot id={self.id} class_id={self.class_id} dow={self.day_of_week} "
                f"{self.start_time}-{self.end_time} semester={self.semester_id} obsolete={self.is_obsolete}>")


class Lesson(db.Model):
    __tablename__ = "lessons"
    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey("classes.id"), nullable=False)
    scheduled_date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    status = db.Column(
        db.Enum(LessonStatus, name="lesson_status", native_enum=False, values_callable=_enum_values),
        nullable=False,
        default=LessonStatus.SCHEDULED,
    )
    generation_source = db.Column(
        db.Enum(GenerationSource, name="generation_source", native_enum=False, values_callable=_enum_values),
        nullable=False,
        default=GenerationSource.AUTOMATIC,
    )
    source_slot_id = db.Column(db.Integer, db.ForeignKey("schedule_slots.id"))
    original_lesson_id = db.Column(db.Integer, db.ForeignKey("lessons.id"))
    makeup_lesson_id = db.Column(db.Integer, db.ForeignKey("lessons.id"))
    cancellation_reason = db.Column(db.String(500))
    reschedule_reason = db.Column(db.String(500))
    conducted_at = db.Column(db.DateTime)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    tutoring_class = db.relationship("TutoringClass", backref=db.backref("lessons", passive_deletes=True))
    source_slot = db.relationship("ScheduleSlot", backref="lessons")

    __table_args__ = (
        # one live lesson per (class, date, start); cancelled rows free the slot
        db.Index(
            "uq_lesson_class_date_start_live",
            "class_id", "scheduled_date", "start_time",
            unique=True,
            sqlite_where=db.text("status != 'Cancelled'"),
            postgresql_where=db.text("status != 'Cancelled'"),
        ),
        db.Index("ix_lesson_date", "scheduled_date"),
        db.Index("ix_lesson_slot", "source_slot_id"),
        db.CheckConstraint("start_time < end_time", name="ck_lesson_times"),
    )

    @property
    def is_active_booking(self) -> bool:
        return self.status != LessonStatus.CANCELLED

    def __repr__(self):
        return (f"<Lesson id={self.id} class_id={self.class_id} {self.scheduled_date} "
                f"{self.start_time}-{self.end_time} status={self.status.value if self.status else None}>")
