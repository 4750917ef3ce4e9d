from __future__ import annotations

from datetime import date
from enum import Enum

from lesson_engine.extensions import db


class BreakType(str, Enum):
    HOLIDAY = "holiday"
    VACATION = "vacation"
    EXAM_PERIOD = "exam_period"


class AcademicYear(db.Model):
    __tablename__ = "academic_years"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)   # "2025/2026"
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=False)

    semesters = db.relationship("Semester", backref="academic_year", cascade="all, delete-orphan",
                                order_by="Semester.semester_number")
    teaching_breaks = db.relationship("TeachingBreak", backref="academic_year", cascade="all, delete-orphan",
                                      order_by="TeachingBreak.start_date")

    __table_args__ = (
        db.CheckConstraint("start_date < end_date", name="ck_year_dates"),
    )

    def contains(self, d: date) -> bool:
        return self.start_date <= d <= self.end_date

    def __repr__(self):
        return f"<AcademicYear id={self.id} name={self.name!r} active={self.is_active}>"


class Semester(db.Model):
    __tablename__ = "semesters"
    id = db.Column(db.Integer, primary_key=True)
    academic_year_id = db.Column(db.Integer, db.ForeignKey("academic_years.id"), nullable=False)
    semester_number = db.Column(db.Integer, nullable=False)   # 1-based
    name = db.Column(db.String(100), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("academic_year_id", "semester_number", name="uq_year_semester_number"),
        db.CheckConstraint("semester_number >= 1", name="ck_semester_number"),
        db.CheckConstraint("start_date < end_date", name="ck_semester_dates"),
    )

    def contains(self, d: date) -> bool:
        return self.start_date <= d <= self.end_date

    def __repr__(self):
        return f"<Semester id={self.id} year={self.academic_year_id} number={self.semester_number}>"


class TeachingBreak(db.Model):
    __tablename__ = "teaching_breaks"
    id = db.Column(db.Integer, primary_key=True)
    academic_year_id = db.Column(db.Integer, db.ForeignKey("academic_years.id"), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    break_type = db.Column(
        db.Enum(BreakType, name="break_type", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=BreakType.VACATION,
    )
    notes = db.Column(db.Text)

    __table_args__ = (
        db.CheckConstraint("start_date <= end_date", name="ck_break_dates"),
        db.Index("ix_break_year_dates", "academic_year_id", "start_date", "end_date"),
    )

    def __repr__(self):
        return f"<TeachingBreak id={self.id} {self.name!r} {self.start_date}..{self.end_date}>"
