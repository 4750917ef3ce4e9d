from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from lesson_engine.errors import NotFoundError
from lesson_engine.models import AcademicYear, Semester, TeachingBreak
from lesson_engine.utils import clamp_window, daterange


@dataclass(frozen=True)
class NonTeachingDay:
    date: date
    reason: str        # name of the break
    break_type: str


class CalendarProvider:
    """Read-only lookups over the academic calendar.

    Every call takes the academic year explicitly; resolving "the active year"
    happens once at the boundary through :meth:`active_year`.
    """

    def __init__(self, session: Session):
        self.session = session

    def year(self, year_id: int) -> AcademicYear:
        year = self.session.get(AcademicYear, year_id)
        if year is None:
            raise NotFoundError("Academic year", year_id)
        return year

    def active_year(self) -> AcademicYear:
        year = self.session.query(AcademicYear).filter_by(is_active=True).first()
        if year is None:
            raise NotFoundError("Academic year", "active")
        return year

    def semesters(self, year_id: int) -> list[Semester]:
        self.year(year_id)
        return (self.session.query(Semester)
                .filter_by(academic_year_id=year_id)
                .order_by(Semester.semester_number.asc())
                .all())

    def semester(self, semester_id: int) -> Semester:
        semester = self.session.get(Semester, semester_id)
        if semester is None:
            raise NotFoundError("Semester", semester_id)
        return semester

    def semester_for(self, year_id: int, d: date) -> Semester | None:
        for semester in self.semesters(year_id):
            if semester.contains(d):
                return semester
        return None

    def _breaks(self, year_id: int, start: date, end: date) -> list[TeachingBreak]:
        self.year(year_id)
        return (self.session.query(TeachingBreak)
                .filter(TeachingBreak.academic_year_id == year_id,
                        TeachingBreak.start_date <= end,
                        TeachingBreak.end_date >= start)
                .order_by(TeachingBreak.start_date.asc())
                .all())

    def non_teaching_days(self, year_id: int, start: date, end: date) -> list[NonTeachingDay]:
        days: dict[date, NonTeachingDay] = {}
        for brk in self._breaks(year_id, start, end):
            window = clamp_window(brk.start_date, brk.end_date, start, end)
            if window is None:
                continue
            for d in daterange(*window):
                # first break wins when ranges overlap
                days.setdefault(d, NonTeachingDay(d, brk.name, brk.break_type.value))
        return [days[d] for d in sorted(days)]

    def non_teaching_dates(self, year_id: int, start: date, end: date) -> set[date]:
        return {day.date for day in self.non_teaching_days(year_id, start, end)}

    def teaching_days_count(self, year_id: int, start: date, end: date) -> tuple[int, int]:
        """(teaching days, total days) in [start, end]."""
        total = (end - start).days + 1 if end >= start else 0
        return total - len(self.non_teaching_dates(year_id, start, end)), total
