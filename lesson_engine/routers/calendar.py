from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lesson_engine.dependencies import get_db
from lesson_engine.errors import ValidationError
from lesson_engine.schemas.calendar import (
    NonTeachingDatesResponse,
    NonTeachingDayDto,
    SemesterDto,
    TeachingDaysResponse,
)
from lesson_engine.services.calendar_provider import CalendarProvider

router = APIRouter(prefix="/api/academic-years", tags=["calendar"])


def _check_range(start: date, end: date) -> None:
    if start > end:
        raise ValidationError(f"'from' {start} is after 'to' {end}")


@router.get("/{year_id}/non-teaching-dates", response_model=NonTeachingDatesResponse)
def non_teaching_dates(
    year_id: int,
    start: date = Query(alias="from"),
    end: date = Query(alias="to"),
    session: Session = Depends(get_db),
):
    _check_range(start, end)
    days = CalendarProvider(session).non_teaching_days(year_id, start, end)
    return NonTeachingDatesResponse(
        academic_year_id=year_id,
        from_date=start,
        to_date=end,
        dates=[day.date for day in days],
        days=[NonTeachingDayDto.model_validate(day) for day in days],
    )


@router.get("/{year_id}/teaching-days", response_model=TeachingDaysResponse)
def teaching_days(
    year_id: int,
    start: date = Query(alias="from"),
    end: date = Query(alias="to"),
    session: Session = Depends(get_db),
):
    _check_range(start, end)
    teaching, total = CalendarProvider(session).teaching_days_count(year_id, start, end)
    return TeachingDaysResponse(
        academic_year_id=year_id,
        from_date=start,
        to_date=end,
        teaching_days=teaching,
        total_days=total,
        non_teaching_days=total - teaching,
    )


@router.get("/{year_id}/semester-for", response_model=SemesterDto | None)
def semester_for(year_id: int, on: date = Query(alias="date"), session: Session = Depends(get_db)):
    semester = CalendarProvider(session).semester_for(year_id, on)
    return SemesterDto.model_validate(semester) if semester is not None else None
