from __future__ import annotations

import datetime as dt

from pydantic import Field

from lesson_engine.schemas.common import CamelModel


class NonTeachingDayDto(CamelModel):
    date: dt.date
    reason: str
    break_type: str


class NonTeachingDatesResponse(CamelModel):
    academic_year_id: int
    from_date: dt.date = Field(alias="from")
    to_date: dt.date = Field(alias="to")
    dates: list[dt.date]
    days: list[NonTeachingDayDto]


class TeachingDaysResponse(CamelModel):
    academic_year_id: int
    from_date: dt.date = Field(alias="from")
    to_date: dt.date = Field(alias="to")
    teaching_days: int
    total_days: int
    non_teaching_days: int


class SemesterDto(CamelModel):
    id: int
    academic_year_id: int
    semester_number: int
    name: str
    start_date: dt.date
    end_date: dt.date
