from __future__ import annotations

from datetime import datetime

from lesson_engine.models import ScheduleSlot
from lesson_engine.schemas.common import HHMM, CamelModel
from lesson_engine.services.slot_repository import SlotWithCounts


class ScheduleSlotCreate(CamelModel):
    day_of_week: int
    start_time: HHMM
    end_time: HHMM
    semester_id: int | None = None


class ScheduleSlotDto(CamelModel):
    id: int | None = None
    class_id: int | None = None
    day_of_week: int
    start_time: HHMM
    end_time: HHMM
    semester_id: int | None = None
    is_global: bool
    is_obsolete: bool = False
    obsoleted_at: datetime | None = None
    past_lesson_count: int | None = None
    future_lesson_count: int | None = None

    @classmethod
    def from_slot(cls, slot: ScheduleSlot, counts: SlotWithCounts | None = None) -> "ScheduleSlotDto":
        dto = cls.model_validate(slot)
        if counts is not None:
            dto.past_lesson_count = counts.past_lesson_count
            dto.future_lesson_count = counts.future_lesson_count
        return dto


class SlotReplacementResponse(CamelModel):
    old_slot: ScheduleSlotDto
    new_slot: ScheduleSlotDto
    future_lessons_deleted: int
