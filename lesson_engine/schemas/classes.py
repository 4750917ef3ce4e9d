from __future__ import annotations

from datetime import datetime

from lesson_engine.schemas.common import CamelModel


class DisableClassResponse(CamelModel):
    class_id: int
    class_name: str
    future_lessons_deleted: int
    enrollments_marked_inactive: int
    schedule_slots_marked_obsolete: int
    disabled_at: datetime


class EnableClassResponse(CamelModel):
    class_id: int
    class_name: str
    enabled_at: datetime
