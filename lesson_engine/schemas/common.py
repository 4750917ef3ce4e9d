from __future__ import annotations

import re
from datetime import date, time
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

from lesson_engine.services.conflicts import ConflictType
from lesson_engine.utils import format_time

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def _parse_hhmm(value: Any) -> Any:
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        match = _HHMM.match(value)
        if match:
            return time(int(match.group(1)), int(match.group(2)))
    raise ValueError("time must be in 24h HH:mm format")


# zone-naive time of day, "HH:mm" on the wire
HHMM = Annotated[time, BeforeValidator(_parse_hhmm), PlainSerializer(format_time, return_type=str)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ConflictDto(CamelModel):
    conflict_type: ConflictType
    resource_id: int
    conflicting_lesson_id: int
    conflicting_class_id: int
    scheduled_date: date
    start_time: HHMM
    end_time: HHMM
