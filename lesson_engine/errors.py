"""Errors raised by the scheduling engine.

Services raise these; the HTTP layer maps each kind to a status code in
``lesson_engine.main``.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:
    from lesson_engine.services.conflicts import Conflict


class SchedulingError(Exception):
    kind = "scheduling_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "detail": self.message}


class ValidationError(SchedulingError):
    """Malformed input, rejected before anything is written."""
    kind = "validation_error"
    status_code = 422


class NotFoundError(SchedulingError):
    kind = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(SchedulingError):
    kind = "conflict"
    status_code = 409

    def __init__(self, conflicts: Sequence["Conflict"], message: str | None = None):
        conflicts = list(conflicts)
        if message is None:
            message = "; ".join(c.describe() for c in conflicts) or "Scheduling conflict"
        super().__init__(message)
        self.conflicts = conflicts

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["conflicts"] = [c.to_dict() for c in self.conflicts]
        return data


class InvalidStateTransitionError(SchedulingError):
    kind = "invalid_state_transition"
    status_code = 409

    def __init__(self, lesson_id: int, current_status: Any, action: str, reason: str | None = None):
        status_label = getattr(current_status, "value", current_status)
        message = f"Cannot {action} lesson {lesson_id} in status {status_label!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.lesson_id = lesson_id
        self.current_status = current_status
        self.action = action

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "lessonId": self.lesson_id,
            "currentStatus": getattr(self.current_status, "value", self.current_status),
            "action": self.action,
        })
        return data


class SchedulingWindowError(SchedulingError):
    """The requested window lies outside the configured academic calendar."""
    kind = "scheduling_window_error"
    status_code = 422
