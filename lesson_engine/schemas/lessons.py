from __future__ import annotations

from datetime import date, datetime

from pydantic import Field, computed_field

from lesson_engine.models import GenerationSource, LessonStatus
from lesson_engine.schemas.common import HHMM, CamelModel, ConflictDto
from lesson_engine.services.generator import GenerationMode, GenerationReport, SkipReason
from lesson_engine.services.lesson_states import allowed_actions


class GenerateLessonsRequest(CamelModel):
    class_id: int
    semester_id: int | None = None
    from_date: date | None = Field(default=None, alias="from")
    to_date: date | None = Field(default=None, alias="to")
    skip_conflicts: bool | None = None
    generation_mode: GenerationMode = GenerationMode.CUSTOM_RANGE
    slot_ids: list[int] | None = None


class SkippedDateDto(CamelModel):
    scheduled_date: date
    reason: SkipReason
    detail: str = ""


class SlotReportDto(CamelModel):
    slot_id: int
    day_of_week: int
    start_time: HHMM
    end_time: HHMM
    semester_id: int | None = None
    window: tuple[date, date] | None = None
    generated_count: int
    skipped_conflict_count: int
    skipped_past_date_count: int
    skipped_existing_count: int
    skipped_non_teaching_count: int
    warnings: list[str]
    skipped: list[SkippedDateDto]
    generated_lesson_ids: list[int]


class AcademicContextDto(CamelModel):
    academic_year_id: int
    academic_year_name: str
    semester_id: int | None = None
    semester_name: str | None = None
    non_teaching_days: int


class GenerationReportDto(CamelModel):
    class_id: int
    window_start: date
    window_end: date
    generated_count: int
    skipped_conflict_count: int
    skipped_past_date_count: int
    skipped_existing_count: int
    skipped_non_teaching_count: int
    warnings: list[str]
    lesson_generation_warnings: list[str]
    academic_context: AcademicContextDto | None = None
    slots: list[SlotReportDto]
    summary: str

    @classmethod
    def from_report(cls, report: GenerationReport) -> "GenerationReportDto":
        return cls.model_validate(report)


class LessonResponse(CamelModel):
    id: int
    class_id: int
    scheduled_date: date
    start_time: HHMM
    end_time: HHMM
    status: LessonStatus
    generation_source: GenerationSource
    source_slot_id: int | None = None
    original_lesson_id: int | None = None
    makeup_lesson_id: int | None = None
    cancellation_reason: str | None = None
    reschedule_reason: str | None = None
    conducted_at: datetime | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @computed_field(alias="allowedActions")
    @property
    def allowed_actions(self) -> list[str]:
        return [action.value for action in allowed_actions(self.status)]


class ManualLessonRequest(CamelModel):
    class_id: int
    scheduled_date: date
    start_time: HHMM
    end_time: HHMM
    notes: str | None = None


class ConductRequest(CamelModel):
    notes: str | None = None
    conducted_at: datetime | None = None


class CancelRequest(CamelModel):
    reason: str


class RescheduleRequest(CamelModel):
    new_date: date
    new_start_time: HHMM
    new_end_time: HHMM
    reason: str | None = None


class MakeupRequest(CamelModel):
    new_date: date
    new_start_time: HHMM
    new_end_time: HHMM
    notes: str | None = None


class NotesRequest(CamelModel):
    notes: str | None = None


class ConflictCheckRequest(CamelModel):
    class_id: int
    scheduled_date: date
    start_time: HHMM
    end_time: HHMM
    exclude_lesson_id: int | None = None


class SuggestionDto(CamelModel):
    kind: str
    label: str
    scheduled_date: date
    start_time: HHMM
    end_time: HHMM


class ConflictCheckResponse(CamelModel):
    has_conflicts: bool
    conflicts: list[ConflictDto]
    suggestions: list[SuggestionDto]


class LessonSummaryResponse(CamelModel):
    class_id: int
    total_lessons: int
    completed_lessons: int
    scheduled_lessons: int
    cancelled_lessons: int
    makeup_lessons: int
    no_show_lessons: int
    upcoming_lessons: int
    next_lesson_date: date | None = None
