from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from lesson_engine.config import settings
from lesson_engine.dependencies import get_class_or_404, get_db
from lesson_engine.schemas.lessons import (
    CancelRequest,
    ConductRequest,
    ConflictCheckRequest,
    ConflictCheckResponse,
    GenerateLessonsRequest,
    GenerationReportDto,
    LessonResponse,
    MakeupRequest,
    ManualLessonRequest,
    NotesRequest,
    RescheduleRequest,
)
from lesson_engine.services.calendar_provider import CalendarProvider
from lesson_engine.services.conflicts import ConflictChecker
from lesson_engine.services.generator import GenerationPolicy, LessonGenerator, resolve_window
from lesson_engine.services.lesson_store import LessonStore
from lesson_engine.services.lifecycle import LessonLifecycle
from lesson_engine.services.slot_repository import ScheduleSlotRepository

router = APIRouter(prefix="/api/lessons", tags=["lessons"])


@router.post("/generate", response_model=GenerationReportDto)
def generate_lessons(payload: GenerateLessonsRequest, session: Session = Depends(get_db)):
    tutoring_class = get_class_or_404(session, payload.class_id)
    calendar = CalendarProvider(session)
    year = calendar.year(tutoring_class.academic_year_id)
    semester = calendar.semester(payload.semester_id) if payload.semester_id is not None else None
    window = resolve_window(payload.generation_mode, year, payload.from_date, payload.to_date, semester)

    slots = None
    if payload.slot_ids is not None:
        repo = ScheduleSlotRepository(session)
        slots = [repo.get(slot_id) for slot_id in payload.slot_ids]

    skip = settings.SKIP_CONFLICTS_DEFAULT if payload.skip_conflicts is None else payload.skip_conflicts
    report = LessonGenerator(session, calendar=calendar).generate(
        tutoring_class.id, slots, window, GenerationPolicy(skip_conflicts=skip),
        year_id=year.id, semester_id=payload.semester_id,
    )
    return GenerationReportDto.from_report(report)


@router.post("/conflicts", response_model=ConflictCheckResponse)
def check_conflicts(payload: ConflictCheckRequest, session: Session = Depends(get_db)):
    tutoring_class = get_class_or_404(session, payload.class_id)
    # suggestions look at most a week ahead
    horizon = payload.scheduled_date + timedelta(days=7)
    non_teaching = CalendarProvider(session).non_teaching_dates(
        tutoring_class.academic_year_id, payload.scheduled_date, horizon)
    result = ConflictChecker(session).precheck(
        tutoring_class, payload.scheduled_date, payload.start_time, payload.end_time,
        exclude_lesson_id=payload.exclude_lesson_id, non_teaching=non_teaching,
    )
    return ConflictCheckResponse.model_validate(result)


@router.post("", response_model=LessonResponse, status_code=status.HTTP_201_CREATED)
def create_lesson(payload: ManualLessonRequest, session: Session = Depends(get_db)):
    lesson = LessonLifecycle(session).create_manual(
        payload.class_id, payload.scheduled_date, payload.start_time, payload.end_time, notes=payload.notes)
    return LessonResponse.model_validate(lesson)


@router.get("/{lesson_id}", response_model=LessonResponse)
def get_lesson(lesson_id: int, session: Session = Depends(get_db)):
    return LessonResponse.model_validate(LessonStore(session).get(lesson_id))


@router.post("/{lesson_id}/conduct", response_model=LessonResponse)
def conduct_lesson(lesson_id: int, payload: ConductRequest | None = None, session: Session = Depends(get_db)):
    payload = payload or ConductRequest()
    lesson = LessonLifecycle(session).conduct(lesson_id, notes=payload.notes, conducted_at=payload.conducted_at)
    return LessonResponse.model_validate(lesson)


@router.post("/{lesson_id}/cancel", response_model=LessonResponse)
def cancel_lesson(lesson_id: int, payload: CancelRequest, session: Session = Depends(get_db)):
    return LessonResponse.model_validate(LessonLifecycle(session).cancel(lesson_id, payload.reason))


@router.post("/{lesson_id}/no-show", response_model=LessonResponse)
def mark_no_show(lesson_id: int, session: Session = Depends(get_db)):
    return LessonResponse.model_validate(LessonLifecycle(session).mark_no_show(lesson_id))


@router.post("/{lesson_id}/reschedule", response_model=LessonResponse)
def reschedule_lesson(lesson_id: int, payload: RescheduleRequest, session: Session = Depends(get_db)):
    lesson = LessonLifecycle(session).reschedule(
        lesson_id, payload.new_date, payload.new_start_time, payload.new_end_time, reason=payload.reason)
    return LessonResponse.model_validate(lesson)


@router.post("/{lesson_id}/makeup", response_model=LessonResponse, status_code=status.HTTP_201_CREATED)
def create_makeup_lesson(lesson_id: int, payload: MakeupRequest, session: Session = Depends(get_db)):
    makeup = LessonLifecycle(session).create_makeup(
        lesson_id, payload.new_date, payload.new_start_time, payload.new_end_time, notes=payload.notes)
    return LessonResponse.model_validate(makeup)


@router.put("/{lesson_id}/notes", response_model=LessonResponse)
def update_lesson_notes(lesson_id: int, payload: NotesRequest, session: Session = Depends(get_db)):
    return LessonResponse.model_validate(LessonLifecycle(session).update_notes(lesson_id, payload.notes))
