from __future__ import annotations

from dataclasses import asdict
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lesson_engine.dependencies import get_class_or_404, get_db
from lesson_engine.models import LessonStatus
from lesson_engine.schemas.classes import DisableClassResponse, EnableClassResponse
from lesson_engine.schemas.lessons import LessonResponse, LessonSummaryResponse
from lesson_engine.services.archiver import ClassArchiver
from lesson_engine.services.lesson_store import LessonStore
from lesson_engine.services.lifecycle import LessonLifecycle
from lesson_engine.utils import today

router = APIRouter(prefix="/api/classes", tags=["classes"])


@router.post("/{class_id}/disable", response_model=DisableClassResponse)
def disable_class(class_id: int, session: Session = Depends(get_db)):
    return DisableClassResponse.model_validate(ClassArchiver(session).disable(class_id))


@router.post("/{class_id}/enable", response_model=EnableClassResponse)
def enable_class(class_id: int, session: Session = Depends(get_db)):
    return EnableClassResponse.model_validate(ClassArchiver(session).enable(class_id))


@router.get("/{class_id}/lessons", response_model=list[LessonResponse])
def list_class_lessons(
    class_id: int,
    scope: Literal["all", "upcoming", "past"] = "all",
    lesson_status: LessonStatus | None = Query(default=None, alias="status"),
    session: Session = Depends(get_db),
):
    get_class_or_404(session, class_id)
    lessons = LessonStore(session).for_class(class_id, today(), scope=scope, status=lesson_status)
    return [LessonResponse.model_validate(lesson) for lesson in lessons]


@router.get("/{class_id}/lessons/summary", response_model=LessonSummaryResponse)
def class_lesson_summary(class_id: int, session: Session = Depends(get_db)):
    summary = LessonLifecycle(session).summary(class_id)
    return LessonSummaryResponse(class_id=class_id, **asdict(summary))
