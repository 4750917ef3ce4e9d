from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from lesson_engine.dependencies import get_class_or_404, get_db
from lesson_engine.extensions import unit_of_work
from lesson_engine.schemas.schedule import ScheduleSlotCreate, ScheduleSlotDto, SlotReplacementResponse
from lesson_engine.services.locks import class_lock
from lesson_engine.services.slot_repository import ScheduleSlotRepository
from lesson_engine.utils import today

router = APIRouter(prefix="/api", tags=["schedule"])


@router.get("/classes/{class_id}/schedule-slots", response_model=list[ScheduleSlotDto])
def list_slots(class_id: int, include_obsolete: bool = False, session: Session = Depends(get_db)):
    get_class_or_404(session, class_id)
    repo = ScheduleSlotRepository(session)
    return [ScheduleSlotDto.from_slot(slot) for slot in repo.for_class(class_id, include_obsolete=include_obsolete)]


@router.post("/classes/{class_id}/schedule-slots", response_model=ScheduleSlotDto,
             status_code=status.HTTP_201_CREATED)
def add_slot(class_id: int, payload: ScheduleSlotCreate, session: Session = Depends(get_db)):
    repo = ScheduleSlotRepository(session)
    with class_lock(class_id), unit_of_work(session):
        slot = repo.add(class_id, payload.day_of_week, payload.start_time, payload.end_time, payload.semester_id)
    return ScheduleSlotDto.from_slot(slot)


@router.get("/classes/{class_id}/schedule-slots/archived", response_model=list[ScheduleSlotDto])
def list_archived_slots(class_id: int, session: Session = Depends(get_db)):
    get_class_or_404(session, class_id)
    repo = ScheduleSlotRepository(session)
    current = today()
    return [ScheduleSlotDto.from_slot(slot, repo.with_counts(slot, current)) for slot in repo.archived(class_id)]


@router.get("/schedule-slots/{slot_id}/preview-replacement", response_model=ScheduleSlotDto)
def preview_replacement(slot_id: int, session: Session = Depends(get_db)):
    """Lessons the slot has produced so far, and how many future ones a replacement would delete."""
    repo = ScheduleSlotRepository(session)
    slot = repo.get(slot_id)
    return ScheduleSlotDto.from_slot(slot, repo.with_counts(slot, today()))


@router.put("/schedule-slots/{slot_id}", response_model=SlotReplacementResponse)
def replace_slot(slot_id: int, payload: ScheduleSlotCreate, session: Session = Depends(get_db)):
    repo = ScheduleSlotRepository(session)
    slot = repo.get(slot_id)
    with class_lock(slot.class_id), unit_of_work(session):
        replacement = repo.replace(slot_id, payload.day_of_week, payload.start_time, payload.end_time,
                                   payload.semester_id, today())
    return SlotReplacementResponse(
        old_slot=ScheduleSlotDto.from_slot(replacement.old_slot),
        new_slot=ScheduleSlotDto.from_slot(replacement.new_slot),
        future_lessons_deleted=replacement.future_lessons_deleted,
    )
