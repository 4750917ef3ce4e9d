from __future__ import annotations

import logging
from datetime import date, datetime, time

from sqlalchemy.orm import Session

from lesson_engine.config import settings
from lesson_engine.errors import ConflictError, InvalidStateTransitionError, NotFoundError, ValidationError
from lesson_engine.extensions import unit_of_work
from lesson_engine.models import GenerationSource, Lesson, LessonStatus, TutoringClass
from lesson_engine.services.conflicts import ConflictChecker
from lesson_engine.services.lesson_states import Denied, LessonAction, check_transition
from lesson_engine.services.lesson_store import LessonStore, LessonSummary
from lesson_engine.services.locks import class_lock, lock_class_row
from lesson_engine.utils import format_time, now, today as school_today, validate_time_range

log = logging.getLogger(__name__)


class LessonLifecycle:
    """Status transitions of individual lessons.

    Each transition is a compare-and-swap on the current status, so two
    concurrent calls on the same lesson cannot both succeed.
    """

    def __init__(self, session: Session, checker: ConflictChecker | None = None):
        self.session = session
        self.checker = checker or ConflictChecker(session)
        self.lessons = LessonStore(session)

    def _require(self, lesson: Lesson, action: LessonAction) -> LessonStatus:
        result = check_transition(lesson.status, action)
        if isinstance(result, Denied):
            log.warning("Rejected %s on lesson %s: %s", action.value, lesson.id, result.reason)
            raise InvalidStateTransitionError(lesson.id, lesson.status, action.value, result.reason)
        return result.target

    def _swap(self, lesson: Lesson, action: LessonAction, target: LessonStatus, **values) -> Lesson:
        expected = lesson.status
        if not self.lessons.compare_and_set(lesson, expected, status=target, updated_at=now(), **values):
            # somebody else moved the lesson first
            self.session.refresh(lesson)
            raise InvalidStateTransitionError(lesson.id, lesson.status, action.value,
                                              f"status changed concurrently from {expected.value!r}")
        log.info("Lesson %s: %s -> %s (%s)", lesson.id, expected.value, target.value, action.value)
        return lesson

    def _check_free(self, tutoring_class: TutoringClass, d: date, start: time, end: time,
                    exclude_lesson_id: int | None = None) -> None:
        validate_time_range(start, end)
        conflicts = self.checker.check(tutoring_class, d, start, end, exclude_lesson_id=exclude_lesson_id)
        if conflicts:
            raise ConflictError(conflicts)
        if self.lessons.live_lesson_exists(tutoring_class.id, d, start, exclude_lesson_id=exclude_lesson_id):
            raise ConflictError([], f"Class {tutoring_class.id} already has a lesson on {d} at {format_time(start)}")

    def _validate_notes(self, notes: str | None) -> None:
        if notes is not None and len(notes) > settings.NOTES_MAX_LENGTH:
            raise ValidationError(f"Notes must be at most {settings.NOTES_MAX_LENGTH} characters")

    def conduct(self, lesson_id: int, notes: str | None = None, conducted_at: datetime | None = None,
                today: date | None = None) -> Lesson:
        today = today or school_today()
        self._validate_notes(notes)
        with unit_of_work(self.session):
            lesson = self.lessons.get(lesson_id)
            target = self._require(lesson, LessonAction.CONDUCT)
            if lesson.scheduled_date > today:
                raise InvalidStateTransitionError(lesson.id, lesson.status, LessonAction.CONDUCT.value,
                                                  f"lesson is scheduled for {lesson.scheduled_date}, in the future")
            values = {"conducted_at": conducted_at or now()}
            if notes is not None:
                values["notes"] = notes
            return self._swap(lesson, LessonAction.CONDUCT, target, **values)

    def cancel(self, lesson_id: int, reason: str) -> Lesson:
        reason = (reason or "").strip()
        if not settings.CANCELLATION_REASON_MIN_LENGTH <= len(reason) <= settings.CANCELLATION_REASON_MAX_LENGTH:
            raise ValidationError(
                f"Cancellation reason must be {settings.CANCELLATION_REASON_MIN_LENGTH}-"
                f"{settings.CANCELLATION_REASON_MAX_LENGTH} characters")
        with unit_of_work(self.session):
            lesson = self.lessons.get(lesson_id)
            target = self._require(lesson, LessonAction.CANCEL)
            return self._swap(lesson, LessonAction.CANCEL, target, cancellation_reason=reason)

    def mark_no_show(self, lesson_id: int, today: date | None = None) -> Lesson:
        today = today or school_today()
        with unit_of_work(self.session):
            lesson = self.lessons.get(lesson_id)
            target = self._require(lesson, LessonAction.MARK_NO_SHOW)
            if lesson.scheduled_date >= today:
                raise InvalidStateTransitionError(lesson.id, lesson.status, LessonAction.MARK_NO_SHOW.value,
                                                  "a no-show can only be recorded after the lesson date")
            return self._swap(lesson, LessonAction.MARK_NO_SHOW, target)

    def reschedule(self, lesson_id: int, new_date: date, new_start: time, new_end: time,
                   reason: str | None = None) -> Lesson:
        if reason is not None and len(reason) > settings.CANCELLATION_REASON_MAX_LENGTH:
            raise ValidationError(f"Reschedule reason must be at most {settings.CANCELLATION_REASON_MAX_LENGTH} characters")
        lesson = self.lessons.get(lesson_id)
        with class_lock(lesson.class_id), unit_of_work(self.session):
            tutoring_class = lock_class_row(self.session, lesson.class_id)
            target = self._require(lesson, LessonAction.RESCHEDULE)
            if not tutoring_class.is_active:
                raise ValidationError(f"Class {tutoring_class.id} is disabled")
            self._check_free(tutoring_class, new_date, new_start, new_end, exclude_lesson_id=lesson.id)
            return self._swap(lesson, LessonAction.RESCHEDULE, target, scheduled_date=new_date,
                              start_time=new_start, end_time=new_end, reschedule_reason=reason)

    def create_makeup(self, original_lesson_id: int, new_date: date, new_start: time, new_end: time,
                      notes: str | None = None) -> Lesson:
        self._validate_notes(notes)
        original = self.lessons.get(original_lesson_id)
        with class_lock(original.class_id), unit_of_work(self.session):
            tutoring_class = lock_class_row(self.session, original.class_id)
            self._require(original, LessonAction.CREATE_MAKEUP)
            if original.makeup_lesson_id is not None:
                raise InvalidStateTransitionError(original.id, original.status, LessonAction.CREATE_MAKEUP.value,
                                                  f"make-up lesson {original.makeup_lesson_id} already exists")
            if not tutoring_class.is_active:
                raise ValidationError(f"Class {tutoring_class.id} is disabled")
            self._check_free(tutoring_class, new_date, new_start, new_end)

            makeup = Lesson(
                class_id=original.class_id,
                scheduled_date=new_date,
                start_time=new_start,
                end_time=new_end,
                status=LessonStatus.MAKE_UP,
                generation_source=GenerationSource.MAKEUP,
                original_lesson_id=original.id,
                notes=notes,
            )
            if not self.lessons.try_insert(makeup):
                raise ConflictError([], f"Class {original.class_id} already has a lesson on {new_date} "
                                        f"at {format_time(new_start)}")
            # the original stays Cancelled; only the back-link changes
            if not self.lessons.compare_and_set(original, LessonStatus.CANCELLED, makeup_lesson_id=makeup.id,
                                                updated_at=now()):
                raise InvalidStateTransitionError(original.id, original.status, LessonAction.CREATE_MAKEUP.value,
                                                  "status changed concurrently")
            log.info("Lesson %s: make-up %s created for %s %s", original.id, makeup.id, new_date,
                     format_time(new_start))
            return makeup

    def create_manual(self, class_id: int, scheduled_date: date, start: time, end: time,
                      notes: str | None = None) -> Lesson:
        self._validate_notes(notes)
        with class_lock(class_id), unit_of_work(self.session):
            tutoring_class = lock_class_row(self.session, class_id)
            if not tutoring_class.is_active:
                raise ValidationError(f"Class {class_id} is disabled")
            self._check_free(tutoring_class, scheduled_date, start, end)
            lesson = Lesson(
                class_id=class_id,
                scheduled_date=scheduled_date,
                start_time=start,
                end_time=end,
                status=LessonStatus.SCHEDULED,
                generation_source=GenerationSource.MANUAL,
                notes=notes,
            )
            if not self.lessons.try_insert(lesson):
                raise ConflictError([], f"Class {class_id} already has a lesson on {scheduled_date} "
                                        f"at {format_time(start)}")
            log.info("Manual lesson %s created for class %s on %s", lesson.id, class_id, scheduled_date)
            return lesson

    def update_notes(self, lesson_id: int, notes: str | None) -> Lesson:
        self._validate_notes(notes)
        with unit_of_work(self.session):
            lesson = self.lessons.get(lesson_id)
            lesson.notes = notes
            return lesson

    def summary(self, class_id: int, today: date | None = None) -> LessonSummary:
        if self.session.get(TutoringClass, class_id) is None:
            raise NotFoundError("Class", class_id)
        return self.lessons.summary(class_id, today or school_today())
