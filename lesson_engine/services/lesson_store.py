from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from lesson_engine.errors import NotFoundError
from lesson_engine.models import Lesson, LessonStatus

log = logging.getLogger(__name__)

UPCOMING_DAYS = 7


@dataclass
class LessonSummary:
    total_lessons: int
    completed_lessons: int
    scheduled_lessons: int
    cancelled_lessons: int
    makeup_lessons: int
    no_show_lessons: int
    upcoming_lessons: int
    next_lesson_date: date | None


class LessonStore:
    def __init__(self, session: Session):
        self.session = session

    def get(self, lesson_id: int) -> Lesson:
        lesson = self.session.get(Lesson, lesson_id)
        if lesson is None:
            raise NotFoundError("Lesson", lesson_id)
        return lesson

    def live_lesson_exists(self, class_id: int, d: date, start: time, exclude_lesson_id: int | None = None) -> bool:
        q = (self.session.query(Lesson.id)
             .filter(Lesson.class_id == class_id,
                     Lesson.scheduled_date == d,
                     Lesson.start_time == start,
                     Lesson.status != LessonStatus.CANCELLED))
        if exclude_lesson_id is not None:
            q = q.filter(Lesson.id != exclude_lesson_id)
        return self.session.query(q.exists()).scalar()

    def live_keys(self, class_id: int, start: date, end: date) -> set[tuple[date, time]]:
        rows = (self.session.query(Lesson.scheduled_date, Lesson.start_time)
                .filter(Lesson.class_id == class_id,
                        Lesson.scheduled_date.between(start, end),
                        Lesson.status != LessonStatus.CANCELLED)
                .all())
        return {(d, t) for d, t in rows}

    def try_insert(self, lesson: Lesson) -> bool:
        """Insert under a SAVEPOINT; False if the live-lesson unique index rejects it."""
        try:
            with self.session.begin_nested():
                self.session.add(lesson)
                self.session.flush()
        except IntegrityError:
            log.info("Lesson for class %s on %s %s already exists, skipping",
                     lesson.class_id, lesson.scheduled_date, lesson.start_time)
            return False
        return True

    def compare_and_set(self, lesson: Lesson, expected: LessonStatus, **values: Any) -> bool:
        """Apply ``values`` only if the lesson is still in ``expected`` status."""
        result = self.session.execute(
            update(Lesson)
            .where(Lesson.id == lesson.id, Lesson.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        self.session.refresh(lesson)
        return True

    def _future_scheduled(self, class_id: int, today: date, slot_id: int | None = None) -> Query:
        q = self.session.query(Lesson).filter(
            Lesson.class_id == class_id,
            Lesson.scheduled_date > today,
            Lesson.status == LessonStatus.SCHEDULED,
        )
        if slot_id is not None:
            q = q.filter(Lesson.source_slot_id == slot_id)
        return q

    def count_future_scheduled(self, class_id: int, today: date, slot_id: int | None = None) -> int:
        return self._future_scheduled(class_id, today, slot_id).count()

    def delete_future_scheduled(self, class_id: int, today: date, slot_id: int | None = None) -> int:
        return self._future_scheduled(class_id, today, slot_id).delete(synchronize_session="fetch")

    def slot_lesson_counts(self, slot_id: int, today: date) -> tuple[int, int]:
        """(lessons on or before today, future Scheduled lessons) generated from a slot."""
        past = (self.session.query(Lesson)
                .filter(Lesson.source_slot_id == slot_id, Lesson.scheduled_date <= today)
                .count())
        future = (self.session.query(Lesson)
                  .filter(Lesson.source_slot_id == slot_id,
                          Lesson.scheduled_date > today,
                          Lesson.status == LessonStatus.SCHEDULED)
                  .count())
        return past, future

    def for_class(self, class_id: int, today: date, scope: str = "all",
                  status: LessonStatus | None = None) -> list[Lesson]:
        q = self.session.query(Lesson).filter(Lesson.class_id == class_id)
        if scope == "upcoming":
            q = q.filter(Lesson.scheduled_date >= today)
        elif scope == "past":
            q = q.filter(Lesson.scheduled_date < today)
        if status is not None:
            q = q.filter(Lesson.status == status)
        return q.order_by(Lesson.scheduled_date.asc(), Lesson.start_time.asc()).all()

    def summary(self, class_id: int, today: date) -> LessonSummary:
        lessons = self.for_class(class_id, today)
        by_status = Counter(lesson.status for lesson in lessons)
        live = [l for l in lessons
                if l.status in (LessonStatus.SCHEDULED, LessonStatus.MAKE_UP) and l.scheduled_date >= today]
        horizon = today + timedelta(days=UPCOMING_DAYS)
        return LessonSummary(
            total_lessons=len(lessons),
            completed_lessons=by_status[LessonStatus.CONDUCTED],
            scheduled_lessons=by_status[LessonStatus.SCHEDULED],
            cancelled_lessons=by_status[LessonStatus.CANCELLED],
            makeup_lessons=by_status[LessonStatus.MAKE_UP],
            no_show_lessons=by_status[LessonStatus.NO_SHOW],
            upcoming_lessons=sum(1 for l in live if l.scheduled_date <= horizon),
            next_lesson_date=live[0].scheduled_date if live else None,
        )
