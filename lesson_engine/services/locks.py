from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from lesson_engine.errors import NotFoundError
from lesson_engine.models import TutoringClass

_registry_guard = threading.Lock()
_class_locks: dict[int, threading.Lock] = {}


def _lock_for(class_id: int) -> threading.Lock:
    with _registry_guard:
        lock = _class_locks.get(class_id)
        if lock is None:
            lock = _class_locks[class_id] = threading.Lock()
        return lock


@contextmanager
def class_lock(class_id: int) -> Iterator[None]:
    """Serialise lesson writes for one class within this process."""
    lock = _lock_for(class_id)
    with lock:
        yield


def lock_class_row(session: Session, class_id: int) -> TutoringClass:
    """Load the class with SELECT ... FOR UPDATE so other workers queue behind us.

    SQLite ignores FOR UPDATE; there the in-process :func:`class_lock` and the
    partial unique index on lessons do the work.
    """
    tutoring_class = (session.query(TutoringClass)
                      .filter(TutoringClass.id == class_id)
                      .with_for_update()
                      .populate_existing()
                      .first())
    if tutoring_class is None:
        raise NotFoundError("Class", class_id)
    return tutoring_class
