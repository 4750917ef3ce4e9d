from __future__ import annotations

from typing import Any, Dict, Optional, Tuple, Type

from sqlalchemy.orm import Session

from lesson_engine.extensions import db


def get_or_create(session: Session, model: Type[db.Model], defaults: Optional[Dict[str, Any]] = None,
                  **kwargs: Any) -> Tuple[db.Model, bool]:
    instance = session.query(model).filter_by(**kwargs).first()
    if instance:
        return instance, False

    params = {**kwargs, **(defaults or {})}
    instance = model(**params)
    session.add(instance)
    session.flush()
    return instance, True
