from typing import Any

from sqlalchemy.orm import Session

from .errors import NotFoundError
from .extensions import db
from .models import TutoringClass


def get_db() -> Any:
    """Dependency to provide a database session."""
    try:
        yield db.session
    finally:
        db.remove_session()


def get_class_or_404(session: Session, class_id: int) -> TutoringClass:
    tutoring_class = session.get(TutoringClass, class_id)
    if tutoring_class is None:
        raise NotFoundError("Class", class_id)
    return tutoring_class
