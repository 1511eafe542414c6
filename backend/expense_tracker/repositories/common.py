import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expense_tracker.errors import DependencyError

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(db: Session, action: str) -> Iterator[None]:
    """Roll back and re-raise database failures as DependencyError."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[STORE] Failed to {action}: {e}")
        raise DependencyError(f"failed to {action}", cause=e)
