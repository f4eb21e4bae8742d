"""Commit helper translating database errors into domain errors."""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from huddle.core.errors import HuddleError, StorageFailure

logger = logging.getLogger(__name__)


def commit(db: Session, *, action: str, conflict: HuddleError | None = None) -> None:
    """Commit the current unit of work.

    Args:
        db: Session holding the pending changes.
        action: Short description used in the log line on failure.
        conflict: Error to raise instead of ``StorageFailure`` when a unique or
            check constraint rejects the write.

    Raises:
        HuddleError: ``conflict`` on an integrity violation, otherwise
            ``StorageFailure`` with the driver error chained.
    """
    try:
        db.commit()
    except IntegrityError as err:
        db.rollback()
        if conflict is not None:
            raise conflict from err
        logger.exception("Integrity error while %s", action)
        raise StorageFailure() from err
    except SQLAlchemyError as err:
        db.rollback()
        logger.exception("Storage failure while %s", action)
        raise StorageFailure() from err
