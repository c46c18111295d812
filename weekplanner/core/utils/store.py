"""Entity store call wrapper translating SQLAlchemy failures."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from weekplanner.core.errors import StoreUnavailable
from weekplanner.extensions import db

logger = logging.getLogger(__name__)


@contextmanager
def store_call(action: str, commit: bool = False) -> Iterator[Session]:
    """Run one store operation; commit when asked, roll back on any failure.

    Integrity errors surface as ``ValueError("validation_error")``, every
    other database error as ``StoreUnavailable``.
    """
    session = db.session
    try:
        yield session
        if commit:
            session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.warning("Store rejected %s: %s", action, exc.orig)
        raise ValueError("validation_error") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Store failure during %s", action)
        raise StoreUnavailable(action) from exc
