# app/db/unit_of_work.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import RegistryError, StoreTransactionFailure

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: Session, *, label: str) -> Iterator[Session]:
    """
    Atomic group of store writes.

    Everything added to `db` inside the block commits together on a clean
    exit. Any exception rolls the whole group back:
    - RegistryError subclasses propagate unchanged (NotFound, AlreadyFinalized...)
    - anything else surfaces as StoreTransactionFailure

    Writers used inside the block must not call db.commit() themselves.
    """
    try:
        yield db
        db.commit()
    except RegistryError:
        db.rollback()
        logger.info("[uow] %s rolled back (domain error)", label)
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("[uow] %s rolled back: %s", label, exc)
        raise StoreTransactionFailure(
            f"Failed to commit {label}", detail=str(exc)
        ) from exc
    except Exception as exc:
        db.rollback()
        logger.exception("[uow] %s aborted", label)
        raise StoreTransactionFailure(
            f"Failed to commit {label}", detail=str(exc)
        ) from exc
