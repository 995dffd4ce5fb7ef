"""
Classify SQLAlchemy `IntegrityError`s raised by SQLite.

Two levels of exceptions live in this package:

1. Constraint-level classifiers (this module): `UniqueConstraintError`,
   `NotNullConstraintError`, ... They describe *what* failed in the database and
   are only used internally by `mapper.py`. They are never raised to callers.
2. App-level errors (`base.py`): `DuplicateError`, `RepositoryError`, ... These
   are what repositories raise.

| Constraint-level (internal) | → | App-level (external)             |
| --------------------------- | - | -------------------------------- |
| `UniqueConstraintError`     | → | `DuplicateError`                 |
| `NotNullConstraintError`    | → | `RepositoryError("Missing ...")` |
| anything else               | → | `RepositoryError`                |

SQLite exposes no structured error code through the DB-API, so classification
works from the message text (`UNIQUE constraint failed: users.userName`).
Python 3.11+ also sets `sqlite_errorname` on the driver exception; it is
preferred when present.
"""
import logging
from typing import Type

from sqlalchemy.exc import IntegrityError

from .base import RepositoryError

logger = logging.getLogger(__name__)


class ConstraintViolationError(RepositoryError):
    """Base for integrity/constraint violations."""
    pass


class UniqueConstraintError(ConstraintViolationError):
    """Unique constraint / primary key duplicate."""
    pass


class NotNullConstraintError(ConstraintViolationError):
    """NOT NULL violation (missing required column)."""
    pass


class UnknownIntegrityError(ConstraintViolationError):
    """Unrecognized integrity error."""
    pass


# https://www.sqlite.org/rescode.html#constraint (extended result code names)
SQLITE_ERRORNAME_EXCEPTION_MAP = {
    "SQLITE_CONSTRAINT_UNIQUE": UniqueConstraintError,
    "SQLITE_CONSTRAINT_PRIMARYKEY": UniqueConstraintError,
    "SQLITE_CONSTRAINT_NOTNULL": NotNullConstraintError,
}


def _match_any(msg: str, keywords: list[str]) -> bool:
    return any(keyword in msg for keyword in keywords)


def _classify_from_sqlite_errorname(orig) -> Type[ConstraintViolationError] | None:
    errorname = getattr(orig, "sqlite_errorname", None)
    if not errorname:
        return None

    exception_class = SQLITE_ERRORNAME_EXCEPTION_MAP.get(errorname)
    if exception_class is None:
        logger.debug("Unmapped SQLite constraint error name", extra={"sqlite_errorname": errorname})
    return exception_class


def _classify_from_message(msg: str) -> Type[ConstraintViolationError]:
    normalized = msg.lower()

    if _match_any(normalized, ["unique constraint", "unique failed", "primary key must be unique"]):
        return UniqueConstraintError

    if _match_any(normalized, ["not null constraint"]):
        return NotNullConstraintError

    # Unknown message - warn so it surfaces; keep the raw text at DEBUG only
    logger.warning("Unknown integrity error message encountered", extra={"message_snippet": (msg or "")[:200]})
    logger.debug("Unknown integrity raw message", extra={"raw": msg})
    return UnknownIntegrityError


def classify_integrity_error(exc: IntegrityError) -> Type[ConstraintViolationError]:
    """
    Classify a SQLAlchemy IntegrityError into a ConstraintViolationError subclass.
    """
    orig = exc.orig

    exception_class = _classify_from_sqlite_errorname(orig)
    if exception_class is not None:
        return exception_class

    return _classify_from_message(str(orig) if orig is not None else str(exc))
