import re
import logging
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .integrity_classifier import (
    classify_integrity_error,
    UniqueConstraintError,
    NotNullConstraintError,
)
from .base import DuplicateError, RepositoryError, StoreUnavailableError

logger = logging.getLogger(__name__)

# -----------------------
# Column extraction helpers
# -----------------------

_SQLITE_CONSTRAINT_RE = re.compile(
    r'(?:UNIQUE|NOT NULL) constraint failed: (?P<cols>.+)$',
    flags=re.IGNORECASE,
)


def extract_columns_from_integrity(exc: IntegrityError) -> list[str] | None:
    """
    Best-effort extraction of column names from a SQLite constraint message.

        'UNIQUE constraint failed: conversations.userName, conversations.analysisId'
        -> ['userName', 'analysisId']
    """
    orig = exc.orig
    msg = str(orig) if orig is not None else str(exc)

    m = _SQLITE_CONSTRAINT_RE.search(msg)
    if not m:
        return None
    return [c.split('.')[-1].strip() for c in re.split(r',\s*', m.group("cols"))]


# -----------------------
# Mapper
# -----------------------

def raise_mapped_integrity_error(exc: IntegrityError, model_name: str | None = None) -> None:
    """
    Map a SQLAlchemy IntegrityError to an app-level exception and raise it.
    Populates `.fields` where possible.
    """
    exc_cls = classify_integrity_error(exc)
    columns = extract_columns_from_integrity(exc)

    model_part = model_name or "Record"

    if exc_cls is UniqueConstraintError:
        # Expected client-level scenario (409), so INFO rather than WARNING
        logger.info(
            "mapper.duplicate_detected",
            extra={"model": model_part, "fields": columns},
        )
        raise DuplicateError(f"{model_part} already exists", fields=columns) from exc

    if exc_cls is NotNullConstraintError:
        logger.info(
            "mapper.not_null_violation",
            extra={"model": model_part, "fields": columns},
        )
        if columns:
            raise RepositoryError(
                f"Missing required field(s): {', '.join(columns)} for {model_part}", fields=columns
            ) from exc
        raise RepositoryError(f"Missing required field for {model_part}") from exc

    logger.warning("mapper.unknown_integrity_error", extra={"model": model_part})
    logger.debug("mapper.unknown_integrity_raw", extra={"model": model_part, "raw": str(exc.orig)})
    raise RepositoryError(f"{model_part} database integrity error.") from exc


# -----------------------
# Async context managers to DRY error handling in repositories
# -----------------------

@asynccontextmanager
async def db_error_handler(db: AsyncSession, model_name: str | None = None):
    """
    Run a write inside a SAVEPOINT and translate database errors.

    Usage:
        async with db_error_handler(self.db, "Conversation"):
            self.db.add(entity)
            await self.db.flush()

    On failure only the savepoint is rolled back, so earlier work in the same
    session survives (a rejected duplicate insert does not discard the rows
    created before it).

    Raises:
        DuplicateError / RepositoryError: mapped from IntegrityError.
        StoreUnavailableError: any other SQLAlchemy error.
    """
    try:
        async with db.begin_nested():
            yield
    except IntegrityError as exc:
        raise_mapped_integrity_error(exc, model_name)
    except SQLAlchemyError as exc:
        logger.exception("Unexpected DB error for %s", model_name, extra={"model": model_name})
        raise StoreUnavailableError(f"Failed to operate on {model_name or 'database'}") from exc


@asynccontextmanager
async def db_read_guard(model_name: str | None = None):
    """
    Translate driver errors raised by read queries into StoreUnavailableError.

    Reads need no savepoint; nothing is rolled back here.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Unexpected DB error while reading %s", model_name, extra={"model": model_name})
        raise StoreUnavailableError(f"Failed to read {model_name or 'database'}") from exc
