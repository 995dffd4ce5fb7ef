"""
Base repository class providing common database operations.

Repositories work on an `AsyncSession` handed to them by the caller (usually a
`Store.session()` unit of work). They never commit: the unit of work does, so
several repository calls can be grouped into one transaction and rolled back
together.

Writes go through `db_error_handler`, which runs each one in a SAVEPOINT. A
constraint violation therefore only undoes that single write and surfaces as a
domain exception (`DuplicateError`, ...) rather than poisoning the session.
"""

import logging
import time
from typing import Any, Generic, Type, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from session_store.database.base import Base
from session_store.exceptions.mapper import db_error_handler, db_read_guard

# Type variable for the model class
ModelType = TypeVar("ModelType", bound=Base)

logger = logging.getLogger(__name__)


class BaseRepository(Generic[ModelType]):
    """
    Generic base repository providing common CRUD operations.

    Type Parameters:
        ModelType: The SQLAlchemy model class this repository manages.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Args:
            model: The SQLAlchemy model class (not an instance), used to build queries.
            db: The async database session.
        """
        self.model = model
        self.db = db

    @property
    def model_name(self) -> str:
        return self.model.__name__

    # =================================================================================================================
    # Create Operations
    # =================================================================================================================

    async def _insert(self, **values: Any) -> ModelType:
        """
        Insert one row and flush it so generated columns (the integer `id`) are populated.

        Raises:
            DuplicateError: If a unique constraint rejects the row.
            StoreUnavailableError: On any other database failure.
        """
        logger.debug(
            "repo.create.start",
            extra={"model": self.model_name, "operation": "create", "provided_keys": sorted(values)},
        )
        start = time.perf_counter()

        async with db_error_handler(self.db, self.model_name):
            entity = self.model(**values)
            self.db.add(entity)
            await self.db.flush()

        logger.info(
            "repo.create.success",
            extra={
                "model": self.model_name,
                "operation": "create",
                "id": getattr(entity, "id", None),
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return entity

    # =================================================================================================================
    # Read Operations
    # =================================================================================================================

    async def _fetch_one(self, query: Select) -> ModelType | None:
        """
        Execute `query` and return its single entity (or None).

        `populate_existing` makes the returned object reflect the row as it is now,
        even when the session already holds an older copy of it in its identity map
        (after a bulk UPDATE, for example).
        """
        async with db_read_guard(self.model_name):
            result = await self.db.execute(query.execution_options(populate_existing=True))
            return result.scalar_one_or_none()

    async def _fetch_all(self, query: Select) -> list[ModelType]:
        async with db_read_guard(self.model_name):
            result = await self.db.execute(query.execution_options(populate_existing=True))
            return list(result.scalars().all())

    async def _fetch_rows(self, query: Select) -> list[Any]:
        """Execute a column-level `query` and return plain rows."""
        async with db_read_guard(self.model_name):
            result = await self.db.execute(query)
            return list(result.all())

    async def _exists(self, *criteria: Any) -> bool:
        async with db_read_guard(self.model_name):
            result = await self.db.execute(select(1).select_from(self.model).where(*criteria).limit(1))
            return result.first() is not None

    # =================================================================================================================
    # Update / Delete Operations
    # =================================================================================================================

    async def _update_where(self, criteria: list[Any], values: dict[str, Any]) -> int:
        """
        Bulk UPDATE rows matching `criteria`; returns the number of rows changed.

        `values` is keyed by ORM attribute name.
        """
        start = time.perf_counter()

        async with db_error_handler(self.db, self.model_name):
            result = await self.db.execute(
                update(self.model)
                .where(*criteria)
                .values(**values)
                .execution_options(synchronize_session=False)
            )

        logger.debug(
            "repo.update.done",
            extra={
                "model": self.model_name,
                "operation": "update",
                "updated_fields": sorted(values),
                "rowcount": result.rowcount,
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return result.rowcount

    async def _delete_where(self, criteria: list[Any]) -> int:
        """Bulk DELETE rows matching `criteria`; returns the number of rows removed."""
        start = time.perf_counter()

        async with db_error_handler(self.db, self.model_name):
            result = await self.db.execute(
                delete(self.model)
                .where(*criteria)
                .execution_options(synchronize_session=False)
            )

        logger.debug(
            "repo.delete.done",
            extra={
                "model": self.model_name,
                "operation": "delete",
                "rowcount": result.rowcount,
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return result.rowcount
