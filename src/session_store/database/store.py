"""
Store handle: owns the engine for the embedded SQLite database.

A `Store` is an explicitly owned resource (create one per process, pass it to
whoever needs sessions) rather than a module-level global. Its lifecycle:

    store = Store(settings.active_database_path)
    await store.acquire()          # lazy: directory, engine, WAL, schema (once)
    async with store.session() as session:
        repo = ConversationRepository(session)
        ...                        # committed on exit, rolled back on error
    await store.close()            # dispose; a later acquire() starts fresh

Write-ahead logging is enabled on every connection so readers do not wait on a
writer. The database is then made of three files (`<db>`, `<db>-wal`,
`<db>-shm`); see `artifact_paths()` when copying or backing it up.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from session_store.config.settings import Settings
from session_store.database.schema import ensure_schema
from session_store.exceptions.base import StoreUnavailableError

logger = logging.getLogger(__name__)


def _install_sqlite_hooks(engine: AsyncEngine) -> None:
    """
    Wire per-connection setup on the engine.

    - WAL journal mode on every new DB-API connection.
    - The driver's implicit BEGIN handling is switched off and SQLAlchemy emits
      its own BEGIN instead. Without this SAVEPOINT does not work on
      pysqlite/aiosqlite, and repositories rely on SAVEPOINT to recover from a
      constraint violation without losing the rest of the transaction.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA journal_mode=WAL")
        finally:
            cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


class Store:
    """
    Lazily initialised handle over a single SQLite database file.

    Args:
        database_path: Path of the main database file. Parent directories are
            created on first `acquire()`.
        echo: Forwarded to `create_async_engine` (SQL echo).
        pool_size: Number of pooled connections. The default of 1 means every
            unit of work shares one connection, taking turns.
    """

    def __init__(self, database_path: str | Path, *, echo: bool = False, pool_size: int = 1):
        self._path = Path(database_path)
        self._echo = echo
        self._pool_size = pool_size
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "Store":
        return cls(
            settings.active_database_path,
            echo=settings.SQLALCHEMY_ECHO,
            pool_size=settings.DB_POOL_SIZE,
        )

    # =================================================================================================================
    # Introspection
    # =================================================================================================================

    @property
    def path(self) -> Path:
        return self._path

    @property
    def url(self) -> str:
        return f"sqlite+aiosqlite:///{self._path}"

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def artifact_paths(self) -> list[Path]:
        """
        Files that together make up the database in WAL mode.

        The `-wal` and `-shm` files may not exist yet (or anymore); they must
        still be copied alongside the main file whenever they do.
        """
        return [
            self._path,
            self._path.with_name(self._path.name + "-wal"),
            self._path.with_name(self._path.name + "-shm"),
        ]

    # =================================================================================================================
    # Lifecycle
    # =================================================================================================================

    async def acquire(self) -> AsyncEngine:
        """
        Return the engine, building it (and the schema) on first use.

        Raises:
            StoreUnavailableError: If the directory, database file, or schema
                cannot be created.
        """
        if self._engine is not None:
            return self._engine

        async with self._lock:
            # Another task may have finished initialising while we waited.
            if self._engine is None:
                self._engine = await self._initialize()

        return self._engine

    async def _initialize(self) -> AsyncEngine:
        start = time.perf_counter()
        engine: AsyncEngine | None = None

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)

            engine = create_async_engine(
                self.url,
                echo=self._echo,
                pool_size=self._pool_size,
                max_overflow=0,
            )
            _install_sqlite_hooks(engine)

            async with engine.begin() as conn:
                await conn.run_sync(ensure_schema)

        except (OSError, SQLAlchemyError) as exc:
            logger.exception("store.init.failed", extra={"path": str(self._path)})
            if engine is not None:
                await engine.dispose()
            raise StoreUnavailableError(f"Failed to open database at {self._path}") from exc

        self._sessionmaker = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        logger.info(
            "store.init.success",
            extra={
                "path": str(self._path),
                "pool_size": self._pool_size,
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return engine

    async def close(self) -> None:
        """Dispose the engine and forget it. Safe to call when already closed."""
        engine = self._engine
        if engine is None:
            return

        self._engine = None
        self._sessionmaker = None
        await engine.dispose()
        logger.info("store.closed", extra={"path": str(self._path)})

    # =================================================================================================================
    # Units of work
    # =================================================================================================================

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Yield a session whose work is committed on normal exit.

        Any exception rolls the whole unit back and propagates. A failure of the
        commit itself is reported as `StoreUnavailableError`.
        """
        await self.acquire()
        sessionmaker = self._sessionmaker
        if sessionmaker is None:
            # Closed between acquire() and here
            raise StoreUnavailableError(f"Store at {self._path} was closed")

        async with sessionmaker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

            try:
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.exception("store.commit.failed", extra={"path": str(self._path)})
                raise StoreUnavailableError("Failed to commit changes") from exc
