"""
Schema manager: create the `conversations` and `users` tables and their indexes.

`ensure_schema()` only ever emits `CREATE ... IF NOT EXISTS` statements, so it is
idempotent and safe to run on every process start, including from several
processes at once (`Base.metadata.create_all()` checks the catalog first and then
creates, two steps that concurrent processes can interleave).

Usage (sync connection, e.g. inside `AsyncConnection.run_sync`):

    async with engine.begin() as conn:
        await conn.run_sync(ensure_schema)
"""

import logging

from sqlalchemy import Connection
from sqlalchemy.schema import CreateIndex, CreateTable

from session_store.database.base import Base
from session_store import models  # noqa: F401 - registers tables on Base.metadata

logger = logging.getLogger(__name__)


def ensure_schema(connection: Connection) -> None:
    """
    Create every table and secondary index registered on `Base.metadata` if missing.

    Errors are not caught: a failure here means the store cannot be used and
    must surface to whoever is starting the process.
    """
    for table in Base.metadata.sorted_tables:
        connection.execute(CreateTable(table, if_not_exists=True))
        for index in sorted(table.indexes, key=lambda ix: ix.name or ""):
            connection.execute(CreateIndex(index, if_not_exists=True))

    logger.info(
        "schema.ensure.success",
        extra={"tables": [t.name for t in Base.metadata.sorted_tables]},
    )


def schema_objects(connection: Connection) -> dict[str, list[str]]:
    """
    Return the table and index names currently present in the database.

    Reads `sqlite_master` directly; used by diagnostics and tests.
    """
    rows = connection.exec_driver_sql(
        "SELECT type, name FROM sqlite_master "
        "WHERE type IN ('table', 'index') AND name NOT LIKE 'sqlite_%' "
        "ORDER BY name"
    ).all()
    return {
        "tables": [name for kind, name in rows if kind == "table"],
        "indexes": [name for kind, name in rows if kind == "index"],
    }
