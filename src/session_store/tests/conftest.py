"""
Core pytest configuration for the entire test suite.

Only the essentials live here: logging setup and the per-test Store. Domain
fixtures (repositories, sample payloads) are in tests/test_fixtures/ and are
imported at the bottom of this module so every test can use them.

Every test gets its own SQLite file under `tmp_path`, so tests never share
state and nothing is rolled back by hand.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import AsyncGenerator

# -------------------------------
# Early logging tuning
# -------------------------------
# Set noisy third-party loggers before importing modules that might initialise them.
NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "aiosqlite",
    "asyncio",
    "httpx",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from session_store.core.logging.builder import setup_logging
from session_store.database.store import Store

from .test_fixtures.settings_fixtures import make_test_settings


@pytest.fixture(scope="session", autouse=True)
def configure_logging(tmp_path_factory: pytest.TempPathFactory):
    """
    Install application logging for the entire test session.

    pytest adds its capture handler to the root logger around every test phase,
    so `caplog` keeps working after dictConfig has replaced the root handlers.
    """
    setup_logging(make_test_settings(tmp_path_factory.mktemp("logging")))
    yield


# ------------------------------------------------------------------------------------------------
# DATABASE FIXTURES
# ------------------------------------------------------------------------------------------------


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    # Nested directory that does not exist yet; the Store must create it
    return tmp_path / "nested" / "data" / "conversations.db"


@pytest.fixture
async def store(db_path: Path) -> AsyncGenerator[Store, None]:
    """An acquired Store on a fresh database file; closed at teardown."""
    s = Store(db_path)
    await s.acquire()
    yield s
    await s.close()


@pytest.fixture
async def db_session(store: Store) -> AsyncGenerator[AsyncSession, None]:
    """
    One unit of work for the whole test.

    Committed at teardown; tests that need to observe committed state open their
    own `store.session()` instead.
    """
    async with store.session() as session:
        yield session


# Repository test fixtures
from .test_fixtures.repository_fixtures import (  # noqa: E402
    conversation_repository,
    user_repository,
    sample_conversation_data,
    logged_in_user,
    created_conversation,
)
