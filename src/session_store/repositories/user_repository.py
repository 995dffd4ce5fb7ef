"""
User repository.

Users have no explicit registration: the first login creates the row, later
logins only refresh `lastActiveAt`. Users are never deleted.
"""

import logging
import time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from session_store.exceptions.base import DuplicateError, InvalidInputError, NotFoundError
from session_store.models.conversation import Conversation
from session_store.models.user import User
from session_store.schemas.user import SessionsView, SessionSummary, UserRecord
from session_store.utils.timestamps import utc_now_iso
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for User entity operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def _find(self, user_name: str) -> User | None:
        return await self._fetch_one(select(User).where(User.user_name == user_name))

    # =================================================================================================================
    # Login
    # =================================================================================================================

    async def login_or_create(self, user_name: str | None) -> UserRecord:
        """
        Log a user in, creating them on first sight.

        The name is trimmed first. A new user starts with no current session;
        an existing user gets `lastActiveAt` refreshed and is returned as re-read
        after that update.

        If another login creates the same user between our lookup and our insert,
        the resulting constraint violation is absorbed and treated as a login of
        an existing user.

        Raises:
            InvalidInputError: If the name is missing or blank.
        """
        name = (user_name or "").strip()
        if not name:
            raise InvalidInputError("userName is required", fields=["userName"])

        start = time.perf_counter()
        now = utc_now_iso()

        if await self._find(name) is None:
            try:
                entity = await self._insert(
                    user_name=name,
                    current_analysis_id=None,
                    created_at=now,
                    last_active_at=now,
                )
            except DuplicateError:
                logger.info("repo.user.login.concurrent_create", extra={"user_name": name})
            else:
                logger.info(
                    "repo.user.login.created",
                    extra={"user_name": name, "duration_ms": int((time.perf_counter() - start) * 1000)},
                )
                return UserRecord.model_validate(entity)

        await self._update_where([User.user_name == name], {"last_active_at": now})
        entity = await self._find(name)
        if entity is None:
            raise NotFoundError("User not found")

        logger.info(
            "repo.user.login.success",
            extra={"user_name": name, "duration_ms": int((time.perf_counter() - start) * 1000)},
        )
        return UserRecord.model_validate(entity)

    # =================================================================================================================
    # Read Operations
    # =================================================================================================================

    async def get(self, user_name: str) -> UserRecord:
        """
        Raises:
            NotFoundError: If the user does not exist.
        """
        entity = await self._find(user_name)
        if entity is None:
            raise NotFoundError("User not found")
        return UserRecord.model_validate(entity)

    async def get_sessions(self, user_name: str) -> SessionsView:
        """
        Return the user's session state and a summary of every conversation they own.

        Conversations are listed most recently updated first (ties by id, newest
        first). Only the key and `updatedAt` are included, not the documents.

        Raises:
            NotFoundError: If the user does not exist.
        """
        entity = await self._find(user_name)
        if entity is None:
            logger.info("repo.user.not_found", extra={"user_name": user_name, "operation": "get_sessions"})
            raise NotFoundError("User not found")

        rows = await self._fetch_rows(
            select(Conversation.analysis_id, Conversation.updated_at)
            .where(Conversation.user_name == user_name)
            .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
        )

        return SessionsView(
            user_name=entity.user_name,
            current_analysis_id=entity.current_analysis_id,
            last_active_at=entity.last_active_at,
            conversations=[SessionSummary(analysis_id=a, updated_at=u) for a, u in rows],
        )
