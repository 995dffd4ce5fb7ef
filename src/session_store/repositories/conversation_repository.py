"""
Conversation repository.

Besides plain CRUD on the `conversations` table, this repository owns one
cross-entity rule: creating, opening (`get`) or updating a conversation makes it
the owning user's current session (`users.currentAnalysisId`). The pointer write
runs on the same session as the conversation write, so both land in the same
transaction.
"""

import logging
import time
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from session_store.exceptions.base import InvalidInputError, NotFoundError
from session_store.exceptions.mapper import db_error_handler
from session_store.models.conversation import Conversation
from session_store.models.user import User
from session_store.schemas.conversation import ConversationRecord, encode_document
from session_store.utils.timestamps import utc_now_iso
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


def _require(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise InvalidInputError(f"{field} is required", fields=[field])
    return value


class ConversationRepository(BaseRepository[Conversation]):
    """
    Repository for Conversation entity operations.

    Conversations are addressed by their natural key `(user_name, analysis_id)`;
    the integer `id` is informational only.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Conversation, db)

    def _key(self, user_name: str, analysis_id: str) -> list[Any]:
        return [Conversation.user_name == user_name, Conversation.analysis_id == analysis_id]

    # =================================================================================================================
    # Read Operations
    # =================================================================================================================

    async def list_by_user(self, user_name: str) -> list[ConversationRecord]:
        """
        Return all conversations of a user, most recently updated first.

        Ties on `updatedAt` are broken by `id` descending. An unknown user simply
        has no conversations.
        """
        entities = await self._fetch_all(
            select(Conversation)
            .where(Conversation.user_name == user_name)
            .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
        )
        logger.debug(
            "repo.conversation.list",
            extra={"user_name": user_name, "count": len(entities)},
        )
        return [ConversationRecord.from_entity(e) for e in entities]

    async def get(self, user_name: str, analysis_id: str) -> ConversationRecord:
        """
        Fetch one conversation and mark it as the user's current session.

        Raises:
            NotFoundError: If no conversation matches the key.
        """
        entity = await self._fetch_one(select(Conversation).where(*self._key(user_name, analysis_id)))
        if entity is None:
            logger.info(
                "repo.conversation.not_found",
                extra={"user_name": user_name, "analysis_id": analysis_id, "operation": "get"},
            )
            raise NotFoundError("Conversation not found")

        record = ConversationRecord.from_entity(entity)
        await self._touch_current_analysis(user_name, analysis_id)
        return record

    async def exists(self, user_name: str, analysis_id: str) -> bool:
        """Read-only presence check; unlike `get` it never moves the user's pointer."""
        return await self._exists(*self._key(user_name, analysis_id))

    # =================================================================================================================
    # Create Operations
    # =================================================================================================================

    async def create(
        self,
        user_name: str | None,
        analysis_id: str | None,
        analysis_data: Any = None,
        chat_messages: Any = None,
        beauty_plan: Any = None,
    ) -> ConversationRecord:
        """
        Create a conversation and make it the user's current session.

        Args:
            user_name: Owner; must be non-blank.
            analysis_id: Client-chosen identifier; must be non-blank.
            analysis_data: Any JSON value; stored as JSON `null` when omitted.
            chat_messages: Any JSON value; stored as `[]` when omitted.
            beauty_plan: Any JSON value; stored as JSON `null` when omitted.

        Returns:
            The stored conversation.

        Raises:
            InvalidInputError: If `user_name` or `analysis_id` is missing or blank.
            DuplicateError: If the user already has a conversation with this `analysis_id`.
        """
        user_name = _require(user_name, "userName")
        analysis_id = _require(analysis_id, "analysisId")

        now = utc_now_iso()
        # Uniqueness is left to the UNIQUE constraint; a pre-check would race.
        entity = await self._insert(
            user_name=user_name,
            analysis_id=analysis_id,
            analysis_data=encode_document(analysis_data),
            chat_messages=encode_document(chat_messages if chat_messages is not None else []),
            beauty_plan=encode_document(beauty_plan),
            created_at=now,
            updated_at=now,
        )
        record = ConversationRecord.from_entity(entity)

        await self._touch_current_analysis(user_name, analysis_id)

        logger.info(
            "repo.conversation.create.success",
            extra={"user_name": user_name, "analysis_id": analysis_id, "id": record.id},
        )
        return record

    # =================================================================================================================
    # Update Operations
    # =================================================================================================================

    async def update(
        self,
        user_name: str,
        analysis_id: str,
        analysis_data: Any = None,
        chat_messages: Any = None,
        beauty_plan: Any = None,
    ) -> ConversationRecord:
        """
        Partially update a conversation and make it the user's current session.

        Each document argument left as `None` keeps its stored value. A provided
        value replaces the stored one entirely (an empty list or dict included).
        `updatedAt` is refreshed on every call, even when nothing else changes.

        Raises:
            NotFoundError: If no conversation matches the key.
        """
        start = time.perf_counter()

        values: dict[str, Any] = {"updated_at": utc_now_iso()}
        if analysis_data is not None:
            values["analysis_data"] = encode_document(analysis_data)
        if chat_messages is not None:
            values["chat_messages"] = encode_document(chat_messages)
        if beauty_plan is not None:
            values["beauty_plan"] = encode_document(beauty_plan)

        rowcount = await self._update_where(self._key(user_name, analysis_id), values)
        if rowcount == 0:
            logger.info(
                "repo.conversation.not_found",
                extra={"user_name": user_name, "analysis_id": analysis_id, "operation": "update"},
            )
            raise NotFoundError("Conversation not found")

        entity = await self._fetch_one(select(Conversation).where(*self._key(user_name, analysis_id)))
        if entity is None:
            # Deleted between the UPDATE and the re-read; not possible inside one transaction
            raise NotFoundError("Conversation not found")
        record = ConversationRecord.from_entity(entity)

        await self._touch_current_analysis(user_name, analysis_id)

        logger.info(
            "repo.conversation.update.success",
            extra={
                "user_name": user_name,
                "analysis_id": analysis_id,
                "updated_fields": sorted(k for k in values if k != "updated_at"),
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return record

    # =================================================================================================================
    # Delete Operations
    # =================================================================================================================

    async def delete(self, user_name: str, analysis_id: str) -> None:
        """
        Delete a conversation.

        The owning user's `currentAnalysisId` is left as is, even when it names the
        deleted conversation.

        Raises:
            NotFoundError: If no conversation matches the key.
        """
        rowcount = await self._delete_where(self._key(user_name, analysis_id))
        if rowcount == 0:
            logger.info(
                "repo.conversation.not_found",
                extra={"user_name": user_name, "analysis_id": analysis_id, "operation": "delete"},
            )
            raise NotFoundError("Conversation not found")

        logger.info(
            "repo.conversation.delete.success",
            extra={"user_name": user_name, "analysis_id": analysis_id},
        )

    # =================================================================================================================
    # Helpers
    # =================================================================================================================

    async def _touch_current_analysis(self, user_name: str, analysis_id: str) -> None:
        """
        Point the user's `currentAnalysisId` at this conversation.

        A missing user row is not an error: the UPDATE matches nothing and no
        user is created.
        """
        async with db_error_handler(self.db, "User"):
            result = await self.db.execute(
                update(User)
                .where(User.user_name == user_name)
                .values(current_analysis_id=analysis_id)
                .execution_options(synchronize_session=False)
            )

        logger.debug(
            "repo.conversation.pointer_updated",
            extra={"user_name": user_name, "analysis_id": analysis_id, "matched": result.rowcount},
        )
