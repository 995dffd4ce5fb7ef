from typing import Any

import pytest
from sqlalchemy import text

from session_store.database.store import Store
from session_store.exceptions.base import DuplicateError, InvalidInputError, NotFoundError, RepositoryError
from session_store.repositories.conversation_repository import ConversationRepository
from session_store.repositories.user_repository import UserRepository
from session_store.schemas.conversation import ConversationRecord
from session_store.schemas.user import UserRecord
from session_store.utils.timestamps import parse_iso


@pytest.mark.asyncio
class TestConversationCreate:
    """
    Creation through ConversationRepository.create().

    Fixtures used:
      - conversation_repository / user_repository: bound to the same test session.
      - sample_conversation_data: payload with nested, unicode-bearing documents.
    """

    async def test_create_returns_stored_record(
        self, conversation_repository: ConversationRepository, sample_conversation_data: dict[str, Any]
    ):
        record = await conversation_repository.create(**sample_conversation_data)

        assert isinstance(record, ConversationRecord)
        assert isinstance(record.id, int)
        assert record.user_name == "alice"
        assert record.analysis_id == "a1"
        # Documents come back equal to what was stored, unicode included
        assert record.analysis_data == sample_conversation_data["analysis_data"]
        assert record.chat_messages == sample_conversation_data["chat_messages"]
        assert record.beauty_plan == sample_conversation_data["beauty_plan"]
        assert record.created_at == record.updated_at
        parse_iso(record.created_at)

    async def test_create_defaults_for_omitted_documents(self, conversation_repository: ConversationRepository):
        record = await conversation_repository.create("alice", "bare")

        assert record.analysis_data is None
        assert record.chat_messages == []
        assert record.beauty_plan is None

    async def test_create_stores_json_text_in_columns(self, store: Store):
        """Absent optional documents are stored as JSON `null`, messages as `[]`."""
        async with store.session() as db:
            await ConversationRepository(db).create("alice", "bare")

        async with store.session() as db:
            row = (
                await db.execute(
                    text(
                        'SELECT "analysisData", "chatMessages", "beautyPlan" FROM conversations'
                    )
                )
            ).one()
        assert tuple(row) == ("null", "[]", "null")

    @pytest.mark.parametrize(
        "user_name, analysis_id, field",
        [
            ("", "a1", "userName"),
            ("   ", "a1", "userName"),
            (None, "a1", "userName"),
            ("alice", "", "analysisId"),
            ("alice", None, "analysisId"),
        ],
    )
    async def test_create_rejects_blank_keys(
        self, conversation_repository: ConversationRepository, user_name, analysis_id, field
    ):
        with pytest.raises(InvalidInputError) as exc_info:
            await conversation_repository.create(user_name, analysis_id)
        assert exc_info.value.fields == [field]
        assert exc_info.value.http_status() == 400

    async def test_duplicate_create_raises_and_keeps_original(
        self,
        conversation_repository: ConversationRepository,
        created_conversation: ConversationRecord,
    ):
        """
        A second create for the same (user, analysis) is a Conflict. The first
        conversation is unchanged, and earlier work in the same session survives
        the rejected insert.
        """
        with pytest.raises(DuplicateError) as exc_info:
            await conversation_repository.create("alice", "a1", chat_messages=[{"role": "user", "content": "x"}])

        assert exc_info.value.http_status() == 409
        assert exc_info.value.fields == ["userName", "analysisId"]

        listed = await conversation_repository.list_by_user("alice")
        assert len(listed) == 1
        assert listed[0].id == created_conversation.id
        assert listed[0].chat_messages == created_conversation.chat_messages

    async def test_same_analysis_id_for_different_users(self, conversation_repository: ConversationRepository):
        a = await conversation_repository.create("alice", "shared")
        b = await conversation_repository.create("bob", "shared")
        assert a.id != b.id

    async def test_user_names_are_case_sensitive(self, conversation_repository: ConversationRepository):
        await conversation_repository.create("alice", "a1")
        await conversation_repository.create("Alice", "a1")
        assert len(await conversation_repository.list_by_user("alice")) == 1
        assert len(await conversation_repository.list_by_user("Alice")) == 1

    async def test_create_sets_current_analysis(
        self,
        conversation_repository: ConversationRepository,
        user_repository: UserRepository,
        logged_in_user: UserRecord,
    ):
        assert logged_in_user.current_analysis_id is None

        await conversation_repository.create("alice", "a1")
        assert (await user_repository.get("alice")).current_analysis_id == "a1"

        await conversation_repository.create("alice", "a2")
        assert (await user_repository.get("alice")).current_analysis_id == "a2"
        # Logging in again reports the latest pointer and leaves it in place
        assert (await user_repository.login_or_create("alice")).current_analysis_id == "a2"

    async def test_create_for_unknown_user_does_not_create_user(
        self, conversation_repository: ConversationRepository, user_repository: UserRepository
    ):
        await conversation_repository.create("ghost", "a1")
        with pytest.raises(NotFoundError):
            await user_repository.get("ghost")

    async def test_missing_required_column_maps_to_repository_error(
        self, conversation_repository: ConversationRepository
    ):
        # chatMessages is NOT NULL; bypass create() so the database rejects the row
        with pytest.raises(RepositoryError) as exc_info:
            await conversation_repository._insert(
                user_name="alice", analysis_id="a1", created_at="t", updated_at="t"
            )

        err = exc_info.value
        assert not isinstance(err, DuplicateError)
        assert err.fields == ["chatMessages"]
        assert err.http_status() == 400
        # Only the savepoint was rolled back; the session keeps working
        assert (await conversation_repository.create("alice", "a1")).analysis_id == "a1"

    async def test_ids_are_never_reused(self, conversation_repository: ConversationRepository):
        first = await conversation_repository.create("alice", "a1")
        await conversation_repository.delete("alice", "a1")
        second = await conversation_repository.create("alice", "a1")
        assert second.id > first.id


@pytest.mark.asyncio
class TestConversationRead:
    async def test_get_returns_record_and_sets_pointer(
        self,
        conversation_repository: ConversationRepository,
        user_repository: UserRepository,
        created_conversation: ConversationRecord,
    ):
        await conversation_repository.create("alice", "a2")
        assert (await user_repository.get("alice")).current_analysis_id == "a2"

        record = await conversation_repository.get("alice", "a1")

        assert record == created_conversation
        assert (await user_repository.get("alice")).current_analysis_id == "a1"

    async def test_get_missing_raises_not_found(self, conversation_repository: ConversationRepository):
        with pytest.raises(NotFoundError):
            await conversation_repository.get("alice", "nope")

    async def test_get_is_scoped_to_user(
        self, conversation_repository: ConversationRepository, created_conversation: ConversationRecord
    ):
        with pytest.raises(NotFoundError):
            await conversation_repository.get("bob", created_conversation.analysis_id)

    async def test_exists_does_not_move_pointer(
        self,
        conversation_repository: ConversationRepository,
        user_repository: UserRepository,
        created_conversation: ConversationRecord,
    ):
        await conversation_repository.create("alice", "a2")

        assert await conversation_repository.exists("alice", "a1") is True
        assert await conversation_repository.exists("alice", "zzz") is False
        assert (await user_repository.get("alice")).current_analysis_id == "a2"

    async def test_list_orders_by_most_recent_update(self, conversation_repository: ConversationRepository):
        await conversation_repository.create("alice", "a1")
        await conversation_repository.create("alice", "a2")
        await conversation_repository.create("alice", "a3")
        await conversation_repository.update("alice", "a1", beauty_plan={"v": 2})

        listed = await conversation_repository.list_by_user("alice")

        assert [c.analysis_id for c in listed] == ["a1", "a3", "a2"]
        updated = [c.updated_at for c in listed]
        assert updated == sorted(updated, reverse=True)

    async def test_list_only_returns_own_conversations(self, conversation_repository: ConversationRepository):
        await conversation_repository.create("alice", "a1")
        await conversation_repository.create("bob", "b1")

        assert [c.analysis_id for c in await conversation_repository.list_by_user("bob")] == ["b1"]
        assert await conversation_repository.list_by_user("nobody") == []


@pytest.mark.asyncio
class TestConversationUpdate:
    async def test_partial_update_changes_only_given_fields(
        self, conversation_repository: ConversationRepository, created_conversation: ConversationRecord
    ):
        new_messages = created_conversation.chat_messages + [{"role": "user", "content": "merci"}]

        updated = await conversation_repository.update("alice", "a1", chat_messages=new_messages)

        assert updated.chat_messages == new_messages
        assert updated.analysis_data == created_conversation.analysis_data
        assert updated.beauty_plan == created_conversation.beauty_plan
        assert updated.created_at == created_conversation.created_at
        assert updated.updated_at > created_conversation.updated_at
        assert updated.id == created_conversation.id

    async def test_successive_updates_strictly_increase_updated_at(
        self, conversation_repository: ConversationRepository, created_conversation: ConversationRecord
    ):
        stamps = [created_conversation.updated_at]
        for i in range(5):
            record = await conversation_repository.update("alice", "a1", beauty_plan={"rev": i})
            stamps.append(record.updated_at)

        assert all(earlier < later for earlier, later in zip(stamps, stamps[1:]))

    async def test_empty_values_replace_stored_documents(
        self, conversation_repository: ConversationRepository, created_conversation: ConversationRecord
    ):
        """An empty list/dict is a real value, not an omission."""
        updated = await conversation_repository.update("alice", "a1", chat_messages=[], beauty_plan={})
        assert updated.chat_messages == []
        assert updated.beauty_plan == {}
        assert updated.analysis_data == created_conversation.analysis_data

    async def test_update_without_fields_only_touches_timestamp(
        self, conversation_repository: ConversationRepository, created_conversation: ConversationRecord
    ):
        updated = await conversation_repository.update("alice", "a1")

        assert updated.model_dump(exclude={"updated_at"}) == created_conversation.model_dump(exclude={"updated_at"})
        assert updated.updated_at > created_conversation.updated_at

    async def test_update_sets_current_analysis(
        self,
        conversation_repository: ConversationRepository,
        user_repository: UserRepository,
        created_conversation: ConversationRecord,
    ):
        await conversation_repository.create("alice", "a2")
        await conversation_repository.update("alice", "a1", analysis_data={"x": 1})
        assert (await user_repository.get("alice")).current_analysis_id == "a1"

    async def test_update_missing_raises_not_found(
        self,
        conversation_repository: ConversationRepository,
        user_repository: UserRepository,
        logged_in_user: UserRecord,
    ):
        with pytest.raises(NotFoundError):
            await conversation_repository.update("alice", "nope", beauty_plan={})
        # No pointer write for a failed update
        assert (await user_repository.get("alice")).current_analysis_id is None

    async def test_update_is_visible_to_a_new_session(self, store: Store):
        async with store.session() as db:
            await ConversationRepository(db).create("alice", "a1", analysis_data={"v": 1})
        async with store.session() as db:
            await ConversationRepository(db).update("alice", "a1", analysis_data={"v": 2})
        async with store.session() as db:
            assert (await ConversationRepository(db).get("alice", "a1")).analysis_data == {"v": 2}


@pytest.mark.asyncio
class TestConversationDelete:
    async def test_delete_removes_conversation(
        self, conversation_repository: ConversationRepository, created_conversation: ConversationRecord
    ):
        await conversation_repository.delete("alice", "a1")

        with pytest.raises(NotFoundError):
            await conversation_repository.get("alice", "a1")
        assert await conversation_repository.list_by_user("alice") == []

    async def test_delete_missing_raises_not_found(self, conversation_repository: ConversationRepository):
        with pytest.raises(NotFoundError):
            await conversation_repository.delete("alice", "nope")

    async def test_delete_leaves_stale_current_analysis(
        self,
        conversation_repository: ConversationRepository,
        user_repository: UserRepository,
        created_conversation: ConversationRecord,
    ):
        await conversation_repository.delete("alice", "a1")

        sessions = await user_repository.get_sessions("alice")
        assert sessions.current_analysis_id == "a1"
        assert sessions.conversations == []

    async def test_delete_only_affects_matching_key(self, conversation_repository: ConversationRepository):
        await conversation_repository.create("alice", "a1")
        await conversation_repository.create("bob", "a1")

        await conversation_repository.delete("alice", "a1")

        assert await conversation_repository.exists("bob", "a1") is True


@pytest.mark.asyncio
class TestConversationAtomicity:
    async def test_failed_unit_of_work_rolls_back_conversation_and_pointer(self, store: Store):
        """The conversation insert and the pointer write commit or roll back together."""
        async with store.session() as db:
            await UserRepository(db).login_or_create("alice")

        with pytest.raises(RuntimeError):
            async with store.session() as db:
                await ConversationRepository(db).create("alice", "a1")
                raise RuntimeError("caller failed after create")

        async with store.session() as db:
            assert await ConversationRepository(db).exists("alice", "a1") is False
            assert (await UserRepository(db).get("alice")).current_analysis_id is None
