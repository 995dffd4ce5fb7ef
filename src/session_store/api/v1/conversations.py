"""
Conversation routes.

Each handler runs in one `Store.session()` unit of work, so the conversation
write and the user-pointer write are committed (or rolled back) together before
the response is produced.
"""

from fastapi import APIRouter, Depends, Response, status

from session_store.core.dependencies import get_store
from session_store.database.store import Store
from session_store.repositories.conversation_repository import ConversationRepository
from session_store.schemas.conversation import (
    ConversationCreate,
    ConversationRecord,
    ConversationUpdate,
)

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


@router.get("/{user_name}", response_model=list[ConversationRecord])
async def list_conversations(user_name: str, store: Store = Depends(get_store)):
    async with store.session() as db:
        return await ConversationRepository(db).list_by_user(user_name)


@router.get("/{user_name}/{analysis_id}", response_model=ConversationRecord)
async def get_conversation(user_name: str, analysis_id: str, store: Store = Depends(get_store)):
    async with store.session() as db:
        return await ConversationRepository(db).get(user_name, analysis_id)


@router.post("", response_model=ConversationRecord, status_code=status.HTTP_201_CREATED)
async def create_conversation(payload: ConversationCreate, store: Store = Depends(get_store)):
    async with store.session() as db:
        return await ConversationRepository(db).create(
            payload.user_name,
            payload.analysis_id,
            analysis_data=payload.analysis_data,
            chat_messages=payload.chat_messages,
            beauty_plan=payload.beauty_plan,
        )


@router.put("/{user_name}/{analysis_id}", response_model=ConversationRecord)
async def update_conversation(
    user_name: str,
    analysis_id: str,
    payload: ConversationUpdate | None = None,
    store: Store = Depends(get_store),
):
    payload = payload or ConversationUpdate()
    async with store.session() as db:
        return await ConversationRepository(db).update(
            user_name,
            analysis_id,
            analysis_data=payload.analysis_data,
            chat_messages=payload.chat_messages,
            beauty_plan=payload.beauty_plan,
        )


@router.delete("/{user_name}/{analysis_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(user_name: str, analysis_id: str, store: Store = Depends(get_store)):
    async with store.session() as db:
        await ConversationRepository(db).delete(user_name, analysis_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
