"""
Caller-side records for conversations.

The ORM model stores the three document fields as uninterpreted JSON text. These
pydantic models are the typed layer above it: repositories encode documents with
`encode_document()` on the way in and return `ConversationRecord`s with the
documents decoded on the way out. Nothing here validates the *shape* of a
document; any JSON value is accepted and returned as stored.

All models serialize with camelCase names (`userName`, `chatMessages`, ...), the
same names the database columns use.
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from session_store.models.conversation import Conversation


def encode_document(value: Any) -> str:
    """Serialize a JSON document to compact text (`None` becomes `"null"`)."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def decode_document(text: str | None) -> Any:
    """Inverse of `encode_document`. A SQL NULL decodes to `None` as well."""
    if text is None:
        return None
    return json.loads(text)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConversationRecord(_CamelModel):
    """A stored conversation with its JSON documents decoded."""

    id: int
    user_name: str
    analysis_id: str
    analysis_data: Any = None
    chat_messages: Any = Field(default_factory=list)
    beauty_plan: Any = None
    created_at: str
    updated_at: str

    @classmethod
    def from_entity(cls, entity: Conversation) -> "ConversationRecord":
        return cls(
            id=entity.id,
            user_name=entity.user_name,
            analysis_id=entity.analysis_id,
            analysis_data=decode_document(entity.analysis_data),
            chat_messages=decode_document(entity.chat_messages),
            beauty_plan=decode_document(entity.beauty_plan),
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


class ConversationCreate(_CamelModel):
    """
    Body of `POST /api/conversations`.

    `userName` and `analysisId` are optional at this layer so that a missing value
    reaches the repository and is reported as `invalid_input` (400), the same as a
    blank one.
    """

    user_name: str | None = None
    analysis_id: str | None = None
    analysis_data: Any = None
    chat_messages: Any = None
    beauty_plan: Any = None


class ConversationUpdate(_CamelModel):
    """Body of `PUT /api/conversations/{userName}/{analysisId}`. Omitted/null fields are left unchanged."""

    analysis_data: Any = None
    chat_messages: Any = None
    beauty_plan: Any = None
