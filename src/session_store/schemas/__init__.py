from .conversation import (
    ConversationRecord,
    ConversationCreate,
    ConversationUpdate,
    encode_document,
    decode_document,
)
from .user import UserRecord, SessionSummary, SessionsView, LoginRequest

__all__ = [
    "ConversationRecord",
    "ConversationCreate",
    "ConversationUpdate",
    "encode_document",
    "decode_document",
    "UserRecord",
    "SessionSummary",
    "SessionsView",
    "LoginRequest",
]
