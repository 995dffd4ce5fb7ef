from .base_repository import BaseRepository
from .conversation_repository import ConversationRepository
from .user_repository import UserRepository

__all__ = ["BaseRepository", "ConversationRepository", "UserRepository"]
