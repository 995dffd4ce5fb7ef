r"""
Centralized access to all database models.

Importing this package registers every table on `Base.metadata`, which the
schema manager relies on:

    from session_store.models import User, Conversation
"""

from .user import User
from .conversation import Conversation

__all__ = [
    "User",
    "Conversation",
]
