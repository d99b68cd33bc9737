"""Memory system for conversation persistence."""

from .models import Conversation, ConversationTurn, TurnRole
from .base import ConversationStore
from .sqlite_store import SQLiteConversationStore
from .context_manager import ConversationContextManager

__all__ = [
    "Conversation",
    "ConversationTurn",
    "TurnRole",
    "ConversationStore",
    "SQLiteConversationStore",
    "ConversationContextManager",
]
