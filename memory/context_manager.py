"""Conversation context manager for LLM context window management."""

import logging
from typing import List

from llm.base_client import Message
from .base import ConversationStore
from .models import ConversationTurn

logger = logging.getLogger(__name__)


class ConversationContextManager:
    """Builds the bounded conversation window supplied to providers."""

    MAX_CONTEXT_TURNS = 10

    def __init__(self, store: ConversationStore, max_turns: int = MAX_CONTEXT_TURNS):
        """
        Initialize context manager.

        Args:
            store: Conversation store
            max_turns: Maximum turns to include in context
        """
        self.store = store
        self.max_turns = max_turns

    def get_recent_turns(self, user_id: str) -> List[ConversationTurn]:
        return self.store.read_latest(user_id, limit=self.max_turns)

    def get_context_messages(self, user_id: str) -> List[Message]:
        """
        Get messages for LLM context window.

        Args:
            user_id: Owner of the conversation

        Returns:
            List of Message objects, oldest first
        """
        return self.to_messages(self.get_recent_turns(user_id))

    @staticmethod
    def to_messages(turns: List[ConversationTurn]) -> List[Message]:
        return [Message(role=turn.role.value, content=turn.content) for turn in turns]
