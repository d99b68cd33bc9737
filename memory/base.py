"""Conversation store interface."""

from abc import ABC, abstractmethod
from typing import Optional, List

from .models import Conversation, ConversationTurn


class ConversationStore(ABC):
    """
    Append-only per-user conversation log.

    Only the most recently modified conversation of a user is read or
    written. Appends must be additive inserts, never a rewrite of the
    whole conversation.
    """

    @abstractmethod
    def append_turns(self, user_id: str, turns: List[ConversationTurn]) -> None:
        """Append turns to the user's latest conversation, creating one if needed."""
        pass

    @abstractmethod
    def read_latest(self, user_id: str, limit: int = 10) -> List[ConversationTurn]:
        """Last `limit` turns of the latest conversation, oldest first."""
        pass

    @abstractmethod
    def get_latest_conversation(self, user_id: str) -> Optional[Conversation]:
        """Latest conversation with all of its turns."""
        pass

    @abstractmethod
    def start_conversation(self, user_id: str) -> Conversation:
        """Create an empty conversation that becomes the user's latest."""
        pass
