"""Memory data models."""

from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict

from schemas.records import ActionRecord


class TurnRole(str, Enum):
    """Author of a conversation turn."""
    USER = "user"
    ASSISTANT = "assistant"


class ConversationTurn(BaseModel):
    """A single turn in a conversation. Immutable once appended."""
    model_config = ConfigDict(frozen=True)

    role: TurnRole
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)
    executed_action: Optional[ActionRecord] = None
    turn_id: Optional[int] = None  # Assigned by the store


class Conversation(BaseModel):
    """A user's conversation."""
    conversation_id: str
    user_id: str
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    turns: List[ConversationTurn] = Field(default_factory=list)
