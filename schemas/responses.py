"""Provider classification and engine reply schemas."""

from typing import Optional
from pydantic import BaseModel

from .actions import FinancialAction
from .records import ActionRecord


class ClassificationResult(BaseModel):
    """Output of one provider classification call."""
    provider: str
    response_text: str = ""
    action: Optional[FinancialAction] = None


class EngineReply(BaseModel):
    """Reply returned to the caller of handle_message."""
    response_text: str
    action_record: Optional[ActionRecord] = None
    source: str = "provider"  # provider name, "heuristic" or "fallback"
    transcription: Optional[str] = None

    @property
    def action_summary(self) -> Optional[str]:
        """Kind of the executed action, if any."""
        return self.action_record.kind if self.action_record else None
