"""Financial context snapshot used to ground classification."""

from datetime import datetime
from pydantic import BaseModel


class FinancialContext(BaseModel):
    """Read-only snapshot of a user's finances for the current month."""
    user_id: str
    balance: float = 0.0
    income_this_period: float = 0.0
    expense_this_period: float = 0.0
    active_budget_count: int = 0
    active_goal_count: int = 0
    currency: str = "MAD"
    period_start: datetime
    period_end: datetime
