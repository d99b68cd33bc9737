"""Financial context builder."""

import logging
from datetime import datetime
from typing import Optional

from ledger.base import Ledger
from schemas.context import FinancialContext
from utils.dates import start_of_month, end_of_month

logger = logging.getLogger(__name__)


class FinancialContextBuilder:
    """Builds the read-only snapshot used to ground classification."""

    def __init__(self, ledger: Ledger, currency: str = "MAD"):
        """
        Initialize context builder.

        Args:
            ledger: Ledger to query
            currency: Currency code shown alongside amounts
        """
        self.ledger = ledger
        self.currency = currency

    def build(self, user_id: str, now: Optional[datetime] = None) -> FinancialContext:
        """
        Snapshot the user's finances over the current calendar month.

        Ledger errors propagate unchanged; no partial context is returned.

        Args:
            user_id: User to snapshot
            now: Reference instant (defaults to now)

        Returns:
            FinancialContext
        """
        now = now or datetime.now()
        period_start = start_of_month(now)
        period_end = end_of_month(now)

        totals = self.ledger.aggregate(user_id, period_start, period_end)
        context = FinancialContext(
            user_id=user_id,
            balance=self.ledger.balance(user_id),
            income_this_period=totals.income,
            expense_this_period=totals.expense,
            active_budget_count=len(self.ledger.list_budgets(user_id, active_only=True)),
            active_goal_count=len(self.ledger.list_goals(user_id, active_only=True)),
            currency=self.currency,
            period_start=period_start,
            period_end=period_end,
        )

        logger.debug(
            f"Context for {user_id}: {context.active_budget_count} budgets, "
            f"{context.active_goal_count} goals"
        )
        return context
