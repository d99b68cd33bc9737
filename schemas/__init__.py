"""Pydantic schemas for the finance assistant."""

from .ledger import (
    TransactionKind,
    Category,
    BudgetPeriod,
    GoalType,
    InvestmentType,
    Frequency,
    Transaction,
    Budget,
    Goal,
    Investment,
    RecurringTransaction,
    TransactionFilter,
    PeriodTotals,
    SpendingStatistics,
    HabitAnalysis,
)
from .actions import ActionKind, FinancialAction, parse_action
from .records import ActionRecord
from .context import FinancialContext
from .responses import ClassificationResult, EngineReply
from .errors import ActionError, ActionValidationError, ActionNotFoundError, FatalError

__all__ = [
    "TransactionKind",
    "Category",
    "BudgetPeriod",
    "GoalType",
    "InvestmentType",
    "Frequency",
    "Transaction",
    "Budget",
    "Goal",
    "Investment",
    "RecurringTransaction",
    "TransactionFilter",
    "PeriodTotals",
    "SpendingStatistics",
    "HabitAnalysis",
    "ActionKind",
    "FinancialAction",
    "parse_action",
    "ActionRecord",
    "FinancialContext",
    "ClassificationResult",
    "EngineReply",
    "ActionError",
    "ActionValidationError",
    "ActionNotFoundError",
    "FatalError",
]
