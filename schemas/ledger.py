"""Ledger entity schemas."""

from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field


class TransactionKind(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class Category(str, Enum):
    """Transaction categories known to the assistant."""
    FOOD = "Food"
    TRANSPORT = "Transport"
    HOUSING = "Housing"
    HEALTH = "Health"
    EDUCATION = "Education"
    ENTERTAINMENT = "Entertainment"
    SHOPPING = "Shopping"
    OTHER = "Other"
    SALARY = "Salary"
    INVESTMENT = "Investment"
    OTHER_INCOME = "Other income"


class BudgetPeriod(str, Enum):
    """Budget renewal period."""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class GoalType(str, Enum):
    """Kind of financial goal."""
    SAVINGS = "savings"
    DEBT_REPAYMENT = "debt_repayment"
    EMERGENCY_FUND = "emergency_fund"
    PROJECT = "project"


class InvestmentType(str, Enum):
    """Kind of investment."""
    STOCKS = "stocks"
    BONDS = "bonds"
    FUNDS = "funds"
    CRYPTO = "crypto"
    REAL_ESTATE = "real_estate"
    OTHER = "other"


class Frequency(str, Enum):
    """Recurrence frequency."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class Transaction(BaseModel):
    """A single ledger transaction."""
    transaction_id: int
    user_id: str
    amount: float
    kind: TransactionKind
    category: str
    description: str
    date: datetime
    created_by_assistant: bool = False
    created_at: datetime = Field(default_factory=datetime.now)


class Budget(BaseModel):
    """Spending budget over a period window."""
    budget_id: int
    user_id: str
    name: str
    amount: float
    category: Optional[str] = None
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    start_date: datetime
    end_date: datetime
    active: bool = True


class Goal(BaseModel):
    """Financial goal with a target amount and deadline."""
    goal_id: int
    user_id: str
    name: str
    target_amount: float
    current_amount: float = 0.0
    deadline: datetime
    goal_type: GoalType = GoalType.SAVINGS
    active: bool = True


class Investment(BaseModel):
    """Investment position."""
    investment_id: int
    user_id: str
    name: str
    investment_type: InvestmentType = InvestmentType.OTHER
    amount: float
    purchase_date: datetime
    active: bool = True


class RecurringTransaction(BaseModel):
    """Template for a transaction that repeats on a schedule."""
    recurring_id: int
    user_id: str
    amount: float
    kind: TransactionKind
    category: str
    description: str
    frequency: Frequency
    next_date: datetime
    active: bool = True


class TransactionFilter(BaseModel):
    """Criteria for querying transactions."""
    user_id: str
    kind: Optional[TransactionKind] = None
    category: Optional[str] = None
    description: Optional[str] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: Optional[int] = None


class PeriodTotals(BaseModel):
    """Income and expense totals over a period."""
    income: float = 0.0
    expense: float = 0.0


class CategoryShare(BaseModel):
    """Amount spent in one category and its share of total expense."""
    category: str
    amount: float
    percentage: float


class SpendingStatistics(BaseModel):
    """Aggregated statistics for a period."""
    period_start: datetime
    period_end: datetime
    income: float
    expense: float
    savings_rate: float
    breakdown: List[CategoryShare] = Field(default_factory=list)
    top_expenses: List[Transaction] = Field(default_factory=list)


class MonthlyExpense(BaseModel):
    """Expense total for one calendar month."""
    month: str  # YYYY-MM
    expense: float


class HabitAnalysis(BaseModel):
    """Spending habits over a trailing window of months."""
    months: int
    average_monthly_expense: float
    top_category: Optional[str] = None
    monthly_expenses: List[MonthlyExpense] = Field(default_factory=list)
    fastest_growing_category: Optional[str] = None
