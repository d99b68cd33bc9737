"""Structured financial actions the assistant can execute."""

from datetime import datetime
from enum import Enum
from typing import Optional, Union, Literal, Dict, Any, Annotated
from pydantic import BaseModel, Field, TypeAdapter

from .ledger import (
    TransactionKind,
    BudgetPeriod,
    GoalType,
    InvestmentType,
    Frequency,
)


class ActionKind(str, Enum):
    """Action families, named as exposed to providers."""
    SEARCH_TRANSACTIONS = "search_transactions"
    ADD_TRANSACTION = "add_transaction"
    MODIFY_TRANSACTION = "modify_transaction"
    DELETE_TRANSACTION = "delete_transaction"
    CREATE_BUDGET = "create_budget"
    CREATE_GOAL = "create_goal"
    CREATE_INVESTMENT = "create_investment"
    CREATE_RECURRING_TRANSACTION = "create_recurring_transaction"
    LIST_GOALS = "list_goals"
    LIST_BUDGETS = "list_budgets"
    STATISTICS = "statistics"
    ANALYZE_HABITS = "analyze_habits"


class SearchTransactions(BaseModel):
    """Search the user's transactions."""
    action: Literal["search_transactions"] = "search_transactions"
    kind: Optional[TransactionKind] = Field(None, description="income or expense")
    category: Optional[str] = Field(None, description="Category to filter on")
    description: Optional[str] = Field(None, description="Text the description should contain")
    start_date: Optional[datetime] = Field(None, description="ISO date lower bound")
    end_date: Optional[datetime] = Field(None, description="ISO date upper bound")
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    limit: int = Field(10, description="Maximum number of transactions to return")


class AddTransaction(BaseModel):
    """Record a new income or expense."""
    action: Literal["add_transaction"] = "add_transaction"
    amount: float = Field(..., description="Transaction amount")
    kind: TransactionKind = Field(..., description="income or expense")
    category: str = Field(..., description="Transaction category")
    description: str = Field(..., description="Short description")
    date: Optional[datetime] = Field(None, description="ISO date, defaults to now")


class ModifyTransaction(BaseModel):
    """Change an existing transaction located by id or by match fields."""
    action: Literal["modify_transaction"] = "modify_transaction"
    transaction_id: Optional[int] = None
    match_description: Optional[str] = Field(None, description="Description of the transaction to change")
    match_category: Optional[str] = Field(None, description="Category of the transaction to change")
    match_amount: Optional[float] = Field(None, description="Current amount of the transaction to change")
    match_date: Optional[datetime] = Field(None, description="Date of the transaction to change")
    new_amount: Optional[float] = None
    new_kind: Optional[TransactionKind] = None
    new_category: Optional[str] = None
    new_description: Optional[str] = None
    new_date: Optional[datetime] = None


class DeleteTransaction(BaseModel):
    """Remove an existing transaction located by id or by match fields."""
    action: Literal["delete_transaction"] = "delete_transaction"
    transaction_id: Optional[int] = None
    match_description: Optional[str] = Field(None, description="Description of the transaction to delete")
    match_category: Optional[str] = Field(None, description="Category of the transaction to delete")
    match_amount: Optional[float] = Field(None, description="Amount of the transaction to delete")
    match_date: Optional[datetime] = Field(None, description="Date of the transaction to delete")


class CreateBudget(BaseModel):
    """Create a spending budget."""
    action: Literal["create_budget"] = "create_budget"
    name: str
    amount: float
    category: Optional[str] = None
    period: BudgetPeriod = BudgetPeriod.MONTHLY


class CreateGoal(BaseModel):
    """Create a financial goal."""
    action: Literal["create_goal"] = "create_goal"
    name: str
    target_amount: float
    deadline: Optional[datetime] = Field(None, description="ISO date, defaults to one year from now")
    goal_type: GoalType = GoalType.SAVINGS


class CreateInvestment(BaseModel):
    """Record an investment."""
    action: Literal["create_investment"] = "create_investment"
    name: str
    amount: float
    investment_type: InvestmentType = InvestmentType.OTHER


class CreateRecurringTransaction(BaseModel):
    """Create a transaction that repeats on a schedule."""
    action: Literal["create_recurring_transaction"] = "create_recurring_transaction"
    amount: float
    kind: TransactionKind
    category: str
    description: str
    frequency: Frequency = Frequency.MONTHLY


class ListGoals(BaseModel):
    """List the user's goals."""
    action: Literal["list_goals"] = "list_goals"
    active_only: bool = True


class ListBudgets(BaseModel):
    """List the user's budgets."""
    action: Literal["list_budgets"] = "list_budgets"
    active_only: bool = True


class Statistics(BaseModel):
    """Income, expense and category breakdown for a period."""
    action: Literal["statistics"] = "statistics"
    period_start: Optional[datetime] = Field(None, description="Defaults to the start of the current month")
    period_end: Optional[datetime] = Field(None, description="Defaults to the end of the current month")


class AnalyzeHabits(BaseModel):
    """Analyze spending habits over the last months."""
    action: Literal["analyze_habits"] = "analyze_habits"
    months: int = Field(3, description="Number of trailing months to analyze")


FinancialAction = Annotated[
    Union[
        SearchTransactions,
        AddTransaction,
        ModifyTransaction,
        DeleteTransaction,
        CreateBudget,
        CreateGoal,
        CreateInvestment,
        CreateRecurringTransaction,
        ListGoals,
        ListBudgets,
        Statistics,
        AnalyzeHabits,
    ],
    Field(discriminator="action"),
]

ACTION_MODELS = {
    ActionKind.SEARCH_TRANSACTIONS: SearchTransactions,
    ActionKind.ADD_TRANSACTION: AddTransaction,
    ActionKind.MODIFY_TRANSACTION: ModifyTransaction,
    ActionKind.DELETE_TRANSACTION: DeleteTransaction,
    ActionKind.CREATE_BUDGET: CreateBudget,
    ActionKind.CREATE_GOAL: CreateGoal,
    ActionKind.CREATE_INVESTMENT: CreateInvestment,
    ActionKind.CREATE_RECURRING_TRANSACTION: CreateRecurringTransaction,
    ActionKind.LIST_GOALS: ListGoals,
    ActionKind.LIST_BUDGETS: ListBudgets,
    ActionKind.STATISTICS: Statistics,
    ActionKind.ANALYZE_HABITS: AnalyzeHabits,
}

_action_adapter = TypeAdapter(FinancialAction)


def parse_action(name: str, arguments: Dict[str, Any]) -> FinancialAction:
    """
    Build a FinancialAction from a function name and its arguments.

    Raises:
        ValueError: If the name is unknown
        pydantic.ValidationError: If the arguments do not fit the action
    """
    kind = ActionKind(name)
    data = {k: v for k, v in arguments.items() if v is not None}
    data["action"] = kind.value
    return _action_adapter.validate_python(data)
