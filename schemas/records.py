"""Records of executed actions, stored alongside assistant turns."""

from typing import List, Literal, Union, Annotated
from pydantic import BaseModel, Field, TypeAdapter

from .ledger import (
    Transaction,
    Budget,
    Goal,
    Investment,
    RecurringTransaction,
    SpendingStatistics,
    HabitAnalysis,
)


class TransactionsFound(BaseModel):
    kind: Literal["search_transactions"] = "search_transactions"
    transactions: List[Transaction] = Field(default_factory=list)


class TransactionAdded(BaseModel):
    kind: Literal["add_transaction"] = "add_transaction"
    transaction: Transaction


class TransactionModified(BaseModel):
    kind: Literal["modify_transaction"] = "modify_transaction"
    before: Transaction
    after: Transaction


class TransactionDeleted(BaseModel):
    kind: Literal["delete_transaction"] = "delete_transaction"
    transaction: Transaction


class BudgetCreated(BaseModel):
    kind: Literal["create_budget"] = "create_budget"
    budget: Budget


class GoalCreated(BaseModel):
    kind: Literal["create_goal"] = "create_goal"
    goal: Goal


class InvestmentCreated(BaseModel):
    kind: Literal["create_investment"] = "create_investment"
    investment: Investment


class RecurringTransactionCreated(BaseModel):
    kind: Literal["create_recurring_transaction"] = "create_recurring_transaction"
    recurring: RecurringTransaction


class GoalsListed(BaseModel):
    kind: Literal["list_goals"] = "list_goals"
    goals: List[Goal] = Field(default_factory=list)


class BudgetsListed(BaseModel):
    kind: Literal["list_budgets"] = "list_budgets"
    budgets: List[Budget] = Field(default_factory=list)


class StatisticsComputed(BaseModel):
    kind: Literal["statistics"] = "statistics"
    statistics: SpendingStatistics


class HabitsAnalyzed(BaseModel):
    kind: Literal["analyze_habits"] = "analyze_habits"
    analysis: HabitAnalysis


ActionRecord = Annotated[
    Union[
        TransactionsFound,
        TransactionAdded,
        TransactionModified,
        TransactionDeleted,
        BudgetCreated,
        GoalCreated,
        InvestmentCreated,
        RecurringTransactionCreated,
        GoalsListed,
        BudgetsListed,
        StatisticsComputed,
        HabitsAnalyzed,
    ],
    Field(discriminator="kind"),
]

action_record_adapter = TypeAdapter(ActionRecord)
