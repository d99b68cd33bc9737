"""Ledger collaborator interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List, Dict, Any, Union

from schemas.actions import (
    AddTransaction,
    ModifyTransaction,
    DeleteTransaction,
    CreateBudget,
    CreateGoal,
    CreateInvestment,
    CreateRecurringTransaction,
)
from schemas.errors import ActionNotFoundError, ActionValidationError
from schemas.ledger import (
    Transaction,
    Budget,
    Goal,
    Investment,
    RecurringTransaction,
    TransactionFilter,
    TransactionKind,
    PeriodTotals,
    BudgetPeriod,
    GoalType,
    InvestmentType,
    Frequency,
)
from utils.dates import add_months, add_weeks

MutatingAction = Union[
    AddTransaction,
    ModifyTransaction,
    DeleteTransaction,
    CreateBudget,
    CreateGoal,
    CreateInvestment,
    CreateRecurringTransaction,
]
Entity = Union[Transaction, Budget, Goal, Investment, RecurringTransaction]

BUDGET_PERIOD_MONTHS = {
    BudgetPeriod.MONTHLY: 1,
    BudgetPeriod.QUARTERLY: 3,
    BudgetPeriod.YEARLY: 12,
}

FREQUENCY_MONTHS = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.YEARLY: 12,
}


def next_occurrence(frequency: Frequency, moment: datetime) -> datetime:
    """Next date a recurring transaction is due after moment."""
    if frequency == Frequency.WEEKLY:
        return add_weeks(moment, 1)
    return add_months(moment, FREQUENCY_MONTHS[frequency])


class Ledger(ABC):
    """
    Storage of a user's transactions, budgets, goals, investments and
    recurring transactions.

    Implementations must make each mutation atomic per entity.
    """

    @abstractmethod
    def query_transactions(self, criteria: TransactionFilter) -> List[Transaction]:
        """
        Find transactions matching a filter.

        Returns:
            Transactions ordered most recent first (date, then creation, then id)
        """
        pass

    @abstractmethod
    def get_transaction(self, user_id: str, transaction_id: int) -> Optional[Transaction]:
        pass

    @abstractmethod
    def list_budgets(self, user_id: str, active_only: bool = True) -> List[Budget]:
        pass

    @abstractmethod
    def list_goals(self, user_id: str, active_only: bool = True) -> List[Goal]:
        pass

    @abstractmethod
    def add_transaction(
        self,
        user_id: str,
        amount: float,
        kind: TransactionKind,
        category: str,
        description: str,
        date: datetime,
        created_by_assistant: bool = False
    ) -> Transaction:
        pass

    @abstractmethod
    def update_transaction(
        self,
        user_id: str,
        transaction_id: int,
        changes: Dict[str, Any]
    ) -> Transaction:
        """Apply field changes; raises ActionNotFoundError if absent."""
        pass

    @abstractmethod
    def delete_transaction(self, user_id: str, transaction_id: int) -> Transaction:
        """Delete and return the removed transaction; raises ActionNotFoundError if absent."""
        pass

    @abstractmethod
    def create_budget(
        self,
        user_id: str,
        name: str,
        amount: float,
        category: Optional[str],
        period: BudgetPeriod,
        start_date: datetime,
        end_date: datetime
    ) -> Budget:
        pass

    @abstractmethod
    def create_goal(
        self,
        user_id: str,
        name: str,
        target_amount: float,
        deadline: datetime,
        goal_type: GoalType
    ) -> Goal:
        pass

    @abstractmethod
    def create_investment(
        self,
        user_id: str,
        name: str,
        amount: float,
        investment_type: InvestmentType,
        purchase_date: datetime
    ) -> Investment:
        pass

    @abstractmethod
    def create_recurring_transaction(
        self,
        user_id: str,
        amount: float,
        kind: TransactionKind,
        category: str,
        description: str,
        frequency: Frequency,
        next_date: datetime
    ) -> RecurringTransaction:
        pass

    def aggregate(self, user_id: str, start: datetime, end: datetime) -> PeriodTotals:
        """Income and expense totals for transactions dated within [start, end]."""
        totals = PeriodTotals()
        for transaction in self.query_transactions(
            TransactionFilter(user_id=user_id, start_date=start, end_date=end)
        ):
            if transaction.kind == TransactionKind.INCOME:
                totals.income += transaction.amount
            else:
                totals.expense += transaction.amount
        return totals

    def balance(self, user_id: str) -> float:
        """All-time income minus expense."""
        total = 0.0
        for transaction in self.query_transactions(TransactionFilter(user_id=user_id)):
            if transaction.kind == TransactionKind.INCOME:
                total += transaction.amount
            else:
                total -= transaction.amount
        return total

    def mutate(
        self,
        user_id: str,
        action: MutatingAction,
        now: Optional[datetime] = None
    ) -> Entity:
        """
        Apply one mutating action.

        Modify and delete actions must carry a resolved transaction_id.

        Args:
            user_id: Owner of the entity
            action: Mutating FinancialAction
            now: Reference instant for default dates

        Returns:
            The created, updated or deleted entity
        """
        now = now or datetime.now()

        if isinstance(action, AddTransaction):
            return self.add_transaction(
                user_id=user_id,
                amount=action.amount,
                kind=action.kind,
                category=action.category,
                description=action.description,
                date=action.date or now,
                created_by_assistant=True,
            )

        if isinstance(action, ModifyTransaction):
            if action.transaction_id is None:
                raise ActionNotFoundError("No transaction selected to modify")
            changes = {
                "amount": action.new_amount,
                "kind": action.new_kind,
                "category": action.new_category,
                "description": action.new_description,
                "date": action.new_date,
            }
            changes = {k: v for k, v in changes.items() if v is not None}
            return self.update_transaction(user_id, action.transaction_id, changes)

        if isinstance(action, DeleteTransaction):
            if action.transaction_id is None:
                raise ActionNotFoundError("No transaction selected to delete")
            return self.delete_transaction(user_id, action.transaction_id)

        if isinstance(action, CreateBudget):
            return self.create_budget(
                user_id=user_id,
                name=action.name,
                amount=action.amount,
                category=action.category,
                period=action.period,
                start_date=now,
                end_date=add_months(now, BUDGET_PERIOD_MONTHS[action.period]),
            )

        if isinstance(action, CreateGoal):
            return self.create_goal(
                user_id=user_id,
                name=action.name,
                target_amount=action.target_amount,
                deadline=action.deadline or add_months(now, 12),
                goal_type=action.goal_type,
            )

        if isinstance(action, CreateInvestment):
            return self.create_investment(
                user_id=user_id,
                name=action.name,
                amount=action.amount,
                investment_type=action.investment_type,
                purchase_date=now,
            )

        if isinstance(action, CreateRecurringTransaction):
            return self.create_recurring_transaction(
                user_id=user_id,
                amount=action.amount,
                kind=action.kind,
                category=action.category,
                description=action.description,
                frequency=action.frequency,
                next_date=next_occurrence(action.frequency, now),
            )

        raise ActionValidationError(f"Not a mutating action: {action.action}")
