"""Action executor: validates and applies one financial action."""

import logging
import math
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Union

from rapidfuzz import fuzz

from ledger.base import Ledger
from schemas.actions import (
    FinancialAction,
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
)
from schemas.errors import ActionNotFoundError, ActionValidationError
from schemas.ledger import (
    Transaction,
    TransactionFilter,
    TransactionKind,
    CategoryShare,
    SpendingStatistics,
    MonthlyExpense,
    HabitAnalysis,
)
from schemas.records import (
    ActionRecord,
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
)
from utils.dates import start_of_month, end_of_month, add_months, month_key, to_naive_local

logger = logging.getLogger(__name__)


def _positive(value: float) -> bool:
    return math.isfinite(value) and value > 0


TargetedAction = Union[ModifyTransaction, DeleteTransaction]


class ActionExecutor:
    """
    Applies a single FinancialAction against the ledger.

    Modify and delete actions without an id are resolved by searching with
    their match fields; among several candidates the most recent one
    (by date, then creation time, then id) is chosen.
    """

    # Minimum rapidfuzz partial_ratio for a description to count as a match
    DESCRIPTION_MATCH_THRESHOLD = 70
    TOP_EXPENSES = 5

    def __init__(self, ledger: Ledger, clock: Callable[[], datetime] = datetime.now):
        """
        Initialize executor.

        Args:
            ledger: Ledger collaborator
            clock: Source of the current instant
        """
        self.ledger = ledger
        self.clock = clock

    def execute(
        self,
        user_id: str,
        action: FinancialAction,
        now: Optional[datetime] = None
    ) -> ActionRecord:
        """
        Execute one action.

        At most one ledger mutation is performed.

        Args:
            user_id: Acting user
            action: Action to apply
            now: Reference instant (defaults to the clock)

        Returns:
            ActionRecord describing the outcome

        Raises:
            ActionValidationError: If a required amount is not positive
            ActionNotFoundError: If the targeted transaction does not exist
        """
        now = now or self.clock()
        self.validate(action)

        if isinstance(action, SearchTransactions):
            record = self._search(user_id, action)
        elif isinstance(action, AddTransaction):
            record = TransactionAdded(transaction=self.ledger.mutate(user_id, action, now))
        elif isinstance(action, ModifyTransaction):
            before = self.resolve_target(user_id, action)
            resolved = action.model_copy(update={"transaction_id": before.transaction_id})
            after = self.ledger.mutate(user_id, resolved, now)
            record = TransactionModified(before=before, after=after)
        elif isinstance(action, DeleteTransaction):
            target = self.resolve_target(user_id, action)
            resolved = action.model_copy(update={"transaction_id": target.transaction_id})
            record = TransactionDeleted(transaction=self.ledger.mutate(user_id, resolved, now))
        elif isinstance(action, CreateBudget):
            record = BudgetCreated(budget=self.ledger.mutate(user_id, action, now))
        elif isinstance(action, CreateGoal):
            record = GoalCreated(goal=self.ledger.mutate(user_id, action, now))
        elif isinstance(action, CreateInvestment):
            record = InvestmentCreated(investment=self.ledger.mutate(user_id, action, now))
        elif isinstance(action, CreateRecurringTransaction):
            record = RecurringTransactionCreated(recurring=self.ledger.mutate(user_id, action, now))
        elif isinstance(action, ListGoals):
            record = GoalsListed(goals=self.ledger.list_goals(user_id, action.active_only))
        elif isinstance(action, ListBudgets):
            record = BudgetsListed(budgets=self.ledger.list_budgets(user_id, action.active_only))
        elif isinstance(action, Statistics):
            record = StatisticsComputed(statistics=self.compute_statistics(user_id, action, now))
        elif isinstance(action, AnalyzeHabits):
            record = HabitsAnalyzed(analysis=self.analyze_habits(user_id, action.months, now))
        else:
            raise ActionValidationError(f"Unsupported action: {action.action}")

        logger.info(f"Executed {action.action} for user {user_id}")
        return record

    @staticmethod
    def validate(action: FinancialAction) -> None:
        """Reject actions whose required numeric fields are not positive finite numbers."""
        amounts = {
            AddTransaction: "amount",
            CreateBudget: "amount",
            CreateGoal: "target_amount",
            CreateInvestment: "amount",
            CreateRecurringTransaction: "amount",
        }
        field = amounts.get(type(action))
        if field and not _positive(getattr(action, field)):
            raise ActionValidationError(f"The {field.replace('_', ' ')} must be positive")

        if isinstance(action, ModifyTransaction):
            if action.new_amount is not None and not _positive(action.new_amount):
                raise ActionValidationError("The new amount must be positive")
            changes = [
                action.new_amount, action.new_kind, action.new_category,
                action.new_description, action.new_date,
            ]
            if all(value is None for value in changes):
                raise ActionValidationError("Nothing to change was specified")

        if isinstance(action, (ModifyTransaction, DeleteTransaction)):
            if action.match_amount is not None and not math.isfinite(action.match_amount):
                raise ActionValidationError("The amount to match must be a number")

        if isinstance(action, AnalyzeHabits) and action.months < 1:
            raise ActionValidationError("The number of months must be positive")

        if isinstance(action, SearchTransactions) and action.limit < 1:
            raise ActionValidationError("The search limit must be positive")

    def resolve_target(self, user_id: str, action: TargetedAction) -> Transaction:
        """
        Find the transaction a modify/delete action refers to.

        Args:
            user_id: Owner of the transaction
            action: Modify or delete action

        Returns:
            The targeted transaction

        Raises:
            ActionNotFoundError: If nothing matches
        """
        if action.transaction_id is not None:
            transaction = self.ledger.get_transaction(user_id, action.transaction_id)
            if transaction is None:
                raise ActionNotFoundError(f"Transaction #{action.transaction_id} was not found")
            return transaction

        criteria = TransactionFilter(user_id=user_id, category=action.match_category)
        if action.match_amount is not None:
            criteria.min_amount = action.match_amount - 0.005
            criteria.max_amount = action.match_amount + 0.005
        if action.match_date is not None:
            day = to_naive_local(action.match_date).replace(hour=0, minute=0, second=0, microsecond=0)
            criteria.start_date = day
            criteria.end_date = day + timedelta(days=1) - timedelta(microseconds=1)

        candidates = self.ledger.query_transactions(criteria)

        if action.match_description:
            wanted = action.match_description.lower()
            candidates = [
                t for t in candidates
                if fuzz.partial_ratio(wanted, t.description.lower()) >= self.DESCRIPTION_MATCH_THRESHOLD
            ]

        if not candidates:
            raise ActionNotFoundError("No matching transaction was found")

        if len(candidates) > 1:
            logger.debug(f"{len(candidates)} candidates matched; using the most recent")

        return max(candidates, key=lambda t: (t.date, t.created_at, t.transaction_id))

    def _search(self, user_id: str, action: SearchTransactions) -> TransactionsFound:
        criteria = TransactionFilter(
            user_id=user_id,
            kind=action.kind,
            category=action.category,
            description=action.description,
            min_amount=action.min_amount,
            max_amount=action.max_amount,
            start_date=action.start_date,
            end_date=action.end_date,
            limit=action.limit,
        )
        return TransactionsFound(transactions=self.ledger.query_transactions(criteria))

    def compute_statistics(
        self,
        user_id: str,
        action: Statistics,
        now: datetime
    ) -> SpendingStatistics:
        """
        Income, expense, savings rate, category breakdown and top expenses.

        The period defaults to the current calendar month.
        """
        period_start = action.period_start or start_of_month(now)
        period_end = action.period_end or end_of_month(now)

        transactions = self.ledger.query_transactions(
            TransactionFilter(user_id=user_id, start_date=period_start, end_date=period_end)
        )
        expenses = [t for t in transactions if t.kind == TransactionKind.EXPENSE]
        income = sum(t.amount for t in transactions if t.kind == TransactionKind.INCOME)
        expense = sum(t.amount for t in expenses)

        savings_rate = (income - expense) / income * 100 if income > 0 else 0.0

        by_category: Dict[str, float] = defaultdict(float)
        for transaction in expenses:
            by_category[transaction.category] += transaction.amount

        breakdown = [
            CategoryShare(
                category=category,
                amount=amount,
                percentage=round(amount / expense * 100, 2) if expense > 0 else 0.0,
            )
            for category, amount in sorted(by_category.items(), key=lambda item: (-item[1], item[0]))
        ]

        # Query order is most recent first; stable sort keeps it among equal amounts
        top_expenses = sorted(expenses, key=lambda t: t.amount, reverse=True)[:self.TOP_EXPENSES]

        return SpendingStatistics(
            period_start=period_start,
            period_end=period_end,
            income=income,
            expense=expense,
            savings_rate=round(savings_rate, 2),
            breakdown=breakdown,
            top_expenses=top_expenses,
        )

    def analyze_habits(self, user_id: str, months: int, now: datetime) -> HabitAnalysis:
        """
        Summarize expenses over the trailing months, current month included.

        Args:
            user_id: User to analyze
            months: Window length in months
            now: Reference instant

        Returns:
            HabitAnalysis
        """
        window_start = add_months(start_of_month(now), -(months - 1))
        window_end = end_of_month(now)
        month_keys = [month_key(add_months(window_start, i)) for i in range(months)]

        expenses = self.ledger.query_transactions(
            TransactionFilter(
                user_id=user_id,
                kind=TransactionKind.EXPENSE,
                start_date=window_start,
                end_date=window_end,
            )
        )

        monthly: Dict[str, float] = {key: 0.0 for key in month_keys}
        by_category: Dict[str, float] = defaultdict(float)
        per_month_category: Dict[str, Dict[str, float]] = {key: defaultdict(float) for key in month_keys}

        for transaction in expenses:
            key = month_key(transaction.date)
            if key not in monthly:
                continue
            monthly[key] += transaction.amount
            by_category[transaction.category] += transaction.amount
            per_month_category[key][transaction.category] += transaction.amount

        top_category = None
        if by_category:
            top_category = min(by_category.items(), key=lambda item: (-item[1], item[0]))[0]

        return HabitAnalysis(
            months=months,
            average_monthly_expense=round(sum(monthly.values()) / months, 2),
            top_category=top_category,
            monthly_expenses=[MonthlyExpense(month=key, expense=monthly[key]) for key in month_keys],
            fastest_growing_category=self._fastest_growing(
                per_month_category[month_keys[0]],
                per_month_category[month_keys[-1]],
            ) if months > 1 else None,
        )

    @staticmethod
    def _fastest_growing(first: Dict[str, float], last: Dict[str, float]) -> Optional[str]:
        """Category whose share of monthly expense grew most from first to last month."""
        first_total = sum(first.values())
        last_total = sum(last.values())
        if first_total <= 0 or last_total <= 0:
            return None

        growth: List[tuple] = []
        for category in set(first) | set(last):
            delta = last.get(category, 0.0) / last_total - first.get(category, 0.0) / first_total
            if delta > 0:
                growth.append((-delta, category))

        return min(growth)[1] if growth else None
