"""Tests for the Action Executor."""

import pytest
from datetime import datetime
from unittest.mock import Mock

from agents.executor import ActionExecutor
from ledger.base import Ledger
from ledger.sqlite_ledger import SQLiteLedger
from schemas.actions import (
    AddTransaction,
    ModifyTransaction,
    DeleteTransaction,
    SearchTransactions,
    CreateBudget,
    CreateGoal,
    ListGoals,
    ListBudgets,
    Statistics,
    AnalyzeHabits,
)
from schemas.errors import ActionNotFoundError, ActionValidationError
from schemas.ledger import Transaction, TransactionFilter, TransactionKind
from schemas.records import (
    TransactionAdded,
    TransactionModified,
    TransactionDeleted,
    TransactionsFound,
    BudgetCreated,
    GoalsListed,
    BudgetsListed,
    StatisticsComputed,
    HabitsAnalyzed,
)

NOW = datetime(2026, 3, 15, 12, 0)


class TestActionValidation:
    """Test validation happens before any ledger call."""

    def setup_method(self):
        """Set up test fixtures."""
        self.ledger = Mock(spec=Ledger)
        self.executor = ActionExecutor(self.ledger, clock=lambda: NOW)

    @pytest.mark.parametrize("action", [
        AddTransaction(amount=0, kind=TransactionKind.EXPENSE, category="Food", description="x"),
        AddTransaction(amount=-5, kind=TransactionKind.EXPENSE, category="Food", description="x"),
        CreateBudget(name="b", amount=0),
        CreateGoal(name="g", target_amount=-100),
        ModifyTransaction(transaction_id=1, new_amount=0),
        ModifyTransaction(transaction_id=1),
        AddTransaction(amount=float("nan"), kind=TransactionKind.EXPENSE, category="Food", description="x"),
        AddTransaction(amount=float("inf"), kind=TransactionKind.EXPENSE, category="Food", description="x"),
        CreateBudget(name="b", amount=float("inf")),
        ModifyTransaction(transaction_id=1, new_amount=float("nan")),
        DeleteTransaction(match_amount=float("nan")),
        AnalyzeHabits(months=0),
    ])
    def test_invalid_actions_rejected_without_mutation(self, action):
        with pytest.raises(ActionValidationError):
            self.executor.execute("u1", action)

        self.ledger.mutate.assert_not_called()

    def test_valid_add_calls_mutate_once(self):
        action = AddTransaction(amount=10, kind=TransactionKind.EXPENSE, category="Food", description="x")
        self.ledger.mutate.return_value = Transaction(
            transaction_id=1, user_id="u1", amount=10, kind=TransactionKind.EXPENSE,
            category="Food", description="x", date=NOW, created_by_assistant=True,
        )

        record = self.executor.execute("u1", action)

        assert isinstance(record, TransactionAdded)
        self.ledger.mutate.assert_called_once_with("u1", action, NOW)


class TestActionExecutor:
    """Test execution against a real SQLite ledger."""

    @pytest.fixture(autouse=True)
    def setup_executor(self, tmp_path):
        """Set up a fresh ledger per test."""
        self.ledger = SQLiteLedger(db_path=str(tmp_path / "ledger.db"))
        self.executor = ActionExecutor(self.ledger, clock=lambda: NOW)

    def add(self, amount, category="Food", description="lunch", date=NOW,
            kind=TransactionKind.EXPENSE):
        return self.ledger.add_transaction("u1", amount, kind, category, description, date)

    def test_add_transaction(self):
        record = self.executor.execute(
            "u1",
            AddTransaction(amount=150, kind=TransactionKind.EXPENSE, category="Food", description="restaurant"),
        )

        assert isinstance(record, TransactionAdded)
        assert record.transaction.date == NOW
        assert record.transaction.created_by_assistant

    def test_modify_by_id_records_before_and_after(self):
        original = self.add(150, description="dinner")

        record = self.executor.execute(
            "u1", ModifyTransaction(transaction_id=original.transaction_id, new_amount=120)
        )

        assert isinstance(record, TransactionModified)
        assert record.before.amount == 150
        assert record.after.amount == 120
        assert record.after.transaction_id == original.transaction_id

    def test_modify_unknown_id_not_found(self):
        with pytest.raises(ActionNotFoundError):
            self.executor.execute("u1", ModifyTransaction(transaction_id=42, new_amount=10))

    def test_delete_with_no_candidates_not_found(self):
        self.add(20, category="Transport", description="taxi")

        with pytest.raises(ActionNotFoundError):
            self.executor.execute("u1", DeleteTransaction(match_amount=150, match_category="Food"))

        assert len(self.ledger.query_transactions(TransactionFilter(user_id="u1"))) == 1

    def test_delete_picks_most_recent_candidate(self):
        """Test that ambiguous matches resolve to the most recent transaction."""
        self.add(150, description="restaurant", date=datetime(2026, 3, 1))
        latest = self.add(150, description="restaurant", date=datetime(2026, 3, 10))
        self.add(150, description="restaurant", date=datetime(2026, 2, 20))

        record = self.executor.execute("u1", DeleteTransaction(match_amount=150, match_category="Food"))

        assert isinstance(record, TransactionDeleted)
        assert record.transaction.transaction_id == latest.transaction_id
        assert len(self.ledger.query_transactions(TransactionFilter(user_id="u1"))) == 2

    def test_same_date_tie_breaks_on_creation(self):
        self.add(50, description="taxi", category="Transport", date=datetime(2026, 3, 10))
        second = self.add(50, description="taxi", category="Transport", date=datetime(2026, 3, 10))

        target = self.executor.resolve_target("u1", DeleteTransaction(match_amount=50))

        assert target.transaction_id == second.transaction_id

    def test_fuzzy_description_match(self):
        wanted = self.add(80, description="Dinner at Le Petit Bistro", date=datetime(2026, 3, 1))
        self.add(80, description="Groceries", date=datetime(2026, 3, 12))

        record = self.executor.execute(
            "u1", ModifyTransaction(match_description="petit bistro", new_amount=90)
        )

        assert record.before.transaction_id == wanted.transaction_id
        assert record.after.amount == 90

    def test_match_date_restricts_to_day(self):
        wanted = self.add(30, date=datetime(2026, 3, 5, 9, 0))
        self.add(30, date=datetime(2026, 3, 6, 9, 0))

        target = self.executor.resolve_target(
            "u1", DeleteTransaction(match_amount=30, match_date=datetime(2026, 3, 5))
        )

        assert target.transaction_id == wanted.transaction_id

    def test_search(self):
        self.add(10, category="Food")
        self.add(20, category="Transport", description="taxi")

        record = self.executor.execute("u1", SearchTransactions(category="Transport"))

        assert isinstance(record, TransactionsFound)
        assert [t.amount for t in record.transactions] == [20]

    def test_list_goals_and_budgets(self):
        self.executor.execute("u1", CreateBudget(name="Food", amount=2000, category="Food"))
        self.executor.execute("u1", CreateGoal(name="Car", target_amount=50000))

        goals = self.executor.execute("u1", ListGoals())
        budgets = self.executor.execute("u1", ListBudgets())

        assert isinstance(goals, GoalsListed)
        assert [g.name for g in goals.goals] == ["Car"]
        assert isinstance(budgets, BudgetsListed)
        assert [b.name for b in budgets.budgets] == ["Food"]

    def test_create_budget_record(self):
        record = self.executor.execute("u1", CreateBudget(name="Food", amount=2000, category="Food"))

        assert isinstance(record, BudgetCreated)
        assert record.budget.end_date == datetime(2026, 4, 15, 12, 0)

    def test_statistics_current_month(self):
        self.add(10000, kind=TransactionKind.INCOME, category="Salary", description="salary",
                 date=datetime(2026, 3, 1))
        self.add(3000, category="Housing", description="rent", date=datetime(2026, 3, 2))
        self.add(1000, category="Food", description="groceries", date=datetime(2026, 3, 3))
        self.add(999, category="Food", description="old", date=datetime(2026, 2, 27))

        record = self.executor.execute("u1", Statistics())

        assert isinstance(record, StatisticsComputed)
        stats = record.statistics
        assert stats.income == 10000
        assert stats.expense == 4000
        assert stats.savings_rate == 60.0
        assert [(s.category, s.percentage) for s in stats.breakdown] == [("Housing", 75.0), ("Food", 25.0)]
        assert [t.amount for t in stats.top_expenses] == [3000, 1000]

    def test_statistics_without_income(self):
        self.add(100, date=datetime(2026, 3, 2))

        stats = self.executor.execute("u1", Statistics()).statistics

        assert stats.savings_rate == 0.0

    def test_top_expenses_capped_at_five(self):
        for amount in range(1, 8):
            self.add(amount * 10, date=datetime(2026, 3, amount))

        stats = self.executor.execute("u1", Statistics()).statistics

        assert [t.amount for t in stats.top_expenses] == [70, 60, 50, 40, 30]

    def test_analyze_habits(self):
        self.add(100, category="Food", date=datetime(2026, 1, 10))
        self.add(100, category="Transport", description="taxi", date=datetime(2026, 1, 11))
        self.add(200, category="Food", date=datetime(2026, 2, 10))
        self.add(300, category="Food", date=datetime(2026, 3, 10))
        self.add(100, category="Transport", description="taxi", date=datetime(2026, 3, 11))
        self.add(5000, category="Housing", description="too old", date=datetime(2025, 12, 1))

        record = self.executor.execute("u1", AnalyzeHabits(months=3))

        assert isinstance(record, HabitsAnalyzed)
        analysis = record.analysis
        assert [(m.month, m.expense) for m in analysis.monthly_expenses] == [
            ("2026-01", 200), ("2026-02", 200), ("2026-03", 400)
        ]
        assert analysis.average_monthly_expense == pytest.approx(266.67)
        assert analysis.top_category == "Food"
        # Food share grows from 50% to 75%
        assert analysis.fastest_growing_category == "Food"

    def test_analyze_habits_single_month(self):
        self.add(100, date=datetime(2026, 3, 2))

        analysis = self.executor.execute("u1", AnalyzeHabits(months=1)).analysis

        assert analysis.average_monthly_expense == 100
        assert analysis.fastest_growing_category is None
