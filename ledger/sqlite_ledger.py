"""SQLite-based ledger."""

import sqlite3
import logging
from pathlib import Path
from datetime import datetime
from typing import Optional, List, Dict, Any

from schemas.errors import ActionNotFoundError
from schemas.ledger import (
    Transaction,
    Budget,
    Goal,
    Investment,
    RecurringTransaction,
    TransactionFilter,
    TransactionKind,
    BudgetPeriod,
    GoalType,
    InvestmentType,
    Frequency,
)
from utils.dates import to_naive_local
from .base import Ledger

logger = logging.getLogger(__name__)


# Stored timestamps are naive local time
def _ts(value: Optional[datetime]) -> Optional[str]:
    return to_naive_local(value).isoformat() if value else None


def _dt(value: Optional[str]) -> Optional[datetime]:
    return to_naive_local(datetime.fromisoformat(value)) if value else None


class SQLiteLedger(Ledger):
    """SQLite-backed ledger. Each mutation is a single committed statement."""

    def __init__(self, db_path: str = "data/finance.db"):
        """
        Initialize SQLite ledger.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self):
        """Initialize database schema."""
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS transactions (
                transaction_id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                amount REAL NOT NULL CHECK(amount >= 0),
                kind TEXT NOT NULL CHECK(kind IN ('income', 'expense')),
                category TEXT NOT NULL,
                description TEXT NOT NULL,
                date TEXT NOT NULL,
                created_by_assistant INTEGER DEFAULT 0,
                created_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS budgets (
                budget_id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                amount REAL NOT NULL,
                category TEXT,
                period TEXT NOT NULL,
                start_date TEXT NOT NULL,
                end_date TEXT NOT NULL,
                active INTEGER DEFAULT 1
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS goals (
                goal_id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                target_amount REAL NOT NULL,
                current_amount REAL DEFAULT 0,
                deadline TEXT NOT NULL,
                goal_type TEXT NOT NULL,
                active INTEGER DEFAULT 1
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS investments (
                investment_id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                investment_type TEXT NOT NULL,
                amount REAL NOT NULL,
                purchase_date TEXT NOT NULL,
                active INTEGER DEFAULT 1
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS recurring_transactions (
                recurring_id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                amount REAL NOT NULL,
                kind TEXT NOT NULL,
                category TEXT NOT NULL,
                description TEXT NOT NULL,
                frequency TEXT NOT NULL,
                next_date TEXT NOT NULL,
                active INTEGER DEFAULT 1
            )
        """)

        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_transactions_user_date ON transactions(user_id, date)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_budgets_user ON budgets(user_id, active)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_goals_user ON goals(user_id, active)"
        )

        conn.commit()
        conn.close()
        logger.info(f"Ledger initialized at {self.db_path}")

    # Row mapping

    @staticmethod
    def _row_to_transaction(row: sqlite3.Row) -> Transaction:
        return Transaction(
            transaction_id=row["transaction_id"],
            user_id=row["user_id"],
            amount=row["amount"],
            kind=TransactionKind(row["kind"]),
            category=row["category"],
            description=row["description"],
            date=_dt(row["date"]),
            created_by_assistant=bool(row["created_by_assistant"]),
            created_at=_dt(row["created_at"]),
        )

    @staticmethod
    def _row_to_budget(row: sqlite3.Row) -> Budget:
        return Budget(
            budget_id=row["budget_id"],
            user_id=row["user_id"],
            name=row["name"],
            amount=row["amount"],
            category=row["category"],
            period=BudgetPeriod(row["period"]),
            start_date=_dt(row["start_date"]),
            end_date=_dt(row["end_date"]),
            active=bool(row["active"]),
        )

    @staticmethod
    def _row_to_goal(row: sqlite3.Row) -> Goal:
        return Goal(
            goal_id=row["goal_id"],
            user_id=row["user_id"],
            name=row["name"],
            target_amount=row["target_amount"],
            current_amount=row["current_amount"],
            deadline=_dt(row["deadline"]),
            goal_type=GoalType(row["goal_type"]),
            active=bool(row["active"]),
        )

    # Queries

    def query_transactions(self, criteria: TransactionFilter) -> List[Transaction]:
        clauses = ["user_id = ?"]
        params: List[Any] = [criteria.user_id]

        if criteria.kind:
            clauses.append("kind = ?")
            params.append(criteria.kind.value)
        if criteria.category:
            clauses.append("LOWER(category) = LOWER(?)")
            params.append(criteria.category)
        if criteria.description:
            clauses.append("description LIKE ?")
            params.append(f"%{criteria.description}%")
        if criteria.min_amount is not None:
            clauses.append("amount >= ?")
            params.append(criteria.min_amount)
        if criteria.max_amount is not None:
            clauses.append("amount <= ?")
            params.append(criteria.max_amount)
        if criteria.start_date:
            clauses.append("date >= ?")
            params.append(_ts(criteria.start_date))
        if criteria.end_date:
            clauses.append("date <= ?")
            params.append(_ts(criteria.end_date))

        sql = (
            "SELECT * FROM transactions WHERE " + " AND ".join(clauses)
            + " ORDER BY date DESC, created_at DESC, transaction_id DESC"
        )
        if criteria.limit:
            sql += " LIMIT ?"
            params.append(criteria.limit)

        conn = self._get_connection()
        rows = conn.execute(sql, params).fetchall()
        conn.close()

        return [self._row_to_transaction(row) for row in rows]

    def get_transaction(self, user_id: str, transaction_id: int) -> Optional[Transaction]:
        conn = self._get_connection()
        row = conn.execute(
            "SELECT * FROM transactions WHERE user_id = ? AND transaction_id = ?",
            (user_id, transaction_id)
        ).fetchone()
        conn.close()
        return self._row_to_transaction(row) if row else None

    def list_budgets(self, user_id: str, active_only: bool = True) -> List[Budget]:
        sql = "SELECT * FROM budgets WHERE user_id = ?"
        if active_only:
            sql += " AND active = 1"
        sql += " ORDER BY start_date DESC, budget_id DESC"

        conn = self._get_connection()
        rows = conn.execute(sql, (user_id,)).fetchall()
        conn.close()
        return [self._row_to_budget(row) for row in rows]

    def list_goals(self, user_id: str, active_only: bool = True) -> List[Goal]:
        sql = "SELECT * FROM goals WHERE user_id = ?"
        if active_only:
            sql += " AND active = 1"
        sql += " ORDER BY deadline ASC, goal_id ASC"

        conn = self._get_connection()
        rows = conn.execute(sql, (user_id,)).fetchall()
        conn.close()
        return [self._row_to_goal(row) for row in rows]

    # Mutations

    def _insert(self, sql: str, params: tuple) -> int:
        conn = self._get_connection()
        cursor = conn.cursor()
        cursor.execute(sql, params)
        new_id = cursor.lastrowid
        conn.commit()
        conn.close()
        return new_id

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
        now = datetime.now()
        transaction_id = self._insert(
            """
            INSERT INTO transactions
            (user_id, amount, kind, category, description, date, created_by_assistant, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (user_id, amount, kind.value, category, description, _ts(date),
             int(created_by_assistant), _ts(now))
        )
        return Transaction(
            transaction_id=transaction_id,
            user_id=user_id,
            amount=amount,
            kind=kind,
            category=category,
            description=description,
            date=to_naive_local(date),
            created_by_assistant=created_by_assistant,
            created_at=now,
        )

    def update_transaction(
        self,
        user_id: str,
        transaction_id: int,
        changes: Dict[str, Any]
    ) -> Transaction:
        columns = {
            "amount": lambda v: v,
            "kind": lambda v: TransactionKind(v).value,
            "category": lambda v: v,
            "description": lambda v: v,
            "date": _ts,
        }
        assignments = []
        params: List[Any] = []
        for field, value in changes.items():
            if field not in columns:
                raise ValueError(f"Cannot update transaction field: {field}")
            assignments.append(f"{field} = ?")
            params.append(columns[field](value))

        conn = self._get_connection()
        cursor = conn.cursor()
        if assignments:
            cursor.execute(
                f"UPDATE transactions SET {', '.join(assignments)} "
                "WHERE user_id = ? AND transaction_id = ?",
                (*params, user_id, transaction_id)
            )
        row = cursor.execute(
            "SELECT * FROM transactions WHERE user_id = ? AND transaction_id = ?",
            (user_id, transaction_id)
        ).fetchone()
        conn.commit()
        conn.close()

        if not row:
            raise ActionNotFoundError(f"Transaction {transaction_id} not found")
        return self._row_to_transaction(row)

    def delete_transaction(self, user_id: str, transaction_id: int) -> Transaction:
        conn = self._get_connection()
        cursor = conn.cursor()
        row = cursor.execute(
            "SELECT * FROM transactions WHERE user_id = ? AND transaction_id = ?",
            (user_id, transaction_id)
        ).fetchone()
        if not row:
            conn.close()
            raise ActionNotFoundError(f"Transaction {transaction_id} not found")

        cursor.execute(
            "DELETE FROM transactions WHERE user_id = ? AND transaction_id = ?",
            (user_id, transaction_id)
        )
        conn.commit()
        conn.close()
        return self._row_to_transaction(row)

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
        budget_id = self._insert(
            """
            INSERT INTO budgets (user_id, name, amount, category, period, start_date, end_date)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (user_id, name, amount, category, period.value, _ts(start_date), _ts(end_date))
        )
        return Budget(
            budget_id=budget_id,
            user_id=user_id,
            name=name,
            amount=amount,
            category=category,
            period=period,
            start_date=to_naive_local(start_date),
            end_date=to_naive_local(end_date),
        )

    def create_goal(
        self,
        user_id: str,
        name: str,
        target_amount: float,
        deadline: datetime,
        goal_type: GoalType
    ) -> Goal:
        goal_id = self._insert(
            """
            INSERT INTO goals (user_id, name, target_amount, deadline, goal_type)
            VALUES (?, ?, ?, ?, ?)
            """,
            (user_id, name, target_amount, _ts(deadline), goal_type.value)
        )
        return Goal(
            goal_id=goal_id,
            user_id=user_id,
            name=name,
            target_amount=target_amount,
            deadline=to_naive_local(deadline),
            goal_type=goal_type,
        )

    def create_investment(
        self,
        user_id: str,
        name: str,
        amount: float,
        investment_type: InvestmentType,
        purchase_date: datetime
    ) -> Investment:
        investment_id = self._insert(
            """
            INSERT INTO investments (user_id, name, investment_type, amount, purchase_date)
            VALUES (?, ?, ?, ?, ?)
            """,
            (user_id, name, investment_type.value, amount, _ts(purchase_date))
        )
        return Investment(
            investment_id=investment_id,
            user_id=user_id,
            name=name,
            investment_type=investment_type,
            amount=amount,
            purchase_date=to_naive_local(purchase_date),
        )

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
        recurring_id = self._insert(
            """
            INSERT INTO recurring_transactions
            (user_id, amount, kind, category, description, frequency, next_date)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (user_id, amount, kind.value, category, description, frequency.value, _ts(next_date))
        )
        return RecurringTransaction(
            recurring_id=recurring_id,
            user_id=user_id,
            amount=amount,
            kind=kind,
            category=category,
            description=description,
            frequency=frequency,
            next_date=to_naive_local(next_date),
        )
