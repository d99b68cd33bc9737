"""SQLite-based memory store for conversation persistence."""

import sqlite3
import uuid
import logging
from pathlib import Path
from datetime import datetime
from typing import Optional, List

from schemas.records import action_record_adapter
from .base import ConversationStore
from .models import Conversation, ConversationTurn, TurnRole

logger = logging.getLogger(__name__)


class SQLiteConversationStore(ConversationStore):
    """SQLite-based persistent conversation store."""

    def __init__(self, db_path: str = "data/finance.db"):
        """
        Initialize SQLite conversation store.

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
            CREATE TABLE IF NOT EXISTS conversations (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                conversation_id TEXT UNIQUE NOT NULL,
                user_id TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        # Turn order is the autoincrement id; appends never rewrite earlier rows
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS turns (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                conversation_id TEXT NOT NULL,
                role TEXT NOT NULL CHECK(role IN ('user', 'assistant')),
                content TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                executed_action TEXT,
                FOREIGN KEY (conversation_id) REFERENCES conversations(conversation_id)
            )
        """)

        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_turns_conversation ON turns(conversation_id, id)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_conversations_user ON conversations(user_id, updated_at)"
        )

        conn.commit()
        conn.close()
        logger.info(f"Conversation store initialized at {self.db_path}")

    @staticmethod
    def _row_to_turn(row: sqlite3.Row) -> ConversationTurn:
        executed_action = None
        if row["executed_action"]:
            executed_action = action_record_adapter.validate_json(row["executed_action"])
        return ConversationTurn(
            turn_id=row["id"],
            role=TurnRole(row["role"]),
            content=row["content"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            executed_action=executed_action,
        )

    @staticmethod
    def _row_to_conversation(row: sqlite3.Row) -> Conversation:
        return Conversation(
            conversation_id=row["conversation_id"],
            user_id=row["user_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _latest_row(self, cursor: sqlite3.Cursor, user_id: str) -> Optional[sqlite3.Row]:
        cursor.execute(
            """
            SELECT * FROM conversations
            WHERE user_id = ?
            ORDER BY updated_at DESC, seq DESC
            LIMIT 1
            """,
            (user_id,)
        )
        return cursor.fetchone()

    def _insert_conversation(self, cursor: sqlite3.Cursor, user_id: str) -> Conversation:
        now = datetime.now()
        conversation = Conversation(
            conversation_id=str(uuid.uuid4()),
            user_id=user_id,
            created_at=now,
            updated_at=now,
        )
        cursor.execute(
            """
            INSERT INTO conversations (conversation_id, user_id, created_at, updated_at)
            VALUES (?, ?, ?, ?)
            """,
            (conversation.conversation_id, user_id, now.isoformat(), now.isoformat())
        )
        return conversation

    def start_conversation(self, user_id: str) -> Conversation:
        conn = self._get_connection()
        cursor = conn.cursor()
        conversation = self._insert_conversation(cursor, user_id)
        conn.commit()
        conn.close()
        logger.info(f"Created new conversation: {conversation.conversation_id}")
        return conversation

    def append_turns(self, user_id: str, turns: List[ConversationTurn]) -> None:
        """
        Append turns to the user's latest conversation.

        Args:
            user_id: Owner of the conversation
            turns: Turns to append, in order
        """
        if not turns:
            return

        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            row = self._latest_row(cursor, user_id)
            if row:
                conversation_id = row["conversation_id"]
            else:
                conversation_id = self._insert_conversation(cursor, user_id).conversation_id

            for turn in turns:
                executed_action = None
                if turn.executed_action is not None:
                    executed_action = turn.executed_action.model_dump_json()
                cursor.execute(
                    """
                    INSERT INTO turns (conversation_id, role, content, timestamp, executed_action)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (conversation_id, turn.role.value, turn.content,
                     turn.timestamp.isoformat(), executed_action)
                )

            cursor.execute(
                "UPDATE conversations SET updated_at = ? WHERE conversation_id = ?",
                (datetime.now().isoformat(), conversation_id)
            )
            conn.commit()
        finally:
            conn.close()

    def read_latest(self, user_id: str, limit: int = 10) -> List[ConversationTurn]:
        """
        Get most recent turns from the user's latest conversation.

        Args:
            user_id: Owner of the conversation
            limit: Maximum number of turns to return

        Returns:
            List of recent ConversationTurn objects in chronological order
        """
        conn = self._get_connection()
        cursor = conn.cursor()

        row = self._latest_row(cursor, user_id)
        if not row:
            conn.close()
            return []

        cursor.execute(
            """
            SELECT * FROM turns
            WHERE conversation_id = ?
            ORDER BY id DESC
            LIMIT ?
            """,
            (row["conversation_id"], limit)
        )
        rows = cursor.fetchall()
        conn.close()

        return [self._row_to_turn(r) for r in reversed(rows)]

    def get_latest_conversation(self, user_id: str) -> Optional[Conversation]:
        conn = self._get_connection()
        cursor = conn.cursor()

        row = self._latest_row(cursor, user_id)
        if not row:
            conn.close()
            return None

        cursor.execute(
            "SELECT * FROM turns WHERE conversation_id = ? ORDER BY id",
            (row["conversation_id"],)
        )
        turn_rows = cursor.fetchall()
        conn.close()

        conversation = self._row_to_conversation(row)
        conversation.turns = [self._row_to_turn(r) for r in turn_rows]
        return conversation

    def get_turn_count(self, user_id: str) -> int:
        """Number of turns in the user's latest conversation."""
        conn = self._get_connection()
        cursor = conn.cursor()

        row = self._latest_row(cursor, user_id)
        if not row:
            conn.close()
            return 0

        cursor.execute(
            "SELECT COUNT(*) FROM turns WHERE conversation_id = ?",
            (row["conversation_id"],)
        )
        result = cursor.fetchone()
        conn.close()

        return result[0] if result else 0
