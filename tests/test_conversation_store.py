"""Tests for conversation persistence and the context window."""

import pytest
from datetime import datetime, timedelta

from memory.sqlite_store import SQLiteConversationStore
from memory.context_manager import ConversationContextManager
from memory.models import ConversationTurn, TurnRole
from schemas.ledger import Transaction, TransactionKind
from schemas.records import TransactionAdded

START = datetime(2026, 3, 1, 9, 0)


def make_turn(index: int) -> ConversationTurn:
    role = TurnRole.USER if index % 2 == 0 else TurnRole.ASSISTANT
    return ConversationTurn(role=role, content=f"turn {index}", timestamp=START + timedelta(minutes=index))


class TestSQLiteConversationStore:
    """Test SQLite conversation store."""

    @pytest.fixture(autouse=True)
    def setup_store(self, tmp_path):
        """Set up a fresh store per test."""
        self.store = SQLiteConversationStore(db_path=str(tmp_path / "memory.db"))

    def test_read_latest_returns_last_turns_in_order(self):
        """Test that after 25 turns the window holds exactly the last 10."""
        for i in range(25):
            self.store.append_turns("u1", [make_turn(i)])

        turns = self.store.read_latest("u1", 10)

        assert [t.content for t in turns] == [f"turn {i}" for i in range(15, 25)]
        assert self.store.get_turn_count("u1") == 25

    def test_read_latest_empty(self):
        assert self.store.read_latest("nobody", 10) == []
        assert self.store.get_latest_conversation("nobody") is None

    def test_append_preserves_order_within_batch(self):
        self.store.append_turns("u1", [make_turn(0), make_turn(1)])
        self.store.append_turns("u1", [make_turn(2), make_turn(3)])

        turns = self.store.read_latest("u1", 10)

        assert [t.content for t in turns] == ["turn 0", "turn 1", "turn 2", "turn 3"]
        assert [t.role for t in turns] == [TurnRole.USER, TurnRole.ASSISTANT, TurnRole.USER, TurnRole.ASSISTANT]
        assert turns[0].timestamp == START

    def test_executed_action_is_stored_with_turn(self):
        record = TransactionAdded(transaction=Transaction(
            transaction_id=7, user_id="u1", amount=150, kind=TransactionKind.EXPENSE,
            category="Food", description="restaurant", date=START, created_by_assistant=True,
        ))
        self.store.append_turns("u1", [
            ConversationTurn(role=TurnRole.USER, content="I spent 150"),
            ConversationTurn(role=TurnRole.ASSISTANT, content="Recorded.", executed_action=record),
        ])

        turns = self.store.read_latest("u1", 10)

        assert turns[0].executed_action is None
        assert isinstance(turns[1].executed_action, TransactionAdded)
        assert turns[1].executed_action.transaction.transaction_id == 7

    def test_users_are_isolated(self):
        self.store.append_turns("alice", [make_turn(0)])
        self.store.append_turns("bob", [make_turn(1)])

        assert [t.content for t in self.store.read_latest("alice", 10)] == ["turn 0"]
        assert [t.content for t in self.store.read_latest("bob", 10)] == ["turn 1"]

    def test_new_conversation_becomes_latest(self):
        self.store.append_turns("u1", [make_turn(0)])

        conversation = self.store.start_conversation("u1")
        assert self.store.read_latest("u1", 10) == []

        self.store.append_turns("u1", [make_turn(1)])
        latest = self.store.get_latest_conversation("u1")

        assert latest.conversation_id == conversation.conversation_id
        assert [t.content for t in latest.turns] == ["turn 1"]


class TestConversationContextManager:
    """Test the bounded context window."""

    @pytest.fixture(autouse=True)
    def setup_manager(self, tmp_path):
        """Set up a store and context manager."""
        self.store = SQLiteConversationStore(db_path=str(tmp_path / "memory.db"))
        self.manager = ConversationContextManager(self.store, max_turns=4)

    def test_context_messages_bounded(self):
        for i in range(6):
            self.store.append_turns("u1", [make_turn(i)])

        messages = self.manager.get_context_messages("u1")

        assert [m.content for m in messages] == ["turn 2", "turn 3", "turn 4", "turn 5"]
        assert [m.role for m in messages] == ["user", "assistant", "user", "assistant"]
