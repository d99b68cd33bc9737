"""Tests for the Finance Assistant orchestrator decision procedure."""

import pytest
import sqlite3
from datetime import datetime, timedelta
from typing import List, Optional
from unittest.mock import Mock

from agents.composer import ResponseComposer
from agents.extractor import HeuristicExtractor
from agents.llm_classifier import IntentProvider
from ledger.base import Ledger
from ledger.sqlite_ledger import SQLiteLedger
from llm.errors import ProviderError, ProviderErrorKind
from llm.openai_client import OpenAIClient
from memory.base import ConversationStore
from memory.models import TurnRole
from memory.sqlite_store import SQLiteConversationStore
from orchestrator import EngineConfig, FinanceAssistantOrchestrator
from schemas.actions import AddTransaction, DeleteTransaction, FinancialAction, parse_action
from schemas.errors import FatalError
from schemas.ledger import Category, PeriodTotals, TransactionFilter, TransactionKind
from schemas.records import TransactionAdded, TransactionDeleted
from schemas.responses import ClassificationResult

NOW = datetime(2026, 3, 15, 12, 0)

EXPENSE_MESSAGE = "I spent 150 MAD at the restaurant yesterday"
NO_AMOUNT_MESSAGE = "I went to the restaurant"


class FakeProvider(IntentProvider):
    """Provider returning a canned result or raising a canned error."""

    def __init__(
        self,
        provider_name: str,
        action: Optional[FinancialAction] = None,
        text: str = "",
        error: Optional[ProviderError] = None
    ):
        self.provider_name = provider_name
        self.action = action
        self.text = text
        self.error = error
        self.calls: List[tuple] = []

    @property
    def name(self) -> str:
        return self.provider_name

    def classify(self, context, history, message) -> ClassificationResult:
        self.calls.append((context, history, message))
        if self.error:
            raise self.error
        return ClassificationResult(provider=self.provider_name, response_text=self.text, action=self.action)


class CountingLedger(SQLiteLedger):
    """SQLite ledger that counts mutations."""

    def __init__(self, db_path: str):
        super().__init__(db_path=db_path)
        self.mutations = 0

    def mutate(self, user_id, action, now=None):
        self.mutations += 1
        return super().mutate(user_id, action, now)


def failing(kind: ProviderErrorKind, provider: str) -> FakeProvider:
    return FakeProvider(provider, error=ProviderError(kind, provider))


def taxi_action() -> AddTransaction:
    return AddTransaction(amount=40, kind=TransactionKind.EXPENSE, category="Transport", description="taxi")


class TestFinanceAssistantOrchestrator:
    """Test the decision procedure end to end with SQLite collaborators."""

    @pytest.fixture(autouse=True)
    def setup_collaborators(self, tmp_path):
        """Set up ledger and store."""
        self.ledger = CountingLedger(db_path=str(tmp_path / "finance.db"))
        self.store = SQLiteConversationStore(db_path=str(tmp_path / "finance.db"))

    def make_engine(self, primary, rescue=None, rescue_enabled=False, **overrides):
        config = EngineConfig(
            primary=primary,
            rescue=rescue,
            rescue_enabled=rescue_enabled,
            ledger=overrides.pop("ledger", self.ledger),
            store=overrides.pop("store", self.store),
            extractor=HeuristicExtractor(clock=lambda: NOW),
            clock=lambda: NOW,
            **overrides
        )
        return FinanceAssistantOrchestrator(config)

    def transactions(self):
        return self.ledger.query_transactions(TransactionFilter(user_id="u1"))

    # Primary provider paths

    def test_structured_action_is_executed(self):
        engine = self.make_engine(FakeProvider("primary", action=taxi_action()))

        reply = engine.handle_message("u1", "taxi 40")

        assert isinstance(reply.action_record, TransactionAdded)
        assert reply.action_summary == "add_transaction"
        assert reply.source == "primary"
        assert self.ledger.mutations == 1
        assert self.transactions()[0].created_by_assistant

    def test_structured_action_wins_over_free_text(self):
        engine = self.make_engine(FakeProvider("primary", action=taxi_action(), text="Let me think..."))

        reply = engine.handle_message("u1", "taxi 40")

        assert reply.response_text != "Let me think..."
        assert "taxi" in reply.response_text

    def test_free_text_falls_through_to_extractor(self):
        engine = self.make_engine(FakeProvider("primary", text="Noted!"))

        reply = engine.handle_message("u1", EXPENSE_MESSAGE)

        assert reply.source == "heuristic"
        assert self.ledger.mutations == 1
        transaction = reply.action_record.transaction
        assert transaction.amount == 150
        assert transaction.category == Category.FOOD.value
        assert transaction.date == NOW - timedelta(days=1)

    def test_free_text_without_action_is_returned(self):
        engine = self.make_engine(FakeProvider("primary", text="Hello! How can I help?"))

        reply = engine.handle_message("u1", "hello")

        assert reply.response_text == "Hello! How can I help?"
        assert reply.action_record is None
        assert self.ledger.mutations == 0

    # Rescue routing

    def test_quota_failure_routes_to_rescue(self):
        primary = failing(ProviderErrorKind.QUOTA, "primary")
        rescue = FakeProvider("rescue", action=taxi_action())
        engine = self.make_engine(primary, rescue=rescue, rescue_enabled=True)

        reply = engine.handle_message("u1", "taxi 40")

        assert len(primary.calls) == 1
        assert len(rescue.calls) == 1
        assert reply.source == "rescue"
        assert self.ledger.mutations == 1

    def test_unavailable_failure_routes_to_rescue(self):
        primary = failing(ProviderErrorKind.UNAVAILABLE, "primary")
        rescue = FakeProvider("rescue", text="Rescued reply")
        engine = self.make_engine(primary, rescue=rescue, rescue_enabled=True)

        reply = engine.handle_message("u1", "hello")

        assert reply.response_text == "Rescued reply"
        assert reply.source == "rescue"

    def test_rescue_failure_degrades_to_extractor(self):
        primary = failing(ProviderErrorKind.QUOTA, "primary")
        rescue = failing(ProviderErrorKind.UNAVAILABLE, "rescue")
        engine = self.make_engine(primary, rescue=rescue, rescue_enabled=True)

        reply = engine.handle_message("u1", EXPENSE_MESSAGE)

        assert len(rescue.calls) == 1
        assert reply.source == "heuristic"
        assert reply.action_record.transaction.amount == 150
        assert self.ledger.mutations == 1

    def test_rescue_not_consulted_when_disabled(self):
        primary = failing(ProviderErrorKind.QUOTA, "primary")
        rescue = FakeProvider("rescue", action=taxi_action())
        engine = self.make_engine(primary, rescue=rescue, rescue_enabled=False)

        reply = engine.handle_message("u1", EXPENSE_MESSAGE)

        assert rescue.calls == []
        assert reply.source == "heuristic"

    @pytest.mark.parametrize("kind", [
        ProviderErrorKind.AUTH,
        ProviderErrorKind.NOT_FOUND,
        ProviderErrorKind.UNKNOWN,
    ])
    def test_non_recoverable_errors_skip_rescue(self, kind):
        primary = failing(kind, "primary")
        rescue = FakeProvider("rescue", action=taxi_action())
        engine = self.make_engine(primary, rescue=rescue, rescue_enabled=True)

        reply = engine.handle_message("u1", EXPENSE_MESSAGE)

        assert rescue.calls == []
        assert reply.source == "heuristic"
        assert self.ledger.mutations == 1

    # Degraded service

    def test_total_unavailability_returns_generic_acknowledgement(self):
        primary = failing(ProviderErrorKind.UNAVAILABLE, "primary")
        rescue = failing(ProviderErrorKind.QUOTA, "rescue")
        engine = self.make_engine(primary, rescue=rescue, rescue_enabled=True)

        reply = engine.handle_message("u1", NO_AMOUNT_MESSAGE)

        assert reply.response_text == ResponseComposer.FALLBACK_TEXT
        assert reply.source == "fallback"
        assert reply.action_record is None
        assert self.ledger.mutations == 0
        assert [t.content for t in engine.get_history("u1")] == [NO_AMOUNT_MESSAGE, ResponseComposer.FALLBACK_TEXT]

    # Execution outcomes

    def test_action_error_becomes_response_text(self):
        engine = self.make_engine(FakeProvider("primary", action=DeleteTransaction(transaction_id=99)))

        reply = engine.handle_message("u1", "delete transaction 99")

        assert reply.action_record is None
        assert "Nothing was changed" in reply.response_text
        assert self.ledger.mutations == 0

    def test_non_positive_amount_reported(self):
        action = AddTransaction(amount=0, kind=TransactionKind.EXPENSE, category="Food", description="x")
        engine = self.make_engine(FakeProvider("primary", action=action))

        reply = engine.handle_message("u1", "spent 0")

        assert "must be positive" in reply.response_text
        assert self.transactions() == []

    @pytest.mark.parametrize("amount", ["NaN", "inf", "-inf"])
    def test_non_finite_amount_reported(self, amount):
        action = parse_action("add_transaction", {
            "amount": amount, "kind": "expense", "category": "Food", "description": "x",
        })
        engine = self.make_engine(FakeProvider("primary", action=action))

        reply = engine.handle_message("u1", "spent a lot")

        assert "must be positive" in reply.response_text
        assert self.ledger.mutations == 0
        assert self.transactions() == []
        assert self.ledger.balance("u1") == 0

    def test_offset_dates_stored_naive(self):
        action = parse_action("add_transaction", {
            "amount": 80, "kind": "expense", "category": "Food",
            "description": "market", "date": "2026-03-10T10:00:00Z",
        })
        primary = FakeProvider("primary", action=action)
        engine = self.make_engine(primary)
        engine.handle_message("u1", "spent 80 at the market")
        latest = self.ledger.add_transaction(
            "u1", 30, TransactionKind.EXPENSE, "Food", "bakery", datetime(2026, 3, 14, 8, 0)
        )

        primary.action = DeleteTransaction(match_category="Food")
        reply = engine.handle_message("u1", "delete my last food expense")

        assert isinstance(reply.action_record, TransactionDeleted)
        assert reply.action_record.transaction.transaction_id == latest.transaction_id
        remaining = self.transactions()
        assert [t.description for t in remaining] == ["market"]
        assert remaining[0].date.tzinfo is None

    def test_unexpected_execution_failure_is_fatal(self):
        ledger = Mock(spec=Ledger)
        ledger.aggregate.return_value = PeriodTotals()
        ledger.balance.return_value = 0.0
        ledger.list_budgets.return_value = []
        ledger.list_goals.return_value = []
        ledger.mutate.side_effect = sqlite3.IntegrityError("NOT NULL constraint failed")
        engine = self.make_engine(FakeProvider("primary", action=taxi_action()), ledger=ledger)

        with pytest.raises(FatalError) as exc_info:
            engine.handle_message("u1", "taxi 40")

        assert isinstance(exc_info.value.__cause__, sqlite3.IntegrityError)
        assert self.store.read_latest("u1", 10) == []

    def test_one_mutation_per_message(self):
        engine = self.make_engine(FakeProvider("primary", action=taxi_action()))

        for _ in range(3):
            engine.handle_message("u1", "taxi 40")

        assert self.ledger.mutations == 3
        assert len(self.transactions()) == 3

    # Persistence and history

    def test_turns_persisted_with_action_record(self):
        engine = self.make_engine(FakeProvider("primary", action=taxi_action()))

        engine.handle_message("u1", "taxi 40")
        history = engine.get_history("u1")

        assert [t.role for t in history] == [TurnRole.USER, TurnRole.ASSISTANT]
        assert history[0].content == "taxi 40"
        assert history[0].executed_action is None
        assert isinstance(history[1].executed_action, TransactionAdded)

    def test_history_window_passed_to_provider(self):
        primary = FakeProvider("primary", text="ok")
        engine = self.make_engine(primary, history_limit=4)

        for i in range(4):
            engine.handle_message("u1", f"message {i}")

        _, history, message = primary.calls[-1]
        assert message == "message 3"
        assert [t.content for t in history] == ["message 1", "ok", "message 2", "ok"]

    def test_context_passed_to_provider(self):
        self.ledger.add_transaction("u1", 1000, TransactionKind.INCOME, "Salary", "pay", NOW)
        primary = FakeProvider("primary", text="ok")
        engine = self.make_engine(primary, currency="EUR")

        engine.handle_message("u1", "hello")

        context = primary.calls[0][0]
        assert context.balance == 1000
        assert context.currency == "EUR"

    def test_start_new_conversation_resets_context(self):
        primary = FakeProvider("primary", text="ok")
        engine = self.make_engine(primary)
        engine.handle_message("u1", "first")

        engine.start_new_conversation("u1")
        engine.handle_message("u1", "second")

        assert primary.calls[-1][1] == []
        assert [t.content for t in engine.get_history("u1")] == ["second", "ok"]

    def test_categorize(self):
        engine = self.make_engine(FakeProvider("primary"))

        assert engine.categorize("loyer") == Category.HOUSING
        assert engine.categorize("mystery") == Category.OTHER

    # Fatal errors

    def test_context_failure_is_fatal(self):
        ledger = Mock(spec=Ledger)
        ledger.aggregate.side_effect = sqlite3.OperationalError("disk I/O error")
        primary = FakeProvider("primary", text="ok")
        engine = self.make_engine(primary, ledger=ledger)

        with pytest.raises(FatalError):
            engine.handle_message("u1", EXPENSE_MESSAGE)

        assert primary.calls == []
        assert self.store.read_latest("u1", 10) == []

    def test_persistence_failure_is_fatal(self):
        store = Mock(spec=ConversationStore)
        store.read_latest.return_value = []
        store.append_turns.side_effect = sqlite3.OperationalError("database is locked")
        engine = self.make_engine(FakeProvider("primary", text="ok"), store=store)

        with pytest.raises(FatalError):
            engine.handle_message("u1", "hello")

    # Voice messages

    def test_voice_message_is_transcribed_and_handled(self):
        transcriber = Mock(spec=OpenAIClient)
        transcriber.transcribe.return_value = EXPENSE_MESSAGE
        engine = self.make_engine(failing(ProviderErrorKind.AUTH, "primary"), transcriber=transcriber)

        reply = engine.handle_voice_message("u1", b"audio-bytes", filename="note.webm")

        assert reply.transcription == EXPENSE_MESSAGE
        assert reply.action_record.transaction.amount == 150
        transcriber.transcribe.assert_called_once_with(b"audio-bytes", filename="note.webm")

    def test_blank_transcription_is_not_persisted(self):
        transcriber = Mock(spec=OpenAIClient)
        transcriber.transcribe.return_value = "   "
        primary = FakeProvider("primary", text="ok")
        engine = self.make_engine(primary, transcriber=transcriber)

        reply = engine.handle_voice_message("u1", b"silence")

        assert reply.response_text == ResponseComposer.VOICE_NOT_UNDERSTOOD_TEXT
        assert primary.calls == []
        assert engine.get_history("u1") == []

    def test_voice_requires_transcriber(self):
        engine = self.make_engine(FakeProvider("primary"))

        with pytest.raises(FatalError):
            engine.handle_voice_message("u1", b"audio")

    def test_transcription_failure_is_fatal(self):
        transcriber = Mock(spec=OpenAIClient)
        transcriber.transcribe.side_effect = ProviderError(ProviderErrorKind.UNAVAILABLE, "openai")
        engine = self.make_engine(FakeProvider("primary"), transcriber=transcriber)

        with pytest.raises(FatalError):
            engine.handle_voice_message("u1", b"audio")
