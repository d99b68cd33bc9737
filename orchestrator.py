"""Main orchestrator for the conversational finance assistant."""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from config.settings import Settings

# LLM components
from llm.errors import ProviderError
from llm.openai_client import OpenAIClient

# Persistence collaborators
from ledger.base import Ledger
from ledger.sqlite_ledger import SQLiteLedger
from memory.base import ConversationStore
from memory.sqlite_store import SQLiteConversationStore
from memory.context_manager import ConversationContextManager
from memory.models import Conversation, ConversationTurn, TurnRole

# Agents
from agents.context_builder import FinancialContextBuilder
from agents.extractor import HeuristicExtractor
from agents.llm_classifier import IntentProvider
from agents.provider_chain import ProviderChain
from agents.executor import ActionExecutor
from agents.composer import ResponseComposer

from schemas.actions import FinancialAction
from schemas.context import FinancialContext
from schemas.errors import ActionError, FatalError
from schemas.ledger import Category
from schemas.responses import ClassificationResult, EngineReply

logger = logging.getLogger(__name__)

SOURCE_HEURISTIC = "heuristic"
SOURCE_FALLBACK = "fallback"

# (action, provider free text, source)
Decision = Tuple[Optional[FinancialAction], str, str]


class EngineConfig(BaseModel):
    """Collaborators and policy for one engine instance."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    primary: IntentProvider
    rescue: Optional[IntentProvider] = None
    rescue_enabled: bool = False
    ledger: Ledger
    store: ConversationStore
    extractor: HeuristicExtractor
    transcriber: Optional[OpenAIClient] = None
    history_limit: int = 10
    currency: str = "MAD"
    clock: Callable[[], datetime] = datetime.now

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "EngineConfig":
        """
        Wire concrete collaborators from settings.

        Args:
            settings: Application settings

        Returns:
            EngineConfig backed by SQLite and the configured LLM providers
        """
        settings = settings or Settings()
        providers = ProviderChain.from_settings(settings)

        transcriber = None
        if settings.openai_api_key:
            transcriber = OpenAIClient(
                api_key=settings.openai_api_key,
                timeout=settings.provider_timeout_seconds
            )

        logger.info(f"Using database: {settings.db_path}")
        return cls(
            primary=providers.primary,
            rescue=providers.rescue,
            rescue_enabled=providers.rescue_enabled,
            ledger=SQLiteLedger(db_path=settings.db_path),
            store=SQLiteConversationStore(db_path=settings.db_path),
            extractor=HeuristicExtractor(),
            transcriber=transcriber,
            history_limit=settings.history_limit,
            currency=settings.currency,
        )


class FinanceAssistantOrchestrator:
    """
    Turns one user message into at most one executed financial action.

    Decision procedure per message: build the financial context, classify
    with the primary provider, fall back to the rescue provider on quota or
    availability failures when enabled, and degrade to the heuristic
    extractor otherwise. A structured action always wins over provider free
    text. Both turns are persisted only after the decision completes.
    """

    def __init__(self, config: EngineConfig):
        """
        Initialize orchestrator.

        Args:
            config: Engine collaborators and policy
        """
        self.config = config
        self.clock = config.clock
        self.providers = ProviderChain(
            primary=config.primary,
            rescue=config.rescue,
            rescue_enabled=config.rescue_enabled,
        )
        self.extractor = config.extractor
        self.store = config.store
        self.context_builder = FinancialContextBuilder(config.ledger, currency=config.currency)
        self.context_manager = ConversationContextManager(config.store, max_turns=config.history_limit)
        self.executor = ActionExecutor(config.ledger, clock=config.clock)
        self.composer = ResponseComposer(currency=config.currency)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "FinanceAssistantOrchestrator":
        return cls(EngineConfig.from_settings(settings))

    def handle_message(self, user_id: str, text: str) -> EngineReply:
        """
        Handle one inbound user message.

        Args:
            user_id: Acting user
            text: Raw message

        Returns:
            EngineReply with response text and the executed action record, if any

        Raises:
            FatalError: If the context cannot be built or the turns cannot be persisted
        """
        now = self.clock()

        # BuildContext
        try:
            context = self.context_builder.build(user_id, now)
            history = self.context_manager.get_recent_turns(user_id)
        except Exception as e:
            logger.error(f"Context build failed for {user_id}: {e}")
            raise FatalError("Could not build the financial context") from e

        # Classify, rescue or degrade
        action, response_text, source = self._decide(context, history, text, now)

        # Execute at most once
        record = None
        if action is not None:
            try:
                record = self.executor.execute(user_id, action, now)
                response_text = self.composer.compose(record)
            except ActionError as e:
                logger.info(f"Action {action.action} not applied: {type(e).__name__}")
                response_text = self.composer.compose_error(e)
            except Exception as e:
                logger.error(f"Executing {action.action} failed for {user_id}: {e}")
                raise FatalError(f"Could not execute {action.action}") from e

        # Persist
        turns = [
            ConversationTurn(role=TurnRole.USER, content=text, timestamp=now),
            ConversationTurn(
                role=TurnRole.ASSISTANT,
                content=response_text,
                timestamp=self.clock(),
                executed_action=record,
            ),
        ]
        try:
            self.store.append_turns(user_id, turns)
        except Exception as e:
            logger.error(f"Persisting turns failed for {user_id}: {e}")
            raise FatalError("Could not save the conversation") from e

        return EngineReply(response_text=response_text, action_record=record, source=source)

    def _decide(
        self,
        context: FinancialContext,
        history: List[ConversationTurn],
        text: str,
        now: datetime
    ) -> Decision:
        try:
            result = self.providers.primary.classify(context, history, text)
        except ProviderError as e:
            logger.warning(f"Primary provider {e.provider} failed: {e.kind.value}")
            if not self.providers.should_rescue(e):
                return self._degrade(text, now)
        else:
            return self._resolve(result, text, now)

        logger.info(f"Consulting rescue provider {self.providers.rescue.name}")
        try:
            result = self.providers.rescue.classify(context, history, text)
        except ProviderError as e:
            logger.warning(f"Rescue provider {e.provider} failed: {e.kind.value}")
            return self._degrade(text, now)
        return self._resolve(result, text, now)

    def _resolve(self, result: ClassificationResult, text: str, now: datetime) -> Decision:
        """Provider succeeded: prefer its action, else try the extractor on the raw message."""
        if result.action is not None:
            return result.action, result.response_text, result.provider

        action = self.extractor.extract(text, now)
        if action is not None:
            logger.info(f"Heuristic extractor found {action.action} after free-text reply")
            return action, result.response_text, SOURCE_HEURISTIC

        return None, result.response_text or self.composer.FALLBACK_TEXT, result.provider

    def _degrade(self, text: str, now: datetime) -> Decision:
        action = self.extractor.extract(text, now)
        if action is not None:
            logger.info(f"Degraded mode: heuristic extractor found {action.action}")
            return action, "", SOURCE_HEURISTIC

        logger.warning("Degraded mode: no action found, replying with generic acknowledgement")
        return None, self.composer.FALLBACK_TEXT, SOURCE_FALLBACK

    def handle_voice_message(
        self,
        user_id: str,
        audio: bytes,
        filename: str = "audio.webm"
    ) -> EngineReply:
        """
        Transcribe a voice message and handle it as text.

        A blank transcription gets a fixed reply and nothing is persisted.

        Raises:
            FatalError: If no speech-to-text client is configured or transcription fails
        """
        if self.config.transcriber is None:
            raise FatalError("Voice messages require an OpenAI client")

        try:
            transcription = self.config.transcriber.transcribe(audio, filename=filename)
        except ProviderError as e:
            logger.error(f"Transcription failed: {e.kind.value}")
            raise FatalError("Could not transcribe the audio") from e

        if not transcription.strip():
            return EngineReply(
                response_text=self.composer.VOICE_NOT_UNDERSTOOD_TEXT,
                source=SOURCE_FALLBACK,
                transcription="",
            )

        reply = self.handle_message(user_id, transcription)
        reply.transcription = transcription
        return reply

    def categorize(self, description: str) -> Category:
        """Categorize a transaction description with the keyword table."""
        return self.extractor.categorize(description)

    def get_history(self, user_id: str) -> List[ConversationTurn]:
        """All turns of the user's latest conversation, oldest first."""
        conversation = self.store.get_latest_conversation(user_id)
        return conversation.turns if conversation else []

    def start_new_conversation(self, user_id: str) -> Conversation:
        """Start a fresh conversation; it becomes the one used as context."""
        conversation = self.store.start_conversation(user_id)
        logger.info(f"Started conversation {conversation.conversation_id} for {user_id}")
        return conversation
