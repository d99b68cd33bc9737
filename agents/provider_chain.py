"""Configured chain of intent providers."""

import logging
from typing import Optional

from config.settings import Settings
from llm.errors import ProviderError
from llm.factory import create_llm_client, LLMProvider
from .llm_classifier import IntentProvider, LLMIntentClassifier

logger = logging.getLogger(__name__)


class ProviderChain:
    """
    A required primary provider and an optional rescue provider.

    The rescue provider is consulted only when enabled and only for
    quota or availability failures of the primary.
    """

    def __init__(
        self,
        primary: IntentProvider,
        rescue: Optional[IntentProvider] = None,
        rescue_enabled: bool = False
    ):
        self.primary = primary
        self.rescue = rescue
        self.rescue_enabled = rescue_enabled

    @property
    def rescue_configured(self) -> bool:
        return self.rescue_enabled and self.rescue is not None

    def should_rescue(self, error: ProviderError) -> bool:
        """Whether a primary failure is routed to the rescue provider."""
        if not error.recoverable:
            return False
        if not self.rescue_configured:
            logger.warning(f"Primary provider failed ({error.kind.value}); no rescue configured")
            return False
        return True

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProviderChain":
        """
        Build the chain from settings.

        Args:
            settings: Application settings

        Returns:
            ProviderChain with LLM-backed classifiers
        """
        primary_client = create_llm_client(
            provider=LLMProvider(settings.llm_provider),
            api_key=settings.get_llm_api_key(),
            model=settings.llm_model,
            timeout=settings.provider_timeout_seconds,
        )
        primary = LLMIntentClassifier(primary_client, use_tools=settings.function_calling)

        rescue = None
        if settings.rescue_provider:
            rescue_client = create_llm_client(
                provider=LLMProvider(settings.rescue_provider),
                api_key=settings.get_api_key(settings.rescue_provider),
                model=settings.rescue_model,
                timeout=settings.provider_timeout_seconds,
            )
            rescue = LLMIntentClassifier(rescue_client, use_tools=settings.function_calling)

        return cls(primary=primary, rescue=rescue, rescue_enabled=settings.rescue_enabled)
