"""Agents for the conversational finance assistant."""

from .context_builder import FinancialContextBuilder
from .extractor import HeuristicExtractor
from .action_schema import get_action_tools
from .llm_classifier import IntentProvider, LLMIntentClassifier
from .provider_chain import ProviderChain
from .executor import ActionExecutor
from .composer import ResponseComposer

__all__ = [
    "FinancialContextBuilder",
    "HeuristicExtractor",
    "get_action_tools",
    "IntentProvider",
    "LLMIntentClassifier",
    "ProviderChain",
    "ActionExecutor",
    "ResponseComposer",
]
