"""LLM client abstraction layer."""

from .base_client import BaseLLMClient, Message, LLMResponse, ToolCall
from .errors import ProviderError, ProviderErrorKind, classify_provider_error
from .factory import create_llm_client, LLMProvider

__all__ = [
    "BaseLLMClient",
    "Message",
    "LLMResponse",
    "ToolCall",
    "ProviderError",
    "ProviderErrorKind",
    "classify_provider_error",
    "create_llm_client",
    "LLMProvider",
]
