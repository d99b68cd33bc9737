"""OpenAI LLM client implementation."""

import os
import json
import logging
from typing import Optional, List, Dict, Any

from .base_client import BaseLLMClient, Message, LLMResponse, ToolCall
from .errors import ProviderError, ProviderErrorKind

logger = logging.getLogger(__name__)


class OpenAIClient(BaseLLMClient):
    """OpenAI GPT client implementation."""

    DEFAULT_MODEL = "gpt-4o-mini"
    TRANSCRIPTION_MODEL = "whisper-1"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (falls back to OPENAI_API_KEY env var)
            model: Model to use (default: gpt-4o-mini)
            timeout: Per-request timeout in seconds
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model or self.DEFAULT_MODEL
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.client = None

        if self.api_key:
            try:
                from openai import OpenAI
                # One bounded attempt per provider; no SDK-level retries
                self.client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
                logger.info(f"OpenAI client initialized with model: {self.model}")
            except ImportError:
                logger.error("openai package not installed. Run: pip install openai")
        else:
            logger.warning("No OpenAI API key provided")

    def chat(
        self,
        messages: List[Message],
        tools: Optional[List[Dict]] = None,
        temperature: float = 0.7,
        max_tokens: int = 1024
    ) -> LLMResponse:
        """Send chat completion request to OpenAI."""
        if not self.client:
            raise ProviderError(
                ProviderErrorKind.AUTH, "openai", "OpenAI client not initialized. Check API key."
            )

        # Convert messages to OpenAI format
        openai_messages = []
        for msg in messages:
            openai_msg = {"role": msg.role, "content": msg.content}
            if msg.tool_call_id:
                openai_msg["tool_call_id"] = msg.tool_call_id
            if msg.tool_calls:
                openai_msg["tool_calls"] = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {
                            "name": tc.name,
                            "arguments": json.dumps(tc.arguments)
                        }
                    }
                    for tc in msg.tool_calls
                ]
            openai_messages.append(openai_msg)

        kwargs = {
            "model": self.model,
            "messages": openai_messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        try:
            response = self.client.chat.completions.create(**kwargs)
        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise ProviderError.from_exception("openai", e) from e

        choice = response.choices[0]
        content = choice.message.content or ""

        tool_calls = None
        if choice.message.tool_calls:
            tool_calls = []
            for tc in choice.message.tool_calls:
                try:
                    arguments = json.loads(tc.function.arguments or "{}")
                except json.JSONDecodeError:
                    logger.warning(f"Discarding tool call with malformed arguments: {tc.function.name}")
                    continue
                tool_calls.append(ToolCall(
                    id=tc.id,
                    name=tc.function.name,
                    arguments=arguments
                ))

        usage = None
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=content,
            tool_calls=tool_calls or None,
            usage=usage,
            finish_reason=choice.finish_reason
        )

    def transcribe(
        self,
        audio: bytes,
        filename: str = "audio.webm",
        language: Optional[str] = None
    ) -> str:
        """
        Transcribe an audio recording to text.

        Args:
            audio: Raw audio bytes
            filename: Original file name, used by the API to detect the format
            language: Optional ISO-639-1 language hint

        Returns:
            Transcribed text (may be empty)
        """
        if not self.client:
            raise ProviderError(
                ProviderErrorKind.AUTH, "openai", "OpenAI client not initialized. Check API key."
            )

        kwargs: Dict[str, Any] = {
            "file": (os.path.basename(filename), audio),
            "model": self.TRANSCRIPTION_MODEL,
        }
        if language:
            kwargs["language"] = language

        try:
            transcription = self.client.audio.transcriptions.create(**kwargs)
        except Exception as e:
            logger.error(f"OpenAI transcription error: {e}")
            raise ProviderError.from_exception("openai", e) from e

        return transcription.text or ""

    def get_provider_name(self) -> str:
        """Get the provider name."""
        return "openai"

    def get_model_name(self) -> str:
        """Get the model name."""
        return self.model
