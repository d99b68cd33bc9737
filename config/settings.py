"""Application settings."""

import os
from typing import Optional
from pydantic import BaseModel


def _env_flag(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Application configuration settings."""

    # Primary provider
    llm_provider: str = "openai"  # "openai" or "anthropic"
    llm_model: Optional[str] = None
    function_calling: bool = True

    # Rescue provider, consulted only on quota/availability failures
    rescue_provider: Optional[str] = None
    rescue_model: Optional[str] = None
    rescue_enabled: bool = False

    provider_timeout_seconds: float = 20.0

    # API Keys
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None

    # Storage
    db_path: str = "data/finance.db"

    # Conversation
    history_limit: int = 10
    currency: str = "MAD"

    # Logging
    verbose: bool = False

    def __init__(self, **data):
        # Auto-load from environment if not provided
        if data.get("openai_api_key") is None:
            data["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

        if data.get("anthropic_api_key") is None:
            data["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")

        env_values = {
            "llm_provider": os.environ.get("FINANCE_LLM_PROVIDER"),
            "llm_model": os.environ.get("FINANCE_LLM_MODEL"),
            "rescue_provider": os.environ.get("FINANCE_RESCUE_PROVIDER"),
            "rescue_model": os.environ.get("FINANCE_RESCUE_MODEL"),
            "rescue_enabled": _env_flag("FINANCE_RESCUE_ENABLED"),
            "provider_timeout_seconds": os.environ.get("FINANCE_PROVIDER_TIMEOUT"),
            "db_path": os.environ.get("FINANCE_DB_PATH"),
        }
        for key, value in env_values.items():
            if data.get(key) is None and value is not None:
                data[key] = value

        # Unset options fall back to field defaults
        super().__init__(**{k: v for k, v in data.items() if v is not None})

    def get_api_key(self, provider: Optional[str]) -> Optional[str]:
        """Get the API key for a provider name."""
        if provider == "openai":
            return self.openai_api_key
        elif provider == "anthropic":
            return self.anthropic_api_key
        return None

    def get_llm_api_key(self) -> Optional[str]:
        """Get the API key for the configured primary provider."""
        return self.get_api_key(self.llm_provider)
