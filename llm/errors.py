"""Provider error taxonomy and classification."""

from enum import Enum
from typing import Optional


class ProviderErrorKind(str, Enum):
    """Classified provider failure; drives fallback routing."""
    QUOTA = "quota"
    AUTH = "auth"
    UNAVAILABLE = "unavailable"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


QUOTA_STATUS_CODES = {401, 403, 429}

QUOTA_VOCABULARY = (
    "quota",
    "billing",
    "credit",
    "rate limit",
    "rate_limit",
    "insufficient_quota",
    "resource_exhausted",
)
UNAVAILABLE_VOCABULARY = (
    "timed out",
    "timeout",
    "connection error",
    "service unavailable",
    "unavailable",
    "overloaded",
)
NOT_FOUND_VOCABULARY = (
    "model not found",
    "not_found",
    "does not exist",
)
AUTH_VOCABULARY = (
    "api key",
    "api_key",
    "authentication",
    "unauthorized",
    "not initialized",
    "permission",
)


class ProviderError(Exception):
    """A provider call failed with a classified reason."""

    def __init__(self, kind: ProviderErrorKind, provider: str, message: str = ""):
        self.kind = kind
        self.provider = provider
        super().__init__(message or f"{provider} failed: {kind.value}")

    @property
    def recoverable(self) -> bool:
        """Quota and availability failures may be rescued by another provider."""
        return self.kind in (ProviderErrorKind.QUOTA, ProviderErrorKind.UNAVAILABLE)

    @classmethod
    def from_exception(cls, provider: str, exc: BaseException) -> "ProviderError":
        """Wrap an SDK exception, classifying it."""
        return cls(classify_provider_error(exc), provider, str(exc))


def _status_code(exc: BaseException) -> Optional[int]:
    for attr in ("status_code", "status", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def classify_provider_error(exc: BaseException) -> ProviderErrorKind:
    """
    Classify an exception raised by a provider SDK.

    Status codes take precedence over message vocabulary. Timeouts and 5xx
    responses are reported as unavailable.

    Args:
        exc: Exception raised by the provider call

    Returns:
        ProviderErrorKind
    """
    if isinstance(exc, ProviderError):
        return exc.kind

    status = _status_code(exc)
    message = str(exc).lower()

    if status in QUOTA_STATUS_CODES:
        return ProviderErrorKind.QUOTA
    if status is not None and status >= 500:
        return ProviderErrorKind.UNAVAILABLE
    if status == 404:
        return ProviderErrorKind.NOT_FOUND

    if isinstance(exc, TimeoutError):
        return ProviderErrorKind.UNAVAILABLE
    if any(word in message for word in QUOTA_VOCABULARY):
        return ProviderErrorKind.QUOTA
    if any(word in message for word in UNAVAILABLE_VOCABULARY):
        return ProviderErrorKind.UNAVAILABLE
    if any(word in message for word in NOT_FOUND_VOCABULARY):
        return ProviderErrorKind.NOT_FOUND
    if status is None and any(word in message for word in AUTH_VOCABULARY):
        return ProviderErrorKind.AUTH

    return ProviderErrorKind.UNKNOWN
