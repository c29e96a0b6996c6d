"""Error taxonomy for provider calls and identity checks."""

from __future__ import annotations

_OVERLOAD_KEYWORDS = (
    "rate limit",
    "ratelimit",
    "too many requests",
    "429",
    "throttl",
    "quota",
    "overloaded",
)


class ShopAssistantError(Exception):
    """Base class for errors raised by the assistant."""


class InferenceError(ShopAssistantError):
    """An inference or embedding provider call failed. Not retried."""


class ProviderOverloadError(InferenceError):
    """The provider signalled rate or quota exhaustion."""

    def __init__(self, message: str, attempts: int = 1) -> None:
        super().__init__(message)
        self.attempts = attempts


class IdentityError(ShopAssistantError):
    """A bearer credential could not be verified."""


def is_overload_error(exc: BaseException) -> bool:
    """Classify a third-party exception as a provider overload signal."""
    if isinstance(exc, ProviderOverloadError):
        return True
    name = type(exc).__name__.lower()
    if "ratelimit" in name or "throttl" in name:
        return True
    status = getattr(exc, "status_code", None)
    if status == 429:
        return True
    message = str(exc).lower()
    return any(keyword in message for keyword in _OVERLOAD_KEYWORDS)
