"""
Unified error taxonomy shared by every backend adapter.

Adapters translate noisy SDK / HTTP failures into one of the classes below
while preserving the original exception for full tracebacks.
"""

from __future__ import annotations

from typing import Optional

__all__: tuple[str, ...] = (
    "ProviderError",
    "AuthenticationError",
    "RateLimitError",
    "ModelNotFoundError",
    "ConfigError",
)


class ProviderError(RuntimeError):
    """Public provider‐level exception.

    Attributes:
        provider: Name of the backend that failed (set by the adapter).
        original_exc: The underlying SDK / transport exception, if any.
    """

    provider: Optional[str]
    original_exc: Optional[BaseException]

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        original_exc: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.original_exc = original_exc
        if original_exc is not None:
            self.__cause__ = original_exc

    def __str__(self) -> str:
        if self.provider:
            return f"[{self.provider}] {self.message}"
        return self.message


class AuthenticationError(ProviderError):
    """Bad or missing credentials, or an unreachable local service."""


class RateLimitError(ProviderError):
    """The backend throttled the request."""

    def __init__(
        self,
        message: str,
        *,
        retry_after: Optional[float] = None,
        provider: Optional[str] = None,
        original_exc: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, provider=provider, original_exc=original_exc)
        self.retry_after = retry_after


class ModelNotFoundError(ProviderError):
    """The requested model identifier is unknown to the backend."""

    def __init__(
        self,
        model: str,
        message: str,
        *,
        provider: Optional[str] = None,
        original_exc: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, provider=provider, original_exc=original_exc)
        self.model = model


class ConfigError(ValueError):
    """Malformed or inconsistent provider configuration."""
