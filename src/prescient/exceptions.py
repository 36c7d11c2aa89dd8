"""
Exception classes for prescient.

Every failure that leaves a provider backend is classified into one of the
kinds defined here. The client facade only reasons about these classes.
"""

from typing import Any, Dict, Optional


class PrescientError(Exception):
    """Base exception for all prescient errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result

    @property
    def provider(self) -> Optional[str]:
        """Name of the provider that raised the error, if known."""
        return self.details.get("provider")


class ConfigurationError(PrescientError):
    """Raised when there's an error in configuration."""

    pass


class ProviderConnectionError(PrescientError):
    """Raised on network failures and request timeouts."""

    pass


class AuthenticationError(PrescientError):
    """Raised when a provider rejects the supplied credentials."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        provider: Optional[str] = None,
    ) -> None:
        details = {}
        if status_code:
            details["status_code"] = status_code
        if provider:
            details["provider"] = provider

        super().__init__(message, details)
        self.status_code = status_code


class RateLimitError(PrescientError):
    """Raised when hitting API rate limits."""

    def __init__(
        self,
        message: str = "API rate limit exceeded",
        retry_after: Optional[int] = None,
        provider: Optional[str] = None,
    ) -> None:
        if retry_after:
            message += f", retry after {retry_after} seconds"

        details = {}
        if provider:
            details["provider"] = provider

        super().__init__(message, details)
        self.retry_after = retry_after


class ModelNotAvailableError(PrescientError):
    """Raised when the requested model does not exist on the backend."""

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        provider: Optional[str] = None,
    ) -> None:
        details = {}
        if model:
            details["model"] = model
        if provider:
            details["provider"] = provider

        super().__init__(message, details)
        self.model = model


class InvalidResponseError(PrescientError):
    """Raised when a backend returns a malformed or unusable payload."""

    pass


# Kinds the retry policy treats as transient
TRANSIENT_ERRORS = (RateLimitError, ProviderConnectionError)
