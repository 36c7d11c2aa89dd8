"""
Abstract base class for AI providers.

This module provides the contract every provider backend implements, plus the
shared behaviour they all reuse: error classification, embedding
normalization, text cleaning, prompt building and context formatting.
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence

import aiohttp

from ..context import ContextEngine, ContextItem, render_template
from ..exceptions import (
    AuthenticationError,
    ConfigurationError,
    InvalidResponseError,
    ModelNotAvailableError,
    PrescientError,
    ProviderConnectionError,
    RateLimitError,
)


logger = logging.getLogger(__name__)


MAX_TEXT_LENGTH = 8000

DEFAULT_PROMPT_TEMPLATES: Dict[str, str] = {
    "system_prompt": (
        "You are a helpful AI assistant. Answer questions clearly and accurately."
    ),
    "no_context_template": (
        "%{system_prompt}\n"
        "\n"
        "Question: %{query}\n"
        "\n"
        "Please provide a helpful response based on your knowledge."
    ),
    "with_context_template": (
        "%{system_prompt} Use the following context to answer the question. "
        "If the context doesn't contain relevant information, say so clearly.\n"
        "\n"
        "Context:\n"
        "%{context}\n"
        "\n"
        "Question: %{query}\n"
        "\n"
        "Please provide a helpful response based on the context above."
    ),
}


@dataclass
class ResponseResult:
    """
    Unified text generation result from any provider.

    Attributes:
        response: The generated text
        model: Model identifier used for generation
        provider: Name of the provider that produced the response
        processing_time: Backend processing time in seconds, if reported
        metadata: Additional provider-specific data
    """

    response: str
    model: Optional[str]
    provider: str
    processing_time: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def normalize_embedding(embedding: Any, target_dimensions: int) -> Optional[List[float]]:
    """
    Force an embedding vector to exactly ``target_dimensions`` values.

    Longer vectors are truncated, shorter ones are right-padded with 0.0.

    Returns:
        The normalized vector, or None if ``embedding`` is not a sequence
    """
    if isinstance(embedding, (str, bytes)) or not isinstance(embedding, Sequence):
        return None

    values = list(embedding)
    if len(values) >= target_dimensions:
        return values[:target_dimensions]
    return values + [0.0] * (target_dimensions - len(values))


def clean_text(text: Any) -> str:
    """Collapse whitespace runs, strip, and cap the text at MAX_TEXT_LENGTH."""
    if text is None:
        return ""
    return re.sub(r"\s+", " ", str(text)).strip()[:MAX_TEXT_LENGTH]


class BaseProvider(ABC):
    """
    Abstract base class for all provider backends.

    Subclasses implement ``generate_embedding``, ``generate_response`` and
    ``health_check``, and override ``_validate_configuration`` to require
    their options. Backends are cheap to construct; the HTTP session is only
    opened on first use and released by ``close()``.
    """

    provider_name: str = "base"
    base_url: str = ""
    required_options: Sequence[str] = ()
    default_timeout: float = 60

    def __init__(self, **options: Any):
        """
        Initialize the provider with its options.

        Args:
            **options: Backend configuration. Recognized shared keys are
                ``timeout``, ``prompt_templates`` and ``context_configs``.

        Raises:
            ConfigurationError: If required options are missing
        """
        self.options: Mapping[str, Any] = MappingProxyType(dict(options))
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._session: Optional[aiohttp.ClientSession] = None
        self._context_engine: Optional[ContextEngine] = None

        self._validate_configuration()

    def _validate_configuration(self) -> None:
        """
        Validate the provider options.

        Raises:
            ConfigurationError: If required options are missing
        """
        missing = [name for name in self.required_options if self.options.get(name) is None]
        if missing:
            raise ConfigurationError(
                f"Missing required options: {', '.join(missing)}",
                details={"provider": self.provider_name},
            )

    @property
    def timeout(self) -> float:
        return self.options.get("timeout") or self.default_timeout

    @staticmethod
    def _param(options: Mapping[str, Any], key: str, default: Any) -> Any:
        """Generation option with a default for missing or None values."""
        value = options.get(key)
        return default if value is None else value

    @abstractmethod
    async def generate_embedding(self, text: str, **options: Any) -> List[float]:
        """
        Generate an embedding vector for a text.

        Args:
            text: Text to embed
            **options: Provider-specific options

        Returns:
            Embedding vector normalized to the provider's dimensions

        Raises:
            InvalidResponseError: If the backend returns no usable vector
            PrescientError: For any other classified failure
        """
        pass

    @abstractmethod
    async def generate_response(
        self,
        prompt: str,
        context_items: Optional[Sequence[ContextItem]] = None,
        **options: Any,
    ) -> ResponseResult:
        """
        Generate a text completion for a prompt.

        Args:
            prompt: The user's question or instruction
            context_items: Optional strings or records to ground the answer
            **options: Generation options such as ``temperature``,
                ``max_tokens`` and ``top_p``

        Returns:
            ResponseResult with the generated text

        Raises:
            InvalidResponseError: If no text can be extracted
            PrescientError: For any other classified failure
        """
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """
        Check the health of the backend service.

        Never raises; failures are reported with ``status: unavailable``.

        Returns:
            Dictionary with at least ``status`` and ``provider`` keys
        """
        pass

    async def available(self) -> bool:
        """True if the backend currently reports itself healthy."""
        try:
            health = await self.health_check()
        except Exception as e:
            self.logger.debug(f"Health check for {self.provider_name} raised: {e}")
            return False
        return isinstance(health, Mapping) and health.get("status") == "healthy"

    def _unavailable(self, error: Exception, **extra: Any) -> Dict[str, Any]:
        """Build the health result reported when a backend can't be reached."""
        return {
            "status": "unavailable",
            "provider": self.provider_name,
            "error": type(error).__name__,
            "message": getattr(error, "message", str(error)),
            **extra,
        }

    # ------------------------------------------------------------------
    # Text helpers
    # ------------------------------------------------------------------

    @staticmethod
    def normalize_embedding(embedding: Any, target_dimensions: int) -> Optional[List[float]]:
        return normalize_embedding(embedding, target_dimensions)

    @staticmethod
    def clean_text(text: Any) -> str:
        return clean_text(text)

    @property
    def prompt_templates(self) -> Dict[str, str]:
        """Default templates overridden key by key by ``prompt_templates``."""
        templates = dict(DEFAULT_PROMPT_TEMPLATES)
        templates.update(self.options.get("prompt_templates") or {})
        return templates

    def build_prompt(
        self, query: str, context_items: Optional[Sequence[ContextItem]] = None
    ) -> str:
        """
        Render the final prompt for a query and optional context items.

        Raises:
            ConfigurationError: If a custom template uses an unknown placeholder
        """
        templates = self.prompt_templates
        values = {"system_prompt": templates["system_prompt"], "query": query}

        if context_items:
            values["context"] = "\n\n".join(
                f"{index}. {self.format_context_item(item)}"
                for index, item in enumerate(context_items, start=1)
            )
            template_name = "with_context_template"
        else:
            template_name = "no_context_template"

        prompt = render_template(templates[template_name], values)
        if prompt is None:
            raise ConfigurationError(
                f"Prompt template '{template_name}' references an unknown placeholder",
                details={"provider": self.provider_name},
            )
        return prompt

    @property
    def context_engine(self) -> ContextEngine:
        if self._context_engine is None:
            self._context_engine = ContextEngine(self.options.get("context_configs"))
        return self._context_engine

    def detect_context_type(self, item: ContextItem) -> str:
        return self.context_engine.detect_context_type(item)

    def format_context_item(self, item: ContextItem) -> str:
        return self.context_engine.format_context_item(item)

    def extract_embedding_text(
        self, item: ContextItem, context_type: Optional[str] = None
    ) -> str:
        return self.context_engine.extract_embedding_text(item, context_type)

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "User-Agent": "prescient/1.0",
        }

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers=self._default_headers(),
            )
        return self._session

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}{path}"

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        payload: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            PrescientError: Classified failure for any error status,
                network problem or undecodable body
        """
        session = await self._get_session()
        kwargs: Dict[str, Any] = {}
        if payload is not None:
            kwargs["json"] = payload
        if timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=timeout)

        try:
            async with session.request(method, self._url(path), **kwargs) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise self._error_for_status(response.status, operation, body, response.headers)

                data = await response.json(content_type=None)
                self.logger.debug(f"{method} {path} succeeded for {operation}")
                return data

        except PrescientError:
            raise
        except Exception as e:
            raise self._handle_api_error(e, operation) from e

    def _error_for_status(
        self,
        status: int,
        operation: str,
        body: str = "",
        headers: Optional[Mapping[str, str]] = None,
    ) -> PrescientError:
        """Map an HTTP error status to the matching exception."""
        name = self.provider_name

        if status in (401, 403):
            reason = "Authentication failed" if status == 401 else "Forbidden access"
            return AuthenticationError(
                f"{reason} for {operation}", status_code=status, provider=name
            )
        if status == 404:
            return ModelNotAvailableError(
                f"Model not available for {operation}", provider=name
            )
        if status == 429:
            retry_after = None
            if headers and headers.get("retry-after", "").isdigit():
                retry_after = int(headers["retry-after"])
            return RateLimitError(
                f"Rate limit exceeded for {operation}", retry_after=retry_after, provider=name
            )
        if status == 400:
            return PrescientError(
                f"Bad request for {operation}: {body}",
                details={"provider": name, "status_code": status},
            )
        if status >= 500:
            return PrescientError(
                f"{name} server error during {operation}: {body}",
                details={"provider": name, "status_code": status},
            )
        return PrescientError(
            f"{name} request failed for {operation}: HTTP {status}",
            details={"provider": name, "status_code": status},
        )

    def _handle_api_error(self, error: Exception, operation: str) -> PrescientError:
        """
        Convert transport and decoding errors to prescient exceptions.

        Args:
            error: The original error
            operation: Description of the operation that failed

        Returns:
            Appropriate prescient exception
        """
        details = {"provider": self.provider_name}

        if isinstance(error, PrescientError):
            return error

        elif isinstance(error, asyncio.TimeoutError):
            return ProviderConnectionError(
                f"Request timeout during {operation}", details=details, cause=error
            )

        elif isinstance(error, aiohttp.ClientError):
            return ProviderConnectionError(
                f"HTTP error during {operation}: {error}", details=details, cause=error
            )

        elif isinstance(error, ValueError):
            return InvalidResponseError(
                f"Invalid JSON response: {error}", details=details, cause=error
            )

        else:
            return PrescientError(f"Unexpected error: {error}", details=details, cause=error)

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def __repr__(self) -> str:
        """String representation of the provider."""
        return f"{self.__class__.__name__}(provider={self.provider_name})"
