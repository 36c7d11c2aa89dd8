"""
High-level client facade over the registered providers.

The client binds one provider by name and adds two policies around the
backend calls: retries with backoff for transient errors, and fallback to
other providers when the bound one keeps failing.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from .config import Configuration, canonical_name, get_configuration
from .context import ContextItem
from .exceptions import (
    ConfigurationError,
    PrescientError,
    ProviderConnectionError,
    RateLimitError,
)
from .providers.base import BaseProvider, ResponseResult

logger = logging.getLogger(__name__)


# Extra backend operations the client exposes when the bound backend has them
FORWARDED_OPERATIONS = frozenset({"list_models", "available_models", "pull_model"})

SENSITIVE_OPTION_KEYS = frozenset({"api_key", "password", "token", "secret"})


def sanitize_options(options: Dict[str, Any]) -> Dict[str, Any]:
    """Drop credential options so they can be displayed or logged."""
    return {
        key: value
        for key, value in options.items()
        if str(key).lower() not in SENSITIVE_OPTION_KEYS
    }


class Client:
    """
    Client for a named provider with retry and fallback.

    Example:
        >>> async with Client("openai") as client:
        ...     result = await client.generate_response("Hello")
        ...     print(result.response)
    """

    def __init__(
        self,
        provider_name: Optional[str] = None,
        *,
        config: Optional[Configuration] = None,
        enable_fallback: bool = True,
    ):
        """
        Initialize the client.

        Args:
            provider_name: Registered provider to bind; defaults to the
                configuration's ``default_provider``
            config: Configuration to use instead of the process-wide one
            enable_fallback: Try other providers when the bound one fails

        Raises:
            ConfigurationError: If the provider is not registered or its
                options are invalid
        """
        self.config = config if config is not None else get_configuration()
        self.enable_fallback = enable_fallback
        self._provider_name = canonical_name(provider_name or self.config.default_provider)

        provider = self.config.provider(self._provider_name)
        if provider is None:
            raise ConfigurationError(
                f"Provider not found: {self._provider_name}",
                details={"provider": self._provider_name},
            )
        self._provider: BaseProvider = provider

    @property
    def provider_name(self) -> str:
        return self._provider_name

    @property
    def provider(self) -> BaseProvider:
        return self._provider

    async def generate_embedding(self, text: str, **options: Any) -> List[float]:
        """
        Generate an embedding vector with retry and fallback.

        Raises:
            PrescientError: The last failure once every candidate is exhausted
        """
        return await self._execute("generate_embedding", text, **options)

    async def generate_response(
        self,
        prompt: str,
        context_items: Optional[Sequence[ContextItem]] = None,
        **options: Any,
    ) -> ResponseResult:
        """
        Generate a text response with retry and fallback.

        Args:
            prompt: The user's question or instruction
            context_items: Optional strings or records to ground the answer
            **options: Generation options (``temperature``, ``max_tokens``,
                ``top_p``)

        Raises:
            PrescientError: The last failure once every candidate is exhausted
        """
        return await self._execute("generate_response", prompt, context_items, **options)

    async def health_check(self) -> Dict[str, Any]:
        return await self._provider.health_check()

    async def available(self) -> bool:
        return await self._provider.available()

    async def provider_info(self) -> Dict[str, Any]:
        """Describe the bound provider with its credentials removed."""
        return {
            "name": self._provider_name,
            "class": type(self._provider).__name__,
            "available": await self.available(),
            "options": sanitize_options(dict(self._provider.options)),
        }

    async def providers_to_try(self) -> List[str]:
        """
        Ordered provider names a failing call walks through.

        The bound provider comes first, then the configured
        ``fallback_providers``; without those, every currently available
        registered provider.
        """
        return [name async for name in self._candidate_names()]

    async def _candidate_names(self) -> AsyncIterator[str]:
        # Availability of the fallbacks is only probed once the bound provider is passed over
        yield self._provider_name

        fallbacks = [canonical_name(name) for name in self.config.fallback_providers]
        if not fallbacks:
            fallbacks = await self.config.available_providers()

        seen = {self._provider_name}
        for name in fallbacks:
            if name not in seen:
                seen.add(name)
                yield name

    async def _execute(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        if not self.enable_fallback:
            return await self._with_retry(self._provider, operation, *args, **kwargs)
        return await self._with_fallback(operation, *args, **kwargs)

    async def _with_fallback(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        last_error: Optional[PrescientError] = None

        async for name in self._candidate_names():
            is_bound = name == self._provider_name
            try:
                provider = self._provider if is_bound else self.config.provider(name)
            except ConfigurationError as e:
                logger.warning(f"Skipping provider {name}: {e}")
                last_error = e
                continue
            if provider is None:
                continue

            try:
                if not await provider.available():
                    logger.debug(f"Provider {name} unavailable, skipping")
                    continue

                return await self._with_retry(provider, operation, *args, **kwargs)

            except PrescientError as e:
                logger.warning(f"Provider {name} failed {operation}: {e}")
                last_error = e

            finally:
                if not is_bound:
                    await provider.close()

        if last_error is not None:
            raise last_error
        raise PrescientError("No available providers", details={"operation": operation})

    async def _with_retry(
        self, provider: BaseProvider, operation: str, *args: Any, **kwargs: Any
    ) -> Any:
        """Call a backend operation, retrying rate limits and connection errors."""
        method = getattr(provider, operation)
        attempt = 0

        while True:
            attempt += 1
            try:
                return await method(*args, **kwargs)

            except RateLimitError as e:
                if attempt >= self.config.retry_attempts:
                    raise
                delay = self.config.retry_delay * attempt
                logger.warning(
                    f"Rate limited by {provider.provider_name} (attempt {attempt}), "
                    f"retrying in {delay}s: {e}"
                )
                await asyncio.sleep(delay)

            except ProviderConnectionError as e:
                if attempt >= self.config.retry_attempts:
                    raise
                delay = self.config.retry_delay
                logger.warning(
                    f"Connection to {provider.provider_name} failed (attempt {attempt}), "
                    f"retrying in {delay}s: {e}"
                )
                await asyncio.sleep(delay)

    def __getattr__(self, name: str) -> Any:
        # Only reached for attributes not found normally
        if name in FORWARDED_OPERATIONS:
            provider = self.__dict__.get("_provider")
            operation = getattr(provider, name, None)
            if callable(operation):
                return operation
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    async def close(self) -> None:
        await self._provider.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def __repr__(self) -> str:
        return f"Client(provider={self._provider_name}, fallback={self.enable_fallback})"
