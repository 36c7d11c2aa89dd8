"""
prescient: a unified client for AI provider APIs.

prescient gives Ollama, OpenAI, Anthropic and HuggingFace one interface for
embeddings and text generation, with retries, provider fallback and
configurable formatting of retrieval context.
"""

__version__ = "0.1.0"
__author__ = "prescient Contributors"

from typing import Any, Dict, List, Optional, Sequence

from .client import Client
from .config import (
    Configuration,
    LoggingConfig,
    ProviderRegistration,
    configure,
    get_configuration,
    reset_configuration,
)
from .context import ContextConfig, ContextEngine, ContextItem, render_template
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    InvalidResponseError,
    ModelNotAvailableError,
    PrescientError,
    ProviderConnectionError,
    RateLimitError,
)
from .providers import BaseProvider, ProviderFactory, ResponseResult


def client(name: Optional[str] = None, **kwargs: Any) -> Client:
    """Create a client for a registered provider."""
    return Client(name, **kwargs)


async def generate_embedding(
    text: str,
    provider: Optional[str] = None,
    enable_fallback: bool = True,
    **options: Any,
) -> List[float]:
    """One-shot embedding through a temporary client."""
    async with client(provider, enable_fallback=enable_fallback) as c:
        return await c.generate_embedding(text, **options)


async def generate_response(
    prompt: str,
    context_items: Optional[Sequence[ContextItem]] = None,
    provider: Optional[str] = None,
    enable_fallback: bool = True,
    **options: Any,
) -> ResponseResult:
    """One-shot text generation through a temporary client."""
    async with client(provider, enable_fallback=enable_fallback) as c:
        return await c.generate_response(prompt, context_items, **options)


async def health_check(provider: Optional[str] = None) -> Dict[str, Any]:
    async with client(provider) as c:
        return await c.health_check()


__all__ = [
    "__version__",
    "Client",
    "Configuration",
    "LoggingConfig",
    "ProviderRegistration",
    "configure",
    "get_configuration",
    "reset_configuration",
    "ContextConfig",
    "ContextEngine",
    "render_template",
    "BaseProvider",
    "ProviderFactory",
    "ResponseResult",
    "PrescientError",
    "ConfigurationError",
    "ProviderConnectionError",
    "AuthenticationError",
    "RateLimitError",
    "ModelNotAvailableError",
    "InvalidResponseError",
    "client",
    "generate_embedding",
    "generate_response",
    "health_check",
]
