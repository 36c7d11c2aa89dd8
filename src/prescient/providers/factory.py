"""
Provider factory for creating backends from registered configuration.
"""

from typing import Any, Callable, Dict, List, Type, Union
import logging

from .base import BaseProvider
from .ollama import OllamaProvider
from .openai import OpenAIProvider
from .anthropic import AnthropicProvider
from .huggingface import HuggingFaceProvider
from ..exceptions import ConfigurationError


logger = logging.getLogger(__name__)


ProviderConstructor = Callable[..., BaseProvider]
Backend = Union[str, ProviderConstructor]


class ProviderFactory:
    """
    Factory resolving backend keys to provider constructors.

    A registered provider stores either a backend key (``"ollama"``,
    ``"openai"``...) or any callable returning a ``BaseProvider``. Keys are
    resolved through this registry; callables are used as is.
    """

    # Registry of built-in backend implementations
    _BACKEND_REGISTRY: Dict[str, Type[BaseProvider]] = {
        "ollama": OllamaProvider,
        "openai": OpenAIProvider,
        "anthropic": AnthropicProvider,
        "huggingface": HuggingFaceProvider,
    }

    @classmethod
    def get_factory(cls, backend: Backend) -> ProviderConstructor:
        """
        Resolve a backend key or constructor to a constructor.

        Raises:
            ConfigurationError: If the backend key is not registered
        """
        if callable(backend):
            return backend

        key = str(backend).lower()
        if key not in cls._BACKEND_REGISTRY:
            raise ConfigurationError(
                f"Unsupported provider type: {backend}. "
                f"Available types: {cls.get_supported_backends()}"
            )
        return cls._BACKEND_REGISTRY[key]

    @classmethod
    def create_provider(cls, backend: Backend, **options: Any) -> BaseProvider:
        """
        Construct a provider backend.

        Args:
            backend: Backend key or constructor
            **options: Options passed to the constructor

        Returns:
            Initialized provider

        Raises:
            ConfigurationError: If the backend is unknown, options are
                invalid, or a custom constructor fails
        """
        factory = cls.get_factory(backend)

        try:
            provider = factory(**options)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Failed to create provider from {backend!r}: {e}")
            raise ConfigurationError(f"Failed to create provider: {e}", cause=e) from e

        if not isinstance(provider, BaseProvider):
            raise ConfigurationError(
                f"Provider factory {backend!r} returned {type(provider).__name__}, "
                "expected a BaseProvider"
            )

        logger.debug(f"Created {provider}")
        return provider

    @classmethod
    def get_supported_backends(cls) -> List[str]:
        return list(cls._BACKEND_REGISTRY.keys())

    @classmethod
    def register_backend(cls, key: str, provider_class: Type[BaseProvider]) -> None:
        """
        Register a custom backend under a key.

        This allows extending the library with new backends without
        modifying the core code.

        Raises:
            ConfigurationError: If the class doesn't inherit from BaseProvider
        """
        if not isinstance(provider_class, type) or not issubclass(provider_class, BaseProvider):
            raise ConfigurationError(
                f"Provider class {provider_class} must inherit from BaseProvider"
            )

        cls._BACKEND_REGISTRY[key.lower()] = provider_class
        logger.info(f"Registered custom provider backend: {key}")

    @classmethod
    def unregister_backend(cls, key: str) -> None:
        cls._BACKEND_REGISTRY.pop(key.lower(), None)
