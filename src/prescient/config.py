"""
Configuration system for prescient using Pydantic.

Holds the global retry/fallback policy and the registry of named providers.
A process-wide configuration is available through ``get_configuration()``,
but every ``Client`` accepts an explicit ``Configuration`` as well.
"""

import asyncio
import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .providers.base import BaseProvider
from .providers.factory import ProviderFactory

logger = logging.getLogger(__name__)


def canonical_name(name: Any) -> str:
    """Canonical provider name: ``":OpenAI "`` and ``"openai"`` are the same."""
    return str(name).strip().lstrip(":").lower()


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Log level"
    )
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")
    max_size: int = Field(10485760, description="Max log file size in bytes")  # 10MB
    backup_count: int = Field(5, description="Number of backup log files")


class ProviderRegistration(BaseModel):
    """A named provider: its backend type (or factory) and options."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., description="Canonical provider name")
    backend: Union[str, Callable[..., BaseProvider]] = Field(
        ..., description="Backend type key or provider factory"
    )
    options: Mapping[str, Any] = Field(
        default_factory=dict,
        validate_default=True,
        description="Options passed to the backend",
    )

    @field_validator("options", mode="after")
    @classmethod
    def _read_only_options(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(v))

    @property
    def backend_name(self) -> str:
        if isinstance(self.backend, str):
            return self.backend
        return getattr(self.backend, "__name__", repr(self.backend))


class Configuration(BaseSettings):
    """Main prescient configuration."""

    # Policy
    default_provider: str = Field("ollama", description="Provider used when none is named")
    timeout: float = Field(30, description="Request timeout in seconds")
    retry_attempts: int = Field(3, description="Attempts per provider for transient errors")
    retry_delay: float = Field(1.0, description="Base retry delay in seconds")
    fallback_providers: List[str] = Field(
        default_factory=list, description="Ordered providers to fall back to"
    )

    # Registry
    providers: Dict[str, ProviderRegistration] = Field(
        default_factory=dict, description="Registered providers"
    )

    # System configuration
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PRESCIENT_",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("default_provider", mode="before")
    @classmethod
    def _canonical_default(cls, v: Any) -> str:
        return canonical_name(v)

    @field_validator("fallback_providers", mode="before")
    @classmethod
    def _canonical_fallbacks(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return [canonical_name(name) for name in v]
        return v

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "Configuration":
        """
        Load configuration from a YAML file.

        Providers are declared under ``providers`` as
        ``{name: {type: <backend>, <option>: <value>, ...}}``. Environment
        variables (``${OPENAI_API_KEY}``) are expanded everywhere.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

            # Expand environment variables in the data
            data = cls._expand_env_vars(data)
            provider_entries = data.pop("providers", None) or {}

            config = cls(**data)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

        for name, entry in provider_entries.items():
            options = dict(entry or {})
            backend = options.pop("type", None)
            if not backend:
                raise ConfigurationError(f"Provider '{name}' has no type")
            config.add_provider(name, backend, **options)

        return config

    @classmethod
    def _expand_env_vars(cls, data: Any) -> Any:
        """Recursively expand environment variables in configuration data."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str):
            return os.path.expandvars(data)
        else:
            return data

    def add_provider(
        self, name: Any, backend: Union[str, Callable[..., BaseProvider]], **options: Any
    ) -> ProviderRegistration:
        """
        Register a provider, replacing any existing one with the same name.

        Args:
            name: Provider name, normalized to its canonical form
            backend: Backend type key (``"openai"``...) or a callable that
                builds a ``BaseProvider`` from keyword options
            **options: Options passed to the backend on construction

        Raises:
            ConfigurationError: If the name is empty or the backend unknown
        """
        key = canonical_name(name)
        if not key:
            raise ConfigurationError("Provider name must not be empty")

        # Fail at registration rather than on first use
        ProviderFactory.get_factory(backend)

        registration = ProviderRegistration(name=key, backend=backend, options=options)
        self.providers[key] = registration
        logger.debug(f"Registered provider {key} ({registration.backend_name})")
        return registration

    def remove_provider(self, name: Any) -> None:
        self.providers.pop(canonical_name(name), None)

    def has_provider(self, name: Any) -> bool:
        return canonical_name(name) in self.providers

    def get_registration(self, name: Any) -> ProviderRegistration:
        """Get a provider registration by name."""
        key = canonical_name(name)
        if key not in self.providers:
            raise ConfigurationError(f"Provider '{key}' not found")
        return self.providers[key]

    def provider(self, name: Any) -> Optional[BaseProvider]:
        """
        Build a fresh backend instance for a registered provider.

        The global ``timeout`` is passed to the backend unless its options
        set their own.

        Returns:
            New provider instance, or None if the name isn't registered

        Raises:
            ConfigurationError: If the backend rejects its options
        """
        registration = self.providers.get(canonical_name(name))
        if registration is None:
            return None

        options = dict(registration.options)
        options.setdefault("timeout", self.timeout)
        return ProviderFactory.create_provider(registration.backend, **options)

    async def available_providers(self) -> List[str]:
        """Names of registered providers whose backend currently reports healthy."""
        names = list(self.providers)
        results = await asyncio.gather(*(self._probe(name) for name in names))
        return [name for name, available in zip(names, results) if available]

    async def _probe(self, name: str) -> bool:
        try:
            provider = self.provider(name)
        except ConfigurationError as e:
            logger.debug(f"Provider {name} is not usable: {e}")
            return False
        if provider is None:
            return False

        async with provider:
            return await provider.available()

    def add_default_providers(self) -> "Configuration":
        """Register the built-in backends from environment variables."""
        env = os.environ.get

        self.add_provider(
            "ollama",
            "ollama",
            url=env("OLLAMA_URL", "http://localhost:11434"),
            embedding_model=env("OLLAMA_EMBEDDING_MODEL", "nomic-embed-text"),
            chat_model=env("OLLAMA_CHAT_MODEL", "llama3.1:8b"),
        )
        self.add_provider(
            "anthropic",
            "anthropic",
            api_key=env("ANTHROPIC_API_KEY"),
            model=env("ANTHROPIC_MODEL", "claude-3-haiku-20240307"),
        )
        self.add_provider(
            "openai",
            "openai",
            api_key=env("OPENAI_API_KEY"),
            embedding_model=env("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small"),
            chat_model=env("OPENAI_CHAT_MODEL", "gpt-3.5-turbo"),
        )
        self.add_provider(
            "huggingface",
            "huggingface",
            api_key=env("HUGGINGFACE_API_KEY"),
            embedding_model=env(
                "HUGGINGFACE_EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2"
            ),
            chat_model=env("HUGGINGFACE_CHAT_MODEL", "microsoft/DialoGPT-medium"),
        )
        return self


_configuration: Optional[Configuration] = None


def get_configuration() -> Configuration:
    """Get the process-wide configuration, creating it with the default providers."""
    global _configuration
    if _configuration is None:
        _configuration = Configuration().add_default_providers()
    return _configuration


def configure(callback: Optional[Callable[[Configuration], Any]] = None) -> Configuration:
    """
    Adjust the process-wide configuration.

    Example:
        >>> configure(lambda c: c.add_provider("local", "ollama", url=...))
    """
    config = get_configuration()
    if callback is not None:
        callback(config)
    return config


def reset_configuration(config: Optional[Configuration] = None) -> Configuration:
    """Replace the process-wide configuration; a fresh one has no providers."""
    global _configuration
    _configuration = config if config is not None else Configuration()
    return _configuration
