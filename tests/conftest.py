"""
Pytest configuration and shared fixtures for prescient tests.

This module provides a fake provider backend, fresh configurations and
sample context records shared by the unit tests.
"""

import logging
from typing import Any, Dict, List, Optional

import pytest

import prescient.config as prescient_config
from prescient.config import Configuration
from prescient.providers.base import BaseProvider, ResponseResult


# ============================================================================
# Fake backend
# ============================================================================

class FakeProvider(BaseProvider):
    """In-memory provider; behaviour is steered through its options."""

    provider_name = "fake"

    def __init__(self, **options: Any):
        super().__init__(**options)
        self.label = options.get("label", "fake")
        self.healthy = options.get("healthy", True)
        self.closed = False

    async def generate_embedding(self, text: str, **options: Any) -> List[float]:
        return list(self.options.get("embedding", [0.1, 0.2, 0.3]))

    async def generate_response(self, prompt, context_items=None, **options) -> ResponseResult:
        return ResponseResult(
            response=f"{self.label}: {prompt}",
            model="fake-model",
            provider=self.label,
        )

    async def health_check(self) -> Dict[str, Any]:
        return {
            "status": "healthy" if self.healthy else "unavailable",
            "provider": self.label,
        }

    async def list_models(self) -> List[Dict[str, Any]]:
        return [{"name": "fake-model"}]

    async def close(self) -> None:
        self.closed = True
        await super().close()


def backend_returning(provider: BaseProvider):
    """Factory that always hands out the same prebuilt provider instance."""
    def factory(**options: Any) -> BaseProvider:
        return provider
    return factory


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def isolated_configuration():
    """Give every test an empty process-wide configuration and clean logging."""
    prescient_config.reset_configuration()
    yield
    prescient_config.reset_configuration()

    package_logger = logging.getLogger("prescient")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


@pytest.fixture
def config() -> Configuration:
    """Configuration without providers and with instant retries."""
    return Configuration(retry_delay=0.0)


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider(label="primary")


@pytest.fixture
def make_provider():
    """Build FakeProviders with the given options."""
    def _make(**options: Any) -> FakeProvider:
        return FakeProvider(**options)
    return _make


# ============================================================================
# Provider option fixtures
# ============================================================================

@pytest.fixture
def ollama_options() -> Dict[str, Any]:
    return {
        "url": "http://localhost:11434",
        "embedding_model": "nomic-embed-text",
        "chat_model": "llama3.1:8b",
    }


@pytest.fixture
def openai_options() -> Dict[str, Any]:
    return {
        "api_key": "sk-test",
        "embedding_model": "text-embedding-3-small",
        "chat_model": "gpt-3.5-turbo",
    }


@pytest.fixture
def anthropic_options() -> Dict[str, Any]:
    return {"api_key": "anthropic-test", "model": "claude-3-haiku-20240307"}


@pytest.fixture
def huggingface_options() -> Dict[str, Any]:
    return {
        "api_key": "hf-test",
        "embedding_model": "sentence-transformers/all-MiniLM-L6-v2",
        "chat_model": "microsoft/DialoGPT-medium",
    }


# ============================================================================
# Context Fixtures
# ============================================================================

@pytest.fixture
def document_context_configs() -> Dict[str, Dict[str, Any]]:
    return {
        "document": {
            "fields": ["title", "author", "content"],
            "format": "%{title} by %{author}: %{content}",
            "embedding_fields": ["title", "content"],
        },
        "product": {
            "fields": ["name", "price", "category", "brand"],
            "format": "%{name} (%{brand}) - $%{price}",
            "embedding_fields": ["name", "category"],
        },
    }


@pytest.fixture
def document_item() -> Dict[str, Any]:
    return {
        "type": "document",
        "title": "AI Guide",
        "author": "John Doe",
        "content": "Intro",
        "created_at": "2024-01-01",
    }


def sent_payloads(mocked) -> List[Optional[Dict[str, Any]]]:
    """JSON bodies of every request an aioresponses mock intercepted."""
    return [
        call.kwargs.get("json")
        for calls in mocked.requests.values()
        for call in calls
    ]
