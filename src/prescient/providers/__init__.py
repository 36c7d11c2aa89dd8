"""
Provider backends for prescient.
"""

from .base import BaseProvider, ResponseResult, clean_text, normalize_embedding
from .factory import ProviderFactory
from .ollama import OllamaProvider
from .openai import OpenAIProvider
from .anthropic import AnthropicProvider
from .huggingface import HuggingFaceProvider

__all__ = [
    "BaseProvider",
    "ResponseResult",
    "clean_text",
    "normalize_embedding",
    "ProviderFactory",
    "OllamaProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "HuggingFaceProvider",
]
