"""
OpenAI provider implementation.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from .base import BaseProvider, ResponseResult
from ..context import ContextItem
from ..exceptions import InvalidResponseError

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseProvider):
    """
    OpenAI provider for embeddings and chat completions.

    Supports OpenAI's text-embedding-3-small, text-embedding-3-large and
    text-embedding-ada-002 embedding models, and any chat model. Set
    ``base_url`` to target an OpenAI-compatible server instead.
    """

    provider_name = "openai"
    base_url = "https://api.openai.com"
    required_options = ("api_key", "embedding_model", "chat_model")

    EMBEDDING_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }
    DEFAULT_DIMENSIONS = 1536

    def __init__(self, **options: Any):
        """Initialize OpenAI provider."""
        super().__init__(**options)
        if self.options.get("base_url"):
            self.base_url = self.options["base_url"]

    def _default_headers(self) -> Dict[str, str]:
        headers = super()._default_headers()
        headers["Authorization"] = f"Bearer {self.options['api_key']}"
        return headers

    @property
    def dimensions(self) -> int:
        """Target dimensions of the configured embedding model."""
        return self.EMBEDDING_DIMENSIONS.get(
            self.options["embedding_model"], self.DEFAULT_DIMENSIONS
        )

    async def generate_embedding(self, text: str, **options: Any) -> List[float]:
        """Generate an embedding using the OpenAI embeddings API."""
        data = await self._request(
            "POST",
            "/v1/embeddings",
            "embedding generation",
            payload={
                "model": self.options["embedding_model"],
                "input": self.clean_text(text),
                "encoding_format": "float",
            },
        )

        try:
            embedding = data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError):
            embedding = None

        normalized = self.normalize_embedding(embedding, self.dimensions)
        if not embedding or normalized is None:
            raise InvalidResponseError(
                "No embedding returned", details={"provider": self.provider_name}
            )
        return normalized

    async def generate_response(
        self,
        prompt: str,
        context_items: Optional[Sequence[ContextItem]] = None,
        **options: Any,
    ) -> ResponseResult:
        """Generate a completion using the chat completions API."""
        formatted_prompt = self.build_prompt(self.clean_text(prompt), context_items)

        data = await self._request(
            "POST",
            "/v1/chat/completions",
            "text generation",
            payload={
                "model": self.options["chat_model"],
                "messages": [{"role": "user", "content": formatted_prompt}],
                "max_tokens": self._param(options, "max_tokens", 2000),
                "temperature": self._param(options, "temperature", 0.7),
                "top_p": self._param(options, "top_p", 0.9),
            },
        )

        try:
            choice = data["choices"][0]
            content = choice["message"]["content"]
        except (KeyError, IndexError, TypeError):
            choice, content = {}, None

        if not content:
            raise InvalidResponseError(
                "No response generated", details={"provider": self.provider_name}
            )

        return ResponseResult(
            response=content.strip(),
            model=self.options["chat_model"],
            provider=self.provider_name,
            processing_time=None,
            metadata={
                "usage": data.get("usage"),
                "finish_reason": choice.get("finish_reason"),
            },
        )

    async def health_check(self) -> Dict[str, Any]:
        """Check API access and whether the configured models are listed."""
        try:
            models = await self._fetch_models()
        except Exception as e:
            return self._unavailable(e)

        model_ids = [model.get("id") for model in models]
        embedding_available = self.options["embedding_model"] in model_ids
        chat_available = self.options["chat_model"] in model_ids

        return {
            "status": "healthy",
            "provider": self.provider_name,
            "models_available": model_ids,
            "embedding_model": {
                "name": self.options["embedding_model"],
                "available": embedding_available,
            },
            "chat_model": {
                "name": self.options["chat_model"],
                "available": chat_available,
            },
            "ready": embedding_available and chat_available,
        }

    async def _fetch_models(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/v1/models", "model listing")
        models = (data.get("data") if isinstance(data, dict) else None) or []
        logger.debug(f"OpenAI listed {len(models)} models")
        return models

    async def list_models(self) -> List[Dict[str, Any]]:
        """List the models visible to the configured API key."""
        models = await self._fetch_models()
        return [
            {
                "name": model.get("id"),
                "created": model.get("created"),
                "owned_by": model.get("owned_by"),
            }
            for model in models
        ]
