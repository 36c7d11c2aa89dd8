"""
Ollama provider implementation.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from .base import BaseProvider, ResponseResult
from ..context import ContextItem
from ..exceptions import InvalidResponseError

logger = logging.getLogger(__name__)


class OllamaProvider(BaseProvider):
    """
    Provider for a local Ollama model-serving daemon.

    Serves both embeddings (e.g. nomic-embed-text) and chat completions
    (e.g. llama3.1:8b) from the same ``url``.
    """

    provider_name = "ollama"
    required_options = ("url", "embedding_model", "chat_model")

    # nomic-embed-text
    EMBEDDING_DIMENSIONS = 768

    PULL_TIMEOUT = 300

    def __init__(self, **options: Any):
        """Initialize Ollama provider."""
        super().__init__(**options)
        self.base_url = self.options["url"]
        self._available_models: Optional[List[Dict[str, Any]]] = None

    async def generate_embedding(self, text: str, **options: Any) -> List[float]:
        """Generate an embedding using the Ollama embeddings endpoint."""
        data = await self._request(
            "POST",
            "/api/embeddings",
            "embedding generation",
            payload={
                "model": self.options["embedding_model"],
                "prompt": self.clean_text(text),
            },
        )

        embedding = data.get("embedding") if isinstance(data, dict) else None
        normalized = self.normalize_embedding(embedding, self.EMBEDDING_DIMENSIONS)
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
        """Generate a completion using the Ollama generate endpoint."""
        payload = {
            "model": self.options["chat_model"],
            "prompt": self.build_prompt(self.clean_text(prompt), context_items),
            "stream": False,
            "options": {
                "num_predict": self._param(options, "max_tokens", 2000),
                "temperature": self._param(options, "temperature", 0.7),
                "top_p": self._param(options, "top_p", 0.9),
            },
        }

        data = await self._request("POST", "/api/generate", "text generation", payload=payload)

        generated_text = data.get("response") if isinstance(data, dict) else None
        if not generated_text:
            raise InvalidResponseError(
                "No response generated", details={"provider": self.provider_name}
            )

        total_duration = data.get("total_duration")
        return ResponseResult(
            response=generated_text.strip(),
            model=self.options["chat_model"],
            provider=self.provider_name,
            processing_time=total_duration / 1_000_000_000.0 if total_duration else None,
            metadata={
                "eval_count": data.get("eval_count"),
                "eval_duration": data.get("eval_duration"),
                "prompt_eval_count": data.get("prompt_eval_count"),
            },
        )

    async def health_check(self) -> Dict[str, Any]:
        """Check the Ollama daemon and whether the configured models are pulled."""
        try:
            models = await self._fetch_models()
        except Exception as e:
            return self._unavailable(e, url=self.options["url"])

        embedding_ready = any(model["embedding"] for model in models)
        chat_ready = any(model["chat"] for model in models)

        return {
            "status": "healthy",
            "provider": self.provider_name,
            "url": self.options["url"],
            "models_available": [model["name"] for model in models],
            "embedding_model": {
                "name": self.options["embedding_model"],
                "available": embedding_ready,
            },
            "chat_model": {
                "name": self.options["chat_model"],
                "available": chat_ready,
            },
            "ready": embedding_ready and chat_ready,
        }

    async def available_models(self) -> List[Dict[str, Any]]:
        """
        List models pulled on the daemon.

        The result is cached until the next health check or model pull.
        """
        if self._available_models is not None:
            return self._available_models
        return await self._fetch_models()

    async def _fetch_models(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/api/tags", "model listing")
        raw_models = (data.get("models") if isinstance(data, dict) else None) or []

        self._available_models = [
            {
                "name": model.get("name"),
                "size": model.get("size"),
                "modified_at": model.get("modified_at"),
                "digest": model.get("digest"),
                "embedding": model.get("name") == self.options["embedding_model"],
                "chat": model.get("name") == self.options["chat_model"],
            }
            for model in raw_models
        ]
        return self._available_models

    async def list_models(self) -> List[Dict[str, Any]]:
        models = await self.available_models()
        return [{"name": model["name"], "size": model["size"]} for model in models]

    async def pull_model(self, model_name: str) -> Dict[str, Any]:
        """Download a model onto the daemon."""
        await self._request(
            "POST",
            "/api/pull",
            "model pull",
            payload={"name": model_name, "stream": False},
            timeout=self.PULL_TIMEOUT,
        )
        self._available_models = None
        logger.info(f"Pulled Ollama model {model_name}")

        return {
            "success": True,
            "model": model_name,
            "message": f"Model {model_name} pulled successfully",
        }
