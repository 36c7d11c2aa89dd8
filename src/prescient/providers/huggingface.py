"""
Hugging Face Inference API provider implementation.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .base import BaseProvider, ResponseResult
from ..context import ContextItem
from ..exceptions import InvalidResponseError, PrescientError

logger = logging.getLogger(__name__)


class HuggingFaceProvider(BaseProvider):
    """
    Hugging Face Inference API provider.

    Embeddings use the feature-extraction pipeline; completions use the
    text-generation task of ``chat_model``. Cold models are loaded on demand
    (``wait_for_model``).
    """

    provider_name = "huggingface"
    base_url = "https://api-inference.huggingface.co"
    required_options = ("api_key", "embedding_model", "chat_model")

    EMBEDDING_DIMENSIONS = {
        "sentence-transformers/all-MiniLM-L6-v2": 384,
        "sentence-transformers/all-mpnet-base-v2": 768,
        "sentence-transformers/all-roberta-large-v1": 1024,
    }
    DEFAULT_DIMENSIONS = 384

    def _default_headers(self) -> Dict[str, str]:
        headers = super()._default_headers()
        headers["Authorization"] = f"Bearer {self.options['api_key']}"
        return headers

    @property
    def dimensions(self) -> int:
        return self.EMBEDDING_DIMENSIONS.get(
            self.options["embedding_model"], self.DEFAULT_DIMENSIONS
        )

    @property
    def _embedding_path(self) -> str:
        return f"/pipeline/feature-extraction/{self.options['embedding_model']}"

    @property
    def _generation_path(self) -> str:
        return f"/models/{self.options['chat_model']}"

    def _error_for_status(
        self,
        status: int,
        operation: str,
        body: str = "",
        headers: Optional[Mapping[str, str]] = None,
    ) -> PrescientError:
        if status == 503:
            if "loading" in body:
                logger.warning(f"HuggingFace model still loading during {operation}")
                return PrescientError(
                    "Model is loading, please try again later",
                    details={"provider": self.provider_name, "status_code": status},
                )
            return PrescientError(
                f"HuggingFace service unavailable for {operation}",
                details={"provider": self.provider_name, "status_code": status},
            )
        return super()._error_for_status(status, operation, body, headers)

    async def generate_embedding(self, text: str, **options: Any) -> List[float]:
        """Generate an embedding with the feature-extraction pipeline."""
        data = await self._request(
            "POST",
            self._embedding_path,
            "embedding generation",
            payload={
                "inputs": self.clean_text(text),
                "options": {"wait_for_model": True},
            },
        )

        # Token-level models return a nested array; take the first row
        if isinstance(data, list) and data and isinstance(data[0], list):
            data = data[0]

        normalized = self.normalize_embedding(data, self.dimensions)
        if not isinstance(data, list) or not data or normalized is None:
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
        """Generate a completion with the text-generation task."""
        formatted_prompt = self.build_prompt(self.clean_text(prompt), context_items)

        data = await self._request(
            "POST",
            self._generation_path,
            "text generation",
            payload={
                "inputs": formatted_prompt,
                "parameters": {
                    "max_new_tokens": self._param(options, "max_tokens", 2000),
                    "temperature": self._param(options, "temperature", 0.7),
                    "top_p": self._param(options, "top_p", 0.9),
                    "return_full_text": False,
                },
                "options": {"wait_for_model": True},
            },
        )

        generated_text = None
        if isinstance(data, list) and data and isinstance(data[0], dict):
            generated_text = data[0].get("generated_text")
        elif isinstance(data, dict):
            generated_text = data.get("generated_text") or data.get("text")

        if not generated_text:
            raise InvalidResponseError(
                "No response generated", details={"provider": self.provider_name}
            )

        return ResponseResult(
            response=generated_text.strip(),
            model=self.options["chat_model"],
            provider=self.provider_name,
            processing_time=None,
            metadata={},
        )

    async def health_check(self) -> Dict[str, Any]:
        """Probe both the embedding and the generation model."""
        try:
            embedding_healthy = await self._probe(
                self._embedding_path, {"inputs": "test"}
            )
            chat_healthy = await self._probe(
                self._generation_path,
                {"inputs": "test", "parameters": {"max_new_tokens": 5}},
            )
        except Exception as e:
            return self._unavailable(e)

        ready = embedding_healthy and chat_healthy
        return {
            "status": "healthy" if ready else "partial",
            "provider": self.provider_name,
            "embedding_model": {
                "name": self.options["embedding_model"],
                "available": embedding_healthy,
            },
            "chat_model": {
                "name": self.options["chat_model"],
                "available": chat_healthy,
            },
            "ready": ready,
        }

    async def _probe(self, path: str, payload: Dict[str, Any]) -> bool:
        """True if the endpoint answers; transport failures propagate."""
        session = await self._get_session()
        async with session.post(self._url(path), json=payload) as response:
            return response.status < 400

    async def list_models(self) -> List[Dict[str, Any]]:
        # The Inference API has no listing endpoint; report the configured models
        return [
            {
                "name": self.options["embedding_model"],
                "type": "embedding",
                "dimensions": self.EMBEDDING_DIMENSIONS.get(self.options["embedding_model"]),
            },
            {
                "name": self.options["chat_model"],
                "type": "text-generation",
            },
        ]
