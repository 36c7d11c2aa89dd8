"""
Anthropic provider implementation.
"""

from typing import Any, Dict, List, Optional, Sequence

from .base import BaseProvider, ResponseResult
from ..context import ContextItem
from ..exceptions import InvalidResponseError, PrescientError


class AnthropicProvider(BaseProvider):
    """
    Anthropic Messages API provider.

    Text generation only; Anthropic offers no embeddings endpoint.
    """

    provider_name = "anthropic"
    base_url = "https://api.anthropic.com"
    required_options = ("api_key", "model")

    API_VERSION = "2023-06-01"

    KNOWN_MODELS = (
        "claude-3-haiku-20240307",
        "claude-3-sonnet-20240229",
        "claude-3-opus-20240229",
    )

    def _default_headers(self) -> Dict[str, str]:
        headers = super()._default_headers()
        headers["x-api-key"] = self.options["api_key"]
        headers["anthropic-version"] = self.API_VERSION
        return headers

    async def generate_embedding(self, text: str, **options: Any) -> List[float]:
        raise PrescientError(
            "Anthropic provider does not support embeddings. "
            "Use OpenAI or HuggingFace for embeddings.",
            details={"provider": self.provider_name},
        )

    async def generate_response(
        self,
        prompt: str,
        context_items: Optional[Sequence[ContextItem]] = None,
        **options: Any,
    ) -> ResponseResult:
        """Generate a completion using the Messages API."""
        formatted_prompt = self.build_prompt(self.clean_text(prompt), context_items)

        data = await self._request(
            "POST",
            "/v1/messages",
            "text generation",
            payload={
                "model": self.options["model"],
                "max_tokens": self._param(options, "max_tokens", 2000),
                "temperature": self._param(options, "temperature", 0.7),
                "messages": [{"role": "user", "content": formatted_prompt}],
            },
        )

        try:
            content = data["content"][0]["text"]
        except (KeyError, IndexError, TypeError):
            content = None

        if not content:
            raise InvalidResponseError(
                "No response generated", details={"provider": self.provider_name}
            )

        return ResponseResult(
            response=content.strip(),
            model=self.options["model"],
            provider=self.provider_name,
            processing_time=None,
            metadata={"usage": data.get("usage")},
        )

    async def health_check(self) -> Dict[str, Any]:
        """Send a minimal message to confirm the key and model work."""
        try:
            await self._request(
                "POST",
                "/v1/messages",
                "health check",
                payload={
                    "model": self.options["model"],
                    "max_tokens": 10,
                    "messages": [{"role": "user", "content": "Test"}],
                },
            )
        except Exception as e:
            return self._unavailable(e)

        return {
            "status": "healthy",
            "provider": self.provider_name,
            "model": self.options["model"],
            "ready": True,
        }

    async def list_models(self) -> List[Dict[str, Any]]:
        # No models endpoint is exposed; report the known model family
        return [{"name": name, "type": "text"} for name in self.KNOWN_MODELS]
