"""LM Studio embedding provider implementation."""

import httpx

from clearmark.config.settings import EmbeddingConfig
from clearmark.embeddings.base import BaseEmbeddingProvider


class LMStudioEmbeddingProvider(BaseEmbeddingProvider):
    """LM Studio local embedding provider.

    Uses LM Studio's OpenAI-compatible embeddings endpoint.
    Default endpoint: http://localhost:1234/v1
    """

    DEFAULT_BASE_URL = "http://localhost:1234/v1"
    DEFAULT_MODEL = "text-embedding-nomic-embed-text-v1.5"

    def __init__(self, config: EmbeddingConfig):
        super().__init__(config)
        self.base_url = (config.api_base or self.DEFAULT_BASE_URL).rstrip("/")

    @property
    def name(self) -> str:
        return "lmstudio"

    def is_available(self) -> bool:
        """Check if LM Studio server is running."""
        if not super().is_available():
            return False
        try:
            response = httpx.get(f"{self.base_url}/models", timeout=5.0)
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _embed(self, text: str) -> list[float]:
        response = httpx.post(
            f"{self.base_url}/embeddings",
            json={"model": self.model, "input": text},
            timeout=self.config.timeout_seconds,
        )
        response.raise_for_status()
        data = response.json().get("data") or [{}]
        return data[0].get("embedding", [])
