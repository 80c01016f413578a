"""Ollama embedding provider implementation."""

import httpx

from clearmark.config.settings import EmbeddingConfig
from clearmark.embeddings.base import BaseEmbeddingProvider


class OllamaEmbeddingProvider(BaseEmbeddingProvider):
    """Ollama local embedding provider.

    Supports local embedding models via Ollama's HTTP API.
    Default endpoint: http://localhost:11434
    """

    DEFAULT_BASE_URL = "http://localhost:11434"
    DEFAULT_MODEL = "nomic-embed-text"

    def __init__(self, config: EmbeddingConfig):
        super().__init__(config)
        self.base_url = (config.api_base or self.DEFAULT_BASE_URL).rstrip("/")

    @property
    def name(self) -> str:
        return "ollama"

    def is_available(self) -> bool:
        """Check if Ollama server is running."""
        if not super().is_available():
            return False
        try:
            response = httpx.get(f"{self.base_url}/api/tags", timeout=5.0)
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _embed(self, text: str) -> list[float]:
        response = httpx.post(
            f"{self.base_url}/api/embeddings",
            json={"model": self.model, "prompt": text},
            timeout=self.config.timeout_seconds,
        )
        response.raise_for_status()
        return response.json().get("embedding", [])
