"""Google Gemini embedding provider implementation."""

from clearmark.config.settings import EmbeddingConfig
from clearmark.embeddings.base import BaseEmbeddingProvider


class GeminiEmbeddingProvider(BaseEmbeddingProvider):
    """Google Gemini embedding provider.

    Uses the Google Gen AI SDK. Requires an API key (``embedding.api_key``
    or GOOGLE_API_KEY, resolved into the settings at load time).
    """

    DEFAULT_MODEL = "text-embedding-004"

    def __init__(self, config: EmbeddingConfig):
        super().__init__(config)
        self._client = None

    @property
    def name(self) -> str:
        return "gemini"

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    def _get_client(self):
        """Lazy load Google GenAI client."""
        if self._client is None:
            from google import genai

            self._client = genai.Client(api_key=self.config.api_key)
        return self._client

    def _embed(self, text: str) -> list[float]:
        result = self._get_client().models.embed_content(model=self.model, contents=text)
        if not result.embeddings:
            return []
        return list(result.embeddings[0].values or [])
