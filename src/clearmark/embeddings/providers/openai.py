"""OpenAI embedding provider implementation."""

from clearmark.config.settings import EmbeddingConfig
from clearmark.embeddings.base import BaseEmbeddingProvider


class OpenAIEmbeddingProvider(BaseEmbeddingProvider):
    """OpenAI API embedding provider.

    Requires an API key (``embedding.api_key`` or OPENAI_API_KEY, resolved
    into the settings at load time).
    """

    DEFAULT_MODEL = "text-embedding-3-small"

    def __init__(self, config: EmbeddingConfig):
        super().__init__(config)
        self._client = None

    @property
    def name(self) -> str:
        return "openai"

    @property
    def is_configured(self) -> bool:
        api_key = self.config.api_key
        return api_key is not None and len(api_key.strip()) > 0

    def _get_client(self):
        """Lazy load OpenAI client."""
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(
                api_key=self.config.api_key,
                base_url=self.config.api_base or None,
                timeout=self.config.timeout_seconds,
                max_retries=0,
            )
        return self._client

    def _embed(self, text: str) -> list[float]:
        response = self._get_client().embeddings.create(model=self.model, input=text)
        return list(response.data[0].embedding)
