"""Abstract base class for embedding providers."""

import logging
from abc import ABC, abstractmethod

from clearmark.config.settings import EmbeddingConfig

logger = logging.getLogger(__name__)


def is_quota_error(exc: Exception) -> bool:
    """Check if a provider error means the quota or rate limit is exhausted."""
    if getattr(exc, "status_code", None) == 429:
        return True
    response = getattr(exc, "response", None)
    if getattr(response, "status_code", None) == 429:
        return True
    return getattr(exc, "code", None) in ("insufficient_quota", "rate_limit_exceeded")


class BaseEmbeddingProvider(ABC):
    """Abstract base class for embedding providers.

    ``embed`` returns ``None`` when the semantic signal is unavailable
    (disabled, missing credentials, exhausted quota, provider error). That is
    an expected outcome, not an error: callers score the semantic signal as 0.
    There is no retry, one attempt per call.
    """

    DEFAULT_MODEL = ""

    def __init__(self, config: EmbeddingConfig):
        """Initialize provider with configuration.

        Args:
            config: Embedding configuration
        """
        self.config = config

    @property
    def model(self) -> str:
        return self.config.model or self.DEFAULT_MODEL

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name."""
        pass

    @property
    def is_configured(self) -> bool:
        """Cheap check (no network) that the provider can be called."""
        return True

    def is_available(self) -> bool:
        """Check if the provider is configured and reachable.

        Returns:
            True if provider can be used
        """
        return self.config.enabled and self.is_configured

    @abstractmethod
    def _embed(self, text: str) -> list[float]:
        """Request an embedding from the provider (may raise)."""
        pass

    def embed(self, text: str) -> list[float] | None:
        """Embed a text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector, or None if unavailable
        """
        if not self.config.enabled or not self.is_configured:
            return None

        try:
            vector = self._embed(text)
        except Exception as e:
            if is_quota_error(e):
                logger.info("[%s] embedding quota exhausted, semantic signal skipped", self.name)
            else:
                logger.warning("[%s] embedding failed: %s", self.name, e)
            return None

        if not vector:
            return None
        try:
            return [float(x) for x in vector]
        except (TypeError, ValueError) as e:
            logger.warning("[%s] malformed embedding vector: %s", self.name, e)
            return None


class DisabledEmbeddingProvider(BaseEmbeddingProvider):
    """Provider used when the semantic signal is turned off."""

    @property
    def name(self) -> str:
        return "none"

    @property
    def is_configured(self) -> bool:
        return False

    def _embed(self, text: str) -> list[float]:
        return []
