"""Factory for creating embedding providers."""

from clearmark.config.settings import EmbeddingConfig
from clearmark.embeddings.base import BaseEmbeddingProvider, DisabledEmbeddingProvider
from clearmark.embeddings.providers import (
    GeminiEmbeddingProvider,
    LMStudioEmbeddingProvider,
    OllamaEmbeddingProvider,
    OpenAIEmbeddingProvider,
)

# Registry of available providers
PROVIDERS: dict[str, type[BaseEmbeddingProvider]] = {
    "openai": OpenAIEmbeddingProvider,
    "ollama": OllamaEmbeddingProvider,
    "lmstudio": LMStudioEmbeddingProvider,
    "lm-studio": LMStudioEmbeddingProvider,  # alias
    "gemini": GeminiEmbeddingProvider,
    "google": GeminiEmbeddingProvider,  # alias
    "none": DisabledEmbeddingProvider,
    "disabled": DisabledEmbeddingProvider,  # alias
}


def get_embedding_provider(config: EmbeddingConfig) -> BaseEmbeddingProvider:
    """Create an embedding provider based on configuration.

    A disabled configuration always yields the disabled provider.

    Args:
        config: Embedding configuration with provider name

    Returns:
        Initialized embedding provider

    Raises:
        ValueError: If provider is not supported
    """
    provider_name = config.provider.lower()

    if provider_name not in PROVIDERS:
        available = ", ".join(sorted(set(PROVIDERS.keys())))
        raise ValueError(
            f"Unknown embedding provider: '{provider_name}'. "
            f"Available providers: {available}"
        )

    if not config.enabled:
        return DisabledEmbeddingProvider(config)

    return PROVIDERS[provider_name](config)


def list_embedding_providers() -> list[str]:
    """List all available provider names (without aliases).

    Returns:
        List of provider names
    """
    return ["openai", "ollama", "lmstudio", "gemini", "none"]


def check_embedding_availability(config: EmbeddingConfig) -> tuple[bool, str]:
    """Check if an embedding provider is available and configured.

    Args:
        config: Embedding configuration

    Returns:
        Tuple of (is_available, message)
    """
    try:
        provider = get_embedding_provider(config)
    except ValueError as e:
        return False, str(e)

    if not config.enabled or isinstance(provider, DisabledEmbeddingProvider):
        return False, "Semantic embeddings are disabled."
    if provider.is_available():
        return True, f"Embedding provider '{provider.name}' is available ({provider.model})."
    return False, (
        f"Embedding provider '{provider.name}' is not configured "
        "(missing API key or server not running)."
    )
