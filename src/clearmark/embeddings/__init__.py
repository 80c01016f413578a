"""Embedding providers for the semantic similarity signal."""

from .base import BaseEmbeddingProvider, DisabledEmbeddingProvider
from .factory import (
    check_embedding_availability,
    get_embedding_provider,
    list_embedding_providers,
)

__all__ = [
    "BaseEmbeddingProvider",
    "DisabledEmbeddingProvider",
    "check_embedding_availability",
    "get_embedding_provider",
    "list_embedding_providers",
]
