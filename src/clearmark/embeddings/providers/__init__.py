"""Embedding provider implementations."""

from .gemini import GeminiEmbeddingProvider
from .lmstudio import LMStudioEmbeddingProvider
from .ollama import OllamaEmbeddingProvider
from .openai import OpenAIEmbeddingProvider

__all__ = [
    "OpenAIEmbeddingProvider",
    "OllamaEmbeddingProvider",
    "LMStudioEmbeddingProvider",
    "GeminiEmbeddingProvider",
]
