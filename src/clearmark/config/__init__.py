"""Configuration module."""

from .settings import (
    DatabaseConfig,
    EmbeddingConfig,
    EuipoConfig,
    InpiConfig,
    LoggingConfig,
    ScoringConfig,
    SearchConfig,
    Settings,
    load_settings,
)

__all__ = [
    "DatabaseConfig",
    "EmbeddingConfig",
    "EuipoConfig",
    "InpiConfig",
    "LoggingConfig",
    "ScoringConfig",
    "SearchConfig",
    "Settings",
    "load_settings",
]
