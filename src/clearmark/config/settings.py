"""Settings loader and configuration dataclasses."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from clearmark.trademark.similarity import SimilarityWeights

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass
class DatabaseConfig:
    """Database configuration."""

    path: str = "data/clearmark.db"


@dataclass
class SearchConfig:
    """Search defaults."""

    default_limit: int = 50
    default_nice_classes: list[int] = field(default_factory=lambda: [9, 35, 42])


@dataclass
class EuipoConfig:
    """EUIPO Trademark Search API configuration.

    To obtain credentials:
    1. Create an account at https://dev.euipo.europa.eu
    2. Subscribe an application to the Trademark Search product
    3. Copy the product key (client id) and secret from "Subscriptions"
    """

    enabled: bool = True
    mock: bool = False
    api_base: str = "https://api.euipo.europa.eu/trademark-search"
    product_key: str | None = None
    product_secret: str | None = None
    timeout_seconds: float = 12.0


@dataclass
class InpiConfig:
    """INPI (French national office) API configuration."""

    enabled: bool = True
    mock: bool = False
    base_url: str | None = None
    bearer_token: str | None = None
    api_key: str | None = None
    collections: list[str] = field(default_factory=lambda: ["FR"])
    timeout_seconds: float = 20.0


@dataclass
class EmbeddingConfig:
    """Embedding provider configuration.

    Supports multiple providers:
    - openai: OpenAI embeddings (requires OPENAI_API_KEY)
    - ollama: Local models via Ollama (default: http://localhost:11434)
    - lmstudio: Local models via LM Studio (default: http://localhost:1234/v1)
    - gemini: Google Gemini embeddings (requires GOOGLE_API_KEY)
    - none: Semantic signal disabled
    """

    enabled: bool = True
    provider: str = "openai"
    model: str | None = None
    api_key: str | None = None
    api_base: str | None = None
    timeout_seconds: float = 15.0
    max_workers: int = 4


@dataclass
class ScoringConfig:
    """Aggregate score weights.

    The weights are fixed (0.35 jw, 0.35 lev, 0.20 ph, 0.10 sem) so that every
    aggregate is comparable with the risk bands; they are not read from YAML.
    """

    weights: SimilarityWeights = field(default_factory=SimilarityWeights, init=False)


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"


@dataclass
class Settings:
    """Main settings container for clearmark."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    euipo: EuipoConfig = field(default_factory=EuipoConfig)
    inpi: InpiConfig = field(default_factory=InpiConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Create Settings from dictionary.

        Raises:
            ValueError: If the data tries to override the scoring weights
        """
        if data.get("scoring"):
            raise ValueError("Scoring weights are fixed and cannot be set in the configuration file")

        return cls(
            database=DatabaseConfig(**(data.get("database") or {})),
            search=SearchConfig(**(data.get("search") or {})),
            euipo=EuipoConfig(**(data.get("euipo") or {})),
            inpi=InpiConfig(**(data.get("inpi") or {})),
            embedding=EmbeddingConfig(**(data.get("embedding") or {})),
            logging=LoggingConfig(**(data.get("logging") or {})),
        )

    def apply_env(self, env: Mapping[str, str] | None = None) -> "Settings":
        """Overlay values from environment variables.

        Environment wins over the configuration file so that secrets can stay
        out of it.

        Args:
            env: Mapping to read from (defaults to os.environ)

        Returns:
            self, for chaining
        """
        env = os.environ if env is None else env

        if "EUIPO_ENABLED" in env:
            self.euipo.enabled = _as_bool(env["EUIPO_ENABLED"])
        if "EUIPO_MOCK" in env:
            self.euipo.mock = _as_bool(env["EUIPO_MOCK"])
        self.euipo.api_base = env.get("EUIPO_API_BASE") or self.euipo.api_base
        self.euipo.product_key = env.get("EUIPO_PRODUCT_KEY") or self.euipo.product_key
        self.euipo.product_secret = env.get("EUIPO_PRODUCT_SECRET") or self.euipo.product_secret

        if "INPI_ENABLED" in env:
            self.inpi.enabled = _as_bool(env["INPI_ENABLED"])
        if "INPI_MOCK" in env:
            self.inpi.mock = _as_bool(env["INPI_MOCK"])
        self.inpi.base_url = env.get("INPI_BASE") or self.inpi.base_url
        self.inpi.bearer_token = env.get("INPI_BEARER") or self.inpi.bearer_token
        self.inpi.api_key = env.get("INPI_API_KEY") or self.inpi.api_key

        if "SEMANTIC_EMBEDDINGS" in env:
            self.embedding.enabled = _as_bool(env["SEMANTIC_EMBEDDINGS"])
        self.embedding.provider = env.get("EMBEDDING_PROVIDER") or self.embedding.provider
        if not self.embedding.api_key:
            key_var = {"openai": "OPENAI_API_KEY", "gemini": "GOOGLE_API_KEY"}.get(
                self.embedding.provider.lower()
            )
            if key_var:
                self.embedding.api_key = env.get(key_var) or None

        self.database.path = env.get("CLEARMARK_DB") or self.database.path
        return self


def load_settings(config_path: Path | str | None = None, use_env: bool = True) -> Settings:
    """Load settings from YAML configuration file.

    Args:
        config_path: Path to configuration file. If None, uses default config.yaml
        use_env: Overlay environment variables on top of the file

    Returns:
        Settings object with loaded configuration
    """
    if config_path is None:
        config_path = Path(__file__).parent.parent.parent.parent / "config.yaml"
    else:
        config_path = Path(config_path)

    settings = Settings()
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data:
            settings = Settings.from_dict(data)

    if use_env:
        settings.apply_env()
    return settings
