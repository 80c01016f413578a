import pytest
import yaml

from clearmark.config import Settings, load_settings
from clearmark.trademark.similarity import SimilarityWeights


class TestLoadSettings:
    def test_defaults_when_file_missing(self, tmp_path):
        settings = load_settings(tmp_path / "missing.yaml", use_env=False)
        assert settings.search.default_limit == 50
        assert settings.euipo.timeout_seconds == 12.0
        assert settings.inpi.timeout_seconds == 20.0
        assert settings.scoring.weights == SimilarityWeights(0.35, 0.35, 0.20, 0.10)

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "database": {"path": "x.db"},
                    "search": {"default_nice_classes": [25]},
                    "euipo": {"mock": True},
                    "embedding": {"provider": "ollama", "max_workers": 2},
                    "logging": {"level": "DEBUG"},
                }
            ),
            encoding="utf-8",
        )
        settings = load_settings(path, use_env=False)

        assert settings.database.path == "x.db"
        assert settings.search.default_nice_classes == [25]
        assert settings.euipo.mock is True
        assert settings.embedding.provider == "ollama"
        assert settings.embedding.max_workers == 2
        assert settings.scoring.weights == SimilarityWeights(0.35, 0.35, 0.20, 0.10)
        assert settings.logging.level == "DEBUG"

    def test_scoring_weights_cannot_be_overridden(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"scoring": {"weights": {"sem": 0.0}}}), encoding="utf-8")
        with pytest.raises(ValueError, match="fixed"):
            load_settings(path, use_env=False)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert load_settings(path, use_env=False).search.default_limit == 50


class TestApplyEnv:
    def test_credentials_and_flags(self):
        settings = Settings().apply_env(
            {
                "EUIPO_PRODUCT_KEY": "key",
                "EUIPO_PRODUCT_SECRET": "secret",
                "EUIPO_MOCK": "1",
                "INPI_BASE": "https://inpi.test",
                "INPI_BEARER": "tok",
                "INPI_ENABLED": "false",
                "SEMANTIC_EMBEDDINGS": "0",
                "OPENAI_API_KEY": "sk",
                "CLEARMARK_DB": "/tmp/x.db",
            }
        )
        assert settings.euipo.product_key == "key"
        assert settings.euipo.product_secret == "secret"
        assert settings.euipo.mock is True
        assert settings.inpi.base_url == "https://inpi.test"
        assert settings.inpi.bearer_token == "tok"
        assert settings.inpi.enabled is False
        assert settings.embedding.enabled is False
        assert settings.embedding.api_key == "sk"
        assert settings.database.path == "/tmp/x.db"

    def test_provider_specific_key(self):
        settings = Settings().apply_env(
            {"EMBEDDING_PROVIDER": "gemini", "GOOGLE_API_KEY": "g", "OPENAI_API_KEY": "sk"}
        )
        assert settings.embedding.provider == "gemini"
        assert settings.embedding.api_key == "g"

    def test_empty_values_keep_file_values(self):
        settings = Settings()
        settings.euipo.product_key = "from-file"
        settings.apply_env({"EUIPO_PRODUCT_KEY": ""})
        assert settings.euipo.product_key == "from-file"

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("euipo:\n  product_key: from-file\n", encoding="utf-8")
        monkeypatch.setenv("EUIPO_PRODUCT_KEY", "from-env")
        assert load_settings(path).euipo.product_key == "from-env"
