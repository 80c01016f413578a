from collections.abc import Callable

import pytest

from clearmark.config import Settings
from clearmark.config.settings import EmbeddingConfig
from clearmark.connectors import BaseConnector
from clearmark.db import JobRepository
from clearmark.embeddings import BaseEmbeddingProvider
from clearmark.errors import ConnectorError
from clearmark.trademark.models import FailureKind, MarkStatus, RawHit, Source


def make_raw(
    text: str,
    classes: tuple[int, ...] = (9,),
    source: Source = Source.EUIPO,
    **kwargs,
) -> RawHit:
    return RawHit(text=text, nice_classes=classes, source=source, **kwargs)


class FakeConnector(BaseConnector):
    """Connector returning canned hits, or raising a canned error."""

    def __init__(
        self,
        source: Source,
        hits: list[RawHit] | None = None,
        error: Exception | None = None,
        hook: Callable[[], None] | None = None,
    ):
        super().__init__(timeout=1.0)
        self.source = source
        self.hits = hits or []
        self.error = error
        self.hook = hook
        self.calls: list[tuple[str, list[int], int]] = []

    @property
    def is_configured(self) -> bool:
        return True

    def _search(self, query: str, classes: list[int], size: int) -> list[RawHit]:
        self.calls.append((query, classes, size))
        if self.hook:
            self.hook()
        if self.error:
            raise self.error
        return list(self.hits)


class FakeEmbedder(BaseEmbeddingProvider):
    """Embedder with a fixed vector per text; unknown texts fail."""

    def __init__(self, vectors: dict[str, list[float]] | None = None, enabled: bool = True):
        super().__init__(EmbeddingConfig(enabled=enabled, provider="fake"))
        self.vectors = vectors or {}
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return "fake"

    def _embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if text not in self.vectors:
            raise RuntimeError(f"no vector for {text}")
        return self.vectors[text]


@pytest.fixture
def settings(tmp_path) -> Settings:
    settings = Settings()
    settings.database.path = str(tmp_path / "clearmark.db")
    settings.embedding.enabled = False
    settings.euipo.mock = True
    settings.inpi.mock = True
    return settings


@pytest.fixture
def repository(settings) -> JobRepository:
    return JobRepository(settings)


@pytest.fixture
def failing_connector() -> Callable[[Source, FailureKind], FakeConnector]:
    def build(source: Source, kind: FailureKind = FailureKind.TIMEOUT) -> FakeConnector:
        return FakeConnector(source, error=ConnectorError(kind, f"{source.value} down"))

    return build


@pytest.fixture
def registered_hit() -> RawHit:
    return make_raw(
        "MEREA",
        classes=(9,),
        source=Source.EUIPO,
        application_number="018000042",
        status=MarkStatus.REGISTERED,
        status_label="Registered",
        owner="Merea SAS",
    )
