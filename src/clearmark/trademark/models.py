"""Data models for trademark search jobs and their hits."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Territory(str, Enum):
    """Which registries a search job queries."""

    FR = "FR"
    EU = "EU"
    ALL = "ALL"


class Source(str, Enum):
    """Registry a raw hit came from."""

    INPI = "INPI"
    EUIPO = "EUIPO"
    FIXTURE = "FIXTURE"


class JobStatus(str, Enum):
    """Lifecycle states of a search job."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    DONE = "DONE"
    ERROR = "ERROR"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.DONE, JobStatus.ERROR)


class MarkStatus(str, Enum):
    """Normalized registry status of a trademark."""

    REGISTERED = "REGISTERED"
    PENDING = "PENDING"
    OPPOSED = "OPPOSED"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"

    @property
    def is_active(self) -> bool:
        """Check if a mark with this status can still block a new filing."""
        return self in (MarkStatus.REGISTERED, MarkStatus.PENDING, MarkStatus.OPPOSED)


class RiskLevel(str, Enum):
    """Ordinal risk band derived from an aggregate similarity score."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @property
    def rank(self) -> int:
        return ("LOW", "MEDIUM", "HIGH").index(self.value)


class FailureKind(str, Enum):
    """Reason a registry connector returned no hits."""

    TIMEOUT = "TIMEOUT"
    TRANSPORT = "TRANSPORT"
    AUTH_FAILURE = "AUTH_FAILURE"
    UPSTREAM_STATUS = "UPSTREAM_STATUS"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    DISABLED = "DISABLED"


@dataclass(frozen=True)
class RawHit:
    """One candidate mark as reported by a single registry.

    Attributes:
        text: Verbal element of the mark, as displayed by the registry
        nice_classes: Nice classes the mark is filed in
        source: Registry the hit came from
        application_number: Registry application/registration number
        status: Normalized status
        status_label: Status wording as reported upstream
        owner: Holder of the mark (if available)
        filing_date: Filing date as an ISO string (if available)
        image_url: Link to the mark image (if the registry exposes one)
    """

    text: str
    nice_classes: tuple[int, ...]
    source: Source
    application_number: str | None = None
    status: MarkStatus = MarkStatus.UNKNOWN
    status_label: str | None = None
    owner: str | None = None
    filing_date: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class SimilarityVector:
    """Similarity signals for a (query, candidate) pair, each in [0, 1]."""

    jw: float = 0.0
    lev: float = 0.0
    ph: float = 0.0
    sem: float = 0.0
    aggregate: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "jw": self.jw,
            "lev": self.lev,
            "ph": self.ph,
            "sem": self.sem,
            "aggregate": self.aggregate,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SimilarityVector":
        return cls(
            jw=float(data.get("jw", 0.0)),
            lev=float(data.get("lev", 0.0)),
            ph=float(data.get("ph", 0.0)),
            sem=float(data.get("sem", 0.0)),
            aggregate=float(data.get("aggregate", 0.0)),
        )


@dataclass(frozen=True)
class ScoredHit:
    """A raw hit together with its similarity to the query."""

    raw: RawHit
    similarity: SimilarityVector
    risk: RiskLevel
    embedding: list[float] | None = None


@dataclass
class Hit:
    """A deduplicated hit as persisted for a job.

    Attributes:
        text: Verbal element of the winning candidate
        nice_classes: Sorted Nice classes (part of the dedup key)
        sources: Every registry that reported this mark
        application_number: First known application number
        status_label: First known upstream status wording
        status: First known normalized status
        owner: First known holder
        similarity: Similarity vector of the best-scoring candidate
        risk: Risk band of the best-scoring candidate
        embedding: Embedding of the best-scoring candidate (if computed)
    """

    text: str
    nice_classes: tuple[int, ...]
    sources: frozenset[str]
    similarity: SimilarityVector
    risk: RiskLevel
    application_number: str | None = None
    status_label: str | None = None
    status: MarkStatus = MarkStatus.UNKNOWN
    owner: str | None = None
    embedding: list[float] | None = None

    @classmethod
    def from_scored(cls, scored: ScoredHit) -> "Hit":
        raw = scored.raw
        return cls(
            text=raw.text,
            nice_classes=tuple(sorted(set(raw.nice_classes))),
            sources=frozenset({raw.source.value}),
            similarity=scored.similarity,
            risk=scored.risk,
            application_number=raw.application_number,
            status_label=raw.status_label,
            status=raw.status,
            owner=raw.owner,
            embedding=scored.embedding,
        )

    @property
    def aggregate(self) -> float:
        return self.similarity.aggregate

    @property
    def similarity_percent(self) -> int:
        """Return aggregate similarity as percentage."""
        return int(round(self.similarity.aggregate * 100))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "text": self.text,
            "nice_classes": list(self.nice_classes),
            "sources": sorted(self.sources),
            "application_number": self.application_number,
            "status_label": self.status_label,
            "status": self.status.value,
            "owner": self.owner,
            "similarity": self.similarity.to_dict(),
            "risk": self.risk.value,
        }


@dataclass(frozen=True)
class ConnectorFailure:
    """Diagnostic recorded when a connector could not contribute hits."""

    source: str
    kind: FailureKind
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"source": self.source, "kind": self.kind.value, "error": self.message}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConnectorFailure":
        return cls(
            source=data.get("source", ""),
            kind=FailureKind(data.get("kind", FailureKind.TRANSPORT.value)),
            message=data.get("error", ""),
        )


@dataclass
class ConnectorResult:
    """Outcome of a single connector search: hits or a failure, never both."""

    source: Source
    hits: list[RawHit] = field(default_factory=list)
    failure: ConnectorFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass
class JobSummary:
    """Overall verdict of a search run.

    Attributes:
        global_risk: Risk band of the best-scoring hit (LOW if no hits)
        recommendation: Fixed recommendation sentence for the global risk
        max_aggregate: Highest aggregate score among the hits
        hit_count: Number of deduplicated hits
        connector_failures: Non-fatal connector diagnostics of the run
    """

    global_risk: RiskLevel
    recommendation: str
    max_aggregate: float = 0.0
    hit_count: int = 0
    connector_failures: list[ConnectorFailure] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "global_risk": self.global_risk.value,
            "recommendation": self.recommendation,
            "max_aggregate": self.max_aggregate,
            "hit_count": self.hit_count,
            "connector_failures": [f.to_dict() for f in self.connector_failures],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JobSummary":
        return cls(
            global_risk=RiskLevel(data.get("global_risk", RiskLevel.LOW.value)),
            recommendation=data.get("recommendation", ""),
            max_aggregate=float(data.get("max_aggregate", 0.0)),
            hit_count=int(data.get("hit_count", 0)),
            connector_failures=[
                ConnectorFailure.from_dict(f) for f in data.get("connector_failures", [])
            ],
        )


@dataclass
class SearchJob:
    """A trademark search request and its latest result.

    Attributes:
        id: Opaque job identifier
        query: Mark text to clear
        nice_classes: Sorted, non-empty subset of 1..45
        territory: Registries to query
        status: Lifecycle status
        summary: Result summary of the last successful run
        hits: Hits of the last successful run (loaded on demand)
        created_at: Creation time
        updated_at: Last status/result change
    """

    id: str
    query: str
    nice_classes: tuple[int, ...]
    territory: Territory
    status: JobStatus = JobStatus.PENDING
    summary: JobSummary | None = None
    hits: list[Hit] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "query": self.query,
            "nice_classes": list(self.nice_classes),
            "territory": self.territory.value,
            "status": self.status.value,
            "summary": self.summary.to_dict() if self.summary else None,
            "hits": [h.to_dict() for h in self.hits],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
