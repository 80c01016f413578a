"""Trademark comparison primitives.

This package holds the data model of search jobs and the pure algorithms of
the search pipeline: text normalization, similarity scoring, cross-registry
fusion and risk classification.

Usage:
    from clearmark.trademark import SimilarityEngine, classify

    vector = SimilarityEngine().score("MERÉA", "MEREA")
    print(classify(vector.aggregate))  # RiskLevel.HIGH, MEDIUM or LOW
"""

from clearmark.trademark.fusion import fuse
from clearmark.trademark.models import (
    ConnectorFailure,
    ConnectorResult,
    FailureKind,
    Hit,
    JobStatus,
    JobSummary,
    MarkStatus,
    RawHit,
    RiskLevel,
    ScoredHit,
    SearchJob,
    SimilarityVector,
    Source,
    Territory,
)
from clearmark.trademark.normalize import dedup_key, normalize
from clearmark.trademark.risk import classify, global_risk, recommendation_for
from clearmark.trademark.similarity import SimilarityEngine, SimilarityWeights

__all__ = [
    "ConnectorFailure",
    "ConnectorResult",
    "FailureKind",
    "Hit",
    "JobStatus",
    "JobSummary",
    "MarkStatus",
    "RawHit",
    "RiskLevel",
    "ScoredHit",
    "SearchJob",
    "SimilarityEngine",
    "SimilarityVector",
    "SimilarityWeights",
    "Source",
    "Territory",
    "classify",
    "dedup_key",
    "fuse",
    "global_risk",
    "normalize",
    "recommendation_for",
]
