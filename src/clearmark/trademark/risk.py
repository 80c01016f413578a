"""Risk classification of aggregate similarity scores."""

from collections.abc import Iterable

from clearmark.trademark.models import Hit, RiskLevel

HIGH_THRESHOLD = 0.75
MEDIUM_THRESHOLD = 0.55

RECOMMENDATIONS: dict[RiskLevel, str] = {
    RiskLevel.HIGH: "High risk: consider a spelling variant or a different name.",
    RiskLevel.MEDIUM: "Medium risk: narrow the specification (classes, goods and services).",
    RiskLevel.LOW: "Low risk: filing looks feasible, subject to a final legal review.",
}


def classify(aggregate: float) -> RiskLevel:
    """Map an aggregate score to a risk band.

    Boundary values resolve to the higher band.
    """
    if aggregate >= HIGH_THRESHOLD:
        return RiskLevel.HIGH
    if aggregate >= MEDIUM_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def max_aggregate(hits: Iterable[Hit]) -> float:
    """Highest aggregate score among hits, 0.0 if there are none."""
    return max((h.similarity.aggregate for h in hits), default=0.0)


def global_risk(hits: Iterable[Hit]) -> RiskLevel:
    """Risk band of a whole job: the band of its best-scoring hit."""
    return classify(max_aggregate(hits))


def recommendation_for(risk: RiskLevel) -> str:
    return RECOMMENDATIONS[risk]
