"""Similarity algorithms for trademark name comparison.

This module provides the four signals used to compare a query against a
candidate mark returned by a registry:
- Jaro-Winkler (prefix-weighted edit similarity)
- Levenshtein (edit distance) similarity
- Phonetic match (Double Metaphone)
- Semantic similarity (cosine of text embeddings)

and their fixed weighted combination.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass

from metaphone import doublemetaphone
from rapidfuzz.distance import Levenshtein

from clearmark.trademark.models import SimilarityVector

# Jaro-Winkler prefix bonus
PREFIX_SCALE = 0.1
MAX_PREFIX = 4


def clamp01(value: float) -> float:
    """Clamp a score into [0, 1]; NaN becomes 0."""
    if value is None or math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


def _jaro_matches(s1: str, s2: str) -> tuple[int, float]:
    """Count matching characters and (halved) transpositions."""
    match_distance = max(0, max(len(s1), len(s2)) // 2 - 1)
    s1_matches = [False] * len(s1)
    s2_matches = [False] * len(s2)
    matches = 0

    for i, c1 in enumerate(s1):
        start = max(0, i - match_distance)
        end = min(i + match_distance + 1, len(s2))
        for j in range(start, end):
            if s2_matches[j] or c1 != s2[j]:
                continue
            s1_matches[i] = True
            s2_matches[j] = True
            matches += 1
            break

    transpositions = 0
    k = 0
    for i, c1 in enumerate(s1):
        if not s1_matches[i]:
            continue
        while not s2_matches[k]:
            k += 1
        if c1 != s2[k]:
            transpositions += 1
        k += 1

    return matches, transpositions / 2


def jaro_winkler(name_a: str, name_b: str) -> float:
    """Calculate Jaro-Winkler similarity.

    Base Jaro similarity from matched characters and transpositions,
    boosted by the length of the common prefix (at most 4 characters).

    Args:
        name_a: First name
        name_b: Second name

    Returns:
        Similarity score (0.0-1.0); 0.0 if either name is empty
    """
    s1 = name_a or ""
    s2 = name_b or ""
    if not s1 or not s2:
        return 0.0

    matches, transpositions = _jaro_matches(s1, s2)
    if not matches:
        return 0.0

    jaro = (matches / len(s1) + matches / len(s2) + (matches - transpositions) / matches) / 3

    prefix = 0
    for c1, c2 in zip(s1[:MAX_PREFIX], s2[:MAX_PREFIX]):
        if c1 != c2:
            break
        prefix += 1

    return clamp01(jaro + prefix * PREFIX_SCALE * (1 - jaro))


def levenshtein_similarity(name_a: str, name_b: str) -> float:
    """Calculate string similarity based on Levenshtein distance.

    Comparison is case-insensitive. Two empty names are identical.

    Args:
        name_a: First name
        name_b: Second name

    Returns:
        Similarity score (0.0-1.0)
    """
    s1 = name_a or ""
    s2 = name_b or ""
    if not s1 and not s2:
        return 1.0

    distance = Levenshtein.distance(s1.lower(), s2.lower())
    max_len = max(len(s1), len(s2), 1)
    return clamp01(1.0 - distance / max_len)


def phonetic_codes(name: str) -> set[str]:
    """Return the non-empty Double Metaphone codes of a name."""
    return {code for code in doublemetaphone(name or "") if code}


def phonetic_match(name_a: str, name_b: str) -> float:
    """Binary phonetic signal: 1.0 if the names share a Double Metaphone code."""
    return 1.0 if phonetic_codes(name_a) & phonetic_codes(name_b) else 0.0


def cosine_similarity(u: Sequence[float] | None, v: Sequence[float] | None) -> float:
    """Cosine similarity of two embeddings over their common length.

    Returns 0.0 when either vector is missing, empty or has zero norm.
    """
    if not u or not v:
        return 0.0

    n = min(len(u), len(v))
    dot = norm_u = norm_v = 0.0
    for i in range(n):
        x, y = float(u[i]), float(v[i])
        dot += x * y
        norm_u += x * x
        norm_v += y * y

    if not norm_u or not norm_v:
        return 0.0
    return clamp01(dot / (math.sqrt(norm_u) * math.sqrt(norm_v)))


@dataclass(frozen=True)
class SimilarityWeights:
    """Weights of the aggregate score. A configuration constant, not learned."""

    jw: float = 0.35
    lev: float = 0.35
    ph: float = 0.20
    sem: float = 0.10


class SimilarityEngine:
    """Computes the similarity vector of a query against candidate marks.

    Usage:
        engine = SimilarityEngine()
        vector = engine.score("MEREA", "MERIA")
        print(vector.aggregate)
    """

    def __init__(self, weights: SimilarityWeights | None = None):
        self.weights = weights or SimilarityWeights()

    def aggregate(self, jw: float, lev: float, ph: float, sem: float) -> float:
        """Weighted sum of the four signals, clamped to [0, 1]."""
        w = self.weights
        return clamp01(w.jw * jw + w.lev * lev + w.ph * ph + w.sem * sem)

    def score(
        self,
        query: str,
        candidate: str,
        query_embedding: Sequence[float] | None = None,
        candidate_embedding: Sequence[float] | None = None,
    ) -> SimilarityVector:
        """Score a candidate mark against the query.

        Args:
            query: Searched mark text
            candidate: Candidate mark text
            query_embedding: Embedding of the query, if available
            candidate_embedding: Embedding of the candidate, if available

        Returns:
            SimilarityVector with all signals and the aggregate
        """
        jw = clamp01(jaro_winkler(query, candidate))
        lev = clamp01(levenshtein_similarity(query, candidate))
        ph = clamp01(phonetic_match(query, candidate))
        sem = clamp01(cosine_similarity(query_embedding, candidate_embedding))

        return SimilarityVector(
            jw=jw,
            lev=lev,
            ph=ph,
            sem=sem,
            aggregate=self.aggregate(jw, lev, ph, sem),
        )
