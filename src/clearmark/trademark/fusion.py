"""Cross-registry deduplication of scored hits.

The same mark is often reported by several registries (a French filing shows
up both at INPI and, via its EU extension, at EUIPO). Hits sharing a dedup key
(normalized text + sorted classes) are merged into one: the best-scoring
candidate provides the similarity data, the sources are unioned and the
metadata of the first candidate seen is kept where present.
"""

from collections.abc import Iterable
from dataclasses import replace

from clearmark.trademark.models import Hit, MarkStatus, ScoredHit
from clearmark.trademark.normalize import dedup_key


def merge(accumulated: Hit, incoming: Hit) -> Hit:
    """Merge two hits sharing a dedup key.

    Args:
        accumulated: Hit built so far (takes precedence for metadata)
        incoming: Newly seen hit

    Returns:
        Merged hit
    """
    best = incoming if incoming.aggregate > accumulated.aggregate else accumulated

    status = accumulated.status
    if status is MarkStatus.UNKNOWN:
        status = incoming.status

    return replace(
        best,
        sources=accumulated.sources | incoming.sources,
        application_number=accumulated.application_number or incoming.application_number,
        status_label=accumulated.status_label or incoming.status_label,
        status=status,
        owner=accumulated.owner or incoming.owner,
    )


def fuse(hits: Iterable[ScoredHit | Hit]) -> list[Hit]:
    """Deduplicate hits across registries.

    Accepts scored hits straight from the similarity engine as well as
    already fused hits, so that fusing its own output is a no-op.

    Args:
        hits: Scored or fused hits of one job

    Returns:
        One hit per dedup key, in first-seen order
    """
    by_key: dict[str, Hit] = {}

    for item in hits:
        hit = Hit.from_scored(item) if isinstance(item, ScoredHit) else item
        key = dedup_key(hit.text, hit.nice_classes)

        previous = by_key.get(key)
        by_key[key] = hit if previous is None else merge(previous, hit)

    return list(by_key.values())
