from clearmark.trademark.fusion import fuse
from clearmark.trademark.models import MarkStatus, RiskLevel, ScoredHit, SimilarityVector, Source
from clearmark.trademark.risk import classify

from conftest import make_raw


def scored(text, source, aggregate, classes=(9,), **kwargs) -> ScoredHit:
    return ScoredHit(
        raw=make_raw(text, classes=classes, source=source, **kwargs),
        similarity=SimilarityVector(aggregate=aggregate),
        risk=classify(aggregate),
    )


class TestFuse:
    def test_same_mark_from_two_registries_is_merged(self):
        hits = fuse(
            [
                scored("MERÉA", Source.INPI, 0.70),
                scored("merea", Source.EUIPO, 0.80),
            ]
        )
        assert len(hits) == 1
        assert hits[0].sources == frozenset({"INPI", "EUIPO"})

    def test_best_aggregate_wins(self):
        hits = fuse(
            [
                scored("MEREA", Source.INPI, 0.60),
                scored("MEREA", Source.EUIPO, 0.80),
            ]
        )
        assert hits[0].aggregate == 0.80
        assert hits[0].risk is RiskLevel.HIGH

    def test_tie_keeps_first_seen(self):
        hits = fuse(
            [
                scored("Merea", Source.INPI, 0.70),
                scored("MEREA", Source.EUIPO, 0.70),
            ]
        )
        assert hits[0].text == "Merea"

    def test_first_known_metadata_is_kept(self):
        hits = fuse(
            [
                scored("MEREA", Source.INPI, 0.60, owner=None, application_number="FR-1"),
                scored(
                    "MEREA",
                    Source.EUIPO,
                    0.80,
                    owner="Merea SAS",
                    application_number="EU-1",
                    status=MarkStatus.REGISTERED,
                ),
            ]
        )
        assert hits[0].application_number == "FR-1"
        assert hits[0].owner == "Merea SAS"
        assert hits[0].status is MarkStatus.REGISTERED

    def test_different_classes_are_not_merged(self):
        hits = fuse(
            [
                scored("MEREA", Source.INPI, 0.70, classes=(9,)),
                scored("MEREA", Source.EUIPO, 0.70, classes=(35,)),
            ]
        )
        assert len(hits) == 2

    def test_first_seen_order(self):
        hits = fuse(
            [
                scored("B", Source.INPI, 0.1),
                scored("A", Source.INPI, 0.9),
                scored("B", Source.EUIPO, 0.2),
            ]
        )
        assert [h.text for h in hits] == ["B", "A"]

    def test_idempotent(self):
        once = fuse(
            [
                scored("MEREA", Source.INPI, 0.70),
                scored("MEREA", Source.EUIPO, 0.80),
                scored("NEXUS", Source.EUIPO, 0.30),
            ]
        )
        assert fuse(once) == once

    def test_empty(self):
        assert fuse([]) == []
