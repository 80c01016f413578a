import threading

import pytest

from clearmark.embeddings import DisabledEmbeddingProvider
from clearmark.config.settings import EmbeddingConfig
from clearmark.errors import JobNotFoundError, SearchRunError
from clearmark.pipeline import RunStage, SearchOrchestrator
from clearmark.trademark.models import FailureKind, JobStatus, RiskLevel, Source, Territory
from clearmark.trademark.risk import RECOMMENDATIONS

from conftest import FakeConnector, FakeEmbedder, make_raw


def orchestrator_for(settings, repository, connectors, embedder=None, **kwargs) -> SearchOrchestrator:
    return SearchOrchestrator(
        settings,
        repository,
        {c.source: c for c in connectors},
        embedder or DisabledEmbeddingProvider(EmbeddingConfig(enabled=False)),
        **kwargs,
    )


class TestRun:
    def test_done_with_fused_hits(self, settings, repository, registered_hit):
        job = repository.create_job("MEREA", [9], Territory.ALL)
        inpi = FakeConnector(Source.INPI, [make_raw("Meréa", classes=(9,), source=Source.INPI)])
        euipo = FakeConnector(Source.EUIPO, [registered_hit, make_raw("ZONIFY", source=Source.EUIPO)])

        result = orchestrator_for(settings, repository, [inpi, euipo]).run(job.id)

        assert result.status is JobStatus.DONE
        assert [h.text for h in result.hits][0] in ("MEREA", "Meréa")
        merged = result.hits[0]
        assert merged.sources == frozenset({"INPI", "EUIPO"})
        assert merged.owner == "Merea SAS"
        assert result.summary.global_risk is RiskLevel.HIGH
        assert result.summary.hit_count == 2
        assert result.summary.connector_failures == []

        stored = repository.get_job(job.id)
        assert stored.status is JobStatus.DONE
        assert stored.summary == result.summary
        assert [h.text for h in stored.hits] == [h.text for h in result.hits]

    def test_hits_sorted_by_aggregate(self, settings, repository):
        job = repository.create_job("NEXUS", [9], Territory.EU)
        euipo = FakeConnector(
            Source.EUIPO,
            [make_raw("ZONIFY"), make_raw("NEXUS"), make_raw("NEXTRA")],
        )
        result = orchestrator_for(settings, repository, [euipo]).run(job.id)

        aggregates = [h.aggregate for h in result.hits]
        assert aggregates == sorted(aggregates, reverse=True)
        assert result.hits[0].text == "NEXUS"

    def test_query_and_classes_are_passed(self, settings, repository):
        job = repository.create_job("MEREA", [35, 9], Territory.FR)
        inpi = FakeConnector(Source.INPI)
        orchestrator_for(settings, repository, [inpi]).run(job.id)
        assert inpi.calls == [("MEREA", [9, 35], 50)]

    def test_territory_selects_connectors(self, settings, repository):
        job = repository.create_job("MEREA", [9], Territory.EU)
        inpi = FakeConnector(Source.INPI)
        euipo = FakeConnector(Source.EUIPO)
        orchestrator_for(settings, repository, [inpi, euipo]).run(job.id)
        assert inpi.calls == []
        assert len(euipo.calls) == 1

    def test_empty_result_is_low(self, settings, repository):
        job = repository.create_job("QWXZ", [9], Territory.ALL)
        result = orchestrator_for(
            settings, repository, [FakeConnector(Source.INPI), FakeConnector(Source.EUIPO)]
        ).run(job.id)

        assert result.status is JobStatus.DONE
        assert result.hits == []
        assert result.summary.global_risk is RiskLevel.LOW
        assert result.summary.recommendation == RECOMMENDATIONS[RiskLevel.LOW]
        assert result.summary.max_aggregate == 0.0

    def test_rerun_replaces_hits(self, settings, repository):
        job = repository.create_job("MEREA", [9], Territory.EU)
        euipo = FakeConnector(Source.EUIPO, [make_raw("MEREA"), make_raw("MEREO")])
        orchestrator = orchestrator_for(settings, repository, [euipo])

        orchestrator.run(job.id)
        euipo.hits = [make_raw("MEREA")]
        orchestrator.run(job.id)

        stored = repository.get_job(job.id)
        assert [h.text for h in stored.hits] == ["MEREA"]
        assert stored.summary.hit_count == 1


class TestFailures:
    def test_failing_connector_does_not_affect_sibling(
        self, settings, repository, registered_hit, failing_connector
    ):
        job = repository.create_job("MEREA", [9], Territory.ALL)
        euipo_hits = [registered_hit]

        alone = orchestrator_for(
            settings, repository, [FakeConnector(Source.EUIPO, euipo_hits)]
        ).run(repository.create_job("MEREA", [9], Territory.EU).id)

        result = orchestrator_for(
            settings,
            repository,
            [failing_connector(Source.INPI, FailureKind.TIMEOUT), FakeConnector(Source.EUIPO, euipo_hits)],
        ).run(job.id)

        assert result.status is JobStatus.DONE
        assert result.hits == alone.hits
        [failure] = result.summary.connector_failures
        assert failure.source == "INPI"
        assert failure.kind is FailureKind.TIMEOUT

    def test_all_connectors_failing_is_still_done(self, settings, repository, failing_connector):
        job = repository.create_job("MEREA", [9], Territory.ALL)
        result = orchestrator_for(
            settings,
            repository,
            [
                failing_connector(Source.INPI, FailureKind.DISABLED),
                failing_connector(Source.EUIPO, FailureKind.AUTH_FAILURE),
            ],
        ).run(job.id)

        assert result.status is JobStatus.DONE
        assert result.summary.global_risk is RiskLevel.LOW
        assert [f.source for f in result.summary.connector_failures] == ["INPI", "EUIPO"]

    def test_missing_connector_is_reported(self, settings, repository):
        job = repository.create_job("MEREA", [9], Territory.FR)
        result = orchestrator_for(settings, repository, []).run(job.id)
        [failure] = result.summary.connector_failures
        assert failure.kind is FailureKind.DISABLED

    def test_persistence_failure_marks_error(self, settings, repository, monkeypatch):
        job = repository.create_job("MEREA", [9], Territory.EU)

        def broken(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(repository, "complete_run", broken)
        orchestrator = orchestrator_for(settings, repository, [FakeConnector(Source.EUIPO, [make_raw("MEREA")])])

        with pytest.raises(SearchRunError):
            orchestrator.run(job.id)

        stored = repository.get_job(job.id)
        assert stored.status is JobStatus.ERROR
        assert stored.hits == []

    def test_unknown_job(self, settings, repository):
        with pytest.raises(JobNotFoundError):
            orchestrator_for(settings, repository, []).run("missing")

    def test_status_is_running_during_search(self, settings, repository):
        job = repository.create_job("MEREA", [9], Territory.EU)
        seen = []
        euipo = FakeConnector(
            Source.EUIPO, hook=lambda: seen.append(repository.get_job(job.id).status)
        )
        orchestrator_for(settings, repository, [euipo]).run(job.id)
        assert seen == [JobStatus.RUNNING]
        assert repository.get_job(job.id).status is JobStatus.DONE


class TestEmbeddings:
    def test_semantic_signal(self, settings, repository):
        job = repository.create_job("MEREA", [9], Territory.EU)
        embedder = FakeEmbedder({"MEREA": [1.0, 0.0], "OCEANA": [1.0, 0.0]})
        euipo = FakeConnector(Source.EUIPO, [make_raw("OCEANA")])

        result = orchestrator_for(settings, repository, [euipo], embedder).run(job.id)
        assert result.hits[0].similarity.sem == pytest.approx(1.0)
        assert result.hits[0].embedding == [1.0, 0.0]

    def test_failed_candidate_embedding_only_affects_that_candidate(self, settings, repository):
        job = repository.create_job("MEREA", [9], Territory.EU)
        embedder = FakeEmbedder({"MEREA": [1.0, 0.0], "OCEANA": [1.0, 0.0]})
        euipo = FakeConnector(Source.EUIPO, [make_raw("OCEANA"), make_raw("UNKNOWN")])

        result = orchestrator_for(settings, repository, [euipo], embedder).run(job.id)
        by_text = {h.text: h for h in result.hits}
        assert by_text["OCEANA"].similarity.sem == pytest.approx(1.0)
        assert by_text["UNKNOWN"].similarity.sem == 0.0
        assert result.status is JobStatus.DONE

    def test_no_query_embedding_skips_candidates(self, settings, repository):
        job = repository.create_job("MEREA", [9], Territory.EU)
        embedder = FakeEmbedder({"OCEANA": [1.0, 0.0]})
        euipo = FakeConnector(Source.EUIPO, [make_raw("OCEANA")])

        result = orchestrator_for(settings, repository, [euipo], embedder).run(job.id)
        assert embedder.calls == ["MEREA"]
        assert result.hits[0].similarity.sem == 0.0

    def test_malformed_query_vector_does_not_abort_run(self, settings, repository):
        job = repository.create_job("MEREA", [9], Territory.EU)
        embedder = FakeEmbedder({"MEREA": [None, "x"], "OCEANA": [1.0, 0.0]})
        euipo = FakeConnector(Source.EUIPO, [make_raw("OCEANA")])

        result = orchestrator_for(settings, repository, [euipo], embedder).run(job.id)
        assert result.status is JobStatus.DONE
        assert result.hits[0].similarity.sem == 0.0
        assert repository.get_job(job.id).status is JobStatus.DONE


class TestConcurrency:
    def test_runs_of_same_job_are_serialized(self, settings, repository):
        job = repository.create_job("MEREA", [9], Territory.EU)
        active = []
        overlap = []
        lock = threading.Lock()

        def hook():
            with lock:
                active.append(1)
                if len(active) > 1:
                    overlap.append(True)
            threading.Event().wait(0.05)
            with lock:
                active.pop()

        euipo = FakeConnector(Source.EUIPO, [make_raw("MEREA")], hook=hook)
        orchestrator = orchestrator_for(settings, repository, [euipo])

        errors = []

        def run():
            try:
                orchestrator.run(job.id)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=run) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert overlap == []
        assert len(euipo.calls) == 3
        assert repository.get_job(job.id).status is JobStatus.DONE
        assert orchestrator._locks == {}

    def test_job_locks_are_released_after_runs(self, settings, repository):
        job = repository.create_job("MEREA", [9], Territory.EU)
        orchestrator = orchestrator_for(settings, repository, [FakeConnector(Source.EUIPO, [])])

        orchestrator.run(job.id)
        with pytest.raises(JobNotFoundError):
            orchestrator.run("missing")

        assert orchestrator._locks == {}
        assert orchestrator._lock_users == {}

    def test_progress_callback(self, settings, repository):
        job = repository.create_job("MEREA", [9], Territory.EU)
        stages = []
        orchestrator = orchestrator_for(
            settings,
            repository,
            [FakeConnector(Source.EUIPO, [make_raw("MEREA")])],
            progress_callback=lambda stage, message: stages.append(stage),
        )
        orchestrator.run(job.id)
        assert stages[0] is RunStage.FETCH
        assert stages[-1] is RunStage.PERSIST
