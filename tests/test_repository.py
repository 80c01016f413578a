import pytest

from clearmark.errors import JobNotFoundError, PersistenceError
from clearmark.trademark.models import (
    ConnectorFailure,
    FailureKind,
    Hit,
    JobStatus,
    JobSummary,
    MarkStatus,
    RiskLevel,
    SimilarityVector,
    Territory,
)
from clearmark.trademark.risk import classify, recommendation_for


def make_hit(text: str, aggregate: float, sources=("EUIPO",)) -> Hit:
    return Hit(
        text=text,
        nice_classes=(9, 35),
        sources=frozenset(sources),
        similarity=SimilarityVector(jw=0.9, lev=0.8, ph=1.0, sem=0.0, aggregate=aggregate),
        risk=classify(aggregate),
        application_number=f"APP-{text}",
        status_label="Registered",
        status=MarkStatus.REGISTERED,
        owner="Owner",
        embedding=[0.1, 0.2],
    )


def make_summary(hits) -> JobSummary:
    best = max((h.aggregate for h in hits), default=0.0)
    return JobSummary(
        global_risk=classify(best),
        recommendation=recommendation_for(classify(best)),
        max_aggregate=best,
        hit_count=len(hits),
        connector_failures=[ConnectorFailure("INPI", FailureKind.TIMEOUT, "slow")],
    )


class TestJobs:
    def test_create_and_get(self, repository):
        job = repository.create_job("MEREA", [35, 9, 9], Territory.ALL)

        assert job.status is JobStatus.PENDING
        assert job.nice_classes == (9, 35)

        loaded = repository.get_job(job.id)
        assert loaded.query == "MEREA"
        assert loaded.territory is Territory.ALL
        assert loaded.summary is None
        assert loaded.hits == []

    def test_unknown_job(self, repository):
        assert repository.get_job("missing") is None
        with pytest.raises(JobNotFoundError):
            repository.set_status("missing", JobStatus.RUNNING)

    def test_create_job_unreadable_after_insert(self, repository, monkeypatch):
        monkeypatch.setattr(repository, "get_job", lambda job_id, with_hits=True: None)
        with pytest.raises(PersistenceError):
            repository.create_job("MEREA", [9], Territory.EU)

    def test_set_status(self, repository):
        job = repository.create_job("MEREA", [9], Territory.EU)
        repository.set_status(job.id, JobStatus.RUNNING)
        assert repository.get_job(job.id).status is JobStatus.RUNNING

    def test_list_and_count(self, repository):
        first = repository.create_job("AAA", [9], Territory.EU)
        second = repository.create_job("BBB", [9], Territory.FR)
        repository.set_status(first.id, JobStatus.ERROR)

        assert [j.id for j in repository.list_jobs()] == [second.id, first.id]
        assert [j.id for j in repository.list_jobs(status=JobStatus.ERROR)] == [first.id]
        assert repository.list_jobs(limit=1)[0].id == second.id

        counts = repository.count_by_status()
        assert counts == {"PENDING": 1, "RUNNING": 0, "DONE": 0, "ERROR": 1}


class TestHits:
    def test_complete_run_round_trip(self, repository):
        job = repository.create_job("MEREA", [9], Territory.ALL)
        hits = [make_hit("MEREO", 0.6), make_hit("MEREA", 0.9, sources=("INPI", "EUIPO"))]
        summary = make_summary(hits)

        repository.complete_run(job.id, hits, summary)
        loaded = repository.get_job(job.id)

        assert loaded.status is JobStatus.DONE
        assert loaded.summary == summary
        assert [h.text for h in loaded.hits] == ["MEREA", "MEREO"]
        assert loaded.hits[0].sources == frozenset({"INPI", "EUIPO"})
        assert loaded.hits[0].risk is RiskLevel.HIGH
        assert loaded.hits[0].embedding == [0.1, 0.2]
        assert loaded.hits[0] == hits[1]

    def test_replace_hits_is_not_additive(self, repository):
        job = repository.create_job("MEREA", [9], Territory.EU)
        repository.replace_hits(job.id, [make_hit("A", 0.5), make_hit("B", 0.4)])
        repository.replace_hits(job.id, [make_hit("C", 0.3)])

        assert [h.text for h in repository.get_hits(job.id)] == ["C"]

    def test_failed_write_keeps_previous_result(self, repository, monkeypatch):
        job = repository.create_job("MEREA", [9], Territory.EU)
        old_hits = [make_hit("OLD", 0.5)]
        repository.complete_run(job.id, old_hits, make_summary(old_hits))
        repository.set_status(job.id, JobStatus.RUNNING)

        original = repository._hit_row
        calls = []

        def flaky_row(job_id, hit):
            calls.append(hit.text)
            if len(calls) == 2:
                return (job_id, None) + original(job_id, hit)[2:]
            return original(job_id, hit)

        monkeypatch.setattr(repository, "_hit_row", flaky_row)
        new_hits = [make_hit("NEW1", 0.9), make_hit("NEW2", 0.8)]

        with pytest.raises(PersistenceError):
            repository.complete_run(job.id, new_hits, make_summary(new_hits))

        loaded = repository.get_job(job.id)
        assert [h.text for h in loaded.hits] == ["OLD"]
        assert loaded.status is JobStatus.RUNNING
        assert loaded.summary.hit_count == 1

    def test_set_summary(self, repository):
        job = repository.create_job("MEREA", [9], Territory.EU)
        summary = make_summary([])
        repository.set_summary(job.id, summary)

        loaded = repository.get_job(job.id, with_hits=False)
        assert loaded.summary == summary
        assert loaded.summary.global_risk is RiskLevel.LOW
        assert loaded.status is JobStatus.PENDING

    def test_complete_run_unknown_job(self, repository):
        with pytest.raises(JobNotFoundError):
            repository.complete_run("missing", [], make_summary([]))

    def test_deleting_job_cascades(self, repository):
        job = repository.create_job("MEREA", [9], Territory.EU)
        repository.replace_hits(job.id, [make_hit("A", 0.5)])
        with repository._connect() as conn:
            conn.execute("DELETE FROM search_jobs WHERE id = ?", (job.id,))
        assert repository.get_hits(job.id) == []
