"""Search job orchestrator.

Drives one search run of a job through its state machine:

    PENDING -> RUNNING -> DONE | ERROR

Registry connectors are fanned out concurrently, every candidate is scored
against the query, duplicates reported by several registries are fused, and
the hits and summary of the run are persisted in one transaction.
"""

import logging
import threading
from collections.abc import Callable, Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum

from clearmark.config import Settings
from clearmark.connectors import BaseConnector, sources_for_territory
from clearmark.db.repository import JobRepository
from clearmark.embeddings import BaseEmbeddingProvider
from clearmark.errors import JobNotFoundError, SearchRunError
from clearmark.trademark.fusion import fuse
from clearmark.trademark.models import (
    ConnectorFailure,
    ConnectorResult,
    FailureKind,
    Hit,
    JobStatus,
    JobSummary,
    RawHit,
    ScoredHit,
    SearchJob,
    Source,
)
from clearmark.trademark.risk import classify, global_risk, max_aggregate, recommendation_for
from clearmark.trademark.similarity import SimilarityEngine

logger = logging.getLogger(__name__)


class RunStage(Enum):
    """Stages of a search run, reported through the progress callback."""

    FETCH = "fetch"
    EMBED_QUERY = "embed_query"
    SCORE = "score"
    FUSE = "fuse"
    PERSIST = "persist"


@dataclass
class JobRunResult:
    """Outcome of a successful search run."""

    job_id: str
    status: JobStatus
    hits: list[Hit] = field(default_factory=list)
    summary: JobSummary | None = None


def build_summary(hits: list[Hit], failures: list[ConnectorFailure]) -> JobSummary:
    """Build the job summary from the fused hits of a run."""
    risk = global_risk(hits)
    return JobSummary(
        global_risk=risk,
        recommendation=recommendation_for(risk),
        max_aggregate=max_aggregate(hits),
        hit_count=len(hits),
        connector_failures=list(failures),
    )


class SearchOrchestrator:
    """Runs search jobs exactly once per invocation.

    Usage:
        orchestrator = SearchOrchestrator(settings, repository, connectors, embedder)
        result = orchestrator.run(job_id)
        print(result.summary.global_risk)
    """

    def __init__(
        self,
        settings: Settings,
        repository: JobRepository,
        connectors: Mapping[Source, BaseConnector],
        embedder: BaseEmbeddingProvider,
        engine: SimilarityEngine | None = None,
        progress_callback: Callable[[RunStage, str], None] | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            settings: Configuration settings
            repository: Job store
            connectors: Registry connectors by source
            embedder: Embedding provider for the semantic signal
            engine: Similarity engine (defaults to configured weights)
            progress_callback: Optional callback for progress updates
        """
        self.settings = settings
        self.repository = repository
        self.connectors = dict(connectors)
        self.embedder = embedder
        self.engine = engine or SimilarityEngine(settings.scoring.weights)
        self.progress_callback = progress_callback

        self._locks: dict[str, threading.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._locks_guard = threading.Lock()

    def _report_progress(self, stage: RunStage, message: str) -> None:
        """Report progress via callback if available."""
        logger.debug("[%s] %s", stage.value, message)
        if self.progress_callback:
            self.progress_callback(stage, message)

    @contextmanager
    def _job_lock(self, job_id: str) -> Iterator[None]:
        """Hold the lock of one job; the entry is dropped once nobody uses it."""
        with self._locks_guard:
            lock = self._locks.setdefault(job_id, threading.Lock())
            self._lock_users[job_id] = self._lock_users.get(job_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._locks_guard:
                self._lock_users[job_id] -= 1
                if not self._lock_users[job_id]:
                    del self._lock_users[job_id]
                    del self._locks[job_id]

    def run(self, job_id: str) -> JobRunResult:
        """Run the search pipeline for a job.

        A second run request for the same job waits for the first to finish.
        The job always ends DONE or ERROR; it is never left RUNNING.

        Args:
            job_id: Job identifier

        Returns:
            JobRunResult with the fused hits and the summary

        Raises:
            JobNotFoundError: If the job does not exist (status untouched)
            SearchRunError: If the run was aborted (job marked ERROR)
        """
        with self._job_lock(job_id):
            job = self.repository.get_job(job_id, with_hits=False)
            if job is None:
                raise JobNotFoundError(job_id)

            self.repository.set_status(job_id, JobStatus.RUNNING)
            logger.info(
                "Search run started: job=%s query=%r classes=%s territory=%s",
                job_id,
                job.query,
                list(job.nice_classes),
                job.territory.value,
            )

            try:
                result = self._execute(job)
            except Exception as e:
                logger.exception("Search run aborted: job=%s", job_id)
                self._mark_error(job_id)
                raise SearchRunError(job_id, f"Search run failed: {e}") from e

            summary = result.summary
            logger.info(
                "Search run finished: job=%s hits=%d risk=%s failures=%d",
                job_id,
                len(result.hits),
                summary.global_risk.value,
                len(summary.connector_failures),
            )
            return result

    def _mark_error(self, job_id: str) -> None:
        try:
            self.repository.set_status(job_id, JobStatus.ERROR)
        except Exception:
            logger.exception("Could not mark job %s as ERROR", job_id)
            raise

    def _execute(self, job: SearchJob) -> JobRunResult:
        results = self.fetch(job)

        raw_hits: list[RawHit] = []
        failures: list[ConnectorFailure] = []
        for result in results:
            raw_hits.extend(result.hits)
            if result.failure:
                failures.append(result.failure)

        scored = self.score_hits(job.query, raw_hits)

        self._report_progress(RunStage.FUSE, f"Fusing {len(scored)} scored candidates...")
        hits = sorted(fuse(scored), key=lambda h: h.aggregate, reverse=True)
        summary = build_summary(hits, failures)

        self._report_progress(RunStage.PERSIST, f"Saving {len(hits)} hits...")
        self.repository.complete_run(job.id, hits, summary)

        return JobRunResult(job_id=job.id, status=JobStatus.DONE, hits=hits, summary=summary)

    def fetch(self, job: SearchJob) -> list[ConnectorResult]:
        """Query the job's registries concurrently.

        Results are returned in territory order, whatever the completion order.
        A missing connector is reported as a DISABLED failure.

        Args:
            job: Job to search for

        Returns:
            One ConnectorResult per selected source
        """
        sources = sources_for_territory(job.territory)
        limit = self.settings.search.default_limit
        classes = list(job.nice_classes)

        self._report_progress(
            RunStage.FETCH,
            f"Querying {', '.join(s.value for s in sources)} for {job.query!r}...",
        )

        results: dict[Source, ConnectorResult] = {}
        futures = {}
        with ThreadPoolExecutor(max_workers=len(sources), thread_name_prefix="connector") as pool:
            for source in sources:
                connector = self.connectors.get(source)
                if connector is None:
                    results[source] = ConnectorResult(
                        source=source,
                        failure=ConnectorFailure(
                            source=source.value,
                            kind=FailureKind.DISABLED,
                            message="No connector configured",
                        ),
                    )
                    continue
                futures[source] = pool.submit(connector.search, job.query, classes, limit)

            for source, future in futures.items():
                results[source] = future.result()

        for source in sources:
            result = results[source]
            if result.ok:
                self._report_progress(RunStage.FETCH, f"{source.value}: {len(result.hits)} candidates")
            else:
                self._report_progress(RunStage.FETCH, f"{source.value}: {result.failure.message}")

        return [results[source] for source in sources]

    def score_hits(self, query: str, raw_hits: list[RawHit]) -> list[ScoredHit]:
        """Score every candidate against the query.

        The query is embedded once. When that embedding is unavailable no
        candidate is embedded and the semantic signal is 0 for all of them.
        Candidate embeddings run on a bounded pool; each failure only affects
        its own candidate.

        Args:
            query: Searched mark text
            raw_hits: Candidates from all registries

        Returns:
            Scored hits, in the same order as raw_hits
        """
        self._report_progress(RunStage.EMBED_QUERY, "Embedding query...")
        query_embedding = self.embedder.embed(query)
        if query_embedding is None:
            logger.debug("Query embedding unavailable, semantic signal disabled for this run")

        def score_one(raw: RawHit) -> ScoredHit:
            embedding = self.embedder.embed(raw.text) if query_embedding else None
            vector = self.engine.score(query, raw.text, query_embedding, embedding)
            return ScoredHit(
                raw=raw,
                similarity=vector,
                risk=classify(vector.aggregate),
                embedding=embedding,
            )

        self._report_progress(RunStage.SCORE, f"Scoring {len(raw_hits)} candidates...")
        if not raw_hits:
            return []

        workers = max(1, min(self.settings.embedding.max_workers, len(raw_hits)))
        if not query_embedding or workers == 1:
            return [score_one(raw) for raw in raw_hits]

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="embed") as pool:
            return list(pool.map(score_one, raw_hits))
