"""Job service: intake validation in front of the repository and orchestrator."""

import logging
from collections.abc import Iterable
from enum import Enum

from clearmark.config import Settings
from clearmark.connectors import build_connectors
from clearmark.db.repository import JobRepository
from clearmark.embeddings import get_embedding_provider
from clearmark.errors import JobNotFoundError, JobValidationError
from clearmark.pipeline.orchestrator import JobRunResult, SearchOrchestrator
from clearmark.trademark.models import SearchJob, Territory

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
MIN_NICE_CLASS = 1
MAX_NICE_CLASS = 45


class Outcome(Enum):
    """Response outcome of a service call, with its process exit code."""

    OK = 0
    INTERNAL_FAILURE = 1
    BAD_REQUEST = 2
    NOT_FOUND = 3
    UNAUTHORIZED = 4

    @property
    def exit_code(self) -> int:
        return self.value


def outcome_for(exc: BaseException | None) -> Outcome:
    """Map an exception raised by the service to its outcome."""
    if exc is None:
        return Outcome.OK
    if isinstance(exc, JobValidationError):
        return Outcome.BAD_REQUEST
    if isinstance(exc, JobNotFoundError):
        return Outcome.NOT_FOUND
    return Outcome.INTERNAL_FAILURE


def validate_query(query: str) -> str:
    """Return the stripped query, or raise JobValidationError."""
    if not isinstance(query, str):
        raise JobValidationError("Query must be a string")
    text = query.strip()
    if len(text) < MIN_QUERY_LENGTH:
        raise JobValidationError(f"Query must be at least {MIN_QUERY_LENGTH} characters long")
    return text


def validate_classes(nice_classes: Iterable[int]) -> list[int]:
    """Return the sorted, de-duplicated Nice classes, or raise JobValidationError."""
    classes: set[int] = set()
    for value in nice_classes:
        if isinstance(value, bool) or not isinstance(value, int):
            raise JobValidationError(f"Nice class must be an integer: {value!r}")
        if not MIN_NICE_CLASS <= value <= MAX_NICE_CLASS:
            raise JobValidationError(
                f"Nice class out of range ({MIN_NICE_CLASS}-{MAX_NICE_CLASS}): {value}"
            )
        classes.add(value)
    if not classes:
        raise JobValidationError("At least one Nice class is required")
    return sorted(classes)


def parse_territory(territory: Territory | str) -> Territory:
    """Parse a territory code (FR, EU or ALL), case-insensitively."""
    if isinstance(territory, Territory):
        return territory
    try:
        return Territory(str(territory).strip().upper())
    except ValueError:
        allowed = ", ".join(t.value for t in Territory)
        raise JobValidationError(f"Unknown territory '{territory}'. Allowed: {allowed}") from None


class JobService:
    """Creates, runs and reads search jobs.

    Usage:
        service = JobService(load_settings())
        job = service.create_job("MYNAME", [9, 35], "EU")
        result = service.run_job(job.id)
    """

    def __init__(
        self,
        settings: Settings,
        repository: JobRepository | None = None,
        orchestrator: SearchOrchestrator | None = None,
    ):
        """Initialize the service.

        Args:
            settings: Configuration settings
            repository: Job store (created from settings if omitted)
            orchestrator: Search orchestrator (created from settings if omitted)
        """
        self.settings = settings
        self.repository = repository or JobRepository(settings)
        self.orchestrator = orchestrator or SearchOrchestrator(
            settings,
            self.repository,
            build_connectors(settings),
            get_embedding_provider(settings.embedding),
        )

    def create_job(
        self,
        query: str,
        nice_classes: Iterable[int],
        territory: Territory | str,
    ) -> SearchJob:
        """Validate a request and store a PENDING job.

        Raises:
            JobValidationError: If the request is invalid
        """
        text = validate_query(query)
        classes = validate_classes(nice_classes)
        parsed = parse_territory(territory)

        job = self.repository.create_job(text, classes, parsed)
        logger.info("Job %s created for %r in %s", job.id, text, parsed.value)
        return job

    def run_job(self, job_id: str) -> JobRunResult:
        """Run the search pipeline for an existing job.

        Raises:
            JobNotFoundError: If the job does not exist
            SearchRunError: If the run was aborted
        """
        return self.orchestrator.run(job_id)

    def get_job(self, job_id: str) -> SearchJob:
        """Get a job with its hits.

        Raises:
            JobNotFoundError: If the job does not exist
        """
        job = self.repository.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def list_jobs(self, limit: int = 20) -> list[SearchJob]:
        """List recent jobs, newest first."""
        return self.repository.list_jobs(limit=limit)


__all__ = [
    "JobService",
    "Outcome",
    "outcome_for",
    "parse_territory",
    "validate_classes",
    "validate_query",
]
