"""Search job pipeline: orchestration and intake."""

from .orchestrator import JobRunResult, RunStage, SearchOrchestrator, build_summary
from .service import JobService, Outcome, outcome_for

__all__ = [
    "JobRunResult",
    "JobService",
    "Outcome",
    "RunStage",
    "SearchOrchestrator",
    "build_summary",
    "outcome_for",
]
