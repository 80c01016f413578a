"""Exceptions raised by clearmark."""

from clearmark.trademark.models import FailureKind


class ClearmarkError(Exception):
    """Base class for clearmark errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ConnectorError(ClearmarkError):
    """Raised inside a registry connector; never escapes ``search``."""

    def __init__(self, kind: FailureKind, message: str, status_code: int | None = None):
        self.kind = kind
        self.status_code = status_code
        super().__init__(message)


class JobValidationError(ClearmarkError):
    """Raised when a job request is invalid."""


class JobNotFoundError(ClearmarkError):
    """Raised when a job id is unknown."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Search job not found: {job_id}")


class PersistenceError(ClearmarkError):
    """Raised when the job store cannot be read or written."""


class SearchRunError(ClearmarkError):
    """Raised when a search run was aborted and the job marked ERROR."""

    def __init__(self, job_id: str, message: str):
        self.job_id = job_id
        super().__init__(message)
