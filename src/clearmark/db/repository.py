"""SQLite repository for search jobs and their hits."""

import json
import logging
import sqlite3
import uuid
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from clearmark.config import Settings
from clearmark.errors import JobNotFoundError, PersistenceError
from clearmark.trademark.models import (
    Hit,
    JobStatus,
    JobSummary,
    MarkStatus,
    RiskLevel,
    SearchJob,
    SimilarityVector,
    Territory,
)

logger = logging.getLogger(__name__)


class JobRepository:
    """SQLite repository for managing search jobs.

    Every operation opens its own connection, so a repository can be shared
    between threads. Replacing the hit set of a job is a single transaction:
    readers see either the previous hits or the new ones, never a mix.
    """

    def __init__(self, settings: Settings):
        """Initialize repository with settings.

        Args:
            settings: Configuration settings with database path
        """
        self.db_path = Path(settings.database.path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success and roll back on error."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=30)
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open database {self.db_path}: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"Database operation failed: {e}") from e
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS search_jobs (
                    id TEXT PRIMARY KEY,
                    query TEXT NOT NULL,
                    nice_classes TEXT NOT NULL,
                    territory TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'PENDING',
                    summary TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS hits (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    job_id TEXT NOT NULL REFERENCES search_jobs(id) ON DELETE CASCADE,
                    mark_text TEXT NOT NULL,
                    nice_classes TEXT NOT NULL,
                    sources TEXT NOT NULL,
                    application_number TEXT,
                    status_label TEXT,
                    status TEXT NOT NULL DEFAULT 'UNKNOWN',
                    owner TEXT,
                    similarity TEXT NOT NULL,
                    aggregate REAL NOT NULL,
                    risk TEXT NOT NULL,
                    embedding TEXT
                )
            """)

            conn.execute("CREATE INDEX IF NOT EXISTS idx_hits_job_id ON hits(job_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_jobs_status ON search_jobs(status)")

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    def _row_to_job(self, row: sqlite3.Row) -> SearchJob:
        """Convert database row to SearchJob."""
        summary = JobSummary.from_dict(json.loads(row["summary"])) if row["summary"] else None
        return SearchJob(
            id=row["id"],
            query=row["query"],
            nice_classes=tuple(json.loads(row["nice_classes"])),
            territory=Territory(row["territory"]),
            status=JobStatus(row["status"]),
            summary=summary,
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_hit(self, row: sqlite3.Row) -> Hit:
        """Convert database row to Hit."""
        return Hit(
            text=row["mark_text"],
            nice_classes=tuple(json.loads(row["nice_classes"])),
            sources=frozenset(json.loads(row["sources"])),
            similarity=SimilarityVector.from_dict(json.loads(row["similarity"])),
            risk=RiskLevel(row["risk"]),
            application_number=row["application_number"],
            status_label=row["status_label"],
            status=MarkStatus(row["status"]),
            owner=row["owner"],
            embedding=json.loads(row["embedding"]) if row["embedding"] else None,
        )

    def _hit_row(self, job_id: str, hit: Hit) -> tuple[Any, ...]:
        return (
            job_id,
            hit.text,
            json.dumps(list(hit.nice_classes)),
            json.dumps(sorted(hit.sources)),
            hit.application_number,
            hit.status_label,
            hit.status.value,
            hit.owner,
            json.dumps(hit.similarity.to_dict()),
            hit.similarity.aggregate,
            hit.risk.value,
            json.dumps(hit.embedding) if hit.embedding else None,
        )

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def create_job(
        self,
        query: str,
        nice_classes: Iterable[int],
        territory: Territory,
    ) -> SearchJob:
        """Store a new PENDING job.

        Args:
            query: Mark text to clear
            nice_classes: Nice classes (stored sorted and de-duplicated)
            territory: Registries to query

        Returns:
            The created job
        """
        job_id = uuid.uuid4().hex
        classes = sorted(set(nice_classes))
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO search_jobs (id, query, nice_classes, territory, status)
                VALUES (?, ?, ?, ?, ?)
                """,
                (job_id, query, json.dumps(classes), territory.value, JobStatus.PENDING.value),
            )
        logger.debug("Created job %s (%s, classes=%s, %s)", job_id, query, classes, territory.value)

        job = self.get_job(job_id, with_hits=False)
        if job is None:
            raise PersistenceError(f"Job {job_id} was not found after insert")
        return job

    def get_job(self, job_id: str, with_hits: bool = True) -> SearchJob | None:
        """Get a job, optionally with its hits (best aggregate first).

        Args:
            job_id: Job identifier
            with_hits: Also load the hit set

        Returns:
            SearchJob or None if not found
        """
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM search_jobs WHERE id = ?", (job_id,)).fetchone()
            if row is None:
                return None
            job = self._row_to_job(row)

            if with_hits:
                cursor = conn.execute(
                    "SELECT * FROM hits WHERE job_id = ? ORDER BY aggregate DESC, id ASC",
                    (job_id,),
                )
                job.hits = [self._row_to_hit(r) for r in cursor.fetchall()]
        return job

    def get_hits(self, job_id: str) -> list[Hit]:
        """Get the hit set of a job, best aggregate first."""
        with self._connect() as conn:
            cursor = conn.execute(
                "SELECT * FROM hits WHERE job_id = ? ORDER BY aggregate DESC, id ASC",
                (job_id,),
            )
            return [self._row_to_hit(r) for r in cursor.fetchall()]

    def set_status(self, job_id: str, status: JobStatus) -> None:
        """Set the lifecycle status of a job.

        Raises:
            JobNotFoundError: If the job does not exist
        """
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE search_jobs SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (status.value, job_id),
            )
            if cursor.rowcount == 0:
                raise JobNotFoundError(job_id)

    def set_summary(self, job_id: str, summary: JobSummary) -> None:
        """Store the result summary of a job."""
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE search_jobs SET summary = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (json.dumps(summary.to_dict()), job_id),
            )
            if cursor.rowcount == 0:
                raise JobNotFoundError(job_id)

    def _replace_hits(self, conn: sqlite3.Connection, job_id: str, hits: list[Hit]) -> None:
        conn.execute("DELETE FROM hits WHERE job_id = ?", (job_id,))
        for hit in hits:
            conn.execute(
                """
                INSERT INTO hits (job_id, mark_text, nice_classes, sources, application_number,
                                  status_label, status, owner, similarity, aggregate, risk, embedding)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                self._hit_row(job_id, hit),
            )

    def replace_hits(self, job_id: str, hits: list[Hit]) -> None:
        """Atomically replace the hit set of a job (delete then insert)."""
        with self._connect() as conn:
            self._replace_hits(conn, job_id, hits)

    def complete_run(self, job_id: str, hits: list[Hit], summary: JobSummary) -> None:
        """Persist the outcome of a successful run in one transaction.

        Replaces the hit set, stores the summary and marks the job DONE. If any
        statement fails, nothing of the run is committed.

        Args:
            job_id: Job identifier
            hits: Deduplicated hits of the run
            summary: Result summary of the run

        Raises:
            JobNotFoundError: If the job does not exist
            PersistenceError: If the transaction fails
        """
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE search_jobs
                SET status = ?, summary = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (JobStatus.DONE.value, json.dumps(summary.to_dict()), job_id),
            )
            if cursor.rowcount == 0:
                raise JobNotFoundError(job_id)
            self._replace_hits(conn, job_id, hits)

    def list_jobs(self, limit: int = 20, status: JobStatus | None = None) -> list[SearchJob]:
        """List recent jobs (without hits), newest first.

        Args:
            limit: Maximum number of results
            status: Optional status filter

        Returns:
            List of jobs
        """
        query = "SELECT * FROM search_jobs"
        params: list = []

        if status is not None:
            query += " WHERE status = ?"
            params.append(status.value)

        query += " ORDER BY created_at DESC, rowid DESC LIMIT ?"
        params.append(limit)

        with self._connect() as conn:
            cursor = conn.execute(query, params)
            return [self._row_to_job(row) for row in cursor.fetchall()]

    def count_by_status(self) -> dict[str, int]:
        """Count jobs by lifecycle status.

        Returns:
            Dictionary with a count for every JobStatus value
        """
        result = {status.value: 0 for status in JobStatus}
        with self._connect() as conn:
            cursor = conn.execute("SELECT status, COUNT(*) FROM search_jobs GROUP BY status")
            for row in cursor.fetchall():
                if row[0] in result:
                    result[row[0]] = row[1]
        return result
