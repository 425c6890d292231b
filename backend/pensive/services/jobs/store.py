"""Durable job queue backed by the jobs table."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, aliased

from pensive.config import settings
from pensive.exceptions import ExhaustedRetriesError
from pensive.models.job import Job, JobKind, JobStatus
from pensive.schemas.job import JobPayload, QueueStats, parse_payload
from pensive.utils.time import utcnow

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 4000


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how late a failed job is retried."""

    max_attempts: int = 3
    backoff_seconds: int = 60
    strategy: str = "exponential"

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.job_max_attempts,
            backoff_seconds=settings.job_backoff_seconds,
            strategy=settings.job_backoff_strategy,
        )

    def delay_for(self, attempts: int) -> timedelta:
        """Delay before the next attempt, given the attempts used so far."""
        if self.strategy == "exponential":
            seconds = self.backoff_seconds * (2 ** max(0, attempts - 1))
        else:
            seconds = self.backoff_seconds
        return timedelta(seconds=seconds)


@dataclass(frozen=True)
class FailureOutcome:
    """Result of recording a job failure."""

    job_id: int
    attempts: int
    terminal: bool
    retry_at: Optional[datetime]
    error: str


class JobStore:
    """Queue operations over the jobs table.

    Every state transition is a conditional write on the current status, so
    overlapping dispatcher runs never process the same job twice.
    """

    def __init__(self, db: Session, policy: RetryPolicy | None = None):
        self.db = db
        self.policy = policy or RetryPolicy.from_settings()

    def enqueue(
        self,
        kind: JobKind,
        payload: JobPayload | Dict[str, Any],
        user_id: str | None = None,
        *,
        scheduled_at: datetime | None = None,
        max_attempts: int | None = None,
        commit: bool = True,
    ) -> int:
        """Add a job and return its id.

        The payload is validated against the model registered for ``kind``.
        Pass ``commit=False`` to enqueue inside the caller's transaction.
        """
        kind = JobKind(kind)
        if isinstance(payload, JobPayload):
            if payload.kind != kind:
                raise ValueError(
                    f"Payload {type(payload).__name__} does not match job kind {kind.value}"
                )
            model = payload
        else:
            model = parse_payload(kind, payload)

        job = Job(
            kind=kind,
            payload=model.to_json(),
            status=JobStatus.PENDING,
            attempts=0,
            max_attempts=max_attempts or self.policy.max_attempts,
            scheduled_at=scheduled_at or utcnow(),
            user_id=user_id or getattr(model, "user_id", None),
        )
        self.db.add(job)
        self.db.flush()
        if commit:
            self.db.commit()
        logger.debug("Enqueued %s job %s", kind.value, job.id)
        return job.id

    def dequeue_next(self) -> Job | None:
        """Claim the oldest due pending job and mark it running.

        The claim is a single ``UPDATE ... WHERE status = 'pending' RETURNING``
        statement; on PostgreSQL the candidate sub-select also skips rows
        locked by a concurrent claim. A lost race is retried for as long as
        due jobs remain, so None always means the queue has nothing due.
        """
        while True:
            now = utcnow()
            job = self._claim(now)
            if job is not None:
                return job
            if not self._has_due_jobs(now):
                return None
            logger.debug("Lost a claim race, retrying")

    def _claim(self, now: datetime) -> Job | None:
        queued = aliased(Job)
        candidate = (
            select(queued.id)
            .where(queued.status == JobStatus.PENDING, queued.scheduled_at <= now)
            .order_by(queued.scheduled_at, queued.id)
            .limit(1)
            .with_for_update(skip_locked=True)
            .scalar_subquery()
        )
        stmt = (
            update(Job)
            .where(Job.id == candidate, Job.status == JobStatus.PENDING)
            .values(status=JobStatus.RUNNING, started_at=now, completed_at=None)
            .returning(Job)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        job = self.db.scalars(stmt).one_or_none()
        self.db.commit()
        return job

    def _has_due_jobs(self, now: datetime) -> bool:
        stmt = select(
            select(Job.id)
            .where(Job.status == JobStatus.PENDING, Job.scheduled_at <= now)
            .exists()
        )
        result = bool(self.db.execute(stmt).scalar())
        self.db.commit()
        return result

    def complete(self, job_id: int) -> bool:
        """Mark a running job completed. Returns False if it was not running."""
        result = self.db.execute(
            update(Job)
            .where(Job.id == job_id, Job.status == JobStatus.RUNNING)
            .values(status=JobStatus.COMPLETED, completed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount == 0:
            logger.warning("Job %s was not running when completed", job_id)
            return False
        return True

    def fail(
        self,
        job_id: int,
        error_message: str,
        *,
        retryable: bool = True,
    ) -> FailureOutcome | None:
        """Record a failed attempt.

        The job goes back to pending with a backoff, or fails terminally once
        its attempts are used up or the error is not retryable. Returns None
        when the job was no longer running (e.g. reclaimed by the stale sweep).
        """
        job = self.db.execute(
            select(Job)
            .where(Job.id == job_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if job is None or job.status != JobStatus.RUNNING:
            self.db.commit()
            logger.warning("Job %s was not running when failed", job_id)
            return None

        now = utcnow()
        job.attempts += 1
        job.last_error = (error_message or "Unknown error")[:MAX_ERROR_LENGTH]
        terminal = not retryable or job.attempts >= job.max_attempts
        retry_at = None
        if terminal:
            job.status = JobStatus.FAILED
            job.completed_at = now
        else:
            retry_at = now + self.policy.delay_for(job.attempts)
            job.status = JobStatus.PENDING
            job.scheduled_at = retry_at
            job.started_at = None
        self.db.commit()

        return FailureOutcome(
            job_id=job.id,
            attempts=job.attempts,
            terminal=terminal,
            retry_at=retry_at,
            error=job.last_error,
        )

    def recover_stale(self, timeout: timedelta | None = None) -> int:
        """Return jobs stuck in running past ``timeout`` to the queue.

        A crashed attempt counts as an attempt; jobs with none left fail.
        """
        timeout = timeout or timedelta(seconds=settings.stale_job_timeout_seconds)
        now = utcnow()
        cutoff = now - timeout
        message = f"Job stuck in running for more than {int(timeout.total_seconds())} seconds."

        exhausted = self.db.execute(
            update(Job)
            .where(
                Job.status == JobStatus.RUNNING,
                Job.started_at < cutoff,
                Job.attempts + 1 >= Job.max_attempts,
            )
            .values(
                status=JobStatus.FAILED,
                attempts=Job.attempts + 1,
                completed_at=now,
                last_error=message,
            )
            .execution_options(synchronize_session=False)
        )
        requeued = self.db.execute(
            update(Job)
            .where(Job.status == JobStatus.RUNNING, Job.started_at < cutoff)
            .values(
                status=JobStatus.PENDING,
                attempts=Job.attempts + 1,
                scheduled_at=now,
                started_at=None,
                last_error=message,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

        total = exhausted.rowcount + requeued.rowcount
        if total:
            logger.warning(
                "Recovered %s stale jobs (%s requeued, %s failed)",
                total,
                requeued.rowcount,
                exhausted.rowcount,
            )
        return total

    def reschedule(self, job_id: int) -> Job:
        """Put a failed job with attempts left back in the queue."""
        job = self.db.execute(
            select(Job)
            .where(Job.id == job_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if job is None:
            self.db.commit()
            raise LookupError(f"Job {job_id} not found")
        if job.status != JobStatus.FAILED:
            self.db.commit()
            raise ValueError(f"Job {job_id} is {job.status.value}, only failed jobs can be retried")
        if job.exhausted:
            self.db.commit()
            raise ExhaustedRetriesError(job.id, job.attempts, job.last_error)

        job.status = JobStatus.PENDING
        job.scheduled_at = utcnow()
        job.started_at = None
        job.completed_at = None
        self.db.commit()
        return job

    def cleanup(self, retention: timedelta | None = None) -> int:
        """Delete completed and failed jobs finished before the retention horizon."""
        retention = retention or timedelta(hours=settings.job_retention_hours)
        cutoff = utcnow() - retention
        result = self.db.execute(
            delete(Job)
            .where(
                Job.status.in_([JobStatus.COMPLETED, JobStatus.FAILED]),
                Job.completed_at < cutoff,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount:
            logger.info("Cleaned up %s finished jobs", result.rowcount)
        return result.rowcount

    def stats(self) -> QueueStats:
        """Count jobs per status."""
        rows = self.db.execute(
            select(Job.status, func.count(Job.id)).group_by(Job.status)
        ).all()
        self.db.commit()
        counts = {status.value: count for status, count in rows}
        return QueueStats(**counts)

    def get(self, job_id: int) -> Job | None:
        job = self.db.get(Job, job_id, populate_existing=True)
        self.db.commit()
        return job
