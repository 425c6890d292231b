"""Batch job dispatcher."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from pensive.config import settings
from pensive.database import SessionLocal
from pensive.exceptions import ExhaustedRetriesError, PipelineError, UnknownJobKindError
from pensive.models.job import Job, JobKind
from pensive.schemas.job import QueueStats, parse_payload
from pensive.services.jobs.handlers import HANDLERS, Handler, JobContext, PipelineServices
from pensive.services.jobs.store import JobStore, RetryPolicy

logger = logging.getLogger(__name__)


@dataclass
class JobError:
    """A failed attempt recorded in a batch result."""

    job_id: int
    kind: str
    error: str
    terminal: bool


@dataclass
class BatchResult:
    """Outcome of one dispatcher run.

    ``processed`` counts jobs whose handler completed successfully.
    """

    attempted: int = 0
    processed: int = 0
    failed: int = 0
    exhausted: int = 0
    recovered: int = 0
    cleaned_up: int = 0
    errors: List[JobError] = field(default_factory=list)
    queue_stats: QueueStats = field(default_factory=QueueStats)


class JobDispatcher:
    """Drains up to ``max_jobs`` due jobs, one at a time, in a single batch.

    Every job runs in its own session under a timeout. A failing job is
    recorded through the store and never aborts the batch; only errors from
    the store itself (the database is unavailable) propagate.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        services: Optional[PipelineServices] = None,
        handlers: Optional[Dict[JobKind, Handler]] = None,
        policy: Optional[RetryPolicy] = None,
        max_jobs: Optional[int] = None,
        job_timeout_seconds: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self._services = services
        self.handlers = handlers if handlers is not None else HANDLERS
        self.policy = policy or RetryPolicy.from_settings()
        self.max_jobs = max_jobs if max_jobs is not None else settings.max_jobs_per_run
        self.job_timeout_seconds = job_timeout_seconds or settings.job_timeout_seconds

    @property
    def services(self) -> PipelineServices:
        if self._services is None:
            self._services = PipelineServices.default()
        return self._services

    async def run_batch(self) -> BatchResult:
        result = BatchResult()
        db = self.session_factory()
        try:
            store = JobStore(db, self.policy)
            result.recovered = store.recover_stale()

            while result.attempted < self.max_jobs:
                job = store.dequeue_next()
                if job is None:
                    break
                result.attempted += 1
                await self._run_job(store, job, result)

            result.cleaned_up = store.cleanup()
            result.queue_stats = store.stats()
        finally:
            db.close()

        logger.info(
            "Batch finished: %s attempted, %s succeeded, %s failed (%s exhausted), %s recovered",
            result.attempted,
            result.processed,
            result.failed,
            result.exhausted,
            result.recovered,
        )
        return result

    async def _run_job(self, store: JobStore, job: Job, result: BatchResult) -> None:
        try:
            await asyncio.wait_for(self._invoke(job), timeout=self.job_timeout_seconds)
        except asyncio.TimeoutError:
            message = f"Job timed out after {self.job_timeout_seconds} seconds"
            self._record_failure(store, job, message, retryable=True, result=result)
        except ValidationError as exc:
            self._record_failure(store, job, f"Invalid payload: {exc}", retryable=False, result=result)
        except PipelineError as exc:
            self._record_failure(
                store, job, f"{type(exc).__name__}: {exc}", retryable=exc.retryable, result=result
            )
        except Exception as exc:
            logger.exception("Unexpected error in %s job %s", job.kind.value, job.id)
            self._record_failure(
                store, job, f"{type(exc).__name__}: {exc}", retryable=True, result=result
            )
        else:
            if store.complete(job.id):
                result.processed += 1
                logger.info("Completed %s job %s", job.kind.value, job.id)

    async def _invoke(self, job: Job) -> None:
        handler = self.handlers.get(job.kind)
        if handler is None:
            raise UnknownJobKindError(f"No handler registered for job kind {job.kind}")
        payload = parse_payload(job.kind, job.payload)

        db = self.session_factory()
        try:
            ctx = JobContext(
                db=db,
                store=JobStore(db, self.policy),
                services=self.services,
                job=job,
            )
            await handler(ctx, payload)
        finally:
            db.close()

    def _record_failure(
        self,
        store: JobStore,
        job: Job,
        message: str,
        *,
        retryable: bool,
        result: BatchResult,
    ) -> None:
        outcome = store.fail(job.id, message, retryable=retryable)
        if outcome is None:
            return
        result.failed += 1
        if outcome.terminal and retryable:
            result.exhausted += 1
            message = str(ExhaustedRetriesError(job.id, outcome.attempts, message))
        result.errors.append(
            JobError(job_id=job.id, kind=job.kind.value, error=message, terminal=outcome.terminal)
        )
        if outcome.terminal:
            logger.error(
                "%s job %s failed permanently after %s attempts: %s",
                job.kind.value,
                job.id,
                outcome.attempts,
                message,
            )
        else:
            logger.warning(
                "%s job %s failed (attempt %s), retrying at %s: %s",
                job.kind.value,
                job.id,
                outcome.attempts,
                outcome.retry_at,
                message,
            )
