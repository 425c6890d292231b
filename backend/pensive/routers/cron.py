"""Periodic trigger endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pensive.auth import verify_cron_secret
from pensive.database import get_db
from pensive.models.digest import DigestTimeframe
from pensive.schemas.job import ProcessJobsResponse
from pensive.services.digest.scheduler import schedule_digests
from pensive.services.ingestion.orchestrator import schedule_feed_fetches
from pensive.services.jobs.dispatcher import JobDispatcher
from pensive.services.jobs.store import JobStore

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_cron_secret)])


def get_dispatcher() -> JobDispatcher:
    """Dispatcher for one trigger invocation."""
    return JobDispatcher()


@router.post("/process-jobs", response_model=ProcessJobsResponse)
async def process_jobs(dispatcher: JobDispatcher = Depends(get_dispatcher)):
    """Run one batch of due jobs."""
    try:
        result = await dispatcher.run_batch()
    except SQLAlchemyError as e:
        logger.exception("Job processing failed")
        raise HTTPException(status_code=500, detail=f"Job processing failed: {str(e)}")

    return ProcessJobsResponse(
        success=True,
        processed_jobs=result.processed,
        failed_jobs=result.failed,
        exhausted_jobs=result.exhausted,
        recovered_jobs=result.recovered,
        queue_stats=result.queue_stats,
    )


@router.post("/fetch-feeds")
def fetch_feeds(db: Session = Depends(get_db)):
    """Enqueue a fetch for every active feed."""
    try:
        job_ids = schedule_feed_fetches(db, JobStore(db))
    except SQLAlchemyError as e:
        logger.exception("Feed scheduling failed")
        raise HTTPException(status_code=500, detail=f"Feed scheduling failed: {str(e)}")
    return {"success": True, "scheduledFeeds": len(job_ids)}


@router.post("/schedule-digests")
def schedule_user_digests(
    timeframe: DigestTimeframe | None = Query(None),
    db: Session = Depends(get_db),
):
    """Enqueue digest generation for users with a digest email."""
    try:
        job_ids = schedule_digests(db, JobStore(db), timeframe)
    except SQLAlchemyError as e:
        logger.exception("Digest scheduling failed")
        raise HTTPException(status_code=500, detail=f"Digest scheduling failed: {str(e)}")
    return {"success": True, "scheduledDigests": len(job_ids)}
