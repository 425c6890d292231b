"""Jobs API router."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pensive.database import get_db
from pensive.exceptions import ExhaustedRetriesError
from pensive.schemas.job import Job as JobSchema, QueueStats
from pensive.services.jobs.store import JobStore

router = APIRouter()


@router.get("/stats", response_model=QueueStats)
def get_queue_stats(db: Session = Depends(get_db)):
    """Job counts per status."""
    return JobStore(db).stats()


@router.get("/{job_id}", response_model=JobSchema)
def get_job(job_id: int, db: Session = Depends(get_db)):
    """Get a job by ID."""
    job = JobStore(db).get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.post("/{job_id}/retry", response_model=JobSchema)
def retry_job(job_id: int, db: Session = Depends(get_db)):
    """Put a failed job with attempts left back in the queue."""
    try:
        return JobStore(db).reschedule(job_id)
    except LookupError:
        raise HTTPException(status_code=404, detail="Job not found")
    except ExhaustedRetriesError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
