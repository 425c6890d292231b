"""Content API router."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pensive.database import get_db
from pensive.models.content import Content
from pensive.schemas.content import Content as ContentSchema, ContentSubmit, ContentSubmitResult
from pensive.services.ingestion.submission import SubmissionIngester
from pensive.services.jobs.store import JobStore

router = APIRouter()


@router.post("", response_model=ContentSubmitResult)
async def submit_content(submission: ContentSubmit, db: Session = Depends(get_db)):
    """Store submitted content and queue its analysis.

    A duplicate of content the user already has is reported, not an error.
    """
    if not submission.url.strip() and not submission.body.strip():
        raise HTTPException(status_code=400, detail="Provide a url or a body")

    ingester = SubmissionIngester(db, JobStore(db), submission)
    stats = await ingester.ingest()
    if not stats["jobs_enqueued"]:
        return ContentSubmitResult(content_id=None, duplicate=True)

    return ContentSubmitResult(
        content_id=stats["content_ids"][0],
        duplicate=False,
        job_id=stats["jobs_enqueued"][0],
    )


@router.get("/{content_id}", response_model=ContentSchema)
def get_content(content_id: int, db: Session = Depends(get_db)):
    """Get a content item by ID."""
    content = db.query(Content).filter(Content.id == content_id).first()
    if not content:
        raise HTTPException(status_code=404, detail="Content not found")
    return content
