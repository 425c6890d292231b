"""Feed scheduling."""
import logging
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from pensive.models.job import JobKind
from pensive.models.source import Source
from pensive.schemas.job import FetchFeedPayload
from pensive.services.jobs.store import JobStore

logger = logging.getLogger(__name__)


def list_active_sources(db: Session) -> List[Dict[str, Any]]:
    """Active feeds with the metadata needed for a conditional fetch."""
    rows = db.execute(
        select(
            Source.id,
            Source.user_id,
            Source.url,
            Source.etag,
            Source.last_modified,
        )
        .where(Source.is_active.is_(True))
        .order_by(Source.id)
    ).all()
    return [dict(row._mapping) for row in rows]


def schedule_feed_fetches(db: Session, store: JobStore) -> List[int]:
    """Enqueue one FetchFeed job per active source. Returns the job ids."""
    sources = list_active_sources(db)
    job_ids = [
        store.enqueue(
            JobKind.FETCH_FEED,
            FetchFeedPayload(source_id=source["id"], user_id=source["user_id"]),
            commit=False,
        )
        for source in sources
    ]
    db.commit()
    logger.info("Scheduled %s feed fetches", len(job_ids))
    return job_ids
