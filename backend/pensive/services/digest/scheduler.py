"""Periodic digest scheduling."""
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from pensive.models.digest import DigestTimeframe
from pensive.models.job import JobKind
from pensive.models.user_settings import UserSettings
from pensive.schemas.job import GenerateDigestPayload
from pensive.services.jobs.store import JobStore

logger = logging.getLogger(__name__)


def schedule_digests(
    db: Session,
    store: JobStore,
    timeframe: Optional[DigestTimeframe] = None,
) -> List[int]:
    """Enqueue GenerateDigest for every active user with a digest email.

    With ``timeframe`` set, only users whose digest frequency matches it are
    scheduled. Returns the job ids.
    """
    stmt = select(UserSettings.user_id, UserSettings.digest_frequency).where(
        UserSettings.is_active.is_(True),
        UserSettings.digest_email.is_not(None),
        UserSettings.digest_email != "",
    )
    if timeframe is not None:
        stmt = stmt.where(UserSettings.digest_frequency == DigestTimeframe(timeframe))

    job_ids = [
        store.enqueue(
            JobKind.GENERATE_DIGEST,
            GenerateDigestPayload(user_id=row.user_id, timeframe=row.digest_frequency),
            commit=False,
        )
        for row in db.execute(stmt.order_by(UserSettings.user_id)).all()
    ]
    db.commit()
    logger.info("Scheduled %s digests", len(job_ids))
    return job_ids
