"""Directly submitted content."""
from typing import List

from sqlalchemy.orm import Session

from pensive.schemas.content import ContentSubmit
from pensive.services.dedup import ContentCandidate
from pensive.services.ingestion.base import BaseIngester
from pensive.services.jobs.store import JobStore


class SubmissionIngester(BaseIngester):
    """Ingest a single item posted by a client (article, note, episode)."""

    def __init__(self, db: Session, store: JobStore, submission: ContentSubmit):
        super().__init__(db, store, submission.user_id)
        self.submission = submission

    async def fetch(self) -> List[ContentSubmit]:
        return [self.submission]

    def normalize(self, raw_item: ContentSubmit) -> ContentCandidate:
        return ContentCandidate(
            user_id=raw_item.user_id,
            title=raw_item.title.strip() or "Untitled",
            url=raw_item.url.strip(),
            body=raw_item.body,
            source=raw_item.source,
        )
