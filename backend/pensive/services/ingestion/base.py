"""Base ingestion class."""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from pensive.exceptions import DuplicateContentError
from pensive.models.job import JobKind
from pensive.schemas.job import AnalyzeContentPayload
from pensive.services.dedup import ContentCandidate, ContentDeduplicator
from pensive.services.jobs.store import JobStore

logger = logging.getLogger(__name__)


class BaseIngester(ABC):
    """Base class for content ingesters.

    Subclasses fetch raw items and normalize them into candidates; this class
    deduplicates, stores new content and enqueues its analysis, all in the
    caller's session and committed once at the end.
    """

    def __init__(self, db: Session, store: JobStore, user_id: str):
        self.db = db
        self.store = store
        self.user_id = user_id
        self.deduplicator = ContentDeduplicator(db)
        self.stats = {
            "items_fetched": 0,
            "items_new": 0,
            "items_skipped": 0,
            "content_ids": [],
            "jobs_enqueued": [],
        }

    @abstractmethod
    async def fetch(self) -> List[Any]:
        """Fetch raw items."""

    @abstractmethod
    def normalize(self, raw_item: Any) -> ContentCandidate:
        """Convert a raw item into a content candidate."""

    def store_candidate(self, candidate: ContentCandidate) -> int | None:
        """Store one candidate and enqueue its analysis.

        Returns the AnalyzeContent job id, or None for a duplicate.
        """
        if candidate.fingerprint is None:
            candidate.fingerprint = self.deduplicator.fingerprint([candidate.url, candidate.body])
        if self.deduplicator.exists(candidate.user_id, candidate.fingerprint):
            self.stats["items_skipped"] += 1
            return None

        try:
            content = self.deduplicator.store(candidate)
        except DuplicateContentError:
            self.stats["items_skipped"] += 1
            return None

        job_id = self.store.enqueue(
            JobKind.ANALYZE_CONTENT,
            AnalyzeContentPayload(
                content_id=content.id,
                user_id=content.user_id,
                title=content.title,
                content=content.body,
                url=content.url,
            ),
            commit=False,
        )
        self.stats["items_new"] += 1
        self.stats["content_ids"].append(content.id)
        self.stats["jobs_enqueued"].append(job_id)
        return job_id

    async def ingest(self) -> Dict[str, Any]:
        """Run the full ingestion process."""
        raw_items = await self.fetch()
        self.stats["items_fetched"] = len(raw_items)

        for raw_item in raw_items:
            self.store_candidate(self.normalize(raw_item))

        self.db.commit()
        return self.stats
