"""RSS/podcast feed ingestion."""
import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from pensive.exceptions import PipelineError
from pensive.models.source import Source
from pensive.services.dedup import ContentCandidate
from pensive.services.ingestion.base import BaseIngester
from pensive.services.ingestion.feed_fetcher import FeedEntry, FeedFetcher
from pensive.services.jobs.store import JobStore

logger = logging.getLogger(__name__)


class RSSIngester(BaseIngester):
    """Ingest new entries of one feed source."""

    def __init__(self, db: Session, store: JobStore, source: Source, fetcher: FeedFetcher):
        super().__init__(db, store, source.user_id)
        self.source = source
        self.fetcher = fetcher
        self.not_modified = False

    async def fetch(self) -> List[FeedEntry]:
        # End the read transaction so the network call holds no database lock.
        self.db.commit()
        try:
            result = await self.fetcher.fetch(self.source)
        except PipelineError:
            # Keep the error bookkeeping the fetcher wrote on the source.
            self.db.commit()
            raise
        self.not_modified = result.not_modified
        return result.items

    def normalize(self, raw_item: FeedEntry) -> ContentCandidate:
        body = raw_item.description
        if raw_item.enclosure_url and raw_item.enclosure_url not in body:
            body = f"{body}\n\nAudio: {raw_item.enclosure_url}".strip()
        return ContentCandidate(
            user_id=self.user_id,
            title=raw_item.title,
            url=raw_item.link or raw_item.enclosure_url or "",
            body=body,
            source=self.source.name,
            published_at=raw_item.published_at,
            fingerprint=self.deduplicator.fingerprint([raw_item.link, raw_item.description]),
        )

    async def ingest(self) -> Dict[str, Any]:
        stats = await super().ingest()
        stats["not_modified"] = self.not_modified
        logger.info(
            "Feed %s: %s fetched, %s new, %s skipped%s",
            self.source.url,
            stats["items_fetched"],
            stats["items_new"],
            stats["items_skipped"],
            " (not modified)" if self.not_modified else "",
        )
        return stats
