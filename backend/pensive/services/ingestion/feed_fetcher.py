"""Conditional RSS/podcast feed fetching."""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import feedparser
import requests
from dateutil import parser as date_parser

from pensive.config import settings
from pensive.exceptions import MalformedSourceError, PipelineError, TransientNetworkError
from pensive.models.source import Source
from pensive.utils.time import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "application/rss+xml, application/atom+xml, text/xml;q=0.9, */*;q=0.8"
MAX_ERROR_LENGTH = 1000


@dataclass(frozen=True)
class FeedEntry:
    """A single feed item."""

    title: str
    link: str
    description: str
    published_at: Optional[datetime] = None
    enclosure_url: Optional[str] = None


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one fetch. ``not_modified`` is set on HTTP 304."""

    items: List[FeedEntry] = field(default_factory=list)
    not_modified: bool = False


def parse_entry_date(raw_entry: Dict[str, Any]) -> Optional[datetime]:
    for date_field in ("published", "updated", "created"):
        value = raw_entry.get(date_field)
        if not value:
            continue
        try:
            return to_naive_utc(date_parser.parse(value))
        except (ValueError, OverflowError, TypeError):
            continue
    return None


def normalize_entry(raw_entry: Dict[str, Any]) -> FeedEntry:
    """Convert a feedparser entry into a FeedEntry with defaults filled in."""
    title = (raw_entry.get("title") or "").strip() or "Untitled"
    link = (raw_entry.get("link") or "").strip()

    description = ""
    if raw_entry.get("content"):
        description = raw_entry["content"][0].get("value", "") or ""
    if not description:
        description = raw_entry.get("summary") or raw_entry.get("description") or ""

    enclosure_url = None
    for enclosure in raw_entry.get("enclosures") or []:
        href = enclosure.get("href") or enclosure.get("url")
        if href:
            enclosure_url = href
            break

    return FeedEntry(
        title=title,
        link=link,
        description=description.strip(),
        published_at=parse_entry_date(raw_entry),
        enclosure_url=enclosure_url,
    )


def newest_first(entries: List[FeedEntry], limit: int) -> List[FeedEntry]:
    """Sort by published date descending, undated entries last, and cap."""
    ordered = sorted(
        entries,
        key=lambda entry: (entry.published_at is not None, entry.published_at or datetime.min),
        reverse=True,
    )
    return ordered[: max(0, limit)]


class FeedFetcher:
    """Fetch a source with ETag/Last-Modified caching.

    The source row is updated in place (conditional headers, fetch time and
    error bookkeeping); committing is left to the caller.
    """

    def __init__(
        self,
        timeout_seconds: int | None = None,
        max_items: int | None = None,
        user_agent: str | None = None,
    ):
        self.timeout_seconds = timeout_seconds or settings.feed_timeout_seconds
        self.max_items = max_items if max_items is not None else settings.feed_max_items
        self.user_agent = user_agent or settings.feed_user_agent

    def build_headers(self, source: Source) -> Dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": ACCEPT_HEADER,
        }
        if source.etag:
            headers["If-None-Match"] = source.etag
        if source.last_modified:
            headers["If-Modified-Since"] = source.last_modified
        return headers

    def _get(self, url: str, headers: Dict[str, str]) -> requests.Response:
        return requests.get(url, headers=headers, timeout=self.timeout_seconds)

    async def fetch(self, source: Source) -> FetchResult:
        """Fetch and parse ``source``.

        Raises:
            TransientNetworkError: network failure, timeout, 429 or 5xx
            MalformedSourceError: other HTTP errors or an unparseable body
        """
        try:
            return await self._fetch(source)
        except PipelineError as exc:
            source.error_count = (source.error_count or 0) + 1
            source.last_error = str(exc)[:MAX_ERROR_LENGTH]
            logger.warning("Feed %s failed (%s errors so far): %s", source.url, source.error_count, exc)
            raise

    async def _fetch(self, source: Source) -> FetchResult:
        headers = self.build_headers(source)
        try:
            response = await asyncio.to_thread(self._get, source.url, headers)
        except requests.Timeout as exc:
            raise TransientNetworkError(
                f"Feed request timed out after {self.timeout_seconds}s: {source.url}"
            ) from exc
        except requests.RequestException as exc:
            raise TransientNetworkError(f"Feed fetch error: {exc}") from exc

        now = utcnow()
        if response.status_code == 304:
            source.last_fetched_at = now
            logger.info("Feed %s not modified", source.url)
            return FetchResult(items=[], not_modified=True)

        if response.status_code == 429 or response.status_code >= 500:
            raise TransientNetworkError(f"Feed returned HTTP {response.status_code}: {source.url}")
        if response.status_code >= 400:
            raise MalformedSourceError(f"Feed returned HTTP {response.status_code}: {source.url}")

        parsed = feedparser.parse(response.content)
        if parsed.bozo and not parsed.entries and not parsed.feed:
            raise MalformedSourceError(
                f"Feed parse error: {getattr(parsed, 'bozo_exception', 'unknown error')}"
            )

        entries = newest_first(
            [normalize_entry(raw_entry) for raw_entry in parsed.entries],
            self.max_items,
        )

        source.etag = response.headers.get("ETag")
        source.last_modified = response.headers.get("Last-Modified")
        source.last_fetched_at = now
        source.error_count = 0
        source.last_error = None

        logger.info("Fetched %s entries from %s", len(entries), source.url)
        return FetchResult(items=entries)
