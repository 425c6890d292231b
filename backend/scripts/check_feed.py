#!/usr/bin/env python3
"""One-shot check that a URL serves a feed the fetcher can read."""
import asyncio
import sys

from pensive.exceptions import PipelineError
from pensive.models.source import Source
from pensive.services.ingestion.feed_fetcher import FeedFetcher


async def check(url: str) -> int:
    source = Source(user_id="check", url=url, name=url, error_count=0)
    print(f"GET {url}")
    try:
        result = await FeedFetcher().fetch(source)
    except PipelineError as exc:
        print(f"{type(exc).__name__}: {exc}")
        return 1

    print(f"ETag: {source.etag or '-'}  Last-Modified: {source.last_modified or '-'}")
    print(f"Entries: {len(result.items)}")
    for item in result.items[:5]:
        published = item.published_at.isoformat() if item.published_at else "undated"
        print(f"  - {published}  {item.title[:70]}")
    return 0


def main() -> int:
    if len(sys.argv) < 2:
        print("Usage: check_feed.py <feed-url>")
        return 2
    return asyncio.run(check(sys.argv[1]))


if __name__ == "__main__":
    raise SystemExit(main())
