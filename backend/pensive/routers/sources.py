"""Feed sources API router."""
from urllib.parse import urlparse

import feedparser
import requests
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pensive.config import settings
from pensive.database import get_db
from pensive.models.source import Source
from pensive.schemas.source import Source as SourceSchema, SourceCreate
from pensive.services.ingestion.feed_fetcher import ACCEPT_HEADER

router = APIRouter()


def validate_feed_url(url: str) -> str:
    """Check that the URL serves an RSS/Atom feed. Returns the cleaned URL."""
    parsed = urlparse((url or "").strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise HTTPException(
            status_code=400,
            detail="Invalid feed URL. Use a full http(s) URL to an RSS/Atom feed.",
        )
    headers = {
        "User-Agent": settings.feed_user_agent,
        "Accept": ACCEPT_HEADER,
    }
    try:
        response = requests.get(parsed.geturl(), headers=headers, timeout=15)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise HTTPException(
            status_code=400,
            detail=f"Unable to fetch feed URL: {exc}",
        )

    feed = feedparser.parse(response.content)
    if not feed.entries and not feed.feed:
        detail = "URL did not return a valid RSS/Atom feed."
        if feed.bozo and hasattr(feed, "bozo_exception"):
            detail = f"{detail} Parser error: {feed.bozo_exception}"
        raise HTTPException(status_code=400, detail=detail)
    return parsed.geturl()


@router.get("", response_model=list[SourceSchema])
def list_sources(
    user_id: str = Query(...),
    active: bool | None = Query(None),
    db: Session = Depends(get_db),
):
    """List a user's feed sources."""
    query = db.query(Source).filter(Source.user_id == user_id)
    if active is not None:
        query = query.filter(Source.is_active == active)
    return query.order_by(Source.id).all()


@router.post("", response_model=SourceSchema, status_code=201)
def create_source(source: SourceCreate, db: Session = Depends(get_db)):
    """Subscribe a user to a feed."""
    url = validate_feed_url(source.url)
    db_source = Source(user_id=source.user_id, url=url, name=source.name)
    db.add(db_source)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Feed already subscribed")
    db.refresh(db_source)
    return db_source
