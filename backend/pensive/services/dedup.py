"""Content fingerprinting and deduplicated storage."""
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pensive.exceptions import DuplicateContentError
from pensive.models.content import Content

logger = logging.getLogger(__name__)


@dataclass
class ContentCandidate:
    """Content about to be stored, before dedup."""

    user_id: str
    title: str
    url: str = ""
    body: str = ""
    source: str = "manual"
    published_at: Optional[datetime] = None
    fingerprint: Optional[str] = None


class ContentDeduplicator:
    """Per-user dedup keyed on a content fingerprint.

    The ``(user_id, fingerprint)`` unique index is the source of truth;
    ``exists`` is only a cheap pre-check.
    """

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def fingerprint(parts: Iterable[Optional[str]]) -> str:
        """SHA-256 hex digest over the parts.

        Each part is length-prefixed so ("ab", "c") and ("a", "bc") differ.
        """
        digest = hashlib.sha256()
        for part in parts:
            text = (part or "").strip()
            encoded = text.encode("utf-8")
            digest.update(f"{len(encoded)}:".encode("ascii"))
            digest.update(encoded)
        return digest.hexdigest()

    def exists(self, user_id: str, fingerprint: str) -> bool:
        stmt = select(Content.id).where(
            Content.user_id == user_id,
            Content.fingerprint == fingerprint,
        )
        return self.db.execute(stmt.limit(1)).first() is not None

    def store(self, candidate: ContentCandidate) -> Content:
        """Insert the candidate, raising DuplicateContentError if already stored.

        The insert runs in a savepoint; a duplicate leaves the caller's
        transaction usable. Nothing is committed here. Integrity errors other
        than the fingerprint index propagate unchanged.
        """
        fingerprint = candidate.fingerprint or self.fingerprint([candidate.url, candidate.body])
        content = Content(
            user_id=candidate.user_id,
            title=candidate.title,
            url=candidate.url,
            body=candidate.body,
            source=candidate.source,
            published_at=candidate.published_at,
            fingerprint=fingerprint,
        )
        try:
            with self.db.begin_nested():
                self.db.add(content)
        except IntegrityError as exc:
            if not self.exists(candidate.user_id, fingerprint):
                raise
            raise DuplicateContentError(candidate.user_id, fingerprint) from exc
        return content
