"""Digest model."""
import enum

from sqlalchemy import Column, DateTime, Enum, Integer, String, Text

from pensive.database import Base, JSONType
from pensive.utils.time import utcnow


class DigestTimeframe(str, enum.Enum):
    """Digest timeframe enumeration."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class DigestStatus(str, enum.Enum):
    """Digest status enumeration."""

    DRAFT = "draft"
    SCHEDULED = "scheduled"
    SENT = "sent"


class Digest(Base):
    """Generated periodic summary of a user's content."""

    __tablename__ = "digests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    timeframe = Column(Enum(DigestTimeframe), nullable=False)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)

    # Content ids the digest was generated from, in selection order
    referenced_content_ids = Column(JSONType, nullable=False)

    status = Column(Enum(DigestStatus), default=DigestStatus.SCHEDULED, nullable=False)
    generated_at = Column(DateTime, default=utcnow, nullable=False)
    sent_at = Column(DateTime, nullable=True)
