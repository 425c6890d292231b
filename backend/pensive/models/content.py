"""Content model."""
from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from pensive.database import Base
from pensive.utils.time import utcnow


class Content(Base):
    """Deduplicated unit of ingested text."""

    __tablename__ = "content"
    __table_args__ = (
        UniqueConstraint("user_id", "fingerprint", name="uq_content_user_fingerprint"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    title = Column(Text, nullable=False)
    url = Column(Text, nullable=False, default="")
    body = Column(Text, nullable=False, default="")
    source = Column(String(255), nullable=False, default="manual")
    fingerprint = Column(String(64), nullable=False)
    published_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    # Relationships
    analysis = relationship("Analysis", back_populates="content", uselist=False)
