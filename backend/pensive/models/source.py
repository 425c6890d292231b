"""Feed source model."""
from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, UniqueConstraint

from pensive.database import Base
from pensive.utils.time import utcnow


class Source(Base):
    """Subscribed RSS/podcast feed."""

    __tablename__ = "sources"
    __table_args__ = (
        UniqueConstraint("user_id", "url", name="uq_sources_user_url"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    url = Column(Text, nullable=False)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Conditional fetch metadata
    etag = Column(String(512), nullable=True)
    last_modified = Column(String(128), nullable=True)
    last_fetched_at = Column(DateTime, nullable=True)

    error_count = Column(Integer, default=0, nullable=False)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
