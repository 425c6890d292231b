"""Analysis model."""
from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from pensive.database import Base, JSONType
from pensive.utils.time import utcnow


class Analysis(Base):
    """Enrichment result for one content item."""

    __tablename__ = "analyses"

    id = Column(Integer, primary_key=True, index=True)
    content_id = Column(
        Integer, ForeignKey("content.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    user_id = Column(String(64), nullable=False, index=True)

    # Short summary for list views
    summary_short = Column(Text, nullable=False)

    # Paragraph-length summary for digests
    summary_long = Column(Text, nullable=False)

    # [{"name": ..., "type": ...}]
    entities = Column(JSONType, nullable=False)
    tags = Column(JSONType, nullable=False)
    priority = Column(String(20), nullable=False)
    confidence = Column(Float, nullable=False)

    model_provider = Column(String(50), nullable=True)
    model_name = Column(String(100), nullable=True)
    prompt_version = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    content = relationship("Content", back_populates="analysis")
