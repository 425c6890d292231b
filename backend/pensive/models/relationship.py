"""Concept relationship model."""
from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint

from pensive.database import Base
from pensive.utils.time import utcnow

INITIAL_STRENGTH = 0.5
STRENGTH_STEP = 0.1
DEFAULT_RELATIONSHIP_TYPE = "RELATES_TO"


class Relationship(Base):
    """Weighted co-occurrence edge between two concepts within one content item."""

    __tablename__ = "relationships"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "from_concept_id",
            "to_concept_id",
            "content_id",
            name="uq_relationships_user_from_to_content",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    from_concept_id = Column(
        Integer, ForeignKey("concepts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    to_concept_id = Column(
        Integer, ForeignKey("concepts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content_id = Column(
        Integer, ForeignKey("content.id", ondelete="CASCADE"), nullable=False
    )
    strength = Column(Float, default=INITIAL_STRENGTH, nullable=False)
    type = Column(String(64), default=DEFAULT_RELATIONSHIP_TYPE, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
