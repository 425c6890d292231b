"""Concept model."""
from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint

from pensive.database import Base
from pensive.utils.time import utcnow


class Concept(Base):
    """Named, typed entity aggregated across a user's content."""

    __tablename__ = "concepts"
    __table_args__ = (
        UniqueConstraint("user_id", "name", "type", name="uq_concepts_user_name_type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(64), nullable=False)
    frequency = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
