"""User settings model."""
from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, String

from pensive.database import Base
from pensive.models.digest import DigestTimeframe
from pensive.utils.time import utcnow


class UserSettings(Base):
    """Per-user digest delivery preferences."""

    __tablename__ = "user_settings"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False, unique=True)
    digest_email = Column(String(320), nullable=True)
    digest_frequency = Column(
        Enum(DigestTimeframe), default=DigestTimeframe.WEEKLY, nullable=False
    )
    is_active = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
