"""Job model."""
import enum

from sqlalchemy import Column, DateTime, Enum, Index, Integer, String, Text

from pensive.database import Base, JSONType
from pensive.utils.time import utcnow


class JobKind(str, enum.Enum):
    """Job kind enumeration."""

    ANALYZE_CONTENT = "analyze_content"
    FETCH_FEED = "fetch_feed"
    GENERATE_DIGEST = "generate_digest"
    SEND_EMAIL = "send_email"


class JobStatus(str, enum.Enum):
    """Job status enumeration."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class Job(Base):
    """Unit of deferred work consumed by the dispatcher."""

    __tablename__ = "jobs"
    __table_args__ = (
        Index("ix_jobs_status_scheduled_at", "status", "scheduled_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(Enum(JobKind), nullable=False)
    payload = Column(JSONType, nullable=False)
    status = Column(Enum(JobStatus), default=JobStatus.PENDING, nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    max_attempts = Column(Integer, default=3, nullable=False)
    scheduled_at = Column(DateTime, default=utcnow, nullable=False)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    last_error = Column(Text, nullable=True)
    user_id = Column(String(64), nullable=True, index=True)  # None for system-wide jobs
    created_at = Column(DateTime, default=utcnow, nullable=False)

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts
