"""SQLAlchemy models."""
from pensive.models.job import Job, JobKind, JobStatus
from pensive.models.content import Content
from pensive.models.analysis import Analysis
from pensive.models.concept import Concept
from pensive.models.relationship import Relationship
from pensive.models.source import Source
from pensive.models.digest import Digest, DigestStatus, DigestTimeframe
from pensive.models.user_settings import UserSettings

__all__ = [
    "Job",
    "JobKind",
    "JobStatus",
    "Content",
    "Analysis",
    "Concept",
    "Relationship",
    "Source",
    "Digest",
    "DigestStatus",
    "DigestTimeframe",
    "UserSettings",
]
