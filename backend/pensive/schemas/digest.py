"""Digest schemas."""
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from pensive.models.digest import DigestStatus, DigestTimeframe


class Digest(BaseModel):
    """Schema for digest response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    timeframe: DigestTimeframe
    title: str
    body: str
    referenced_content_ids: list[int]
    status: DigestStatus
    generated_at: datetime
    sent_at: datetime | None
