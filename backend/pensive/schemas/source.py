"""Source schemas."""
from datetime import datetime
from pydantic import BaseModel, ConfigDict


class SourceCreate(BaseModel):
    """Schema for subscribing to a feed."""

    user_id: str
    url: str
    name: str


class Source(BaseModel):
    """Schema for source response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    url: str
    name: str
    is_active: bool
    etag: str | None
    last_modified: str | None
    last_fetched_at: datetime | None
    error_count: int
    last_error: str | None
