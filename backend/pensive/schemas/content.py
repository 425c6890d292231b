"""Content schemas."""
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class ContentSubmit(BaseModel):
    """Schema for direct content submission."""

    user_id: str
    title: str = Field(default="Untitled", max_length=1000)
    url: str = ""
    body: str = ""
    source: str = "manual"


class Content(BaseModel):
    """Schema for content response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    title: str
    url: str
    body: str
    source: str
    fingerprint: str
    published_at: datetime | None
    created_at: datetime


class ContentSubmitResult(BaseModel):
    """Result of a direct submission."""

    content_id: int | None
    duplicate: bool
    job_id: int | None = None
