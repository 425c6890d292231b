"""Summarizer output schemas."""
from typing import List, Literal

from pydantic import BaseModel, Field, field_validator


class EntityMention(BaseModel):
    """A named entity extracted from content."""
    name: str = Field(min_length=1, max_length=255)
    type: str = Field(default="concept", max_length=64)

    @field_validator("name", "type")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return v.strip()


class AnalysisSummary(BaseModel):
    """Short and long summary forms."""
    short: str = Field(max_length=500)
    paragraph: str = Field(max_length=3000)


class AnalysisOutput(BaseModel):
    """Structured analysis returned by the summarizer."""
    summary: AnalysisSummary
    entities: List[EntityMention] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list, max_length=20)
    priority: Literal["skim", "read", "deep-dive"] = "read"
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)


class DigestOutput(BaseModel):
    """Digest body returned by the digest writer."""
    title: str = Field(max_length=255)
    body: str
