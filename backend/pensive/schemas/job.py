"""Job payload and queue schemas.

Each job kind has exactly one payload model. Payloads are stored in the
``jobs.payload`` column in camelCase, the wire format producers use.
"""
from datetime import datetime
from typing import ClassVar, Union

from pydantic import BaseModel, ConfigDict, Field

from pensive.models.digest import DigestTimeframe
from pensive.models.job import JobKind, JobStatus


class JobPayload(BaseModel):
    """Base class for kind-specific payloads."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: ClassVar[JobKind]

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class FetchFeedPayload(JobPayload):
    kind: ClassVar[JobKind] = JobKind.FETCH_FEED

    source_id: int = Field(alias="sourceId")
    user_id: str = Field(alias="userId")


class AnalyzeContentPayload(JobPayload):
    kind: ClassVar[JobKind] = JobKind.ANALYZE_CONTENT

    content_id: int = Field(alias="contentId")
    user_id: str = Field(alias="userId")
    title: str
    content: str = ""
    url: str = ""


class GenerateDigestPayload(JobPayload):
    kind: ClassVar[JobKind] = JobKind.GENERATE_DIGEST

    user_id: str = Field(alias="userId")
    timeframe: DigestTimeframe = Field(alias="type")


class SendEmailPayload(JobPayload):
    kind: ClassVar[JobKind] = JobKind.SEND_EMAIL

    to: str
    subject: str
    html: str
    digest_id: int | None = Field(default=None, alias="digestId")


AnyJobPayload = Union[
    FetchFeedPayload,
    AnalyzeContentPayload,
    GenerateDigestPayload,
    SendEmailPayload,
]

PAYLOAD_MODELS: dict[JobKind, type[JobPayload]] = {
    model.kind: model
    for model in (
        FetchFeedPayload,
        AnalyzeContentPayload,
        GenerateDigestPayload,
        SendEmailPayload,
    )
}

_missing = set(JobKind) - set(PAYLOAD_MODELS)
if _missing:
    raise RuntimeError(f"Job kinds without a payload model: {sorted(k.value for k in _missing)}")


def parse_payload(kind: JobKind, data: dict) -> AnyJobPayload:
    """Validate a stored payload against the model for its kind."""
    return PAYLOAD_MODELS[JobKind(kind)].model_validate(data)


class Job(BaseModel):
    """Schema for job response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: JobKind
    payload: dict
    status: JobStatus
    attempts: int
    max_attempts: int
    scheduled_at: datetime
    started_at: datetime | None
    completed_at: datetime | None
    last_error: str | None
    user_id: str | None


class QueueStats(BaseModel):
    """Job counts per status."""

    pending: int = 0
    running: int = 0
    completed: int = 0
    failed: int = 0


class ProcessJobsResponse(BaseModel):
    """Response of the batch trigger endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    processed_jobs: int = Field(serialization_alias="processedJobs")
    failed_jobs: int = Field(serialization_alias="failedJobs")
    exhausted_jobs: int = Field(serialization_alias="exhaustedJobs")
    recovered_jobs: int = Field(serialization_alias="recoveredJobs")
    queue_stats: QueueStats = Field(serialization_alias="queueStats")
