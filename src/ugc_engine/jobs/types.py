"""Job kinds, payload schemas and retry options."""

from dataclasses import asdict, dataclass
from enum import StrEnum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from ugc_engine.domain.enums import TaskKind


class JobKind(StrEnum):
    """Job names; also the Celery task names."""

    VIDEO_WORKFLOW = "ugc-video-workflow"
    IMAGE_WORKFLOW = "image-generation-workflow"
    POLL_VIDEO_STATUS = "poll-video-status"


class QueueRole(StrEnum):
    PRODUCER = "producer"
    CONSUMER = "consumer"


# Workflow jobs and poll jobs run on separate queues so a long poll never
# holds up the next workflow.
JOB_QUEUES: dict[JobKind, str] = {
    JobKind.VIDEO_WORKFLOW: "workflows.video",
    JobKind.IMAGE_WORKFLOW: "workflows.image",
    JobKind.POLL_VIDEO_STATUS: "polling.video",
}

WORKFLOW_JOB_FOR_TASK: dict[TaskKind, JobKind] = {
    TaskKind.VIDEO: JobKind.VIDEO_WORKFLOW,
    TaskKind.IMAGE: JobKind.IMAGE_WORKFLOW,
}


@dataclass(frozen=True)
class JobOptions:
    """Retry and expiry policy for one job."""

    retry_limit: int = 2
    retry_delay: int = 60  # seconds
    retry_backoff: bool = True
    expire_in_seconds: int = 3600

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, kind: JobKind) -> "JobOptions":
        """Rebuild options from a message, falling back to the kind's defaults."""
        if not data:
            return DEFAULT_JOB_OPTIONS[kind]
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


DEFAULT_JOB_OPTIONS: dict[JobKind, JobOptions] = {
    JobKind.VIDEO_WORKFLOW: JobOptions(
        retry_limit=2, retry_delay=60, retry_backoff=True, expire_in_seconds=7200
    ),
    JobKind.IMAGE_WORKFLOW: JobOptions(
        retry_limit=2, retry_delay=60, retry_backoff=True, expire_in_seconds=3600
    ),
    JobKind.POLL_VIDEO_STATUS: JobOptions(
        retry_limit=2, retry_delay=30, retry_backoff=True, expire_in_seconds=7200
    ),
}


def compute_retry_countdown(options: JobOptions, retries: int) -> int:
    """Seconds to wait before retry number ``retries + 1``."""
    if options.retry_backoff:
        return int(options.retry_delay * (2**retries))
    return options.retry_delay


# =============================================================================
# Payloads
# =============================================================================


class VideoWorkflowPayload(BaseModel):
    task_id: UUID
    generate_audio: bool = True


class ImageWorkflowPayload(BaseModel):
    task_id: UUID


class PollVideoStatusPayload(BaseModel):
    task_id: UUID
    video_clip_ids: list[UUID] = Field(..., min_length=1)
    max_attempts: int = Field(default=60, ge=1)
    poll_interval: float = Field(default=10.0, ge=0, description="Seconds between attempts")
    workflow_job_id: str | None = Field(
        default=None, description="Workflow job that scheduled this poll"
    )
