"""Domain models - pure Python classes independent of database."""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from ugc_engine.domain.enums import ClipStatus, FrameSource, TaskStatus
from ugc_engine.exceptions import PreconditionError


# =============================================================================
# Frame references
# =============================================================================


@dataclass(frozen=True)
class GeneratedFrameRef:
    """Points at a generated key frame (``key_frame_images``)."""

    id: UUID
    source: FrameSource = field(default=FrameSource.GENERATED, init=False)

    def to_json(self) -> dict[str, str]:
        return {"id": str(self.id), "source": self.source.value}


@dataclass(frozen=True)
class UploadedFrameRef:
    """Points at a user-uploaded product photo (``product_images``)."""

    id: UUID
    source: FrameSource = field(default=FrameSource.UPLOADED, init=False)

    def to_json(self) -> dict[str, str]:
        return {"id": str(self.id), "source": self.source.value}


FrameRef = GeneratedFrameRef | UploadedFrameRef


def frame_ref_from_json(data: dict[str, Any] | None) -> FrameRef | None:
    """Decode a stored ``{id, source}`` pointer.

    Raises:
        PreconditionError: If the source tag or id is not recognised
    """
    if data is None:
        return None

    try:
        ref_id = UUID(str(data["id"]))
        source = FrameSource(data["source"])
    except (KeyError, ValueError) as e:
        raise PreconditionError(f"Invalid frame reference: {data!r}") from e

    if source == FrameSource.GENERATED:
        return GeneratedFrameRef(ref_id)
    return UploadedFrameRef(ref_id)


# =============================================================================
# Workflow and polling results
# =============================================================================


@dataclass
class WorkflowResult:
    """Outcome of one orchestrator run."""

    status: TaskStatus
    task_id: UUID
    product_id: UUID | None = None
    script_id: UUID | None = None
    shot_ids: list[UUID] = field(default_factory=list)
    video_clip_ids: list[UUID] = field(default_factory=list)
    image_ids: list[UUID] = field(default_factory=list)
    error: str | None = None
    advisory: str | None = None
    retryable: bool = True

    @property
    def failed(self) -> bool:
        return self.status == TaskStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-safe dict for Celery results."""
        return {
            "status": self.status.value,
            "task_id": str(self.task_id),
            "product_id": str(self.product_id) if self.product_id else None,
            "script_id": str(self.script_id) if self.script_id else None,
            "shot_ids": [str(i) for i in self.shot_ids],
            "video_clip_ids": [str(i) for i in self.video_clip_ids],
            "image_ids": [str(i) for i in self.image_ids],
            "error": self.error,
            "advisory": self.advisory,
            "retryable": self.retryable,
        }


@dataclass
class ClipStatusReport:
    """Status of one clip after a reconciliation pass."""

    clip_id: UUID
    status: ClipStatus
    video_url: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "clip_id": str(self.clip_id),
            "status": self.status.value,
            "video_url": self.video_url,
            "error": self.error,
        }


@dataclass
class PollSummary:
    """Counts from the last attempt of a bounded polling loop."""

    attempts: int
    succeeded: int
    failed: int
    pending: int
    timed_out: bool
    reports: list[ClipStatusReport] = field(default_factory=list)

    @property
    def settled(self) -> bool:
        return self.pending == 0
