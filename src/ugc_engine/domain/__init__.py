"""Domain models and business logic."""

from ugc_engine.domain.enums import (
    AspectRatio,
    ClipStatus,
    DownloadStatus,
    FrameRole,
    FrameSource,
    Language,
    TaskKind,
    TaskStatus,
)
from ugc_engine.domain.models import (
    ClipStatusReport,
    FrameRef,
    GeneratedFrameRef,
    PollSummary,
    UploadedFrameRef,
    WorkflowResult,
    frame_ref_from_json,
)

__all__ = [
    "AspectRatio",
    "ClipStatus",
    "ClipStatusReport",
    "DownloadStatus",
    "FrameRef",
    "FrameRole",
    "FrameSource",
    "GeneratedFrameRef",
    "Language",
    "PollSummary",
    "TaskKind",
    "TaskStatus",
    "UploadedFrameRef",
    "WorkflowResult",
    "frame_ref_from_json",
]
