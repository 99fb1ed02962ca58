"""Task and clip status rules.

A task moves forward through the pipeline states and ends in one of the
terminal states. ``completed_at`` is set exactly when the status is terminal.
Going back to an earlier state is only possible through an explicit reset
(see ``TaskService.reopen``).
"""

from datetime import UTC, datetime
from typing import Any, Protocol

from ugc_engine.domain.enums import ClipStatus, TaskStatus

PROCESSING_STATUSES: frozenset[TaskStatus] = frozenset(
    {
        TaskStatus.ANALYZING,
        TaskStatus.SCRIPTING,
        TaskStatus.STORYBOARDING,
        TaskStatus.GENERATING_FRAMES,
        TaskStatus.GENERATING_VIDEOS,
        TaskStatus.GENERATING_IMAGES,
        TaskStatus.COMPOSITING,
    }
)

TERMINAL_STATUSES: frozenset[TaskStatus] = frozenset(
    {TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED}
)

TERMINAL_CLIP_STATUSES: frozenset[ClipStatus] = frozenset(
    {ClipStatus.SUCCEEDED, ClipStatus.FAILED, ClipStatus.CANCELLED, ClipStatus.EXPIRED}
)

FAILED_CLIP_STATUSES: frozenset[ClipStatus] = TERMINAL_CLIP_STATUSES - {ClipStatus.SUCCEEDED}

# Position in the pipeline. The two media-generation states share a rank
# because a task only ever visits one of them.
_PIPELINE_ORDER: dict[TaskStatus, int] = {
    TaskStatus.PENDING: 0,
    TaskStatus.ANALYZING: 1,
    TaskStatus.SCRIPTING: 2,
    TaskStatus.STORYBOARDING: 3,
    TaskStatus.GENERATING_FRAMES: 4,
    TaskStatus.GENERATING_VIDEOS: 5,
    TaskStatus.GENERATING_IMAGES: 5,
    TaskStatus.COMPOSITING: 6,
}


class StatusBearing(Protocol):
    status: str
    started_at: datetime | None
    completed_at: datetime | None


def is_terminal(status: str) -> bool:
    return TaskStatus(status) in TERMINAL_STATUSES


def is_clip_terminal(status: str) -> bool:
    return ClipStatus(status) in TERMINAL_CLIP_STATUSES


def can_transition(current: str, new: str) -> bool:
    """Check whether ``update_status`` may move a task from ``current`` to ``new``."""
    current_status = TaskStatus(current)
    new_status = TaskStatus(new)

    if current_status == new_status:
        return True
    if current_status in TERMINAL_STATUSES:
        return False
    if new_status in TERMINAL_STATUSES:
        return True
    if new_status == TaskStatus.PENDING:
        return False
    return _PIPELINE_ORDER[new_status] >= _PIPELINE_ORDER[current_status]


def build_status_update(
    task: StatusBearing,
    status: TaskStatus,
    error_message: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Compute the column values for a status change.

    Args:
        task: Current task row (only its timestamps are read)
        status: Target status
        error_message: Error text to record; None leaves the stored message alone
        now: Clock override for tests

    Returns:
        Mapping of column name to new value
    """
    now = now or datetime.now(UTC)
    values: dict[str, Any] = {"status": status.value}

    # An error arriving with a processing state means the task failed
    # before it really started, so no start stamp.
    if status in PROCESSING_STATUSES and error_message is None and task.started_at is None:
        values["started_at"] = now

    if status in TERMINAL_STATUSES:
        values["completed_at"] = now
    else:
        values["completed_at"] = None

    if error_message is not None:
        values["error_message"] = error_message

    return values


def apply_status_update(
    task: StatusBearing,
    status: TaskStatus,
    error_message: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Apply ``build_status_update`` to ``task`` in place and return the values written."""
    values = build_status_update(task, status, error_message, now)
    for field, value in values.items():
        setattr(task, field, value)
    return values
