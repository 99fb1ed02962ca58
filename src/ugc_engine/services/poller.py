"""Bounded wait loop over a set of clips, and the task outcome it implies."""

import time
from collections.abc import Callable
from uuid import UUID

from ugc_engine.domain.enums import ClipStatus, TaskStatus
from ugc_engine.domain.models import ClipStatusReport, PollSummary
from ugc_engine.domain.status import FAILED_CLIP_STATUSES
from ugc_engine.exceptions import PreconditionError, WorkflowError
from ugc_engine.logging import get_logger

logger = get_logger(__name__)

Reconcile = Callable[[list[UUID]], list[ClipStatusReport]]


def summarize(attempt: int, reports: list[ClipStatusReport]) -> PollSummary:
    succeeded = sum(1 for r in reports if r.status == ClipStatus.SUCCEEDED)
    failed = sum(1 for r in reports if r.status in FAILED_CLIP_STATUSES)
    return PollSummary(
        attempts=attempt,
        succeeded=succeeded,
        failed=failed,
        pending=len(reports) - succeeded - failed,
        timed_out=False,
        reports=reports,
    )


def poll_until_settled(
    reconcile: Reconcile,
    clip_ids: list[UUID],
    max_attempts: int,
    poll_interval: float,
    sleep: Callable[[float], None] = time.sleep,
) -> PollSummary:
    """Reconcile ``clip_ids`` until none is pending or attempts run out.

    Sleeps ``poll_interval`` seconds before every attempt but the first.
    On timeout the counts are those of the last attempt.

    Raises:
        PreconditionError: If ``max_attempts`` is below 1 or no clips are given
    """
    if max_attempts < 1:
        raise PreconditionError("max_attempts must be at least 1")
    if not clip_ids:
        raise PreconditionError("No video clips to poll")

    summary: PollSummary | None = None
    for attempt in range(1, max_attempts + 1):
        if attempt > 1:
            sleep(poll_interval)

        summary = summarize(attempt, reconcile(clip_ids))
        logger.info(
            "poll_attempt",
            attempt=attempt,
            max_attempts=max_attempts,
            succeeded=summary.succeeded,
            failed=summary.failed,
            pending=summary.pending,
        )
        if summary.settled:
            return summary

    assert summary is not None
    summary.timed_out = True
    logger.warning(
        "poll_timed_out",
        attempts=summary.attempts,
        succeeded=summary.succeeded,
        pending=summary.pending,
    )
    return summary


def finalize_poll(summary: PollSummary) -> tuple[TaskStatus, str | None]:
    """Decide the task outcome of a finished wait loop.

    Returns:
        ``(completed, advisory)`` where advisory is None on full success

    Raises:
        WorkflowError: If no clip succeeded
    """
    if summary.settled and not summary.timed_out:
        if summary.failed == 0:
            return TaskStatus.COMPLETED, None
        if summary.succeeded > 0:
            return TaskStatus.COMPLETED, f"{summary.failed} videos failed to generate"
        raise WorkflowError("All videos failed to generate", retryable=False)

    if summary.succeeded > 0:
        return TaskStatus.COMPLETED, "Some videos timed out"
    raise WorkflowError("Video generation timed out")
