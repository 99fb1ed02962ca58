"""Job handlers: what each queued job does, independent of Celery.

Handlers may run more than once for the same job (late acks, queue-level
retries). A job for a task that already completed or was cancelled is a
no-op, and so is a job for a task that another run currently owns.
Failed tasks, and interrupted tasks owned by the same job, are reset to
the state the job starts from before the work runs again.
"""

from typing import Any
from uuid import UUID

from ugc_engine.config import settings
from ugc_engine.db.session import session_scope
from ugc_engine.domain.enums import TaskStatus
from ugc_engine.exceptions import WorkflowError
from ugc_engine.jobs.context import WorkerContext
from ugc_engine.jobs.types import (
    ImageWorkflowPayload,
    JobKind,
    PollVideoStatusPayload,
    VideoWorkflowPayload,
)
from ugc_engine.logging import get_logger
from ugc_engine.services.task_service import TaskService
from ugc_engine.services.workflow import settle_video_task

logger = get_logger(__name__)

SKIP_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED})

# Statuses a workflow run sets before handing over; only the job that owns
# the task may restart from them after a crash.
VIDEO_WORKFLOW_STATUSES = frozenset(
    {
        TaskStatus.ANALYZING,
        TaskStatus.SCRIPTING,
        TaskStatus.STORYBOARDING,
        TaskStatus.GENERATING_FRAMES,
    }
)
IMAGE_WORKFLOW_STATUSES = frozenset({TaskStatus.ANALYZING, TaskStatus.GENERATING_IMAGES})


def claim_task(
    ctx: WorkerContext,
    task_id: UUID,
    start_status: TaskStatus = TaskStatus.PENDING,
    job_id: str | None = None,
    resumable: frozenset[TaskStatus] = frozenset(),
) -> TaskStatus | None:
    """Prepare a task for a (possibly repeated) job run.

    The job runs when the task sits at ``start_status``. A ``failed`` task is
    reopened to ``start_status``, and so is a task in one of the
    ``resumable`` statuses when ``job_id`` is the job recorded on the task.
    Anything else belongs to another run and the job is skipped.

    Args:
        job_id: Workflow job that owns this run (for poll jobs, the workflow
            job that scheduled them)

    Returns:
        None when the job should run, otherwise the status that makes it a no-op
    """
    with session_scope(ctx.session_factory) as session:
        tasks = TaskService(session)
        task = tasks.get_task(task_id)
        status = TaskStatus(task.status)

        if status in SKIP_STATUSES:
            logger.info("job_skipped", task_id=str(task_id), status=status.value)
            return status

        if job_id is not None and task.job_id is not None and task.job_id != job_id:
            logger.warning(
                "job_superseded",
                task_id=str(task_id),
                job_id=job_id,
                current_job_id=task.job_id,
                status=status.value,
            )
            return status

        owned = job_id is not None and task.job_id == job_id
        if status != start_status:
            if status != TaskStatus.FAILED and not (owned and status in resumable):
                logger.warning(
                    "job_skipped_task_busy",
                    task_id=str(task_id),
                    status=status.value,
                    expected=start_status.value,
                )
                return status

            logger.info(
                "task_reset_for_redelivery",
                task_id=str(task_id),
                previous=status.value,
                status=start_status.value,
            )
            tasks.reopen(task, start_status)

        if job_id is not None and start_status == TaskStatus.PENDING:
            task.job_id = job_id
    return None


def _skipped(task_id: UUID, status: TaskStatus) -> dict[str, Any]:
    return {"task_id": str(task_id), "status": status.value, "skipped": True}


def handle_video_workflow(
    payload: VideoWorkflowPayload,
    ctx: WorkerContext,
    job_id: str | None = None,
) -> dict[str, Any]:
    """Run the video workflow and hand the wait to a poll job.

    Raises:
        WorkflowError: If the workflow failed (the task is already marked failed)
    """
    skip = claim_task(
        ctx, payload.task_id, job_id=job_id, resumable=VIDEO_WORKFLOW_STATUSES
    )
    if skip is not None:
        return _skipped(payload.task_id, skip)

    result = ctx.video_workflow().execute(payload.task_id, generate_audio=payload.generate_audio)
    if result.failed:
        raise WorkflowError(result.error or "Video workflow failed", retryable=result.retryable)
    if result.status != TaskStatus.GENERATING_VIDEOS:
        return result.to_dict()

    poll = PollVideoStatusPayload(
        task_id=payload.task_id,
        video_clip_ids=result.video_clip_ids,
        max_attempts=settings.poll_max_attempts,
        poll_interval=settings.poll_interval_seconds,
        workflow_job_id=job_id,
    )
    poll_job_id = ctx.job_queue.send(JobKind.POLL_VIDEO_STATUS, poll)

    logger.info(
        "video_poll_scheduled",
        task_id=str(payload.task_id),
        poll_job_id=poll_job_id,
        clip_count=len(result.video_clip_ids),
    )
    return {**result.to_dict(), "poll_job_id": poll_job_id}


def handle_image_workflow(
    payload: ImageWorkflowPayload,
    ctx: WorkerContext,
    job_id: str | None = None,
) -> dict[str, Any]:
    """Run the image workflow to completion.

    Raises:
        WorkflowError: If the workflow failed (the task is already marked failed)
    """
    skip = claim_task(
        ctx, payload.task_id, job_id=job_id, resumable=IMAGE_WORKFLOW_STATUSES
    )
    if skip is not None:
        return _skipped(payload.task_id, skip)

    result = ctx.image_workflow().execute(payload.task_id)
    if result.failed:
        raise WorkflowError(result.error or "Image workflow failed", retryable=result.retryable)
    return result.to_dict()


def handle_poll_video_status(
    payload: PollVideoStatusPayload,
    ctx: WorkerContext,
) -> dict[str, Any]:
    """Wait for the task's clips and complete or fail the task.

    Raises:
        WorkflowError: If no clip succeeded (the task is already marked failed)
    """
    skip = claim_task(
        ctx,
        payload.task_id,
        start_status=TaskStatus.GENERATING_VIDEOS,
        job_id=payload.workflow_job_id,
    )
    if skip is not None:
        return _skipped(payload.task_id, skip)

    status, advisory = settle_video_task(
        ctx.session_factory,
        ctx.reconciler(),
        payload.task_id,
        payload.video_clip_ids,
        payload.max_attempts,
        payload.poll_interval,
    )
    return {
        "task_id": str(payload.task_id),
        "status": status.value,
        "advisory": advisory,
        "video_clip_ids": [str(i) for i in payload.video_clip_ids],
    }
