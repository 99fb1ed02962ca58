"""Celery task definitions for the generation jobs.

Task names are the ``JobKind`` values. Each message carries its payload and
its retry options; the base task turns the options into a Celery retry.
"""

from typing import Any, NoReturn

from celery import Task

from ugc_engine.exceptions import PreconditionError, WorkflowError
from ugc_engine.jobs.context import get_worker_context
from ugc_engine.jobs.handlers import (
    handle_image_workflow,
    handle_poll_video_status,
    handle_video_workflow,
)
from ugc_engine.jobs.types import (
    ImageWorkflowPayload,
    JobKind,
    JobOptions,
    PollVideoStatusPayload,
    VideoWorkflowPayload,
    compute_retry_countdown,
)
from ugc_engine.logging import bind_task_context, clear_task_context, get_logger
from ugc_engine.worker import celery_app

logger = get_logger(__name__)


def is_retryable(exc: BaseException) -> bool:
    """Whether running the job again could change the outcome."""
    if isinstance(exc, PreconditionError):
        return False
    if isinstance(exc, WorkflowError):
        return exc.retryable
    return True


class QueueTask(Task):
    """Base task that retries according to the options sent with the job."""

    abstract = True

    def retry_with_policy(
        self,
        exc: Exception,
        kind: JobKind,
        options: dict[str, Any] | None,
    ) -> NoReturn:
        policy = JobOptions.from_dict(options, kind)
        retries = self.request.retries

        if not is_retryable(exc) or retries >= policy.retry_limit:
            logger.error(
                "job_failed",
                kind=kind.value,
                job_id=self.request.id,
                attempt=retries + 1,
                retryable=is_retryable(exc),
                error=str(exc),
            )
            raise exc

        countdown = compute_retry_countdown(policy, retries)
        logger.warning(
            "job_retry_scheduled",
            kind=kind.value,
            job_id=self.request.id,
            attempt=retries + 1,
            countdown=countdown,
            error=str(exc),
        )
        raise self.retry(exc=exc, countdown=countdown, max_retries=policy.retry_limit)


def _bind(task: Task, kind: JobKind, task_id: Any) -> None:
    bind_task_context(
        job_id=task.request.id,
        job_kind=kind.value,
        task_id=str(task_id),
        attempt=task.request.retries + 1,
    )


@celery_app.task(bind=True, base=QueueTask, name=JobKind.VIDEO_WORKFLOW.value)
def video_workflow_task(
    self: QueueTask,
    payload: dict[str, Any],
    options: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Run the video workflow for one task and schedule its poll job."""
    data = VideoWorkflowPayload.model_validate(payload)
    _bind(self, JobKind.VIDEO_WORKFLOW, data.task_id)
    logger.info("video_workflow_job_started")

    try:
        return handle_video_workflow(data, get_worker_context(), job_id=self.request.id)
    except Exception as e:
        self.retry_with_policy(e, JobKind.VIDEO_WORKFLOW, options)
    finally:
        clear_task_context()


@celery_app.task(bind=True, base=QueueTask, name=JobKind.IMAGE_WORKFLOW.value)
def image_workflow_task(
    self: QueueTask,
    payload: dict[str, Any],
    options: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Run the image workflow for one task."""
    data = ImageWorkflowPayload.model_validate(payload)
    _bind(self, JobKind.IMAGE_WORKFLOW, data.task_id)
    logger.info("image_workflow_job_started")

    try:
        return handle_image_workflow(data, get_worker_context(), job_id=self.request.id)
    except Exception as e:
        self.retry_with_policy(e, JobKind.IMAGE_WORKFLOW, options)
    finally:
        clear_task_context()


@celery_app.task(bind=True, base=QueueTask, name=JobKind.POLL_VIDEO_STATUS.value)
def poll_video_status_task(
    self: QueueTask,
    payload: dict[str, Any],
    options: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Wait for a task's clips to finish and settle the task."""
    data = PollVideoStatusPayload.model_validate(payload)
    _bind(self, JobKind.POLL_VIDEO_STATUS, data.task_id)
    logger.info("poll_video_status_job_started", clip_count=len(data.video_clip_ids))

    try:
        return handle_poll_video_status(data, get_worker_context())
    except Exception as e:
        self.retry_with_policy(e, JobKind.POLL_VIDEO_STATUS, options)
    finally:
        clear_task_context()
