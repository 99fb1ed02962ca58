"""Workflow orchestrators for the video and image pipelines.

A workflow runs its stages in order against one task, moving the task's
status forward before each stage. Stages never retry on their own: the
first error marks the task ``failed`` and the run returns a failed
``WorkflowResult``; whether the job runs again is up to the job queue.

Each stage first looks for the artifact it would produce and reuses it,
so a re-delivered job picks up where the last attempt stopped.
"""

import time
from collections.abc import Callable
from uuid import UUID

from ugc_engine.adapters.image_gen.base import ImageGenProvider
from ugc_engine.adapters.llm.base import LLMProvider
from ugc_engine.adapters.video_gen.base import VideoGenProvider
from ugc_engine.db.models import GenerationTaskModel
from ugc_engine.db.session import SessionFactory, session_scope
from ugc_engine.domain.enums import TaskStatus
from ugc_engine.domain.models import WorkflowResult
from ugc_engine.exceptions import PreconditionError, UGCEngineError, WorkflowError
from ugc_engine.logging import get_logger
from ugc_engine.services.image_generation import (
    generate_promotional_image,
    list_promotional_images,
)
from ugc_engine.services.poller import finalize_poll, poll_until_settled
from ugc_engine.services.product_analysis import analyze_product
from ugc_engine.services.reconciler import ClipReconciler
from ugc_engine.services.script_writer import generate_scripts
from ugc_engine.services.shot_breakdown import generate_shot_breakdown
from ugc_engine.services.storage import StorageService
from ugc_engine.services.task_service import TaskService
from ugc_engine.services.video_generation import create_merged_video_task

logger = get_logger(__name__)

TARGET_DURATION_REQUIRED = "Target duration is required for video generation workflow"
NO_IMAGES_GENERATED = "Failed to generate any images"


class _Cancelled(Exception):
    """Internal signal: the task left the pipeline between stages."""

    def __init__(self, status: TaskStatus) -> None:
        self.status = status
        super().__init__(status.value)


class _Workflow:
    """Shared stage bookkeeping for both pipelines."""

    name = "workflow"

    def __init__(self, session_factory: SessionFactory, storage: StorageService) -> None:
        self.session_factory = session_factory
        self.storage = storage

    def _advance(
        self,
        tasks: TaskService,
        task: GenerationTaskModel,
        status: TaskStatus,
        message: str | None = None,
    ) -> None:
        """Re-read the task and move it to ``status`` unless it was stopped meanwhile."""
        tasks.session.refresh(task)
        if task.status == TaskStatus.CANCELLED:
            raise _Cancelled(TaskStatus.CANCELLED)
        if not tasks.update_status(task.id, status, message):
            raise _Cancelled(TaskStatus(task.status))
        logger.info(
            "workflow_stage_started", workflow=self.name, task_id=str(task.id), stage=status.value
        )

    def _fail(
        self,
        tasks: TaskService,
        result: WorkflowResult,
        error: Exception,
    ) -> WorkflowResult:
        message = str(error) or error.__class__.__name__
        logger.error(
            "workflow_failed",
            workflow=self.name,
            task_id=str(result.task_id),
            error=message,
            error_type=error.__class__.__name__,
            exc_info=not isinstance(error, UGCEngineError),
        )
        tasks.session.rollback()
        tasks.update_status(result.task_id, TaskStatus.FAILED, message)
        result.status = TaskStatus.FAILED
        result.error = message
        result.retryable = not isinstance(error, PreconditionError)
        return result

    def _stopped(self, result: WorkflowResult, stop: _Cancelled) -> WorkflowResult:
        logger.info(
            "workflow_stopped",
            workflow=self.name,
            task_id=str(result.task_id),
            status=stop.status.value,
        )
        result.status = stop.status
        return result


class VideoWorkflow(_Workflow):
    """analyze product -> write scripts -> storyboard -> submit merged video."""

    name = "video"

    def __init__(
        self,
        session_factory: SessionFactory,
        llm: LLMProvider,
        video_gen: VideoGenProvider,
        storage: StorageService,
    ) -> None:
        super().__init__(session_factory, storage)
        self.llm = llm
        self.video_gen = video_gen

    def execute(self, task_id: UUID, generate_audio: bool = True) -> WorkflowResult:
        """Run the video pipeline up to video submission.

        On success the task is left in ``generating_videos``; the poll job
        completes it.

        Raises:
            TaskNotFoundError: If the task does not exist
        """
        with session_scope(self.session_factory) as session:
            tasks = TaskService(session)
            task = tasks.get_task(task_id)
            result = WorkflowResult(status=TaskStatus(task.status), task_id=task.id)

            if task.target_duration is None:
                tasks.update_status(task.id, TaskStatus.FAILED, TARGET_DURATION_REQUIRED)
                logger.error(
                    "workflow_failed",
                    workflow=self.name,
                    task_id=str(task.id),
                    error=TARGET_DURATION_REQUIRED,
                )
                result.status = TaskStatus.FAILED
                result.error = TARGET_DURATION_REQUIRED
                result.retryable = False
                return result

            logger.info("workflow_started", workflow=self.name, task_id=str(task.id))
            try:
                self._advance(tasks, task, TaskStatus.ANALYZING)
                product = analyze_product(session, task, self.llm, self.storage)
                result.product_id = product.id

                self._advance(tasks, task, TaskStatus.SCRIPTING)
                scripts = generate_scripts(session, task, product, self.llm)
                script = scripts[0]
                result.script_id = script.id

                self._advance(tasks, task, TaskStatus.STORYBOARDING)
                shots = generate_shot_breakdown(
                    session, script, product, task.target_duration, self.llm
                )
                result.shot_ids = [s.id for s in shots]

                self._advance(tasks, task, TaskStatus.GENERATING_VIDEOS)
                clip = create_merged_video_task(
                    session,
                    task,
                    script,
                    shots,
                    self.video_gen,
                    self.storage,
                    generate_audio=generate_audio,
                )
                result.video_clip_ids = [clip.id]
            except _Cancelled as stop:
                return self._stopped(result, stop)
            except Exception as e:
                return self._fail(tasks, result, e)

            result.status = TaskStatus.GENERATING_VIDEOS
            logger.info(
                "workflow_videos_submitted",
                workflow=self.name,
                task_id=str(task.id),
                video_clip_ids=[str(i) for i in result.video_clip_ids],
            )
            return result


class ImageWorkflow(_Workflow):
    """analyze product -> generate ``count`` promotional images."""

    name = "image"

    def __init__(
        self,
        session_factory: SessionFactory,
        llm: LLMProvider,
        image_gen: ImageGenProvider,
        storage: StorageService,
    ) -> None:
        super().__init__(session_factory, storage)
        self.llm = llm
        self.image_gen = image_gen

    def execute(self, task_id: UUID) -> WorkflowResult:
        """Run the image pipeline to completion.

        Individual image failures are skipped; the task completes with an
        advisory as long as at least one image exists.

        Raises:
            TaskNotFoundError: If the task does not exist
        """
        with session_scope(self.session_factory) as session:
            tasks = TaskService(session)
            task = tasks.get_task(task_id)
            result = WorkflowResult(status=TaskStatus(task.status), task_id=task.id)

            logger.info(
                "workflow_started", workflow=self.name, task_id=str(task.id), count=task.count
            )
            try:
                self._advance(tasks, task, TaskStatus.ANALYZING)
                product = analyze_product(session, task, self.llm, self.storage)
                result.product_id = product.id

                self._advance(tasks, task, TaskStatus.GENERATING_IMAGES)
                images = list_promotional_images(session, task.id)
                if images:
                    logger.info(
                        "promotional_images_reused", task_id=str(task.id), count=len(images)
                    )

                done = {image.image_index for image in images}
                failures = 0
                for index in range(task.count):
                    if index in done:
                        continue
                    session.refresh(task)
                    if task.status == TaskStatus.CANCELLED:
                        raise _Cancelled(TaskStatus.CANCELLED)
                    try:
                        image = generate_promotional_image(
                            session, task, product, index, self.image_gen, self.storage
                        )
                    except Exception as e:
                        session.rollback()
                        failures += 1
                        logger.warning(
                            "promotional_image_failed",
                            task_id=str(task.id),
                            index=index,
                            error=str(e),
                            exc_info=not isinstance(e, UGCEngineError),
                        )
                        continue
                    images.append(image)

                images.sort(key=lambda image: image.image_index)
                result.image_ids = [image.id for image in images]
                if not images:
                    raise WorkflowError(NO_IMAGES_GENERATED)

                advisory = (
                    f"{failures} of {task.count} images failed to generate" if failures else None
                )
                self._advance(tasks, task, TaskStatus.COMPLETED, advisory)
                result.advisory = advisory
            except _Cancelled as stop:
                return self._stopped(result, stop)
            except Exception as e:
                return self._fail(tasks, result, e)

            result.status = TaskStatus.COMPLETED
            logger.info(
                "workflow_completed",
                workflow=self.name,
                task_id=str(task.id),
                image_count=len(result.image_ids),
                advisory=advisory,
            )
            return result


# =============================================================================
# Waiting for videos
# =============================================================================


def settle_video_task(
    session_factory: SessionFactory,
    reconciler: ClipReconciler,
    task_id: UUID,
    clip_ids: list[UUID],
    max_attempts: int,
    poll_interval: float,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[TaskStatus, str | None]:
    """Poll ``clip_ids`` until settled and write the outcome onto the task.

    Returns:
        The final task status and advisory

    Raises:
        WorkflowError: If no video succeeded; the task is marked failed first
    """
    try:
        summary = poll_until_settled(
            reconciler.reconcile, clip_ids, max_attempts, poll_interval, sleep=sleep
        )
        status, advisory = finalize_poll(summary)
    except Exception as e:
        message = str(e) or e.__class__.__name__
        logger.error("video_poll_failed", task_id=str(task_id), error=message)
        with session_scope(session_factory) as session:
            TaskService(session).update_status(task_id, TaskStatus.FAILED, message)
        raise

    with session_scope(session_factory) as session:
        TaskService(session).update_status(task_id, status, advisory)

    logger.info(
        "video_task_settled",
        task_id=str(task_id),
        status=status.value,
        attempts=summary.attempts,
        succeeded=summary.succeeded,
        failed=summary.failed,
        advisory=advisory,
    )
    return status, advisory


def run_video_workflow_and_wait(
    workflow: VideoWorkflow,
    reconciler: ClipReconciler,
    task_id: UUID,
    generate_audio: bool = True,
    max_attempts: int = 60,
    poll_interval: float = 10.0,
    sleep: Callable[[float], None] = time.sleep,
) -> WorkflowResult:
    """Run the video workflow, then wait for its clips in-process.

    This is the synchronous path used from the CLI; queued runs hand the
    wait to a poll job instead.
    """
    result = workflow.execute(task_id, generate_audio=generate_audio)
    if result.status != TaskStatus.GENERATING_VIDEOS or not result.video_clip_ids:
        return result

    try:
        status, advisory = settle_video_task(
            workflow.session_factory,
            reconciler,
            task_id,
            result.video_clip_ids,
            max_attempts,
            poll_interval,
            sleep=sleep,
        )
    except WorkflowError as e:
        result.status = TaskStatus.FAILED
        result.error = str(e)
        return result
    finally:
        reconciler.download_pool.wait()

    result.status = status
    result.advisory = advisory
    return result
