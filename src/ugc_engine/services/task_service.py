"""Generation task lifecycle: create, status updates, retry, delete, queries."""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ugc_engine.db.models import (
    GenerationTaskModel,
    ProductImageModel,
    PromotionalImageModel,
    VideoClipModel,
)
from ugc_engine.domain.enums import AspectRatio, Language, TaskKind, TaskStatus
from ugc_engine.domain.status import apply_status_update, can_transition
from ugc_engine.exceptions import (
    ArtifactNotFoundError,
    InvalidTaskStateError,
    PreconditionError,
    TaskNotFoundError,
)
from ugc_engine.jobs.queue import JobQueue
from ugc_engine.jobs.types import (
    WORKFLOW_JOB_FOR_TASK,
    ImageWorkflowPayload,
    JobKind,
    VideoWorkflowPayload,
)
from ugc_engine.logging import get_logger
from ugc_engine.services.storage import StorageService, guess_mime_type

logger = get_logger(__name__)

MAX_SOURCE_IMAGES = 9
MIN_TARGET_DURATION = 5
MAX_TARGET_DURATION = 60
MAX_COUNT = 10


@dataclass
class NewTask:
    """Parameters of a generation request."""

    kind: TaskKind
    source_image_ids: list[UUID]
    target_duration: int | None = None
    aspect_ratio: AspectRatio = AspectRatio.PORTRAIT
    language: Language = Language.EN
    count: int = 1
    reference_media_id: UUID | None = None
    generate_audio: bool = True

    def validate(self) -> None:
        """Check ranges and required fields.

        Raises:
            PreconditionError: On the first violated rule
        """
        if not 1 <= len(self.source_image_ids) <= MAX_SOURCE_IMAGES:
            raise PreconditionError(
                f"Between 1 and {MAX_SOURCE_IMAGES} source images are required"
            )
        if not 1 <= self.count <= MAX_COUNT:
            raise PreconditionError(f"Count must be between 1 and {MAX_COUNT}")
        if self.kind == TaskKind.VIDEO:
            if self.target_duration is None:
                raise PreconditionError("Target duration is required for video tasks")
            if not MIN_TARGET_DURATION <= self.target_duration <= MAX_TARGET_DURATION:
                raise PreconditionError(
                    f"Target duration must be between {MIN_TARGET_DURATION} "
                    f"and {MAX_TARGET_DURATION} seconds"
                )


@dataclass
class TaskDetail:
    """Task summary plus the media produced so far."""

    task: GenerationTaskModel
    videos: list[dict[str, Any]] = field(default_factory=list)
    images: list[dict[str, Any]] = field(default_factory=list)


class TaskService:
    """Reads and writes generation tasks.

    Every mutating method commits, so a status written here is visible to
    API readers immediately.
    """

    def __init__(
        self,
        session: Session,
        job_queue: JobQueue | None = None,
        storage: StorageService | None = None,
    ) -> None:
        self.session = session
        self.job_queue = job_queue
        self.storage = storage

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_task(self, task_id: UUID, user_id: str | None = None) -> GenerationTaskModel:
        """Load a task, optionally scoped to its owner.

        Raises:
            TaskNotFoundError: If missing or owned by someone else
        """
        task = self.session.get(GenerationTaskModel, task_id)
        if task is None or (user_id is not None and task.user_id != user_id):
            raise TaskNotFoundError(f"Task not found: {task_id}")
        return task

    def list_tasks(
        self,
        user_id: str,
        status: TaskStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[GenerationTaskModel]:
        query = select(GenerationTaskModel).where(GenerationTaskModel.user_id == user_id)
        if status is not None:
            query = query.where(GenerationTaskModel.status == status.value)
        query = query.order_by(GenerationTaskModel.created_at.desc()).limit(limit).offset(offset)
        return list(self.session.execute(query).scalars())

    def get_task_stats(self, user_id: str) -> dict[str, int]:
        """Count the owner's tasks per status (every status is present)."""
        rows = self.session.execute(
            select(GenerationTaskModel.status, func.count())
            .where(GenerationTaskModel.user_id == user_id)
            .group_by(GenerationTaskModel.status)
        ).all()
        stats = {status.value: 0 for status in TaskStatus}
        for status, count in rows:
            stats[status] = count
        stats["total"] = sum(count for _, count in rows)
        return stats

    def get_task_detail(self, task_id: UUID, user_id: str | None = None) -> TaskDetail:
        task = self.get_task(task_id, user_id)
        detail = TaskDetail(task=task)

        clips = self.session.execute(
            select(VideoClipModel)
            .where(VideoClipModel.task_id == task.id)
            .order_by(VideoClipModel.created_at)
        ).scalars()
        for clip in clips:
            detail.videos.append(
                {
                    "id": clip.id,
                    "status": clip.status,
                    "download_status": clip.download_status,
                    "url": self._url(clip.path) or clip.source_video_url,
                    "path": clip.path,
                    "duration": clip.duration,
                    "width": clip.width,
                    "height": clip.height,
                }
            )

        images = self.session.execute(
            select(PromotionalImageModel)
            .where(PromotionalImageModel.task_id == task.id)
            .order_by(PromotionalImageModel.image_index)
        ).scalars()
        for image in images:
            detail.images.append(
                {
                    "id": image.id,
                    "path": image.path,
                    "url": self._url(image.path),
                    "width": image.width,
                    "height": image.height,
                    "mime_type": image.mime_type,
                }
            )

        return detail

    def _url(self, path: str | None) -> str | None:
        if path is None or self.storage is None:
            return path
        return self.storage.url_for(path)

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def update_status(
        self,
        task_id: UUID,
        status: TaskStatus,
        error_message: str | None = None,
    ) -> bool:
        """Move a task to ``status``.

        This is stricter than last-write-wins. Moves out of a terminal status
        (completed, failed, cancelled) and moves back to an earlier pipeline
        stage are refused, so a late writer cannot undo a newer state.
        ``reopen`` is the only way out of ``failed``.

        Returns:
            False if the transition was refused; the row is left untouched
            in that case.
        """
        task = self.get_task(task_id)
        self.session.refresh(task)

        if not can_transition(task.status, status):
            logger.warning(
                "task_status_transition_ignored",
                task_id=str(task_id),
                current=task.status,
                requested=status.value,
            )
            return False

        previous = task.status
        apply_status_update(task, status, error_message)
        self.session.commit()

        logger.info(
            "task_status_updated",
            task_id=str(task_id),
            previous=previous,
            status=status.value,
            error=error_message,
        )
        return True

    def reopen(
        self, task: GenerationTaskModel, status: TaskStatus = TaskStatus.PENDING
    ) -> None:
        """Reset a task so its pipeline can run again.

        This is the only way a task moves backward. Error and completion
        stamps are cleared; the start stamp is cleared when going back to
        ``pending``.
        """
        task.status = status.value
        task.error_message = None
        task.completed_at = None
        if status == TaskStatus.PENDING:
            task.started_at = None
        self.session.commit()
        logger.info("task_reopened", task_id=str(task.id), status=status.value)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def register_source_image(
        self,
        user_id: str,
        data: bytes,
        filename: str,
        mime_type: str | None = None,
    ) -> ProductImageModel:
        """Store an uploaded product photo and record it."""
        if self.storage is None:
            raise RuntimeError("TaskService needs a StorageService to store uploads")

        image_id = uuid4()
        suffix = filename.rsplit(".", 1)[-1].lower() if "." in filename else "png"
        asset = self.storage.save_bytes(
            f"uploads/{image_id}.{suffix}", data, mime_type or guess_mime_type(filename)
        )

        image = ProductImageModel(
            id=image_id,
            user_id=user_id,
            path=asset.path,
            original_filename=filename,
            mime_type=asset.mime_type,
            file_size=asset.file_size_bytes,
        )
        self.session.add(image)
        self.session.commit()

        logger.info("source_image_registered", image_id=str(image_id), user_id=user_id)
        return image

    def create_task(self, user_id: str, params: NewTask) -> GenerationTaskModel:
        """Validate, insert and enqueue a new task.

        Raises:
            PreconditionError: Invalid parameters
            ArtifactNotFoundError: A source image is missing or not owned
        """
        params.validate()

        found = set(
            self.session.execute(
                select(ProductImageModel.id).where(
                    ProductImageModel.id.in_(params.source_image_ids),
                    ProductImageModel.user_id == user_id,
                )
            ).scalars()
        )
        missing = [str(i) for i in params.source_image_ids if i not in found]
        if missing:
            raise ArtifactNotFoundError(f"Source images not found: {', '.join(missing)}")

        task = GenerationTaskModel(
            id=uuid4(),
            user_id=user_id,
            kind=params.kind.value,
            source_image_ids=[str(i) for i in params.source_image_ids],
            reference_media_id=params.reference_media_id,
            target_duration=params.target_duration,
            aspect_ratio=params.aspect_ratio.value,
            language=params.language.value,
            count=params.count,
            generate_audio=params.generate_audio,
            status=TaskStatus.PENDING.value,
        )
        self.session.add(task)
        self.session.commit()

        logger.info("task_created", task_id=str(task.id), kind=task.kind, user_id=user_id)

        self.enqueue_workflow(task)
        return task

    def enqueue_workflow(self, task: GenerationTaskModel) -> str:
        """Send the workflow job for ``task`` and record its id."""
        if self.job_queue is None:
            raise RuntimeError("TaskService needs a JobQueue to enqueue work")

        kind = WORKFLOW_JOB_FOR_TASK[TaskKind(task.kind)]
        payload: VideoWorkflowPayload | ImageWorkflowPayload
        if kind == JobKind.VIDEO_WORKFLOW:
            payload = VideoWorkflowPayload(task_id=task.id, generate_audio=task.generate_audio)
        else:
            payload = ImageWorkflowPayload(task_id=task.id)

        job_id = self.job_queue.send(kind, payload)
        task.job_id = job_id
        self.session.commit()
        return job_id

    def retry_task(self, task_id: UUID, user_id: str | None = None) -> GenerationTaskModel:
        """Re-run a failed task from the start.

        Raises:
            InvalidTaskStateError: If the task is not ``failed``
        """
        task = self.get_task(task_id, user_id)
        if task.status != TaskStatus.FAILED:
            raise InvalidTaskStateError(
                f"Only failed tasks can be retried (status is {task.status})",
                status=task.status,
            )

        self.reopen(task, TaskStatus.PENDING)
        self.enqueue_workflow(task)
        logger.info("task_retried", task_id=str(task.id), job_id=task.job_id)
        return task

    def cancel_task(self, task_id: UUID, user_id: str | None = None) -> GenerationTaskModel:
        """Administrative cancellation. The running stage finishes; later stages are skipped."""
        task = self.get_task(task_id, user_id)
        if not self.update_status(task.id, TaskStatus.CANCELLED):
            raise InvalidTaskStateError(
                f"Task cannot be cancelled (status is {task.status})", status=task.status
            )
        return task

    def delete_task(self, task_id: UUID, user_id: str) -> None:
        """Delete an owned task and every artifact under it."""
        task = self.get_task(task_id, user_id)
        self.session.delete(task)
        self.session.commit()
        logger.info("task_deleted", task_id=str(task_id), user_id=user_id)
