"""Generation task endpoints."""

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, Response, status
from pydantic import BaseModel, Field

from ugc_engine.api.deps import TaskServiceDep, UserIdDep
from ugc_engine.db.models import GenerationTaskModel
from ugc_engine.domain.enums import AspectRatio, Language, TaskKind, TaskStatus
from ugc_engine.logging import get_logger
from ugc_engine.services.task_service import (
    MAX_COUNT,
    MAX_SOURCE_IMAGES,
    MAX_TARGET_DURATION,
    MIN_TARGET_DURATION,
    NewTask,
    TaskDetail,
)

router = APIRouter(prefix="/tasks", tags=["Tasks"])
logger = get_logger(__name__)


class CreateTaskRequest(BaseModel):
    """Request to start a generation task."""

    source_image_ids: list[UUID] = Field(..., min_length=1, max_length=MAX_SOURCE_IMAGES)
    kind: TaskKind = TaskKind.VIDEO
    target_duration: int | None = Field(
        None,
        ge=MIN_TARGET_DURATION,
        le=MAX_TARGET_DURATION,
        description="Video length in seconds (required for video tasks)",
    )
    aspect_ratio: AspectRatio = AspectRatio.PORTRAIT
    language: Language = Language.EN
    count: int = Field(default=1, ge=1, le=MAX_COUNT)
    reference_media_id: UUID | None = None
    generate_audio: bool = True


class CreateTaskResponse(BaseModel):
    task_id: UUID
    job_id: str | None


class TaskResponse(BaseModel):
    """Task summary."""

    id: UUID
    kind: TaskKind
    status: TaskStatus
    error_message: str | None
    source_image_ids: list[str]
    target_duration: int | None
    aspect_ratio: str
    language: str
    count: int
    generate_audio: bool
    job_id: str | None
    created_at: datetime | None
    started_at: datetime | None
    completed_at: datetime | None

    model_config = {"from_attributes": True}


class VideoResponse(BaseModel):
    id: UUID
    status: str
    download_status: str
    url: str | None
    path: str | None
    duration: int | None
    width: int | None
    height: int | None


class ImageResponse(BaseModel):
    id: UUID
    path: str
    url: str | None
    width: int | None
    height: int | None
    mime_type: str


class TaskDetailResponse(TaskResponse):
    """Task summary plus generated media."""

    videos: list[VideoResponse] = Field(default_factory=list)
    images: list[ImageResponse] = Field(default_factory=list)


class TaskListResponse(BaseModel):
    tasks: list[TaskResponse]
    limit: int
    offset: int


def _task_to_response(task: GenerationTaskModel) -> TaskResponse:
    return TaskResponse.model_validate(task)


def _detail_to_response(detail: TaskDetail) -> TaskDetailResponse:
    summary: dict[str, Any] = _task_to_response(detail.task).model_dump()
    return TaskDetailResponse(
        **summary,
        videos=[VideoResponse(**video) for video in detail.videos],
        images=[ImageResponse(**image) for image in detail.images],
    )


@router.post(
    "",
    response_model=CreateTaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create task",
    description="Create a generation task and enqueue its workflow job.",
)
async def create_task(
    request: CreateTaskRequest,
    user_id: UserIdDep,
    tasks: TaskServiceDep,
) -> CreateTaskResponse:
    """Create a task from uploaded product images."""
    task = tasks.create_task(
        user_id,
        NewTask(
            kind=request.kind,
            source_image_ids=request.source_image_ids,
            target_duration=request.target_duration,
            aspect_ratio=request.aspect_ratio,
            language=request.language,
            count=request.count,
            reference_media_id=request.reference_media_id,
            generate_audio=request.generate_audio,
        ),
    )
    logger.info("task_create_requested", task_id=str(task.id), kind=task.kind)
    return CreateTaskResponse(task_id=task.id, job_id=task.job_id)


@router.get(
    "",
    response_model=TaskListResponse,
    summary="List tasks",
)
async def list_tasks(
    user_id: UserIdDep,
    tasks: TaskServiceDep,
    status_filter: TaskStatus | None = Query(None, alias="status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> TaskListResponse:
    """List the caller's tasks, newest first."""
    rows = tasks.list_tasks(user_id, status=status_filter, limit=limit, offset=offset)
    return TaskListResponse(
        tasks=[_task_to_response(task) for task in rows],
        limit=limit,
        offset=offset,
    )


@router.get(
    "/stats",
    response_model=dict[str, int],
    summary="Task counts per status",
)
async def task_stats(user_id: UserIdDep, tasks: TaskServiceDep) -> dict[str, int]:
    return tasks.get_task_stats(user_id)


@router.get(
    "/{task_id}",
    response_model=TaskDetailResponse,
    summary="Get task",
    description="Task status with the videos and images generated so far.",
)
async def get_task(
    task_id: UUID, user_id: UserIdDep, tasks: TaskServiceDep
) -> TaskDetailResponse:
    return _detail_to_response(tasks.get_task_detail(task_id, user_id))


@router.post(
    "/{task_id}/retry",
    response_model=CreateTaskResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Retry failed task",
)
async def retry_task(
    task_id: UUID, user_id: UserIdDep, tasks: TaskServiceDep
) -> CreateTaskResponse:
    """Re-run a failed task. Any other status is a conflict."""
    task = tasks.retry_task(task_id, user_id)
    return CreateTaskResponse(task_id=task.id, job_id=task.job_id)


@router.post(
    "/{task_id}/cancel",
    response_model=TaskResponse,
    summary="Cancel task",
    description="Stop the task after its current stage.",
)
async def cancel_task(task_id: UUID, user_id: UserIdDep, tasks: TaskServiceDep) -> TaskResponse:
    task = tasks.cancel_task(task_id, user_id)
    return _task_to_response(task)


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete task",
)
async def delete_task(task_id: UUID, user_id: UserIdDep, tasks: TaskServiceDep) -> Response:
    """Delete a task and everything generated for it."""
    tasks.delete_task(task_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
