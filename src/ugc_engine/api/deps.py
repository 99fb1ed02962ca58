"""FastAPI dependencies."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from ugc_engine.db.session import get_session
from ugc_engine.jobs.queue import JobQueue
from ugc_engine.services.storage import StorageService
from ugc_engine.services.task_service import TaskService

# Database session dependency
SessionDep = Annotated[Session, Depends(get_session)]


def get_user_id(x_user_id: Annotated[str | None, Header()] = None) -> str:
    """Owner of the request, as set by the authenticating proxy."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id


UserIdDep = Annotated[str, Depends(get_user_id)]


def get_job_queue(request: Request) -> JobQueue:
    """The process-wide queue client started in the app lifespan."""
    return request.app.state.job_queue


JobQueueDep = Annotated[JobQueue, Depends(get_job_queue)]


@lru_cache
def get_storage() -> StorageService:
    """Get the storage service instance."""
    return StorageService()


StorageDep = Annotated[StorageService, Depends(get_storage)]


def get_task_service(
    session: SessionDep,
    job_queue: JobQueueDep,
    storage: StorageDep,
) -> TaskService:
    return TaskService(session, job_queue=job_queue, storage=storage)


TaskServiceDep = Annotated[TaskService, Depends(get_task_service)]
