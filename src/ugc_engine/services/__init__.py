"""Application services."""

from ugc_engine.services.storage import StorageService, StoredAsset
from ugc_engine.services.task_service import NewTask, TaskDetail, TaskService

__all__ = [
    "NewTask",
    "StorageService",
    "StoredAsset",
    "TaskDetail",
    "TaskService",
]
