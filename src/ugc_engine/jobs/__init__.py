"""Job queue: kinds, payloads, the queue client and the Celery tasks.

The Celery task module (``ugc_engine.jobs.tasks``) is not imported here; the
worker discovers it, and ``JobQueue.start`` imports it in the consumer role.
"""

from ugc_engine.jobs.queue import JobQueue
from ugc_engine.jobs.types import (
    DEFAULT_JOB_OPTIONS,
    JOB_QUEUES,
    ImageWorkflowPayload,
    JobKind,
    JobOptions,
    PollVideoStatusPayload,
    QueueRole,
    VideoWorkflowPayload,
    compute_retry_countdown,
)

__all__ = [
    "DEFAULT_JOB_OPTIONS",
    "JOB_QUEUES",
    "ImageWorkflowPayload",
    "JobKind",
    "JobOptions",
    "JobQueue",
    "PollVideoStatusPayload",
    "QueueRole",
    "VideoWorkflowPayload",
    "compute_retry_countdown",
]
