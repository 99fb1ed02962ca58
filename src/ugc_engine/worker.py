"""Celery worker configuration."""

from typing import Any

from celery import Celery
from celery.signals import worker_process_shutdown
from kombu import Queue

from ugc_engine.config import settings
from ugc_engine.jobs.queue import JobQueue
from ugc_engine.jobs.types import JOB_QUEUES, JobKind, QueueRole
from ugc_engine.logging import get_logger, setup_logging

# Setup logging before anything else
setup_logging()

logger = get_logger(__name__)

# Create Celery app
celery_app = Celery(
    "ugc_engine",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task execution
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=3600,  # poll jobs can wait up to max_attempts * poll_interval
    task_soft_time_limit=3540,
    # Worker settings: one job per worker process at a time
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.worker_concurrency,
    worker_soft_shutdown_timeout=settings.shutdown_timeout,
    # Result backend
    result_expires=86400,  # 24 hours
    # Queues: one per job kind
    task_queues=[Queue(name) for name in JOB_QUEUES.values()],
    task_default_queue=JOB_QUEUES[JobKind.VIDEO_WORKFLOW],
    task_routes={kind.value: {"queue": queue} for kind, queue in JOB_QUEUES.items()},
)

# Auto-discover tasks
celery_app.autodiscover_tasks(["ugc_engine.jobs"])

# Shared queue handle for this process
job_queue = JobQueue(celery_app)


@worker_process_shutdown.connect
def shutdown_download_pool(**_: Any) -> None:
    """Let in-flight clip downloads finish before the process exits."""
    from ugc_engine.jobs.context import get_worker_context

    if get_worker_context.cache_info().currsize:
        get_worker_context().download_pool.shutdown(wait=True)


def run_worker(concurrency: int | None = None, loglevel: str | None = None) -> None:
    """Start a worker consuming every job queue."""
    job_queue.start(QueueRole.CONSUMER)
    argv = [
        "worker",
        f"--loglevel={(loglevel or settings.log_level).lower()}",
        f"--concurrency={concurrency or settings.worker_concurrency}",
        f"--queues={','.join(JOB_QUEUES.values())}",
    ]
    logger.info("worker_starting", queues=list(JOB_QUEUES.values()))
    celery_app.worker_main(argv)
