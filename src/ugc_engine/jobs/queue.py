"""Job queue service wrapping the Celery client.

One ``JobQueue`` is built per process and handed to whoever needs to enqueue
(API routes, task service, job handlers). The API process starts it in the
producer role; the worker process starts it as a consumer, which also
registers the job handlers.
"""

import threading
from typing import Any

from celery import Celery
from pydantic import BaseModel

from ugc_engine.jobs.types import (
    DEFAULT_JOB_OPTIONS,
    JOB_QUEUES,
    JobKind,
    JobOptions,
    QueueRole,
)
from ugc_engine.logging import get_logger

logger = get_logger(__name__)


class JobQueue:
    """Producer/consumer handle over a Celery app."""

    def __init__(self, app: Celery, connect_retries: int = 3) -> None:
        self.app = app
        self.connect_retries = connect_retries
        self._lock = threading.Lock()
        self._role: QueueRole | None = None

    @property
    def started(self) -> bool:
        return self._role is not None

    @property
    def role(self) -> QueueRole | None:
        return self._role

    def start(self, role: QueueRole = QueueRole.PRODUCER) -> None:
        """Start the queue client once.

        Concurrent and repeated calls are safe; only the first does the work.
        A consumer start after a producer start upgrades the role.
        """
        if self._role is not None and (role == QueueRole.PRODUCER or self._role == role):
            return

        with self._lock:
            if self._role is not None and (role == QueueRole.PRODUCER or self._role == role):
                return

            if self._role is None:
                self._connect()

            if role == QueueRole.CONSUMER:
                self._register_handlers()

            self._role = role
            logger.info("job_queue_started", role=role.value)

    def _connect(self) -> None:
        with self.app.connection_for_write() as conn:
            conn.ensure_connection(max_retries=self.connect_retries)
            channel = conn.default_channel
            for queue in self.app.amqp.queues.values():
                queue.bind(channel).declare()

    def _register_handlers(self) -> None:
        # Importing the module registers the Celery tasks on the app.
        from ugc_engine.jobs import tasks  # noqa: F401

        self.app.conf.worker_send_task_events = True
        self.app.conf.task_send_sent_event = True

    def send(
        self,
        kind: JobKind,
        payload: BaseModel | dict[str, Any],
        options: JobOptions | None = None,
    ) -> str:
        """Enqueue a job.

        Args:
            kind: Which job to run
            payload: Job payload (pydantic model or JSON-safe dict)
            options: Retry and expiry policy; defaults per kind

        Returns:
            Job id (the Celery task id)
        """
        self.start()

        options = options or DEFAULT_JOB_OPTIONS[kind]
        data = payload.model_dump(mode="json") if isinstance(payload, BaseModel) else payload

        result = self.app.send_task(
            kind.value,
            kwargs={"payload": data, "options": options.to_dict()},
            queue=JOB_QUEUES[kind],
            expires=options.expire_in_seconds,
        )

        logger.info(
            "job_enqueued",
            kind=kind.value,
            job_id=result.id,
            queue=JOB_QUEUES[kind],
            task_id=data.get("task_id"),
        )
        return str(result.id)

    def stop(self) -> None:
        """Release the producer connection pool. Safe to call more than once.

        Draining in-flight jobs on a worker is Celery's warm shutdown,
        bounded by ``worker_soft_shutdown_timeout``.
        """
        with self._lock:
            if self._role is None:
                return
            self.app.pool.force_close_all()
            logger.info("job_queue_stopped", role=self._role.value)
            self._role = None
