"""Tests for the job queue client, job handlers and Celery tasks."""

from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from celery.exceptions import Retry
from sqlalchemy.orm import Session

from ugc_engine.db.models import GenerationTaskModel
from ugc_engine.domain.enums import TaskKind, TaskStatus
from ugc_engine.exceptions import (
    PreconditionError,
    ProviderError,
    TaskNotFoundError,
    WorkflowError,
)
from ugc_engine.jobs.context import WorkerContext
from ugc_engine.jobs.handlers import (
    VIDEO_WORKFLOW_STATUSES,
    claim_task,
    handle_image_workflow,
    handle_poll_video_status,
    handle_video_workflow,
)
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


def _reload(session: Session, task_id) -> GenerationTaskModel:
    session.expire_all()
    return session.get(GenerationTaskModel, task_id)


# =============================================================================
# Types
# =============================================================================


class TestJobOptions:
    def test_backoff_doubles(self) -> None:
        options = JobOptions(retry_delay=60, retry_backoff=True)
        assert [compute_retry_countdown(options, n) for n in range(3)] == [60, 120, 240]

    def test_fixed_delay(self) -> None:
        options = JobOptions(retry_delay=30, retry_backoff=False)
        assert compute_retry_countdown(options, 4) == 30

    def test_from_dict_defaults_per_kind(self) -> None:
        options = JobOptions.from_dict(None, JobKind.POLL_VIDEO_STATUS)
        assert options == DEFAULT_JOB_OPTIONS[JobKind.POLL_VIDEO_STATUS]

    def test_from_dict_ignores_unknown_keys(self) -> None:
        options = JobOptions.from_dict(
            {"retry_limit": 5, "retry_delay": 1, "priority": 9}, JobKind.VIDEO_WORKFLOW
        )
        assert options.retry_limit == 5
        assert options.retry_delay == 1

    def test_poll_payload_needs_clips(self) -> None:
        with pytest.raises(ValueError):
            PollVideoStatusPayload(task_id=uuid4(), video_clip_ids=[])


# =============================================================================
# Queue client
# =============================================================================


class TestJobQueue:
    @pytest.fixture
    def app(self) -> MagicMock:
        app = MagicMock()
        app.send_task.return_value.id = "celery-id-1"
        return app

    def test_send_routes_and_carries_options(self, app: MagicMock) -> None:
        queue = JobQueue(app)
        task_id = uuid4()

        with patch.object(JobQueue, "_connect") as connect:
            job_id = queue.send(JobKind.VIDEO_WORKFLOW, VideoWorkflowPayload(task_id=task_id))

        assert job_id == "celery-id-1"
        connect.assert_called_once()
        name = app.send_task.call_args.args[0]
        kwargs = app.send_task.call_args.kwargs
        assert name == "ugc-video-workflow"
        assert kwargs["queue"] == JOB_QUEUES[JobKind.VIDEO_WORKFLOW]
        assert kwargs["kwargs"]["payload"] == {"task_id": str(task_id), "generate_audio": True}
        assert kwargs["kwargs"]["options"]["retry_limit"] == 2
        assert kwargs["expires"] == 7200

    def test_start_is_idempotent(self, app: MagicMock) -> None:
        queue = JobQueue(app)

        with patch.object(JobQueue, "_connect") as connect:
            queue.start()
            queue.start()
            queue.send(JobKind.IMAGE_WORKFLOW, {"task_id": str(uuid4())})

        connect.assert_called_once()
        assert queue.role == QueueRole.PRODUCER

    def test_consumer_upgrade_registers_handlers(self, app: MagicMock) -> None:
        queue = JobQueue(app)

        with (
            patch.object(JobQueue, "_connect") as connect,
            patch.object(JobQueue, "_register_handlers") as register,
        ):
            queue.start(QueueRole.PRODUCER)
            queue.start(QueueRole.CONSUMER)
            queue.start(QueueRole.PRODUCER)

        connect.assert_called_once()
        register.assert_called_once()
        assert queue.role == QueueRole.CONSUMER

    def test_stop(self, app: MagicMock) -> None:
        queue = JobQueue(app)
        with patch.object(JobQueue, "_connect"):
            queue.start()
        queue.stop()
        queue.stop()

        assert not queue.started
        app.pool.force_close_all.assert_called_once()


# =============================================================================
# Handlers
# =============================================================================


class TestClaimTask:
    def test_pending_task_runs(self, worker_context: WorkerContext, make_task, session) -> None:
        task = make_task()
        assert claim_task(worker_context, task.id, job_id="job-9") is None
        assert _reload(session, task.id).job_id == "job-9"

    @pytest.mark.parametrize("status", [TaskStatus.COMPLETED, TaskStatus.CANCELLED])
    def test_finished_task_is_skipped(
        self, worker_context: WorkerContext, make_task, status: TaskStatus
    ) -> None:
        task = make_task(status=status)
        assert claim_task(worker_context, task.id) == status

    def test_failed_task_is_reopened(
        self, worker_context: WorkerContext, make_task, session
    ) -> None:
        task = make_task(status=TaskStatus.FAILED, job_id="job-9")
        assert claim_task(worker_context, task.id, job_id="job-9") is None
        task = _reload(session, task.id)
        assert task.status == "pending"
        assert task.completed_at is None

    def test_interrupted_run_of_same_job_is_reset(
        self, worker_context: WorkerContext, make_task, session
    ) -> None:
        task = make_task(status=TaskStatus.SCRIPTING, job_id="job-9")

        skip = claim_task(
            worker_context, task.id, job_id="job-9", resumable=VIDEO_WORKFLOW_STATUSES
        )

        assert skip is None
        assert _reload(session, task.id).status == "pending"

    def test_task_owned_by_another_job_is_left_alone(
        self, worker_context: WorkerContext, make_task, session
    ) -> None:
        task = make_task(status=TaskStatus.SCRIPTING, job_id="job-new")

        skip = claim_task(
            worker_context, task.id, job_id="job-old", resumable=VIDEO_WORKFLOW_STATUSES
        )

        assert skip == TaskStatus.SCRIPTING
        task = _reload(session, task.id)
        assert task.status == "scripting"
        assert task.job_id == "job-new"

    def test_busy_task_without_owner_is_left_alone(
        self, worker_context: WorkerContext, make_task, session
    ) -> None:
        task = make_task(status=TaskStatus.ANALYZING)

        skip = claim_task(worker_context, task.id, start_status=TaskStatus.GENERATING_VIDEOS)

        assert skip == TaskStatus.ANALYZING
        assert _reload(session, task.id).status == "analyzing"

    def test_unknown_task(self, worker_context: WorkerContext) -> None:
        with pytest.raises(TaskNotFoundError):
            claim_task(worker_context, uuid4())


class TestHandleVideoWorkflow:
    def test_schedules_poll_job(
        self, worker_context: WorkerContext, job_queue: MagicMock, make_task, session
    ) -> None:
        task = make_task()

        result = handle_video_workflow(
            VideoWorkflowPayload(task_id=task.id), worker_context, job_id="job-1"
        )

        assert result["status"] == "generating_videos"
        assert result["poll_job_id"] == "job-123"
        kind, payload = job_queue.send.call_args.args
        assert kind == JobKind.POLL_VIDEO_STATUS
        assert payload.task_id == task.id
        assert [str(i) for i in payload.video_clip_ids] == result["video_clip_ids"]
        assert payload.max_attempts == 60
        assert payload.poll_interval == 10.0
        assert payload.workflow_job_id == "job-1"
        assert _reload(session, task.id).job_id == "job-1"

    def test_failure_raises_with_retry_hint(
        self, worker_context: WorkerContext, job_queue: MagicMock, make_task
    ) -> None:
        task = make_task(target_duration=None)

        with pytest.raises(WorkflowError) as exc_info:
            handle_video_workflow(VideoWorkflowPayload(task_id=task.id), worker_context)

        assert exc_info.value.retryable is False
        job_queue.send.assert_not_called()

    def test_completed_task_is_skipped(
        self, worker_context: WorkerContext, job_queue: MagicMock, llm, make_task
    ) -> None:
        task = make_task(status=TaskStatus.COMPLETED)

        result = handle_video_workflow(VideoWorkflowPayload(task_id=task.id), worker_context)

        assert result == {"task_id": str(task.id), "status": "completed", "skipped": True}
        assert llm.calls == []
        job_queue.send.assert_not_called()

    def test_redelivery_after_handover_is_skipped(
        self, worker_context: WorkerContext, job_queue: MagicMock, llm, make_task, session
    ) -> None:
        task = make_task(status=TaskStatus.GENERATING_VIDEOS, job_id="job-1")

        result = handle_video_workflow(
            VideoWorkflowPayload(task_id=task.id), worker_context, job_id="job-1"
        )

        assert result["skipped"] is True
        assert llm.calls == []
        job_queue.send.assert_not_called()
        assert _reload(session, task.id).status == "generating_videos"


class TestHandleImageWorkflow:
    def test_completes(self, worker_context: WorkerContext, make_task, session) -> None:
        task = make_task(kind=TaskKind.IMAGE, target_duration=None, count=2)

        result = handle_image_workflow(ImageWorkflowPayload(task_id=task.id), worker_context)

        assert result["status"] == "completed"
        assert len(result["image_ids"]) == 2
        assert _reload(session, task.id).status == "completed"


class TestHandlePollVideoStatus:
    def _submit(self, worker_context: WorkerContext, make_task) -> tuple:
        task = make_task()
        result = handle_video_workflow(VideoWorkflowPayload(task_id=task.id), worker_context)
        payload = PollVideoStatusPayload(
            task_id=task.id,
            video_clip_ids=result["video_clip_ids"],
            max_attempts=5,
            poll_interval=0,
        )
        return task, payload

    def test_completes_task(self, worker_context: WorkerContext, make_task, session) -> None:
        task, payload = self._submit(worker_context, make_task)

        result = handle_poll_video_status(payload, worker_context)

        assert result["status"] == "completed"
        assert result["advisory"] is None
        assert _reload(session, task.id).status == "completed"

    def test_redelivered_after_failure_polls_again(
        self, worker_context: WorkerContext, make_task, session
    ) -> None:
        task, payload = self._submit(worker_context, make_task)
        failed = _reload(session, task.id)
        failed.status = TaskStatus.FAILED.value
        failed.error_message = "Video generation timed out"
        session.commit()

        result = handle_poll_video_status(payload, worker_context)

        assert result["status"] == "completed"
        task = _reload(session, task.id)
        assert task.status == "completed"
        assert task.error_message is None

    def test_cancelled_task_is_not_polled(
        self, worker_context: WorkerContext, make_task, session
    ) -> None:
        task, payload = self._submit(worker_context, make_task)
        cancelled = _reload(session, task.id)
        cancelled.status = TaskStatus.CANCELLED.value
        session.commit()

        result = handle_poll_video_status(payload, worker_context)

        assert result["skipped"] is True

    def test_stray_job_does_not_touch_running_workflow(
        self, worker_context: WorkerContext, make_task, session
    ) -> None:
        task = make_task(status=TaskStatus.ANALYZING, job_id="job-2")
        payload = PollVideoStatusPayload(
            task_id=task.id, video_clip_ids=[uuid4()], max_attempts=1, poll_interval=0
        )

        result = handle_poll_video_status(payload, worker_context)

        assert result["skipped"] is True
        task = _reload(session, task.id)
        assert task.status == "analyzing"
        assert task.error_message is None

    def test_job_from_superseded_run_is_skipped(
        self, worker_context: WorkerContext, make_task, session
    ) -> None:
        task = make_task(status=TaskStatus.FAILED, job_id="job-new")
        payload = PollVideoStatusPayload(
            task_id=task.id,
            video_clip_ids=[uuid4()],
            max_attempts=1,
            poll_interval=0,
            workflow_job_id="job-old",
        )

        result = handle_poll_video_status(payload, worker_context)

        assert result["skipped"] is True
        assert _reload(session, task.id).status == "failed"


# =============================================================================
# Celery tasks
# =============================================================================


class TestRetryPolicy:
    def test_is_retryable(self) -> None:
        from ugc_engine.jobs.tasks import is_retryable

        assert is_retryable(ProviderError("HTTP 500", provider="gemini"))
        assert is_retryable(WorkflowError("Video generation timed out"))
        assert not is_retryable(WorkflowError("All videos failed", retryable=False))
        assert not is_retryable(PreconditionError("bad input"))
        assert is_retryable(RuntimeError("unexpected"))

    def test_retry_uses_message_options(self) -> None:
        from ugc_engine.jobs.tasks import video_workflow_task

        video_workflow_task.push_request(id="job-1", retries=1)
        try:
            with patch.object(video_workflow_task, "retry", return_value=Retry("retry")) as retry:
                with pytest.raises(Retry):
                    video_workflow_task.retry_with_policy(
                        ProviderError("HTTP 503", provider="bytedance"),
                        JobKind.VIDEO_WORKFLOW,
                        {"retry_limit": 3, "retry_delay": 10, "retry_backoff": True},
                    )
        finally:
            video_workflow_task.pop_request()

        assert retry.call_args.kwargs["countdown"] == 20
        assert retry.call_args.kwargs["max_retries"] == 3

    def test_no_retry_when_exhausted(self) -> None:
        from ugc_engine.jobs.tasks import video_workflow_task

        video_workflow_task.push_request(id="job-1", retries=2)
        try:
            with patch.object(video_workflow_task, "retry") as retry:
                with pytest.raises(ProviderError):
                    video_workflow_task.retry_with_policy(
                        ProviderError("HTTP 503", provider="bytedance"),
                        JobKind.VIDEO_WORKFLOW,
                        None,
                    )
        finally:
            video_workflow_task.pop_request()

        retry.assert_not_called()

    def test_task_body_passes_job_id(self) -> None:
        from ugc_engine.jobs import tasks

        task_id = uuid4()
        tasks.video_workflow_task.push_request(id="job-7", retries=0)
        try:
            with (
                patch.object(tasks, "get_worker_context") as get_ctx,
                patch.object(tasks, "handle_video_workflow", return_value={"ok": True}) as handle,
            ):
                result = tasks.video_workflow_task.run({"task_id": str(task_id)})
        finally:
            tasks.video_workflow_task.pop_request()

        assert result == {"ok": True}
        payload, ctx = handle.call_args.args
        assert payload.task_id == task_id
        assert ctx is get_ctx.return_value
        assert handle.call_args.kwargs["job_id"] == "job-7"

    def test_task_body_does_not_retry_precondition_errors(self) -> None:
        from ugc_engine.jobs import tasks

        tasks.image_workflow_task.push_request(id="job-8", retries=0)
        try:
            with (
                patch.object(tasks, "get_worker_context"),
                patch.object(
                    tasks, "handle_image_workflow", side_effect=TaskNotFoundError("gone")
                ),
                patch.object(tasks.image_workflow_task, "retry") as retry,
            ):
                with pytest.raises(TaskNotFoundError):
                    tasks.image_workflow_task.run({"task_id": str(uuid4())})
        finally:
            tasks.image_workflow_task.pop_request()

        retry.assert_not_called()
