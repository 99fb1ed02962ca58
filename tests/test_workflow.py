"""Tests for the video and image workflow orchestrators."""

from unittest.mock import patch
from uuid import UUID

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from ugc_engine.adapters.image_gen.base import ImageGenRequest, ImageGenResult
from ugc_engine.adapters.image_gen.stub import StubImageGenProvider
from ugc_engine.adapters.llm.stub import StubLLMProvider
from ugc_engine.adapters.video_gen.base import VideoOperationStatus
from ugc_engine.adapters.video_gen.stub import StubVideoGenProvider
from ugc_engine.db.models import (
    GenerationTaskModel,
    ProductModel,
    PromotionalImageModel,
    ScriptModel,
    ShotModel,
    VideoClipModel,
)
from ugc_engine.domain.enums import ClipStatus, DownloadStatus, FrameRole, TaskKind, TaskStatus
from ugc_engine.exceptions import ProviderError
from ugc_engine.jobs.context import WorkerContext
from ugc_engine.services.product_analysis import analyze_product
from ugc_engine.services.task_service import TaskService
from ugc_engine.services.workflow import (
    NO_IMAGES_GENERATED,
    TARGET_DURATION_REQUIRED,
    ImageWorkflow,
    VideoWorkflow,
    run_video_workflow_and_wait,
)


def _no_sleep(seconds: float) -> None:
    pass


class FlakyImageGen(StubImageGenProvider):
    """Fails the calls whose (0-based) number is listed in ``fail_calls``."""

    def __init__(self, fail_calls: set[int]) -> None:
        super().__init__()
        self.fail_calls = fail_calls
        self.call_count = 0

    async def generate(self, request: ImageGenRequest) -> ImageGenResult:
        call = self.call_count
        self.call_count += 1
        if call in self.fail_calls:
            raise ProviderError("No image in response", provider=self.name)
        return await super().generate(request)


class FailingVideoGen(StubVideoGenProvider):
    """Every operation ends in ``failed``."""

    async def get_status(self, operation_id: str) -> VideoOperationStatus:
        return VideoOperationStatus(
            operation_id=operation_id,
            status=ClipStatus.FAILED,
            error_message="content policy violation",
        )


def _reload(session: Session, task: GenerationTaskModel) -> GenerationTaskModel:
    session.expire_all()
    return session.get(GenerationTaskModel, task.id)


# =============================================================================
# Video workflow
# =============================================================================


class TestVideoWorkflow:
    def test_runs_every_stage_and_submits_one_clip(
        self, session: Session, worker_context: WorkerContext, video_gen, make_task
    ) -> None:
        task = make_task(target_duration=15)

        result = worker_context.video_workflow().execute(task.id)

        assert result.status == TaskStatus.GENERATING_VIDEOS
        assert not result.failed
        task = _reload(session, task)
        assert task.status == "generating_videos"
        assert task.started_at is not None
        assert task.completed_at is None

        product = session.get(ProductModel, result.product_id)
        assert product.name == "AeroPress Travel Mug"
        script = session.get(ScriptModel, result.script_id)
        assert script.duration == 12  # floor(15 * 0.83)
        assert len(result.shot_ids) == 3

        clip = session.get(VideoClipModel, result.video_clip_ids[0])
        assert clip.status == "queued"
        assert clip.download_status == "pending"
        assert clip.duration == 12
        assert clip.ratio == "9:16"
        assert clip.ai_prompt.startswith("[Shot 1/3]")
        assert clip.first_frame_image == {"id": task.source_image_ids[0], "source": "uploaded"}
        assert clip.shot_ids == [str(i) for i in result.shot_ids]

        request = video_gen.requests[0]
        assert [image.role for image in request.images] == [FrameRole.FIRST_FRAME]
        assert request.generate_audio is True

    def test_stage_order(self, worker_context: WorkerContext, make_task) -> None:
        task = make_task()

        with patch.object(
            TaskService, "update_status", autospec=True, side_effect=TaskService.update_status
        ) as update_status:
            worker_context.video_workflow().execute(task.id)

        assert [call.args[2] for call in update_status.call_args_list] == [
            TaskStatus.ANALYZING,
            TaskStatus.SCRIPTING,
            TaskStatus.STORYBOARDING,
            TaskStatus.GENERATING_VIDEOS,
        ]

    def test_missing_duration_fails_fast(
        self, session: Session, worker_context: WorkerContext, llm: StubLLMProvider, make_task
    ) -> None:
        task = make_task(target_duration=None)

        result = worker_context.video_workflow().execute(task.id)

        assert result.failed
        assert result.retryable is False
        assert result.error == TARGET_DURATION_REQUIRED
        assert llm.calls == []
        task = _reload(session, task)
        assert task.status == "failed"
        assert task.error_message == TARGET_DURATION_REQUIRED
        assert task.completed_at is not None

    def test_stage_error_marks_task_failed(
        self, session: Session, session_factory, storage, video_gen, make_task
    ) -> None:
        """A schema-invalid storyboard fails the task with the provider message."""
        llm = StubLLMProvider(responses={"MultipleShots": {"shots": []}})
        workflow = VideoWorkflow(session_factory, llm, video_gen, storage)
        task = make_task()

        result = workflow.execute(task.id)

        assert result.failed
        assert result.retryable is True
        assert result.script_id is not None
        assert result.shot_ids == []
        task = _reload(session, task)
        assert task.status == "failed"
        assert task.error_message == result.error
        assert video_gen.requests == []

    def test_rerun_reuses_artifacts(
        self,
        session: Session,
        worker_context: WorkerContext,
        llm: StubLLMProvider,
        video_gen,
        make_task,
    ) -> None:
        task = make_task()
        first = worker_context.video_workflow().execute(task.id)

        # Simulate a redelivered job
        TaskService(session).reopen(_reload(session, task))
        second = worker_context.video_workflow().execute(task.id)

        assert second.status == TaskStatus.GENERATING_VIDEOS
        assert second.product_id == first.product_id
        assert second.script_id == first.script_id
        assert second.shot_ids == first.shot_ids
        assert second.video_clip_ids == first.video_clip_ids
        assert llm.calls == ["ProductAnalysis", "MultipleScripts", "MultipleShots"]
        assert len(video_gen.requests) == 1
        assert session.query(ShotModel).count() == 3

    def test_cancel_between_stages(
        self, session: Session, worker_context: WorkerContext, llm: StubLLMProvider, make_task
    ) -> None:
        task = make_task()

        def analyze_then_cancel(db, task, llm, storage):
            product = analyze_product(db, task, llm, storage)
            TaskService(db).update_status(task.id, TaskStatus.CANCELLED)
            return product

        with patch(
            "ugc_engine.services.workflow.analyze_product", side_effect=analyze_then_cancel
        ):
            result = worker_context.video_workflow().execute(task.id)

        assert result.status == TaskStatus.CANCELLED
        assert not result.failed
        assert llm.calls == ["ProductAnalysis"]
        assert _reload(session, task).status == "cancelled"

    def test_cancelled_task_is_not_restarted(
        self, session: Session, worker_context: WorkerContext, llm: StubLLMProvider, make_task
    ) -> None:
        task = make_task(status=TaskStatus.CANCELLED)

        result = worker_context.video_workflow().execute(task.id)

        assert result.status == TaskStatus.CANCELLED
        assert llm.calls == []


# =============================================================================
# Image workflow
# =============================================================================


class TestImageWorkflow:
    def test_generates_count_images(
        self, session: Session, worker_context: WorkerContext, storage, make_task
    ) -> None:
        task = make_task(kind=TaskKind.IMAGE, target_duration=None, count=3)

        result = worker_context.image_workflow().execute(task.id)

        assert result.status == TaskStatus.COMPLETED
        assert result.advisory is None
        assert len(result.image_ids) == 3
        task = _reload(session, task)
        assert task.status == "completed"
        assert task.error_message is None

        images = session.execute(
            select(PromotionalImageModel).order_by(PromotionalImageModel.image_index)
        ).scalars().all()
        assert [img.image_index for img in images] == [0, 1, 2]
        assert images[0].width == 768
        assert images[0].height == 1344
        assert storage.exists(images[2].path)

    def test_partial_failure_completes_with_advisory(
        self, session: Session, session_factory, llm, storage, make_task
    ) -> None:
        workflow = ImageWorkflow(session_factory, llm, FlakyImageGen({1}), storage)
        task = make_task(kind=TaskKind.IMAGE, target_duration=None, count=3)

        result = workflow.execute(task.id)

        assert result.status == TaskStatus.COMPLETED
        assert result.advisory == "1 of 3 images failed to generate"
        assert len(result.image_ids) == 2
        task = _reload(session, task)
        assert task.status == "completed"
        assert task.error_message == "1 of 3 images failed to generate"

    def test_storage_error_on_one_image_completes_with_advisory(
        self, session: Session, session_factory, llm, image_gen, storage, make_task
    ) -> None:
        workflow = ImageWorkflow(session_factory, llm, image_gen, storage)
        task = make_task(kind=TaskKind.IMAGE, target_duration=None, count=3)
        real_save = storage.save_bytes

        def save_bytes(path: str, data: bytes, *args, **kwargs):
            if path.endswith("image_2.png"):
                raise OSError("No space left on device")
            return real_save(path, data, *args, **kwargs)

        with patch.object(storage, "save_bytes", side_effect=save_bytes):
            result = workflow.execute(task.id)

        assert result.status == TaskStatus.COMPLETED
        assert result.advisory == "1 of 3 images failed to generate"
        assert len(result.image_ids) == 2
        task = _reload(session, task)
        assert task.status == "completed"
        assert task.error_message == "1 of 3 images failed to generate"
        images = session.execute(select(PromotionalImageModel)).scalars().all()
        assert sorted(img.image_index for img in images) == [0, 2]

    def test_all_images_failing_fails_task(
        self, session: Session, session_factory, llm, storage, make_task
    ) -> None:
        workflow = ImageWorkflow(session_factory, llm, FlakyImageGen({0, 1}), storage)
        task = make_task(kind=TaskKind.IMAGE, target_duration=None, count=2)

        result = workflow.execute(task.id)

        assert result.failed
        assert result.error == NO_IMAGES_GENERATED
        task = _reload(session, task)
        assert task.status == "failed"
        assert task.error_message == NO_IMAGES_GENERATED

    def test_rerun_fills_missing_images_only(
        self, session: Session, session_factory, llm, storage, make_task
    ) -> None:
        task = make_task(kind=TaskKind.IMAGE, target_duration=None, count=3)
        ImageWorkflow(session_factory, llm, FlakyImageGen({0}), storage).execute(task.id)

        TaskService(session).reopen(_reload(session, task))
        retry_gen = FlakyImageGen(set())
        result = ImageWorkflow(session_factory, llm, retry_gen, storage).execute(task.id)

        assert result.status == TaskStatus.COMPLETED
        assert result.advisory is None
        assert retry_gen.call_count == 1
        indexes = session.execute(
            select(PromotionalImageModel.image_index).order_by(PromotionalImageModel.image_index)
        ).scalars().all()
        assert indexes == [0, 1, 2]


# =============================================================================
# Synchronous run-and-wait
# =============================================================================


class TestRunVideoWorkflowAndWait:
    def test_completes_and_downloads(
        self, session: Session, worker_context: WorkerContext, storage, make_task
    ) -> None:
        task = make_task()
        sleeps: list[float] = []

        result = run_video_workflow_and_wait(
            worker_context.video_workflow(),
            worker_context.reconciler(),
            task.id,
            max_attempts=5,
            poll_interval=2.0,
            sleep=sleeps.append,
        )

        assert result.status == TaskStatus.COMPLETED
        assert result.advisory is None
        assert sleeps == [2.0]

        task = _reload(session, task)
        assert task.status == "completed"
        assert task.completed_at is not None

        clip = session.get(VideoClipModel, result.video_clip_ids[0])
        assert clip.status == ClipStatus.SUCCEEDED
        assert clip.download_status == DownloadStatus.COMPLETED
        assert clip.path == f"videos/{clip.id}.mp4"
        assert storage.read_bytes(clip.path) == b"fake-mp4"

    def test_all_clips_failed(
        self, session: Session, session_factory, llm, storage, download_pool, make_task
    ) -> None:
        video_gen = FailingVideoGen()
        ctx = WorkerContext(
            session_factory=session_factory,
            llm=llm,
            image_gen=StubImageGenProvider(),
            video_gen=video_gen,
            storage=storage,
            job_queue=None,
            download_pool=download_pool,
        )
        task = make_task()

        result = run_video_workflow_and_wait(
            ctx.video_workflow(), ctx.reconciler(), task.id, sleep=_no_sleep
        )

        assert result.failed
        assert result.error == "All videos failed to generate"
        task = _reload(session, task)
        assert task.status == "failed"
        assert task.error_message == "All videos failed to generate"

    def test_timeout_without_success_fails(
        self, session: Session, session_factory, llm, storage, download_pool, make_task
    ) -> None:
        slow = StubVideoGenProvider(polls_until_done=10)
        workflow = VideoWorkflow(session_factory, llm, slow, storage)
        reconciler = WorkerContext(
            session_factory=session_factory,
            llm=llm,
            image_gen=StubImageGenProvider(),
            video_gen=slow,
            storage=storage,
            job_queue=None,
            download_pool=download_pool,
        ).reconciler()
        task = make_task()

        result = run_video_workflow_and_wait(
            workflow, reconciler, task.id, max_attempts=2, sleep=_no_sleep
        )

        assert result.failed
        assert result.error == "Video generation timed out"
        assert _reload(session, task).status == "failed"

    @pytest.mark.parametrize("status", [TaskStatus.COMPLETED, TaskStatus.CANCELLED])
    def test_terminal_task_is_left_alone(
        self, session: Session, worker_context: WorkerContext, make_task, status: TaskStatus
    ) -> None:
        task = make_task(status=status)

        result = run_video_workflow_and_wait(
            worker_context.video_workflow(),
            worker_context.reconciler(),
            task.id,
            sleep=_no_sleep,
        )

        assert result.status == status
        assert result.video_clip_ids == []
        assert isinstance(result.task_id, UUID)
