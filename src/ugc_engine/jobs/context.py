"""Process-wide dependencies for job handlers.

The worker builds one ``WorkerContext`` per process and passes it to every
handler, so tests can run handlers against an in-memory database and stub
providers by building their own context.
"""

from dataclasses import dataclass
from functools import lru_cache

from ugc_engine.adapters.image_gen.base import ImageGenProvider
from ugc_engine.adapters.image_gen.gemini import GeminiImageProvider
from ugc_engine.adapters.image_gen.stub import StubImageGenProvider
from ugc_engine.adapters.llm.base import LLMProvider
from ugc_engine.adapters.llm.gemini import GeminiProvider
from ugc_engine.adapters.llm.stub import StubLLMProvider
from ugc_engine.adapters.video_gen.base import VideoGenProvider
from ugc_engine.adapters.video_gen.seedance import SeedanceProvider
from ugc_engine.adapters.video_gen.stub import StubVideoGenProvider
from ugc_engine.config import settings
from ugc_engine.db.session import SessionFactory, SessionLocal
from ugc_engine.jobs.queue import JobQueue
from ugc_engine.logging import get_logger
from ugc_engine.services.downloads import DownloadPool
from ugc_engine.services.reconciler import ClipReconciler
from ugc_engine.services.storage import StorageService
from ugc_engine.services.workflow import ImageWorkflow, VideoWorkflow

logger = get_logger(__name__)


# =============================================================================
# Provider factories
# =============================================================================


def get_llm_provider() -> LLMProvider:
    """Get the configured LLM provider."""
    provider = settings.llm_provider.lower()
    if provider == "gemini":
        return GeminiProvider()
    return StubLLMProvider()


def get_image_gen_provider() -> ImageGenProvider:
    """Get the configured image generation provider."""
    provider = settings.image_gen_provider.lower()
    if provider == "gemini":
        return GeminiImageProvider()
    return StubImageGenProvider()


def get_video_gen_provider() -> VideoGenProvider:
    """Get the configured video generation provider."""
    provider = settings.video_gen_provider.lower()
    if provider == "seedance":
        return SeedanceProvider()
    return StubVideoGenProvider()


# =============================================================================
# Context
# =============================================================================


@dataclass
class WorkerContext:
    session_factory: SessionFactory
    llm: LLMProvider
    image_gen: ImageGenProvider
    video_gen: VideoGenProvider
    storage: StorageService
    job_queue: JobQueue
    download_pool: DownloadPool

    def video_workflow(self) -> VideoWorkflow:
        return VideoWorkflow(self.session_factory, self.llm, self.video_gen, self.storage)

    def image_workflow(self) -> ImageWorkflow:
        return ImageWorkflow(self.session_factory, self.llm, self.image_gen, self.storage)

    def reconciler(self) -> ClipReconciler:
        return ClipReconciler(
            self.session_factory, self.video_gen, self.storage, self.download_pool
        )


@lru_cache
def get_worker_context() -> WorkerContext:
    """Build the context for this process from settings (once)."""
    from ugc_engine.worker import job_queue

    ctx = WorkerContext(
        session_factory=SessionLocal,
        llm=get_llm_provider(),
        image_gen=get_image_gen_provider(),
        video_gen=get_video_gen_provider(),
        storage=StorageService(),
        job_queue=job_queue,
        download_pool=DownloadPool(),
    )
    logger.info(
        "worker_context_ready",
        llm=ctx.llm.name,
        image_gen=ctx.image_gen.name,
        video_gen=ctx.video_gen.name,
        download_workers=ctx.download_pool.max_workers,
    )
    return ctx
