"""Pytest configuration and fixtures."""

import os
import tempfile
from collections.abc import Generator
from concurrent.futures import Future
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock
from uuid import UUID

import pytest

# Set test environment before importing app modules
_TEST_DIR = Path(tempfile.mkdtemp(prefix="ugc_engine_test_"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR / 'app.db'}"
os.environ["REDIS_URL"] = "redis://localhost:6379/1"
os.environ["CELERY_BROKER_URL"] = "redis://localhost:6379/1"
os.environ["CELERY_RESULT_BACKEND"] = "redis://localhost:6379/1"
os.environ["STORAGE_PATH"] = str(_TEST_DIR / "storage")
os.environ["LLM_PROVIDER"] = "stub"
os.environ["IMAGE_GEN_PROVIDER"] = "stub"
os.environ["VIDEO_GEN_PROVIDER"] = "stub"
os.environ["LOG_LEVEL"] = "WARNING"

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from ugc_engine.adapters.image_gen.stub import StubImageGenProvider  # noqa: E402
from ugc_engine.adapters.llm.stub import StubLLMProvider  # noqa: E402
from ugc_engine.adapters.video_gen.stub import StubVideoGenProvider  # noqa: E402
from ugc_engine.db.models import Base, GenerationTaskModel, ProductImageModel  # noqa: E402
from ugc_engine.domain.enums import TaskKind, TaskStatus  # noqa: E402
from ugc_engine.jobs.context import WorkerContext  # noqa: E402
from ugc_engine.services.downloads import DownloadPool  # noqa: E402
from ugc_engine.services.storage import StorageService, StoredAsset  # noqa: E402

USER_ID = "user-1"

# Minimal PNG header; enough for anything that only stores or forwards bytes
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


class InlineDownloadPool(DownloadPool):
    """Runs downloads on the calling thread so tests can assert right after a poll."""

    def submit(self, fn: Any, *args: Any, **kwargs: Any) -> Future[Any]:
        future: Future[Any] = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class FakeDownloadStorage(StorageService):
    """Storage whose downloads write canned bytes instead of hitting the network."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.downloads: list[tuple[str, str]] = []
        self.fail_downloads = False

    async def store_from_url(self, url: str, path: str) -> StoredAsset:
        if self.fail_downloads:
            raise OSError("disk full")
        self.downloads.append((url, path))
        return self.save_bytes(path, b"fake-mp4", "video/mp4")


@pytest.fixture
def session_factory() -> Generator[sessionmaker[Session], None, None]:
    """In-memory SQLite shared by every session a test opens."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    yield factory
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def storage(tmp_path: Path) -> FakeDownloadStorage:
    return FakeDownloadStorage(base_path=tmp_path / "storage", base_url="/api/v1/storage")


@pytest.fixture
def llm() -> StubLLMProvider:
    return StubLLMProvider()


@pytest.fixture
def image_gen() -> StubImageGenProvider:
    return StubImageGenProvider()


@pytest.fixture
def video_gen() -> StubVideoGenProvider:
    """Stub whose operations succeed on the second status query."""
    return StubVideoGenProvider(polls_until_done=1)


@pytest.fixture
def download_pool() -> Generator[InlineDownloadPool, None, None]:
    pool = InlineDownloadPool(max_workers=1)
    yield pool
    pool.shutdown()


@pytest.fixture
def job_queue() -> MagicMock:
    queue = MagicMock()
    queue.send.return_value = "job-123"
    return queue


@pytest.fixture
def worker_context(
    session_factory: sessionmaker[Session],
    llm: StubLLMProvider,
    image_gen: StubImageGenProvider,
    video_gen: StubVideoGenProvider,
    storage: FakeDownloadStorage,
    job_queue: MagicMock,
    download_pool: InlineDownloadPool,
) -> WorkerContext:
    return WorkerContext(
        session_factory=session_factory,
        llm=llm,
        image_gen=image_gen,
        video_gen=video_gen,
        storage=storage,
        job_queue=job_queue,
        download_pool=download_pool,
    )


@pytest.fixture
def source_image(session: Session, storage: StorageService) -> ProductImageModel:
    """An uploaded product photo owned by ``USER_ID``."""
    asset = storage.save_bytes("uploads/mug.png", PNG_BYTES, "image/png")
    image = ProductImageModel(
        user_id=USER_ID,
        path=asset.path,
        original_filename="mug.png",
        mime_type="image/png",
        file_size=asset.file_size_bytes,
    )
    session.add(image)
    session.commit()
    return image


@pytest.fixture
def make_task(session: Session, source_image: ProductImageModel):
    """Factory inserting a task row directly (no job is enqueued)."""

    def _make(
        kind: TaskKind = TaskKind.VIDEO,
        status: TaskStatus = TaskStatus.PENDING,
        target_duration: int | None = 15,
        count: int = 1,
        source_image_ids: list[UUID] | None = None,
        job_id: str | None = None,
    ) -> GenerationTaskModel:
        task = GenerationTaskModel(
            user_id=USER_ID,
            kind=kind.value,
            source_image_ids=[str(i) for i in (source_image_ids or [source_image.id])],
            target_duration=target_duration,
            aspect_ratio="9:16",
            language="en",
            count=count,
            generate_audio=True,
            status=status.value,
            job_id=job_id,
        )
        session.add(task)
        session.commit()
        return task

    return _make


@pytest.fixture
def test_client(
    session_factory: sessionmaker[Session],
    storage: FakeDownloadStorage,
    job_queue: MagicMock,
) -> Generator[TestClient, None, None]:
    """Client for the FastAPI app wired to the test database, storage and queue.

    The lifespan is not entered, so no broker or database connection is made.
    """
    from ugc_engine.api.deps import get_job_queue, get_storage
    from ugc_engine.db.session import get_session
    from ugc_engine.main import app

    def _session() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_job_queue] = lambda: job_queue

    yield TestClient(app)

    app.dependency_overrides.clear()
