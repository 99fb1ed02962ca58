"""Stub video generation provider for testing."""

from uuid import uuid4

from ugc_engine.adapters.video_gen.base import (
    VideoGenProvider,
    VideoGenRequest,
    VideoOperationStatus,
)
from ugc_engine.domain.enums import ClipStatus
from ugc_engine.logging import get_logger

logger = get_logger(__name__)


class StubVideoGenProvider(VideoGenProvider):
    """Stub provider that simulates asynchronous generation without external calls.

    Each operation reports ``running`` for ``polls_until_done`` status
    queries and then ``succeeded`` with a placeholder URL.
    """

    def __init__(self, polls_until_done: int = 1) -> None:
        self.model = "stub-video"
        self.polls_until_done = polls_until_done
        self.requests: list[VideoGenRequest] = []
        self._polls: dict[str, int] = {}

    @property
    def name(self) -> str:
        return "stub"

    async def submit(self, request: VideoGenRequest) -> str:
        operation_id = f"stub-{uuid4().hex[:12]}"
        self.requests.append(request)
        self._polls[operation_id] = 0
        logger.info(
            "stub_video_submitted",
            operation_id=operation_id,
            prompt=request.prompt[:100],
        )
        return operation_id

    async def get_status(self, operation_id: str) -> VideoOperationStatus:
        polls = self._polls.get(operation_id, self.polls_until_done)
        self._polls[operation_id] = polls + 1

        if polls < self.polls_until_done:
            return VideoOperationStatus(operation_id=operation_id, status=ClipStatus.RUNNING)

        return VideoOperationStatus(
            operation_id=operation_id,
            status=ClipStatus.SUCCEEDED,
            video_url=f"https://example.com/stub/{operation_id}.mp4",
        )
