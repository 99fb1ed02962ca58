"""Base interface for video generation providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from ugc_engine.adapters.content import ImagePart
from ugc_engine.domain.enums import ClipStatus


@dataclass
class VideoGenRequest:
    """Request for an asynchronous video generation operation."""

    prompt: str
    images: list[ImagePart] = field(default_factory=list)  # role-tagged frames / references
    ratio: str = "9:16"
    duration_seconds: int = -1  # -1 lets the model pick a length that fits the prompt
    generate_audio: bool = True
    draft: bool = True
    watermark: bool = False


@dataclass
class VideoOperationStatus:
    """Remote view of a video generation operation."""

    operation_id: str
    status: ClipStatus
    video_url: str | None = None
    error_message: str | None = None
    usage: dict[str, Any] | None = None


class VideoGenProvider(ABC):
    """Abstract base class for video generation providers.

    Generation is asynchronous: ``submit`` returns an operation id and the
    poller later calls ``get_status`` until the operation is terminal.

    Implementations:
    - SeedanceProvider: ByteDance Seedance via Volcano Engine Ark
    - StubVideoGenProvider: In-memory operations for testing
    """

    model: str

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def submit(self, request: VideoGenRequest) -> str:
        """Start a generation operation.

        Args:
            request: Prompt, frames and output parameters

        Returns:
            Remote operation id

        Raises:
            ProviderError: If the request is rejected
        """
        ...

    @abstractmethod
    async def get_status(self, operation_id: str) -> VideoOperationStatus:
        """Query the status of an operation.

        Args:
            operation_id: Id returned by ``submit``

        Returns:
            Current remote status, with the video URL once succeeded

        Raises:
            ProviderError: If the query fails
            SchemaValidationError: If the response cannot be decoded
        """
        ...

    async def health_check(self) -> bool:
        """Check if the provider is available and healthy.

        Returns:
            True if provider is operational, False otherwise
        """
        return True
