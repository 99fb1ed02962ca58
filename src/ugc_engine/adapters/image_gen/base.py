"""Base interface for image generation providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from ugc_engine.adapters.content import ContentPart


@dataclass
class ImageGenRequest:
    """Request for image generation."""

    parts: list[ContentPart]
    aspect_ratio: str = "1:1"
    image_size: str = "1K"
    options: dict[str, Any] = field(default_factory=dict)


@dataclass
class ImageGenResult:
    """Result from image generation."""

    image_data: bytes
    mime_type: str
    model: str
    text: str | None = None  # Commentary some models return alongside the image
    usage_metadata: dict[str, Any] | None = None


class ImageGenProvider(ABC):
    """Abstract base class for image generation providers.

    Implementations:
    - GeminiImageProvider: Gemini native image output
    - StubImageGenProvider: Returns a tiny PNG for testing
    """

    model: str

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def generate(self, request: ImageGenRequest) -> ImageGenResult:
        """Generate one image.

        Args:
            request: Prompt parts and output parameters

        Returns:
            ImageGenResult with the raw image bytes

        Raises:
            ProviderError: If the provider fails or returns no image
        """
        ...

    async def health_check(self) -> bool:
        """Check if the provider is available.

        Returns:
            True if provider is operational
        """
        return True

    def get_aspect_ratio_size(self, aspect_ratio: str) -> tuple[int, int]:
        """Convert aspect ratio to pixel dimensions for a 1K output.

        Args:
            aspect_ratio: Ratio string like "9:16"

        Returns:
            (width, height)
        """
        size_map = {
            "9:16": (768, 1344),
            "16:9": (1344, 768),
            "1:1": (1024, 1024),
            "4:3": (1184, 864),
            "3:4": (864, 1184),
            "21:9": (1536, 672),
        }
        return size_map.get(aspect_ratio, (1024, 1024))
