"""Stub image generation provider for testing."""

import asyncio
import base64

from ugc_engine.adapters.content import text_of
from ugc_engine.adapters.image_gen.base import ImageGenProvider, ImageGenRequest, ImageGenResult
from ugc_engine.logging import get_logger

logger = get_logger(__name__)

# 1x1 transparent PNG
PLACEHOLDER_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class StubImageGenProvider(ImageGenProvider):
    """Stub provider that returns a placeholder PNG without API calls."""

    def __init__(self, latency_ms: int = 0) -> None:
        """Initialize the stub provider.

        Args:
            latency_ms: Simulated latency in milliseconds
        """
        self.latency_ms = latency_ms
        self.model = "stub-image"

    @property
    def name(self) -> str:
        return "stub"

    async def generate(self, request: ImageGenRequest) -> ImageGenResult:
        """Return the placeholder image."""
        if self.latency_ms:
            await asyncio.sleep(self.latency_ms / 1000)

        logger.info(
            "stub_image_generated",
            prompt_length=len(text_of(request.parts)),
            aspect_ratio=request.aspect_ratio,
        )

        return ImageGenResult(
            image_data=PLACEHOLDER_PNG,
            mime_type="image/png",
            model=self.model,
        )
