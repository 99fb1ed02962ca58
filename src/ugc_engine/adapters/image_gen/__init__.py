"""Image generation adapters."""

from ugc_engine.adapters.image_gen.base import ImageGenProvider, ImageGenRequest, ImageGenResult
from ugc_engine.adapters.image_gen.gemini import GeminiImageProvider
from ugc_engine.adapters.image_gen.stub import StubImageGenProvider

__all__ = [
    "GeminiImageProvider",
    "ImageGenProvider",
    "ImageGenRequest",
    "ImageGenResult",
    "StubImageGenProvider",
]
