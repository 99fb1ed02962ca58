"""Adapters for external generators."""

from ugc_engine.adapters.image_gen.base import ImageGenProvider
from ugc_engine.adapters.llm.base import LLMProvider
from ugc_engine.adapters.video_gen.base import VideoGenProvider

__all__ = [
    "ImageGenProvider",
    "LLMProvider",
    "VideoGenProvider",
]
