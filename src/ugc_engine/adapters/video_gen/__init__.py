"""Video generation adapters."""

from ugc_engine.adapters.video_gen.base import (
    VideoGenProvider,
    VideoGenRequest,
    VideoOperationStatus,
)
from ugc_engine.adapters.video_gen.seedance import SeedanceProvider
from ugc_engine.adapters.video_gen.stub import StubVideoGenProvider

__all__ = [
    "SeedanceProvider",
    "StubVideoGenProvider",
    "VideoGenProvider",
    "VideoGenRequest",
    "VideoOperationStatus",
]
