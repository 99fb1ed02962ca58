"""UGC Engine - AI product marketing video and image generation."""

__version__ = "0.1.0"
