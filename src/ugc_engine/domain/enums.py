"""Domain enumerations."""

from enum import StrEnum


class TaskKind(StrEnum):
    """Which pipeline a generation task runs through."""

    VIDEO = "video"
    IMAGE = "image"


class TaskStatus(StrEnum):
    """Lifecycle status of a generation task."""

    PENDING = "pending"
    ANALYZING = "analyzing"
    SCRIPTING = "scripting"
    STORYBOARDING = "storyboarding"
    GENERATING_FRAMES = "generating_frames"
    GENERATING_VIDEOS = "generating_videos"
    GENERATING_IMAGES = "generating_images"
    COMPOSITING = "compositing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ClipStatus(StrEnum):
    """Remote generation status of a video clip (mirrors the provider's task states)."""

    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class DownloadStatus(StrEnum):
    """Local copy status of a generated clip."""

    PENDING = "pending"
    DOWNLOADING = "downloading"
    COMPLETED = "completed"
    FAILED = "failed"


class AspectRatio(StrEnum):
    """Supported output aspect ratios."""

    PORTRAIT = "9:16"
    LANDSCAPE = "16:9"
    SQUARE = "1:1"
    CLASSIC = "4:3"
    CLASSIC_PORTRAIT = "3:4"
    WIDESCREEN = "21:9"


class Language(StrEnum):
    """Script languages."""

    ZH = "zh"
    EN = "en"
    ES = "es"
    HI = "hi"
    AR = "ar"
    PT = "pt"
    RU = "ru"
    JA = "ja"


LANGUAGE_NAMES: dict[Language, str] = {
    Language.ZH: "Chinese",
    Language.EN: "English",
    Language.ES: "Spanish",
    Language.HI: "Hindi",
    Language.AR: "Arabic",
    Language.PT: "Portuguese",
    Language.RU: "Russian",
    Language.JA: "Japanese",
}


class FrameSource(StrEnum):
    """Artifact family a frame reference resolves against."""

    GENERATED = "generated"  # key_frame_images
    UPLOADED = "uploaded"  # product_images


class FrameRole(StrEnum):
    """Role of an image part in a video generation request."""

    FIRST_FRAME = "first_frame"
    LAST_FRAME = "last_frame"
    REFERENCE_IMAGE = "reference_image"
