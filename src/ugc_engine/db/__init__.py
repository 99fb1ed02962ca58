"""Database layer."""

from ugc_engine.db.models import (
    Base,
    FinalVideoModel,
    GenerationTaskModel,
    KeyFrameImageModel,
    ProductImageModel,
    ProductModel,
    PromotionalImageModel,
    ScriptModel,
    ShotModel,
    VideoClipModel,
)
from ugc_engine.db.session import (
    SessionFactory,
    SessionLocal,
    get_session,
    get_session_context,
    init_db,
    session_scope,
)

__all__ = [
    "Base",
    "SessionFactory",
    "SessionLocal",
    "get_session",
    "get_session_context",
    "init_db",
    "session_scope",
    # Models
    "FinalVideoModel",
    "GenerationTaskModel",
    "KeyFrameImageModel",
    "ProductImageModel",
    "ProductModel",
    "PromotionalImageModel",
    "ScriptModel",
    "ShotModel",
    "VideoClipModel",
]
