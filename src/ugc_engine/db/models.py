"""SQLAlchemy ORM models."""

from datetime import datetime
from typing import Any
from uuid import UUID as PyUUID
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

# JSONB on PostgreSQL, plain JSON elsewhere (the test suite runs on SQLite)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# =============================================================================
# Tasks and inputs
# =============================================================================


class ProductImageModel(Base):
    """Uploaded product photo (the ``uploaded`` frame-reference family)."""

    __tablename__ = "product_images"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    original_filename: Mapped[str | None] = mapped_column(String(255), nullable=True)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    height: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class GenerationTaskModel(Base):
    """One user-initiated generation request (video or image pipeline)."""

    __tablename__ = "generation_tasks"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    source_image_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False)
    reference_media_id: Mapped[PyUUID | None] = mapped_column(Uuid, nullable=True)
    target_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    aspect_ratio: Mapped[str] = mapped_column(String(10), nullable=False, default="9:16")
    language: Mapped[str] = mapped_column(String(10), nullable=False, default="en")
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    generate_audio: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default="pending", server_default="pending", index=True
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    job_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    # Relationships
    products: Mapped[list["ProductModel"]] = relationship(
        "ProductModel", back_populates="task", cascade="all, delete"
    )
    scripts: Mapped[list["ScriptModel"]] = relationship(
        "ScriptModel", back_populates="task", cascade="all, delete"
    )
    video_clips: Mapped[list["VideoClipModel"]] = relationship(
        "VideoClipModel", back_populates="task", cascade="all, delete"
    )
    final_videos: Mapped[list["FinalVideoModel"]] = relationship(
        "FinalVideoModel", back_populates="task", cascade="all, delete"
    )
    promotional_images: Mapped[list["PromotionalImageModel"]] = relationship(
        "PromotionalImageModel",
        back_populates="task",
        cascade="all, delete",
        order_by="PromotionalImageModel.image_index",
    )


# =============================================================================
# Pipeline artifacts
# =============================================================================


class ProductModel(Base):
    """Product analysis produced by the first stage of both pipelines."""

    __tablename__ = "products"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    task_id: Mapped[PyUUID] = mapped_column(
        Uuid, ForeignKey("generation_tasks.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    appearance: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    functionality: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    target_audience: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    usage_scenario: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    emotional_positioning: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    source_image_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    usage_metadata: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    task: Mapped["GenerationTaskModel"] = relationship(
        "GenerationTaskModel", back_populates="products"
    )
    scripts: Mapped[list["ScriptModel"]] = relationship(
        "ScriptModel", back_populates="product", cascade="all, delete"
    )
    promotional_images: Mapped[list["PromotionalImageModel"]] = relationship(
        "PromotionalImageModel", back_populates="product", cascade="all, delete"
    )


class ScriptModel(Base):
    """UGC script written for a product."""

    __tablename__ = "scripts"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    task_id: Mapped[PyUUID] = mapped_column(
        Uuid, ForeignKey("generation_tasks.id", ondelete="CASCADE"), index=True
    )
    product_id: Mapped[PyUUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    hook: Mapped[str] = mapped_column(Text, nullable=False)
    storyline: Mapped[str] = mapped_column(Text, nullable=False)
    character: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    key_scenes: Mapped[list[str]] = mapped_column(JSONType, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    language: Mapped[str] = mapped_column(String(10), nullable=False)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    usage_metadata: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    task: Mapped["GenerationTaskModel"] = relationship(
        "GenerationTaskModel", back_populates="scripts"
    )
    product: Mapped["ProductModel"] = relationship("ProductModel", back_populates="scripts")
    shots: Mapped[list["ShotModel"]] = relationship(
        "ShotModel",
        back_populates="script",
        cascade="all, delete",
        order_by="ShotModel.shot_number",
    )
    video_clips: Mapped[list["VideoClipModel"]] = relationship(
        "VideoClipModel", back_populates="script", cascade="all, delete"
    )


class ShotModel(Base):
    """One storyboard shot of a script."""

    __tablename__ = "shots"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    script_id: Mapped[PyUUID] = mapped_column(
        Uuid, ForeignKey("scripts.id", ondelete="CASCADE"), index=True
    )
    shot_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    scene_reference: Mapped[str] = mapped_column(Text, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    shot_type: Mapped[str] = mapped_column(String(100), nullable=False)
    camera_angle: Mapped[str] = mapped_column(String(100), nullable=False)
    camera_movement: Mapped[str] = mapped_column(String(100), nullable=False)
    time_description: Mapped[str] = mapped_column(Text, nullable=False)
    location_description: Mapped[str] = mapped_column(Text, nullable=False)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    result: Mapped[str] = mapped_column(Text, nullable=False)
    atmosphere: Mapped[str] = mapped_column(Text, nullable=False)
    product_appearance: Mapped[str] = mapped_column(Text, nullable=False)
    lighting: Mapped[str] = mapped_column(Text, nullable=False)
    mood: Mapped[str] = mapped_column(Text, nullable=False)
    requires_product_in_frame: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    usage_metadata: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    script: Mapped["ScriptModel"] = relationship("ScriptModel", back_populates="shots")
    key_frames: Mapped[list["KeyFrameImageModel"]] = relationship(
        "KeyFrameImageModel", back_populates="shot", cascade="all, delete"
    )


class KeyFrameImageModel(Base):
    """Generated still for a shot (the ``generated`` frame-reference family)."""

    __tablename__ = "key_frame_images"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    shot_id: Mapped[PyUUID] = mapped_column(
        Uuid, ForeignKey("shots.id", ondelete="CASCADE"), index=True
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)  # first_frame, last_frame
    path: Mapped[str] = mapped_column(Text, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False, default="image/png")
    prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    usage_metadata: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    shot: Mapped["ShotModel"] = relationship("ShotModel", back_populates="key_frames")


class VideoClipModel(Base):
    """Remote video generation operation and its local copy.

    A merged clip renders several shots at once, so shots are referenced by
    id list rather than a foreign key.
    """

    __tablename__ = "video_clips"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    task_id: Mapped[PyUUID] = mapped_column(
        Uuid, ForeignKey("generation_tasks.id", ondelete="CASCADE"), index=True
    )
    script_id: Mapped[PyUUID] = mapped_column(
        Uuid, ForeignKey("scripts.id", ondelete="CASCADE"), index=True
    )
    shot_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False)
    first_frame_image: Mapped[dict[str, str] | None] = mapped_column(JSONType, nullable=True)
    last_frame_image: Mapped[dict[str, str] | None] = mapped_column(JSONType, nullable=True)
    reference_images: Mapped[list[dict[str, str]] | None] = mapped_column(
        JSONType, nullable=True
    )
    operation_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="queued")
    download_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    source_video_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    path: Mapped[str | None] = mapped_column(Text, nullable=True)
    downloaded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    height: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ratio: Mapped[str | None] = mapped_column(String(10), nullable=True)
    ai_prompt: Mapped[str] = mapped_column(Text, nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    task: Mapped["GenerationTaskModel"] = relationship(
        "GenerationTaskModel", back_populates="video_clips"
    )
    script: Mapped["ScriptModel"] = relationship("ScriptModel", back_populates="video_clips")


class FinalVideoModel(Base):
    """Composited output video."""

    __tablename__ = "final_videos"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    task_id: Mapped[PyUUID] = mapped_column(
        Uuid, ForeignKey("generation_tasks.id", ondelete="CASCADE"), index=True
    )
    path: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    task: Mapped["GenerationTaskModel"] = relationship(
        "GenerationTaskModel", back_populates="final_videos"
    )


class PromotionalImageModel(Base):
    """Promotional still produced by the image pipeline."""

    __tablename__ = "promotional_images"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    task_id: Mapped[PyUUID] = mapped_column(
        Uuid, ForeignKey("generation_tasks.id", ondelete="CASCADE"), index=True
    )
    product_id: Mapped[PyUUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="CASCADE"), index=True
    )
    image_index: Mapped[int] = mapped_column(Integer, nullable=False)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False, default="image/png")
    width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    height: Mapped[int | None] = mapped_column(Integer, nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    generated_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    generation_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    usage_metadata: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    task: Mapped["GenerationTaskModel"] = relationship(
        "GenerationTaskModel", back_populates="promotional_images"
    )
    product: Mapped["ProductModel"] = relationship(
        "ProductModel", back_populates="promotional_images"
    )
