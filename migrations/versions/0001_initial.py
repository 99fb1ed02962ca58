"""Initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now())


def _provider_columns() -> list[sa.Column]:
    return [
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("model", sa.String(100), nullable=False),
    ]


def upgrade() -> None:
    # Uploaded product photos
    op.create_table(
        "product_images",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("path", sa.Text(), nullable=False),
        sa.Column("original_filename", sa.String(255), nullable=True),
        sa.Column("mime_type", sa.String(100), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("width", sa.Integer(), nullable=True),
        sa.Column("height", sa.Integer(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_product_images_user_id", "product_images", ["user_id"])

    # Generation tasks
    op.create_table(
        "generation_tasks",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("source_image_ids", postgresql.JSONB(), nullable=False),
        sa.Column("reference_media_id", sa.UUID(), nullable=True),
        sa.Column("target_duration", sa.Integer(), nullable=True),
        sa.Column("aspect_ratio", sa.String(10), nullable=False, server_default="9:16"),
        sa.Column("language", sa.String(10), nullable=False, server_default="en"),
        sa.Column("count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("generate_audio", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("job_id", sa.String(255), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), onupdate=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_generation_tasks_user_id", "generation_tasks", ["user_id"])
    op.create_index("ix_generation_tasks_status", "generation_tasks", ["status"])

    # Product analysis
    op.create_table(
        "products",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("task_id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(255), nullable=False),
        sa.Column("appearance", postgresql.JSONB(), nullable=False),
        sa.Column("functionality", postgresql.JSONB(), nullable=False),
        sa.Column("target_audience", postgresql.JSONB(), nullable=False),
        sa.Column("usage_scenario", postgresql.JSONB(), nullable=False),
        sa.Column("emotional_positioning", postgresql.JSONB(), nullable=False),
        sa.Column("source_image_ids", postgresql.JSONB(), nullable=False),
        *_provider_columns(),
        sa.Column("usage_metadata", postgresql.JSONB(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["task_id"], ["generation_tasks.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_products_task_id", "products", ["task_id"])

    # Scripts
    op.create_table(
        "scripts",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("task_id", sa.UUID(), nullable=False),
        sa.Column("product_id", sa.UUID(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("hook", sa.Text(), nullable=False),
        sa.Column("storyline", sa.Text(), nullable=False),
        sa.Column("character", postgresql.JSONB(), nullable=False),
        sa.Column("key_scenes", postgresql.JSONB(), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("language", sa.String(10), nullable=False),
        *_provider_columns(),
        sa.Column("usage_metadata", postgresql.JSONB(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["task_id"], ["generation_tasks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_scripts_task_id", "scripts", ["task_id"])
    op.create_index("ix_scripts_product_id", "scripts", ["product_id"])

    # Storyboard shots
    op.create_table(
        "shots",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("script_id", sa.UUID(), nullable=False),
        sa.Column("shot_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("scene_reference", sa.Text(), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("shot_type", sa.String(100), nullable=False),
        sa.Column("camera_angle", sa.String(100), nullable=False),
        sa.Column("camera_movement", sa.String(100), nullable=False),
        sa.Column("time_description", sa.Text(), nullable=False),
        sa.Column("location_description", sa.Text(), nullable=False),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("result", sa.Text(), nullable=False),
        sa.Column("atmosphere", sa.Text(), nullable=False),
        sa.Column("product_appearance", sa.Text(), nullable=False),
        sa.Column("lighting", sa.Text(), nullable=False),
        sa.Column("mood", sa.Text(), nullable=False),
        sa.Column(
            "requires_product_in_frame", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        *_provider_columns(),
        sa.Column("usage_metadata", postgresql.JSONB(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["script_id"], ["scripts.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_shots_script_id", "shots", ["script_id"])

    # Generated key frames
    op.create_table(
        "key_frame_images",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("shot_id", sa.UUID(), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("path", sa.Text(), nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=False, server_default="image/png"),
        sa.Column("prompt", sa.Text(), nullable=True),
        *_provider_columns(),
        sa.Column("usage_metadata", postgresql.JSONB(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["shot_id"], ["shots.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_key_frame_images_shot_id", "key_frame_images", ["shot_id"])

    # Remote video operations and their local copies
    op.create_table(
        "video_clips",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("task_id", sa.UUID(), nullable=False),
        sa.Column("script_id", sa.UUID(), nullable=False),
        sa.Column("shot_ids", postgresql.JSONB(), nullable=False),
        sa.Column("first_frame_image", postgresql.JSONB(), nullable=True),
        sa.Column("last_frame_image", postgresql.JSONB(), nullable=True),
        sa.Column("reference_images", postgresql.JSONB(), nullable=True),
        sa.Column("operation_id", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="queued"),
        sa.Column("download_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("source_video_url", sa.Text(), nullable=True),
        sa.Column("path", sa.Text(), nullable=True),
        sa.Column("downloaded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("width", sa.Integer(), nullable=True),
        sa.Column("height", sa.Integer(), nullable=True),
        sa.Column("ratio", sa.String(10), nullable=True),
        sa.Column("ai_prompt", sa.Text(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        *_provider_columns(),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), onupdate=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["task_id"], ["generation_tasks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["script_id"], ["scripts.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_video_clips_task_id", "video_clips", ["task_id"])
    op.create_index("ix_video_clips_script_id", "video_clips", ["script_id"])
    op.create_index("ix_video_clips_operation_id", "video_clips", ["operation_id"])

    # Composited outputs
    op.create_table(
        "final_videos",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("task_id", sa.UUID(), nullable=False),
        sa.Column("path", sa.Text(), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["task_id"], ["generation_tasks.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_final_videos_task_id", "final_videos", ["task_id"])

    # Promotional images
    op.create_table(
        "promotional_images",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("task_id", sa.UUID(), nullable=False),
        sa.Column("product_id", sa.UUID(), nullable=False),
        sa.Column("image_index", sa.Integer(), nullable=False),
        sa.Column("path", sa.Text(), nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=False, server_default="image/png"),
        sa.Column("width", sa.Integer(), nullable=True),
        sa.Column("height", sa.Integer(), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("generated_text", sa.Text(), nullable=True),
        sa.Column("generation_time_ms", sa.Integer(), nullable=True),
        *_provider_columns(),
        sa.Column("usage_metadata", postgresql.JSONB(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["task_id"], ["generation_tasks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_promotional_images_task_id", "promotional_images", ["task_id"])
    op.create_index("ix_promotional_images_product_id", "promotional_images", ["product_id"])


def downgrade() -> None:
    op.drop_table("promotional_images")
    op.drop_table("final_videos")
    op.drop_table("video_clips")
    op.drop_table("key_frame_images")
    op.drop_table("shots")
    op.drop_table("scripts")
    op.drop_table("products")
    op.drop_table("generation_tasks")
    op.drop_table("product_images")
