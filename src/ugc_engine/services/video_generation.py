"""Stage 4 (video pipeline): submit one merged video generation for all shots."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ugc_engine.adapters.content import ImagePart
from ugc_engine.adapters.video_gen.base import VideoGenProvider, VideoGenRequest
from ugc_engine.db.models import (
    GenerationTaskModel,
    KeyFrameImageModel,
    ProductImageModel,
    ScriptModel,
    ShotModel,
    VideoClipModel,
)
from ugc_engine.domain.enums import ClipStatus, DownloadStatus, FrameRole
from ugc_engine.domain.models import FrameRef, GeneratedFrameRef, UploadedFrameRef
from ugc_engine.domain.status import FAILED_CLIP_STATUSES
from ugc_engine.exceptions import ArtifactNotFoundError, PreconditionError
from ugc_engine.logging import get_logger
from ugc_engine.services.storage import StorageService
from ugc_engine.utils import run_async

logger = get_logger(__name__)

NO_PRODUCT = "no product"


def build_video_prompt(shot: ShotModel) -> str:
    """Describe one shot for the video model."""
    pieces = [
        f"Action: {shot.action}",
        f"Camera movement: {shot.camera_movement}",
        f"Shot type: {shot.shot_type}",
        f"Camera angle: {shot.camera_angle}",
    ]
    appearance = (shot.product_appearance or "").strip()
    if appearance and appearance.lower() != NO_PRODUCT:
        pieces.append(f"Product: {appearance}")
    return ". ".join(pieces)


def build_merged_prompt(shots: list[ShotModel]) -> str:
    total = len(shots)
    return "\n\n".join(
        f"[Shot {i}/{total}] {build_video_prompt(shot)}" for i, shot in enumerate(shots, start=1)
    )


def resolve_frame_ref(session: Session, ref: FrameRef) -> KeyFrameImageModel | ProductImageModel:
    """Load the row a frame reference points at.

    Raises:
        ArtifactNotFoundError: If the referenced image does not exist
    """
    model = KeyFrameImageModel if isinstance(ref, GeneratedFrameRef) else ProductImageModel
    row = session.get(model, ref.id)

    if row is None:
        raise ArtifactNotFoundError(f"Frame image not found: {ref.source.value}/{ref.id}")
    return row


def load_frame_part(
    session: Session,
    storage: StorageService,
    ref: FrameRef,
    role: FrameRole,
) -> ImagePart:
    row = resolve_frame_ref(session, ref)
    return ImagePart(data=storage.read_bytes(row.path), mime_type=row.mime_type, role=role)


def find_live_clip(session: Session, task_id: UUID, script_id: UUID) -> VideoClipModel | None:
    """Return a clip for task+script that has not failed, if one exists."""
    return session.execute(
        select(VideoClipModel)
        .where(
            VideoClipModel.task_id == task_id,
            VideoClipModel.script_id == script_id,
            VideoClipModel.status.not_in([s.value for s in FAILED_CLIP_STATUSES]),
        )
        .order_by(VideoClipModel.created_at)
        .limit(1)
    ).scalar_one_or_none()


def create_merged_video_task(
    session: Session,
    task: GenerationTaskModel,
    script: ScriptModel,
    shots: list[ShotModel],
    provider: VideoGenProvider,
    storage: StorageService,
    generate_audio: bool = True,
) -> VideoClipModel:
    """Submit a single generation covering every shot and record the clip.

    The first uploaded product photo becomes the first frame when any shot
    needs the product in view.

    Raises:
        PreconditionError: If there are no shots
        ArtifactNotFoundError: If a referenced frame image is missing
        ProviderError: If the provider rejects the submission
    """
    if not shots:
        raise PreconditionError("No shots to generate video from")

    existing = find_live_clip(session, task.id, script.id)
    if existing is not None:
        logger.info(
            "video_clip_reused",
            task_id=str(task.id),
            clip_id=str(existing.id),
            status=existing.status,
        )
        return existing

    first_frame: FrameRef | None = None
    if task.source_image_ids and any(s.requires_product_in_frame for s in shots):
        first_frame = UploadedFrameRef(UUID(str(task.source_image_ids[0])))

    images: list[ImagePart] = []
    if first_frame is not None:
        images.append(load_frame_part(session, storage, first_frame, FrameRole.FIRST_FRAME))

    prompt = build_merged_prompt(shots)
    request = VideoGenRequest(
        prompt=prompt,
        images=images,
        ratio=task.aspect_ratio,
        generate_audio=generate_audio,
    )
    operation_id = run_async(provider.submit(request))

    clip = VideoClipModel(
        task_id=task.id,
        script_id=script.id,
        shot_ids=[str(s.id) for s in shots],
        first_frame_image=first_frame.to_json() if first_frame else None,
        operation_id=operation_id,
        status=ClipStatus.QUEUED.value,
        download_status=DownloadStatus.PENDING.value,
        duration=sum(s.duration for s in shots),
        ratio=task.aspect_ratio,
        ai_prompt=prompt,
        provider=provider.name,
        model=provider.model,
    )
    session.add(clip)
    session.commit()

    logger.info(
        "video_generation_submitted",
        task_id=str(task.id),
        clip_id=str(clip.id),
        operation_id=operation_id,
        shot_count=len(shots),
        has_first_frame=first_frame is not None,
    )
    return clip
