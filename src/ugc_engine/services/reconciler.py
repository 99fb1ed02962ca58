"""Bring local clip rows in line with the video provider.

One ``reconcile`` call is one polling attempt: every non-terminal clip is
queried once, changes are written, and finished clips are handed to the
download pool without waiting for the copy.
"""

from datetime import UTC, datetime
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from ugc_engine.adapters.video_gen.base import VideoGenProvider
from ugc_engine.db.models import VideoClipModel
from ugc_engine.db.session import SessionFactory, session_scope
from ugc_engine.domain.enums import ClipStatus, DownloadStatus
from ugc_engine.domain.models import ClipStatusReport
from ugc_engine.domain.status import TERMINAL_CLIP_STATUSES
from ugc_engine.exceptions import ProviderError
from ugc_engine.logging import get_logger
from ugc_engine.services.downloads import DownloadPool
from ugc_engine.services.storage import StorageService
from ugc_engine.utils import run_async

logger = get_logger(__name__)

CLIP_NOT_FOUND = "Video clip not found"


def clip_video_path(clip_id: UUID) -> str:
    return f"videos/{clip_id}.mp4"


class ClipReconciler:
    """Queries clip status and schedules downloads of finished clips."""

    def __init__(
        self,
        session_factory: SessionFactory,
        provider: VideoGenProvider,
        storage: StorageService,
        download_pool: DownloadPool,
    ) -> None:
        self.session_factory = session_factory
        self.provider = provider
        self.storage = storage
        self.download_pool = download_pool

    def reconcile(self, clip_ids: list[UUID]) -> list[ClipStatusReport]:
        """Run one status pass over ``clip_ids`` and report each clip, in order."""
        with session_scope(self.session_factory) as session:
            return [self._reconcile_clip(session, clip_id) for clip_id in clip_ids]

    def _reconcile_clip(self, session: Session, clip_id: UUID) -> ClipStatusReport:
        clip = session.get(VideoClipModel, clip_id)
        if clip is None:
            logger.warning("video_clip_missing", clip_id=str(clip_id))
            return ClipStatusReport(clip_id=clip_id, status=ClipStatus.FAILED, error=CLIP_NOT_FOUND)

        local_status = ClipStatus(clip.status)
        if local_status in TERMINAL_CLIP_STATUSES:
            return ClipStatusReport(
                clip_id=clip.id,
                status=local_status,
                video_url=clip.source_video_url,
                error=clip.error_message,
            )

        try:
            remote = run_async(self.provider.get_status(clip.operation_id))
        except ProviderError as e:
            # Keep the last known status so the clip is queried again next attempt
            logger.warning(
                "video_status_query_failed",
                clip_id=str(clip.id),
                operation_id=clip.operation_id,
                error=str(e),
            )
            return ClipStatusReport(
                clip_id=clip.id,
                status=local_status,
                video_url=clip.source_video_url,
                error=str(e),
            )

        if remote.status == local_status:
            return ClipStatusReport(clip_id=clip.id, status=local_status)

        if remote.status == ClipStatus.SUCCEEDED:
            clip.status = ClipStatus.SUCCEEDED.value
            clip.source_video_url = remote.video_url
            clip.download_status = DownloadStatus.DOWNLOADING.value
            session.commit()

            logger.info("video_clip_succeeded", clip_id=str(clip.id), video_url=remote.video_url)
            self.download_pool.submit(self.download_clip, clip.id, remote.video_url)
        else:
            clip.status = remote.status.value
            if remote.error_message:
                clip.error_message = remote.error_message
            session.commit()

            logger.info(
                "video_clip_status_changed",
                clip_id=str(clip.id),
                previous=local_status.value,
                status=remote.status.value,
                error=remote.error_message,
            )

        return ClipStatusReport(
            clip_id=clip.id,
            status=remote.status,
            video_url=remote.video_url,
            error=remote.error_message,
        )

    def download_clip(self, clip_id: UUID, video_url: str) -> None:
        """Copy a finished clip into storage and record the outcome on the row."""
        path = clip_video_path(clip_id)
        try:
            run_async(self.storage.store_from_url(video_url, path))
        except (httpx.HTTPError, OSError) as e:
            logger.error("video_download_failed", clip_id=str(clip_id), error=str(e))
            with session_scope(self.session_factory) as session:
                clip = session.get(VideoClipModel, clip_id)
                if clip is not None:
                    clip.download_status = DownloadStatus.FAILED.value
            return

        with session_scope(self.session_factory) as session:
            clip = session.get(VideoClipModel, clip_id)
            if clip is None:
                logger.warning("video_clip_deleted_during_download", clip_id=str(clip_id))
                self.storage.delete(path)
                return
            clip.path = path
            clip.download_status = DownloadStatus.COMPLETED.value
            clip.downloaded_at = datetime.now(UTC)

        logger.info("video_downloaded", clip_id=str(clip_id), path=path)
