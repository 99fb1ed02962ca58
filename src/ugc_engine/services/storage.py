"""Local asset storage for uploaded photos and generated media."""

import hashlib
import mimetypes
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath

import httpx

from ugc_engine.config import settings
from ugc_engine.exceptions import InvalidStoragePathError
from ugc_engine.logging import get_logger

logger = get_logger(__name__)


@dataclass
class StoredAsset:
    """Metadata for a stored asset."""

    path: str  # logical path relative to the storage root
    file_path: Path
    file_size_bytes: int
    mime_type: str
    checksum: str
    created_at: datetime


def validate_logical_path(path: str) -> PurePosixPath:
    """Check a logical storage path and return it normalised.

    Raises:
        InvalidStoragePathError: For empty paths, absolute paths or ``..`` segments
    """
    if not path or path.startswith(("/", "\\")) or ".." in path.replace("\\", "/").split("/"):
        raise InvalidStoragePathError(f"Invalid storage path: {path!r}")

    logical = PurePosixPath(path.replace("\\", "/"))
    if logical.is_absolute() or (logical.parts and ":" in logical.parts[0]):
        raise InvalidStoragePathError(f"Invalid storage path: {path!r}")
    return logical


def guess_mime_type(path: str) -> str:
    mime_type, _ = mimetypes.guess_type(path)
    return mime_type or "application/octet-stream"


class StorageService:
    """Stores assets under a base directory, addressed by logical paths.

    Logical paths look like ``videos/<clip_id>.mp4`` and are what the
    database records; ``url_for`` turns them into URLs served by the
    storage route.
    """

    def __init__(
        self,
        base_path: Path | None = None,
        base_url: str | None = None,
        download_timeout: float | None = None,
    ) -> None:
        """Initialize storage service.

        Args:
            base_path: Base directory for local storage. Defaults to settings.storage_path
            base_url: URL prefix for stored assets. Defaults to settings.storage_base_url
            download_timeout: Timeout for ``store_from_url`` downloads
        """
        self.base_path = (base_path or Path(settings.storage_path)).resolve()
        self.base_url = (base_url or settings.storage_base_url).rstrip("/")
        self.download_timeout = download_timeout or settings.download_timeout

    def resolve(self, path: str) -> Path:
        """Map a logical path to a file inside the storage root.

        Raises:
            InvalidStoragePathError: If the path would escape the storage root
        """
        logical = validate_logical_path(path)
        full_path = (self.base_path / logical).resolve()
        if not full_path.is_relative_to(self.base_path):
            raise InvalidStoragePathError(f"Invalid storage path: {path!r}")
        return full_path

    def _compute_checksum(self, data: bytes) -> str:
        """Compute SHA256 checksum of data."""
        return hashlib.sha256(data).hexdigest()

    def save_bytes(self, path: str, data: bytes, mime_type: str | None = None) -> StoredAsset:
        """Write raw bytes to ``path``, creating parent directories."""
        file_path = self.resolve(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(data)

        logger.debug("storage_file_written", path=path, size=len(data))

        return StoredAsset(
            path=path,
            file_path=file_path,
            file_size_bytes=len(data),
            mime_type=mime_type or guess_mime_type(path),
            checksum=self._compute_checksum(data),
            created_at=datetime.now(UTC),
        )

    async def store_from_url(self, url: str, path: str) -> StoredAsset:
        """Download ``url`` and store it at ``path``.

        Raises:
            httpx.HTTPError: If the download fails
        """
        logger.info("storage_download_started", url=url[:100], destination=path)

        try:
            async with httpx.AsyncClient(
                timeout=self.download_timeout, follow_redirects=True
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                content = response.content
        except httpx.HTTPError as e:
            logger.error("storage_download_failed", url=url[:100], error=str(e))
            raise

        asset = self.save_bytes(path, content, response.headers.get("content-type"))
        logger.info(
            "storage_download_completed",
            path=path,
            file_size=asset.file_size_bytes,
        )
        return asset

    def read_bytes(self, path: str) -> bytes:
        return self.resolve(path).read_bytes()

    def exists(self, path: str) -> bool:
        return self.resolve(path).is_file()

    def delete(self, path: str) -> bool:
        """Delete a stored file. Returns False if it did not exist."""
        file_path = self.resolve(path)
        if not file_path.exists():
            return False
        file_path.unlink()
        logger.info("storage_file_deleted", path=path)
        return True

    def url_for(self, path: str) -> str:
        validate_logical_path(path)
        return f"{self.base_url}/{path}"
