"""Serves stored media (uploads, generated images, downloaded clips)."""

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import FileResponse

from ugc_engine.api.deps import StorageDep
from ugc_engine.logging import get_logger
from ugc_engine.services.storage import guess_mime_type

router = APIRouter(prefix="/storage", tags=["Storage"])
logger = get_logger(__name__)

# Stored files never change under the same path
CACHE_CONTROL = "public, max-age=31536000, immutable"


@router.get(
    "/{path:path}",
    response_class=FileResponse,
    summary="Get stored file",
    responses={400: {"description": "Invalid path"}, 404: {"description": "File not found"}},
)
async def get_stored_file(path: str, storage: StorageDep) -> FileResponse:
    """Stream a stored file by its logical path."""
    file_path = storage.resolve(path)
    if not file_path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    return FileResponse(
        file_path,
        media_type=guess_mime_type(path),
        headers={"Cache-Control": CACHE_CONTROL},
    )
