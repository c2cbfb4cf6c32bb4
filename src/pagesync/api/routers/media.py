"""
API routes for media.

Endpoints
---------
- ``GET /media``: stored uploads, newest first, as ``{"media": [...]}``.
- ``POST /media``: multipart upload (field ``file``).

Stored files are served by the application under ``/uploads``.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from pagesync.api.schemas import MediaList
from pagesync.api.state import AppState, get_state
from pagesync.core.contracts.media import MediaItem

router = APIRouter(prefix="/media", tags=["Media"])


@router.get("", response_model=MediaList, summary="List uploaded media")
async def list_media(state: AppState = Depends(get_state)) -> MediaList:
    return MediaList(media=state.media.list())


@router.post("", response_model=MediaItem, summary="Upload a media file")
async def upload_media(
    file: UploadFile | None = File(default=None), state: AppState = Depends(get_state)
) -> MediaItem:
    """Store an upload; size and type violations raise ``MediaRejected`` (400)."""
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
    data = await file.read()
    return state.media.save(
        filename=file.filename or "upload",
        content_type=file.content_type or "application/octet-stream",
        data=data,
    )


__all__ = ["router"]
