from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from app.modules.objects.schemas import UploadRequest, UploadResponse
from app.modules.objects.s3_storage import S3Storage
from app.core.dependencies import get_current_user_id
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/objects", tags=["objects"])

# Stored photo paths are /objects/<key>, served outside /api
serve_router = APIRouter(prefix="/objects", tags=["objects"])


def get_object_storage() -> S3Storage:
    try:
        return S3Storage()
    except ValueError as e:
        logger.warning(f"Object storage requested but not configured: {e}")
        raise HTTPException(status_code=503, detail="Object storage is not configured")


@router.post("/upload", response_model=UploadResponse)
async def create_upload_url(
    upload: Optional[UploadRequest] = None,
    user_id: str = Depends(get_current_user_id),
    object_storage: S3Storage = Depends(get_object_storage)
):
    """Presigned URL the client PUTs a photo to directly"""
    content_type = upload.content_type if upload else None
    return object_storage.create_upload_url(content_type)


@serve_router.get("/{object_path:path}")
def serve_object(
    object_path: str,
    user_id: str = Depends(get_current_user_id),
    object_storage: S3Storage = Depends(get_object_storage)
):
    """Redirect to a short-lived download URL for a stored photo"""
    key = object_path.strip("/")
    if not key or ".." in key.split("/"):
        raise HTTPException(status_code=404, detail="Object not found")
    download_url = object_storage.create_download_url(key)
    if not download_url:
        raise HTTPException(status_code=404, detail="Object not found")
    return RedirectResponse(download_url, status_code=302)
