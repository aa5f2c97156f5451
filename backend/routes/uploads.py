"""
Media upload endpoint (chat attachments, stories, posts, product images).
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile

from config import settings
from db_models import User
from deps import require_auth
from domain.constants import ALLOWED_UPLOAD_PREFIXES
from domain.errors import UpstreamServiceError, ValidationError
from domain.responses import success_response
from exceptions import MediaUploadError
from services import media_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/upload", tags=["uploads"])


@router.post("/media")
async def upload_media(
    media: UploadFile = File(..., description="Image or video file"),
    user: User = Depends(require_auth),
):
    """
    Accepts multipart/form-data with a single ``media`` file.

    Images and videos only, up to ``max_upload_mb``.
    """
    content_type = media.content_type or ""
    if not content_type.startswith(ALLOWED_UPLOAD_PREFIXES):
        raise ValidationError("Only image and video files are allowed", field="media")

    file_bytes = await media.read()
    max_bytes = settings.max_upload_mb * 1024 * 1024
    if not file_bytes:
        raise ValidationError("Uploaded file is empty", field="media")
    if len(file_bytes) > max_bytes:
        raise ValidationError(
            f"File exceeds {settings.max_upload_mb}MB limit",
            field="media",
            details={"size": len(file_bytes), "maxBytes": max_bytes},
        )

    filename = media.filename or "upload"
    try:
        stored = await media_service.store_media(file_bytes, filename, content_type)
    except MediaUploadError as e:
        raise UpstreamServiceError(str(e))

    logger.info(f"User {user.id} uploaded {stored['fileType']} ({stored['size']} bytes)")
    return success_response(data=stored)
