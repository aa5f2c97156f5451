"""
Media Service: stores uploaded images and videos.

With CLOUDINARY_CLOUD_NAME / CLOUDINARY_API_KEY / CLOUDINARY_API_SECRET set,
files go to Cloudinary through the official SDK (folder ``bizchat``,
resource type ``auto``). The SDK is synchronous, so its calls run on the
blocking worker pool. Without credentials, files are written to UPLOAD_DIR
and served by main.py under /uploads, which is enough for local development.
"""
import io
import logging
import os
import secrets
import time
from typing import Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader

from config import settings
from exceptions import MediaUploadError, ProviderNotConfiguredError
from services.async_executor import run_blocking

logger = logging.getLogger(__name__)


def _configure() -> None:
    if not settings.cloudinary_configured:
        missing = [
            name for name, value in (
                ("CLOUDINARY_CLOUD_NAME", settings.cloudinary_cloud_name),
                ("CLOUDINARY_API_KEY", settings.cloudinary_api_key),
                ("CLOUDINARY_API_SECRET", settings.cloudinary_api_secret),
            ) if not value
        ]
        raise ProviderNotConfiguredError("Cloudinary", missing)
    cloudinary.config(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
        secure=True,
    )


def file_type_for(content_type: str) -> str:
    return "video" if content_type.startswith("video/") else "image"


async def upload_to_cloudinary(
    file_bytes: bytes,
    filename: str,
    folder: Optional[str] = None,
    resource_type: str = "auto",
) -> dict:
    """
    Upload a file to Cloudinary.

    Returns:
        dict: {url, publicId, resourceType}
    """
    _configure()
    stream = io.BytesIO(file_bytes)
    stream.name = filename
    result = await run_blocking(
        cloudinary.uploader.upload,
        stream,
        folder=folder or settings.cloudinary_folder,
        resource_type=resource_type,
    )

    logger.info(f"Media uploaded to Cloudinary: {result['public_id']} ({result.get('bytes', 0)} bytes)")
    return {
        "url": result["secure_url"],
        "publicId": result["public_id"],
        "resourceType": result.get("resource_type", resource_type),
    }


def _save_local(file_bytes: bytes, filename: str, file_type: str) -> dict:
    os.makedirs(settings.upload_dir, exist_ok=True)
    _, ext = os.path.splitext(filename)
    stored_name = f"{int(time.time() * 1000)}-{secrets.token_hex(6)}{ext.lower()}"
    path = os.path.join(settings.upload_dir, stored_name)
    with open(path, "wb") as f:
        f.write(file_bytes)
    return {"url": f"/uploads/{stored_name}", "publicId": None, "resourceType": file_type}


async def store_media(file_bytes: bytes, filename: str, content_type: str) -> dict:
    """
    Store an uploaded image/video and describe it for the client.

    Returns:
        dict: {mediaUrl, fileType, fileName, size, publicId, resourceType}

    Raises:
        MediaUploadError if the file could not be stored
    """
    file_type = file_type_for(content_type)
    if settings.cloudinary_configured:
        try:
            stored = await upload_to_cloudinary(file_bytes, filename)
        except cloudinary.exceptions.Error as e:
            logger.error(f"Cloudinary upload of {filename} failed: {e}")
            raise MediaUploadError(f"Cloudinary upload failed: {e}") from e
    else:
        try:
            stored = _save_local(file_bytes, filename, file_type)
        except OSError as e:
            logger.error(f"Local upload of {filename} failed: {e}")
            raise MediaUploadError(f"Could not write upload: {e}") from e
        logger.info(f"Media stored locally: {stored['url']}")

    return {
        "mediaUrl": stored["url"],
        "fileType": file_type,
        "fileName": filename,
        "size": len(file_bytes),
        "publicId": stored["publicId"],
        "resourceType": stored["resourceType"],
    }


async def delete_media(public_id: str, resource_type: str = "image") -> bool:
    """
    Destroy a Cloudinary asset. Returns True when Cloudinary answers 'ok'.

    Pass the ``resourceType`` returned by store_media; videos are not found
    under the default ``image`` type.
    """
    try:
        _configure()
    except ProviderNotConfiguredError as e:
        logger.error(f"Media delete skipped: {e}")
        return False

    try:
        result = await run_blocking(cloudinary.uploader.destroy, public_id, resource_type=resource_type)
    except cloudinary.exceptions.Error as e:
        logger.error(f"Cloudinary delete of {public_id} failed: {e}")
        return False
    return result.get("result") == "ok"
