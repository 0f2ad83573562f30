import logging
import os
import secrets
import time
import cloudinary
from cloudinary import uploader

from qalam.core.config import settings

logger = logging.getLogger(__name__)

ALLOWED_TYPES = {
    ".jpg": {"image/jpeg"},
    ".jpeg": {"image/jpeg"},
    ".png": {"image/png"},
    ".gif": {"image/gif"},
    ".webp": {"image/webp"},
    ".mp4": {"video/mp4"},
    ".webm": {"video/webm"},
    ".ogg": {"video/ogg", "audio/ogg"},
    ".pdf": {"application/pdf"},
    ".doc": {"application/msword"},
    ".docx": {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"},
}
MAX_FILES = 5


def configure_cloudinary() -> bool:
    if not settings.cloudinary_enabled:
        return False
    cloudinary.config(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
        secure=True,
    )
    return True


def is_allowed(filename: str, content_type: str | None) -> bool:
    ext = os.path.splitext(filename or "")[1].lower()
    return (content_type or "").lower() in ALLOWED_TYPES.get(ext, set())


def _unique_name(filename: str) -> str:
    ext = os.path.splitext(filename)[1].lower()
    return f"files-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"


def store_file(data: bytes, filename: str) -> dict:
    """Persist one upload and return its public url and stored name.

    Goes to Cloudinary when it is configured, to UPLOAD_DIR otherwise.
    Cloudinary errors propagate to the caller.
    """
    name = _unique_name(filename)
    if settings.cloudinary_enabled:
        result = uploader.upload(
            data,
            folder="qalam",
            public_id=os.path.splitext(name)[0],
            resource_type="auto",
            overwrite=False,
        )
        return {"filename": result["public_id"], "url": result["secure_url"]}

    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    with open(os.path.join(settings.UPLOAD_DIR, name), "wb") as fh:
        fh.write(data)
    return {
        "filename": name,
        "url": f"{settings.PUBLIC_BASE_URL.rstrip('/')}/uploads/{name}",
    }
