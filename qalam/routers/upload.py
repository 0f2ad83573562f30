from fastapi import APIRouter, Depends, HTTPException, File, UploadFile, status
from typing import List
import logging
from cloudinary.exceptions import Error as CloudinaryError
from qalam.core.config import settings
from qalam.core.security import get_current_user
from qalam.db.models.user import User
from qalam.services.storage import MAX_FILES, is_allowed, store_file

router = APIRouter()


@router.post("/")
async def upload_files(
    files: List[UploadFile] = File(...),
    current_user: User = Depends(get_current_user),
):
    if not files:
        raise HTTPException(400, "No files uploaded")
    if len(files) > MAX_FILES:
        raise HTTPException(400, f"Too many files (max {MAX_FILES})")

    # Validate everything before storing anything
    payloads = []
    for upload in files:
        if not is_allowed(upload.filename, upload.content_type):
            raise HTTPException(400, "Invalid file type. Allowed: images, videos, PDFs, documents")
        data = await upload.read()
        if len(data) > settings.UPLOAD_MAX_BYTES:
            raise HTTPException(400, f"File too large: {upload.filename}")
        payloads.append((upload, data))

    stored = []
    for upload, data in payloads:
        try:
            saved = store_file(data, upload.filename)
        except CloudinaryError as e:
            logging.error(f"Cloudinary Error: {str(e)}")
            raise HTTPException(status.HTTP_502_BAD_GATEWAY, "Upload failed")
        except OSError as e:
            logging.error(f"Upload write error: {str(e)}")
            raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Upload failed")

        stored.append({
            "originalName": upload.filename,
            "filename": saved["filename"],
            "size": len(data),
            "mimetype": upload.content_type,
            "url": saved["url"],
        })

    logging.info(f"User {current_user.id} uploaded {len(stored)} file(s)")
    return {
        "message": "Files uploaded successfully",
        "urls": [f["url"] for f in stored],
        "files": stored,
    }
