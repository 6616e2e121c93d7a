"""
Active QR / UPI receiving descriptor.

Uploading a new descriptor replaces the active one; orders created earlier
keep pointing at the descriptor that was active when they were created.
"""
import uuid
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from app import models
from app.config import MAX_QR_IMAGE_BYTES, UPLOADS_DIR
from app.database import get_db
from app.dependencies.auth import get_current_user
from app.errors import ValidationError
from app.schemas.responses import QrCodeOut
from app.services import catalog

router = APIRouter()

# Stored extension comes from the validated content type, never from the client filename
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


def get_uploads_dir() -> Path:
    """Return the uploads directory, creating it if needed."""
    d = Path(UPLOADS_DIR)
    d.mkdir(parents=True, exist_ok=True)
    return d


async def save_qr_image(upload: UploadFile) -> str:
    content_type = (upload.content_type or "").strip().lower()
    ext = ALLOWED_IMAGE_TYPES.get(content_type)
    if ext is None:
        raise ValidationError("Only JPEG, PNG, GIF or WebP images are allowed")

    content = await upload.read()
    if len(content) > MAX_QR_IMAGE_BYTES:
        raise ValidationError("QR image exceeds the 2MB limit")

    safe_name = f"qr-{uuid.uuid4().hex[:12]}{ext}"
    (get_uploads_dir() / safe_name).write_bytes(content)
    return f"/uploads/{safe_name}"


@router.get("", response_model=Optional[QrCodeOut])
def get_active_qr_code(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return catalog.get_active_qr_code(db)


@router.post("", response_model=QrCodeOut)
async def upload_qr_code(
    upi_id: str = Form(..., alias="upiId", min_length=3, max_length=255),
    qr_image: Optional[UploadFile] = File(None, alias="qrImage"),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    """Replace the active receiving descriptor (UPI handle + optional QR image)."""
    image_url = await save_qr_image(qr_image) if qr_image is not None else None
    return catalog.activate_qr_code(upi_id.strip(), db, image_url=image_url)
