from datetime import datetime
from io import BytesIO

from fastapi import HTTPException
from PIL import Image, UnidentifiedImageError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import BackendUnavailableError, RecordNotFoundError
from app.core.logging_config import get_logger
from app.models.photo import StudentPhoto
from app.services.backend_client import BackendClient

log = get_logger("photos")


def _check_image(content_type: str | None, data: bytes):
    if not content_type or not content_type.startswith("image/"):
        raise HTTPException(status_code=415, detail="Please select an image file")
    if len(data) > settings.max_photo_bytes:
        limit_mb = settings.max_photo_bytes / (1024 * 1024)
        raise HTTPException(status_code=413, detail=f"Photo exceeds {limit_mb:g} MB limit.")
    try:
        with Image.open(BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError):
        raise HTTPException(status_code=415, detail="Please select an image file")


def get_photo(db: Session, roll_no: str) -> StudentPhoto | None:
    return db.query(StudentPhoto).filter(StudentPhoto.autonomous_roll_no == roll_no).first()


def has_photo(db: Session, roll_no: str) -> bool:
    return get_photo(db, roll_no) is not None


def save_photo(
    db: Session,
    roll_no: str,
    filename: str | None,
    content_type: str | None,
    data: bytes,
    client: BackendClient | None = None,
) -> StudentPhoto:
    _check_image(content_type, data)

    if client is not None:
        try:
            client.upload_photo(filename or "photo", content_type, data)
        except (BackendUnavailableError, RecordNotFoundError) as exc:
            # The local copy is what the admit card uses; upstream catches up on the next upload
            log.warning("Photo for %s kept locally only: %s", roll_no, exc.message)

    photo = get_photo(db, roll_no)
    if photo is None:
        photo = StudentPhoto(autonomous_roll_no=roll_no)
        db.add(photo)
    photo.filename = filename
    photo.content_type = content_type
    photo.data = data
    photo.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(photo)
    log.info("Stored photo for %s (%d bytes)", roll_no, len(data))
    return photo


def delete_photo(db: Session, roll_no: str, client: BackendClient | None = None) -> bool:
    if client is not None:
        try:
            client.delete_photo()
        except BackendUnavailableError as exc:
            log.warning("Upstream photo for %s not removed: %s", roll_no, exc.message)
    photo = get_photo(db, roll_no)
    if photo is None:
        return False
    db.delete(photo)
    db.commit()
    log.info("Removed photo for %s", roll_no)
    return True
