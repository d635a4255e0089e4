# foodchat/uploads.py
import os
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4
from fastapi import UploadFile
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", "uploads"))
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
UPLOAD_URL_PREFIX = "/uploads"

ALLOWED_MIME_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}


class UnsupportedMediaType(ValueError):
    """Upload with a content type outside ALLOWED_MIME_TYPES."""


@dataclass
class StoredUpload:
    path: Path
    url: str
    mime_type: str


def validate_image(upload: UploadFile) -> str:
    mime_type = (upload.content_type or "").split(";")[0].strip().lower()
    if mime_type not in ALLOWED_MIME_TYPES:
        raise UnsupportedMediaType(f"Unsupported image type: {mime_type or 'unknown'}")
    return mime_type


def _extension_for(upload: UploadFile, mime_type: str) -> str:
    suffix = Path(upload.filename or "").suffix.lower()
    if suffix:
        return suffix
    return mimetypes.guess_extension(mime_type) or ""


async def save_upload(upload: UploadFile) -> StoredUpload:
    mime_type = validate_image(upload)
    filename = f"{uuid4().hex}{_extension_for(upload, mime_type)}"
    path = UPLOAD_DIR / filename

    data = await upload.read()
    path.write_bytes(data)
    logger.info("📁 Stored upload %s (%d bytes, %s)", filename, len(data), mime_type)

    return StoredUpload(path=path, url=f"{UPLOAD_URL_PREFIX}/{filename}", mime_type=mime_type)


def delete_upload(stored: StoredUpload):
    try:
        stored.path.unlink()
    except FileNotFoundError:
        logger.warning("⚠️ Upload already gone: %s", stored.path)
