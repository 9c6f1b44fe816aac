"""
Upload Staging Service

Accepts the cover image sent with a book create/update request and
writes it to the staging directory under a collision-free name, before
any decoding happens. The staging directory sits outside the served
image directory, so raw bytes are never reachable under /images/; only
the normalized file is moved there.

Accepted uploads:
=================
- MIME type: image/jpeg, image/jpg, image/png, image/webp
- Size: at most MAX_UPLOAD_BYTES (20 MiB by default)
- Exactly one file, in the `image` form field (checked by the
  request-parsing dependency)

Filename policy:
================
    "My Cover.JPG" (image/jpeg) -> "my-cover-1718000000123456789.jpg"

The original base name is lower-cased, whitespace becomes "-", anything
outside [a-z0-9_-] is dropped (fallback "image"), then a nanosecond
timestamp and the extension for the MIME type are appended.
"""

import logging
import re
import threading
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from starlette.datastructures import UploadFile

from app.config import get_settings
from app.exceptions import InvalidUploadError

logger = logging.getLogger(__name__)
settings = get_settings()

MIME_TYPES = {
    "image/jpg": "jpg",
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}

CHUNK_SIZE = 1024 * 1024


@dataclass
class StagedUpload:
    """A raw upload written to disk, not yet normalized."""

    path: Path
    original_filename: str
    content_type: str


_suffix_lock = threading.Lock()
_last_suffix = 0


def unique_suffix() -> int:
    """Nanosecond timestamp, strictly increasing within the process."""
    global _last_suffix
    with _suffix_lock:
        suffix = max(time.time_ns(), _last_suffix + 1)
        _last_suffix = suffix
        return suffix


def sanitize_basename(filename: str | None) -> str:
    """
    Reduce an uploaded filename to a safe base name without extension.

    Example:
        >>> sanitize_basename("Le Petit Prince (1943).PNG")
        'le-petit-prince-1943'
    """
    original = (filename or "image").replace("\\", "/")
    stem = PurePosixPath(original).stem.lower()
    stem = re.sub(r"\s+", "-", stem)
    stem = re.sub(r"[^a-z0-9_-]", "", stem)
    return stem or "image"


def build_filename(filename: str | None, content_type: str | None) -> str:
    """Collision-free stored name for an upload."""
    ext = MIME_TYPES.get((content_type or "").lower())
    if ext is None:
        ext = PurePosixPath(filename or "").suffix.lower().lstrip(".") or "jpg"
    return f"{sanitize_basename(filename)}-{unique_suffix()}.{ext}"


def validate_upload(upload: UploadFile) -> None:
    """
    Check the declared MIME type and size of an upload.

    Raises:
        InvalidUploadError: Unsupported type or file too large
    """
    content_type = (upload.content_type or "").lower()
    if content_type not in MIME_TYPES:
        raise InvalidUploadError("Only JPG/JPEG/PNG/WEBP images are allowed")

    if upload.size is not None and upload.size > settings.max_upload_bytes:
        raise InvalidUploadError(
            f"Image exceeds the {settings.max_upload_bytes // (1024 * 1024)} MiB limit"
        )


def stage_upload(upload: UploadFile, staging_dir: Path | None = None) -> StagedUpload:
    """
    Validate an upload and write its bytes to the staging directory.

    The size limit is enforced while copying as well, since the declared
    size is not always available.

    Args:
        upload: File from the multipart request
        staging_dir: Target directory (defaults to UPLOAD_STAGING_DIR)

    Returns:
        StagedUpload pointing at the written file

    Raises:
        InvalidUploadError: Unsupported type or file too large
    """
    validate_upload(upload)

    target_dir = staging_dir or settings.upload_staging_path
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / build_filename(upload.filename, upload.content_type)

    written = 0
    upload.file.seek(0)
    try:
        with open(path, "xb") as out:
            while chunk := upload.file.read(CHUNK_SIZE):
                written += len(chunk)
                if written > settings.max_upload_bytes:
                    raise InvalidUploadError(
                        f"Image exceeds the {settings.max_upload_bytes // (1024 * 1024)} MiB limit"
                    )
                out.write(chunk)
    except Exception:
        path.unlink(missing_ok=True)
        raise

    logger.debug(f"Staged upload {upload.filename!r} as {path.name} ({written} bytes)")
    return StagedUpload(
        path=path,
        original_filename=upload.filename or "",
        content_type=(upload.content_type or "").lower(),
    )
