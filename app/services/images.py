"""
Image Lifecycle Service

Turns a staged cover upload into its normalized form and reclaims image
files that no longer belong to a book.

Normalization:
==============
1. A .webp upload is already normalized and is moved unchanged from the
   staging directory into the image directory.
2. Anything else is decoded with Pillow, rotated according to its EXIF
   orientation, shrunk to fit inside IMAGE_MAX_DIMENSION x
   IMAGE_MAX_DIMENSION (aspect ratio kept, never enlarged) and encoded as
   WebP in the image directory; the staged original is then deleted.
3. Decode or encode failures raise InvalidImageError (HTTP 400): bad
   bytes come from the client, not from the server.

Ownership:
==========
A stored image belongs to the single book whose image_url points at it.
Callers delete the old file only after the new reference is committed,
and cleanup here is best-effort: a failure is logged, never raised.
"""

import logging
import shutil
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse

from fastapi import Request
from PIL import Image, ImageOps

from app.config import get_settings
from app.exceptions import InvalidImageError

logger = logging.getLogger(__name__)
settings = get_settings()

TARGET_SUFFIX = ".webp"
IMAGES_URL_SEGMENT = "/images/"


def normalize_upload(temp_path: Path, images_dir: Path | None = None) -> Path:
    """
    Convert a staged upload into a normalized WebP file in the image directory.

    Args:
        temp_path: Path of the staged upload
        images_dir: Destination directory (defaults to the configured one)

    Returns:
        Path of the normalized file

    Raises:
        InvalidImageError: The file cannot be decoded or encoded
    """
    target_dir = images_dir or settings.images_path
    target_dir.mkdir(parents=True, exist_ok=True)
    out_path = target_dir / f"{temp_path.stem}{TARGET_SUFFIX}"

    if temp_path.suffix.lower() == TARGET_SUFFIX:
        if temp_path.parent.resolve() == target_dir.resolve():
            return temp_path
        try:
            shutil.move(temp_path, out_path)
        except OSError:
            discard_file(temp_path)
            raise
        return out_path

    max_size = (settings.image_max_dimension, settings.image_max_dimension)

    try:
        with Image.open(temp_path) as source:
            image = ImageOps.exif_transpose(source)
            # thumbnail() keeps the aspect ratio and never upscales
            image.thumbnail(max_size, Image.Resampling.LANCZOS)
            if image.mode not in ("RGB", "RGBA"):
                has_alpha = "A" in image.getbands() or "transparency" in image.info
                image = image.convert("RGBA" if has_alpha else "RGB")
            image.save(
                out_path,
                "WEBP",
                quality=settings.webp_quality,
                method=settings.webp_method,
            )
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        logger.warning(f"Image normalization failed for {temp_path.name}: {e}")
        discard_file(out_path)
        discard_file(temp_path)
        raise InvalidImageError(f"Unreadable or unsupported image: {e}") from e

    discard_file(temp_path)
    logger.info(f"Normalized {temp_path.name} -> {out_path.name}")
    return out_path


def image_url_for(request: Request, path: Path) -> str:
    """Absolute public URL of a stored image: <scheme>://<host>/images/<name>."""
    return str(request.url_for("images", path=path.name))


def image_path_from_url(image_url: str | None, images_dir: Path | None = None) -> Path | None:
    """
    Map an image URL back to its file in the image directory.

    Only the last path segment after /images/ is used, so a crafted URL
    cannot point outside the image directory.
    """
    if not image_url:
        return None

    url_path = unquote(urlparse(image_url).path)
    idx = url_path.find(IMAGES_URL_SEGMENT)
    if idx == -1:
        return None

    name = PurePosixPath(url_path[idx + len(IMAGES_URL_SEGMENT):]).name
    if not name or name in (".", ".."):
        return None

    return (images_dir or settings.images_path) / name


def discard_file(path: Path | None) -> bool:
    """
    Best-effort file removal.

    Returns:
        True if a file was removed
    """
    if path is None:
        return False
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning(f"Could not remove {path}: {e}")
        return False


def remove_image(image_url: str | None) -> bool:
    """
    Delete the stored file behind an image URL, ignoring failures.

    Used after a book's image reference was replaced or the book deleted.
    """
    path = image_path_from_url(image_url)
    if path is None:
        logger.warning(f"Image URL does not point into the image directory: {image_url!r}")
        return False

    removed = discard_file(path)
    if removed:
        logger.info(f"Reclaimed image {path.name}")
    return removed
