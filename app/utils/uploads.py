"""Image uploads (listing photos, profile pictures) stored on local disk under settings.UPLOAD_DIR."""
import logging
import mimetypes
import uuid
from pathlib import Path
from typing import List, Optional, Tuple

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.errors import ValidationError

logger = logging.getLogger(__name__)

UPLOAD_URL_PREFIX = "/uploads"


async def read_images(
    files: Optional[List[UploadFile]], max_count: Optional[int] = None
) -> List[Tuple[str, bytes]]:
    """
    Read and validate uploaded images, at most max_count of them
    (default settings.MAX_LISTING_IMAGES).

    Returns (extension, content) pairs. Nothing is written, so a bad file
    rejects the whole upload.
    """
    if max_count is None:
        max_count = settings.MAX_LISTING_IMAGES
    files = [f for f in files or [] if f.filename]
    if len(files) > max_count:
        raise ValidationError(
            f"At most {max_count} images are allowed.",
            details=f"Received {len(files)} images",
        )

    images = []
    for upload in files:
        content_type = upload.content_type or ""
        if not content_type.startswith("image/"):
            raise ValidationError(
                "Only image files are allowed.",
                details=f"{upload.filename} has type {content_type or 'unknown'}",
            )
        data = await upload.read()
        if len(data) > settings.MAX_FILE_SIZE:
            raise ValidationError(
                "Image is too large.",
                details=f"{upload.filename} exceeds {settings.MAX_FILE_SIZE} bytes",
            )
        extension = Path(upload.filename).suffix.lower() or mimetypes.guess_extension(content_type) or ""
        images.append((extension, data))
    return images


def _write_images(images: List[Tuple[str, bytes]]) -> List[str]:
    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)

    paths = []
    for extension, data in images:
        name = f"{uuid.uuid4().hex}{extension}"
        (upload_dir / name).write_bytes(data)
        paths.append(f"{UPLOAD_URL_PREFIX}/{name}")
    return paths


async def save_images(images: List[Tuple[str, bytes]]) -> List[str]:
    """Write images to the upload directory and return their public paths."""
    if not images:
        return []
    paths = await run_in_threadpool(_write_images, images)
    logger.info("Saved %d images", len(paths))
    return paths


def _unlink_images(paths: List[str]) -> None:
    upload_dir = Path(settings.UPLOAD_DIR)
    for path in paths:
        (upload_dir / path.rsplit("/", 1)[-1]).unlink(missing_ok=True)


async def discard_images(paths: List[str]) -> None:
    """Remove files written by save_images whose record was never stored."""
    if paths:
        await run_in_threadpool(_unlink_images, paths)
        logger.info("Discarded %d unused images", len(paths))
