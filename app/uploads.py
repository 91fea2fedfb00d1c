# =============================================================================
# app/uploads.py - Multipart Image Handling
# =============================================================================
# Converts FastAPI UploadFile parts into validated UploadedImage objects.
# This is the only place raw form files are read; everything past the
# router works with UploadedImage.
# =============================================================================

import logging

from fastapi import UploadFile

from app.config import settings
from app.exceptions import InvalidImageError, ValidationFailedError
from lib.file_validation import UploadedImage, validate_image

logger = logging.getLogger(__name__)


async def read_image(upload: UploadFile) -> UploadedImage:
    """
    Read and validate one uploaded image.

    At most MAX_UPLOAD_SIZE_MB + 1 byte is read so oversized files are
    rejected without buffering them completely.

    Raises:
        InvalidImageError: If the file fails validation
    """
    limit = settings.max_upload_size_bytes
    data = await upload.read(limit + 1)
    await upload.close()
    return validate_image(data, upload.content_type, filename=upload.filename, max_size=limit)


def _is_present(upload: UploadFile | None) -> bool:
    # Browsers send an empty part for an untouched file input
    return upload is not None and bool(upload.filename)


async def read_optional_image(upload: UploadFile | None, field: str) -> UploadedImage | None:
    """Validate an optional single-image field, reporting errors against `field`."""
    if not _is_present(upload):
        return None
    try:
        return await read_image(upload)
    except InvalidImageError as e:
        raise ValidationFailedError(field_errors={field: e.message})


async def read_images(uploads: list[UploadFile] | None, field: str = "photos") -> list[UploadedImage]:
    """
    Validate every uploaded photo.

    All files are checked before anything is stored; one invalid file
    fails the request with a field error naming it.
    """
    images: list[UploadedImage] = []
    for index, upload in enumerate(uploads or [], start=1):
        if not _is_present(upload):
            continue
        try:
            images.append(await read_image(upload))
        except InvalidImageError as e:
            label = upload.filename or f"Photo {index}"
            logger.info(f"Rejected photo {index}: {e.message}")
            raise ValidationFailedError(field_errors={field: f"{label}: {e.message}"})
    return images
