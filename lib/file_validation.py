# =============================================================================
# lib/file_validation.py - Image Upload Validation
# =============================================================================
# Validates uploaded images by content, never by filename extension:
# 1. Size limit
# 2. Declared MIME type must be on the allow-list
# 3. Magic bytes must match the declared type
# 4. Pillow must be able to read dimensions, within bounds
#
# Validated files are wrapped in an UploadedImage, so everything past the
# request boundary works with checked bytes and a trusted content type.
#
# Usage:
#   image = validate_image(data, declared_type="image/png", filename="a.png")
#   storage_path = f"{creator_id}/{listing_id}/{image.generate_filename()}"
# =============================================================================

import io
import logging
import secrets
import time
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from app.config import settings
from app.exceptions import InvalidImageError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}

MIN_IMAGE_DIMENSION = 1
MIN_ASPECT_RATIO = 0.01
MAX_ASPECT_RATIO = 100

# Shortest buffer that can carry any of the signatures below
MIN_SIGNATURE_BYTES = 12

JPEG_SIGNATURE = b"\xff\xd8\xff"
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
GIF_SIGNATURES = (b"GIF87a", b"GIF89a")


# =============================================================================
# Typed Upload
# =============================================================================

@dataclass(frozen=True)
class UploadedImage:
    """
    An image that has passed content validation.

    Attributes:
        data: Raw file bytes
        content_type: Sniffed MIME type (one of ALLOWED_IMAGE_TYPES)
        width / height: Pixel dimensions read from the file
        filename: Client-supplied name, informational only
    """
    data: bytes
    content_type: str
    width: int
    height: int
    filename: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return EXTENSIONS[self.content_type]

    def generate_filename(self) -> str:
        """Unique storage filename: {unix_ms}-{random}.{ext}"""
        timestamp = int(time.time() * 1000)
        return f"{timestamp}-{secrets.token_hex(4)}.{self.extension}"


# =============================================================================
# Content Sniffing
# =============================================================================

def normalize_mime_type(value: str | None) -> str:
    """Lower-case, drop parameters, and fold image/jpg into image/jpeg."""
    if not value:
        return ""
    mime = value.split(";", 1)[0].strip().lower()
    return "image/jpeg" if mime == "image/jpg" else mime


def sniff_image_type(data: bytes) -> str | None:
    """
    Detect the image type from magic bytes.

    Returns:
        The MIME type, or None if the bytes aren't a supported image
    """
    if not data or len(data) < MIN_SIGNATURE_BYTES:
        return None
    if data.startswith(JPEG_SIGNATURE):
        return "image/jpeg"
    if data.startswith(PNG_SIGNATURE):
        return "image/png"
    if data.startswith(GIF_SIGNATURES):
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return None


def read_dimensions(data: bytes) -> tuple[int, int] | None:
    """Read (width, height) with Pillow; None if the image can't be parsed."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            return image.size
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.debug(f"Could not read image dimensions: {e}")
        return None


# =============================================================================
# Validation
# =============================================================================

def validate_image(
    data: bytes,
    declared_type: str | None,
    filename: str | None = None,
    max_size: int | None = None,
) -> UploadedImage:
    """
    Validate raw upload bytes and wrap them in an UploadedImage.

    Args:
        data: File bytes
        declared_type: Content type claimed by the client
        filename: Original filename (only used in error details)
        max_size: Byte limit, defaults to MAX_UPLOAD_SIZE_MB

    Returns:
        UploadedImage with the sniffed content type and dimensions

    Raises:
        InvalidImageError: If any check fails
    """
    limit = max_size if max_size is not None else settings.max_upload_size_bytes

    if not data:
        raise InvalidImageError("File is empty", filename)

    if len(data) > limit:
        raise InvalidImageError(
            f"File too large. Maximum size is {limit // (1024 * 1024)}MB", filename
        )

    declared = normalize_mime_type(declared_type)
    if declared not in ALLOWED_IMAGE_TYPES:
        raise InvalidImageError(
            "Invalid file type. Only JPEG, PNG, GIF, and WebP images are allowed", filename
        )

    sniffed = sniff_image_type(data)
    if sniffed is None or sniffed != declared:
        logger.warning(f"Rejected upload with mismatched content: declared={declared}, sniffed={sniffed}")
        raise InvalidImageError("File content does not match its declared image type", filename)

    dimensions = read_dimensions(data)
    if dimensions is None:
        raise InvalidImageError("Could not read image dimensions. The file may be corrupted", filename)

    width, height = dimensions
    max_dimension = settings.MAX_IMAGE_DIMENSION
    if not (MIN_IMAGE_DIMENSION <= width <= max_dimension and MIN_IMAGE_DIMENSION <= height <= max_dimension):
        raise InvalidImageError(
            f"Image dimensions must be between {MIN_IMAGE_DIMENSION} and {max_dimension} pixels", filename
        )

    aspect_ratio = width / height
    if not MIN_ASPECT_RATIO <= aspect_ratio <= MAX_ASPECT_RATIO:
        raise InvalidImageError("Image aspect ratio is out of range", filename)

    return UploadedImage(
        data=data,
        content_type=sniffed,
        width=width,
        height=height,
        filename=filename,
    )
