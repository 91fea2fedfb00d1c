# =============================================================================
# core/services/storage_service.py - Supabase Storage Operations
# =============================================================================
# Handles image upload / removal with Supabase Storage.
#
# Buckets:
#   listing-photos           {creator_id}/{listing_id}/{filename}
#   creator-profile-images   {creator_id}/{filename}
#   creator-cover-images     {creator_id}/{filename}
# =============================================================================

import logging

from lib.file_validation import UploadedImage
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid
from app.exceptions import StorageUploadError

logger = logging.getLogger(__name__)

# Storage bucket names
LISTING_PHOTOS_BUCKET = "listing-photos"
PROFILE_IMAGES_BUCKET = "creator-profile-images"
COVER_IMAGES_BUCKET = "creator-cover-images"


class StorageService:
    """
    Service for Supabase Storage operations.

    Only validated `UploadedImage` objects are uploaded; callers never hand
    raw form data to storage.
    """

    @staticmethod
    def listing_photo_path(creator_id: str, listing_id: str, image: UploadedImage) -> str:
        """Storage path namespaced by creator and listing."""
        return f"{normalize_uuid(creator_id)}/{normalize_uuid(listing_id)}/{image.generate_filename()}"

    @staticmethod
    def creator_image_path(creator_id: str, image: UploadedImage) -> str:
        return f"{normalize_uuid(creator_id)}/{image.generate_filename()}"

    @staticmethod
    def upload_image(bucket: str, path: str, image: UploadedImage) -> str:
        """
        Upload an image to storage.

        Args:
            bucket: Bucket name
            path: Object path inside the bucket
            image: Validated image

        Returns:
            Storage path where the image was uploaded

        Raises:
            StorageUploadError: If upload fails
        """
        client = SupabaseClient.get_client()

        try:
            client.storage.from_(bucket).upload(
                path=path,
                file=image.data,
                file_options={"content-type": image.content_type, "upsert": "false"}
            )
            logger.info(f"Uploaded image to storage: {bucket}/{path} ({image.size} bytes)")
            return path

        except Exception as e:
            logger.error(f"Storage upload failed for {bucket}/{path}: {e}")
            raise StorageUploadError(str(e))

    @staticmethod
    def get_public_url(bucket: str, storage_path: str) -> str:
        """
        Get a public URL for a storage file.

        Args:
            bucket: Bucket name
            storage_path: Path in storage bucket

        Returns:
            Public URL string
        """
        client = SupabaseClient.get_client()
        url = client.storage.from_(bucket).get_public_url(storage_path)
        # Some client versions append an empty query string
        return url.rstrip("?") if isinstance(url, str) else url

    @staticmethod
    def remove(bucket: str, storage_paths: list[str]) -> bool:
        """
        Delete files from storage (best effort).

        Returns:
            True if deleted successfully, False if the call failed
        """
        if not storage_paths:
            return True

        client = SupabaseClient.get_client()

        try:
            client.storage.from_(bucket).remove(list(storage_paths))
            logger.info(f"Deleted {len(storage_paths)} file(s) from {bucket}")
            return True

        except Exception as e:
            logger.error(f"Failed to delete files from {bucket}: {e}")
            return False

    @staticmethod
    def check_bucket(bucket: str = LISTING_PHOTOS_BUCKET) -> bool:
        """Readiness check: True if the bucket can be listed."""
        client = SupabaseClient.get_client()
        try:
            client.storage.from_(bucket).list()
            return True
        except Exception as e:
            logger.warning(f"Storage bucket {bucket} not reachable: {e}")
            return False
