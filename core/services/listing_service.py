# =============================================================================
# core/services/listing_service.py - Listing Business Logic
# =============================================================================
# Listing submission spans three systems with independent failure modes:
# the listings table, the listing-photos bucket and the Shopify store.
# Creation runs as a Saga:
#
#   1. insert-listing   (critical)      compensate: delete the row
#   2. upload-photos    (critical)      compensate: remove objects + rows
#   3. sync-commerce    (non-critical)  failures go to manual_sync_queue
#
# Individual photo failures are tolerated while at least one photo is
# stored. Zero stored photos fails step 2 and the listing row is deleted.
# =============================================================================

import logging
import time
from typing import Any, Callable

from pydantic import ValidationError

from app.config import settings
from app.exceptions import (
    ListingNotEditableError,
    ListingNotFoundError,
    PhotoUploadFailedError,
    UpstreamServiceError,
    ValidationFailedError,
    WornVaultException,
)
from core.models.listing import (
    ListingCreateResponse,
    ListingDraft,
    ListingPhoto,
    ListingResponse,
    ListingStatus,
)
from core.services.commerce_service import CommerceService
from core.services.storage_service import LISTING_PHOTOS_BUCKET, StorageService
from lib.file_validation import UploadedImage
from lib.saga import Saga, SagaError, SagaStep
from lib.shopify_admin import ShopifyAdminClient
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)

PHOTO_TYPE_REFERENCE = "reference"

# Pydantic field name -> form field name
FORM_FIELDS = {"price_cents": "price"}


def validate_draft(fields: dict[str, Any]) -> ListingDraft:
    """
    Validate listing form fields.

    Raises:
        ValidationFailedError: With one message per invalid form field
    """
    try:
        return ListingDraft(**fields)
    except ValidationError as e:
        field_errors: dict[str, str] = {}
        for error in e.errors():
            name = str(error["loc"][0]) if error.get("loc") else "form"
            message = error.get("msg", "Invalid value")
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            field_errors.setdefault(FORM_FIELDS.get(name, name), message)
        raise ValidationFailedError(field_errors=field_errors)


def _check_photo_count(count: int) -> None:
    if count < 1:
        raise ValidationFailedError(field_errors={"photos": "At least one photo is required"})
    if count > settings.MAX_LISTING_PHOTOS:
        raise ValidationFailedError(
            field_errors={"photos": f"You can upload up to {settings.MAX_LISTING_PHOTOS} photos"}
        )


class ListingService:
    """
    Service for creator listing operations.

    All reads and writes are scoped to the owning creator; the service_role
    client bypasses RLS.
    """

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    @staticmethod
    def create_listing(
        creator: dict[str, Any],
        draft: ListingDraft,
        images: list[UploadedImage],
        shopify: ShopifyAdminClient | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> ListingCreateResponse:
        """
        Create a listing with photos and (optionally) a Shopify product.

        Args:
            creator: The authenticated creator's row
            draft: Validated listing fields
            images: Validated photos (1..MAX_LISTING_PHOTOS)
            shopify: Commerce client, or None when Shopify is not configured
            sleep: Backoff sleep used when linking the product id

        Returns:
            ListingCreateResponse with any non-fatal warnings

        Raises:
            ValidationFailedError: If the photo count is out of range
            PhotoUploadFailedError: If no photo could be stored
            UpstreamServiceError: If the listing row could not be created
        """
        _check_photo_count(len(images))

        steps = [
            SagaStep("insert-listing", ListingService._insert_listing, ListingService._delete_listing),
            SagaStep("upload-photos", ListingService._upload_photos, ListingService._remove_photos),
        ]
        if shopify is not None:
            steps.append(SagaStep("sync-commerce", ListingService._sync_commerce, critical=False))

        saga = Saga("create-listing", steps)
        context = {
            "creator": creator,
            "draft": draft,
            "images": images,
            "shopify": shopify,
            "sleep": sleep,
        }

        try:
            saga.run(context)
        except SagaError as e:
            if isinstance(e.cause, WornVaultException):
                raise e.cause
            raise UpstreamServiceError("listings", str(e.cause))

        warnings = list(context.get("photo_errors", []))
        if saga.result.warnings:
            warnings.append("Your listing was saved but is not yet in the store; we'll finish setting it up shortly.")

        listing = ListingService.to_response(context["listing"], context["photo_rows"])
        logger.info(
            f"Created listing {listing.id} for creator {creator['id']} "
            f"({len(context['photo_rows'])}/{len(images)} photos)"
        )
        return ListingCreateResponse(
            listing=listing,
            photos_uploaded=len(context["photo_rows"]),
            warnings=warnings,
            commerce_synced="sync-commerce" in saga.result.completed,
        )

    @staticmethod
    def _insert_listing(context: dict[str, Any]) -> None:
        client = SupabaseClient.get_client()
        row = {
            **context["draft"].to_row(),
            "creator_id": normalize_uuid(context["creator"]["id"]),
            "status": ListingStatus.PENDING_APPROVAL.value,
        }
        response = client.table("listings").insert(row).execute()
        if not response.data:
            raise SupabaseClientError("Insert returned no data", code="INSERT_LISTING_FAILED")
        context["listing"] = response.data[0]

    @staticmethod
    def _delete_listing(context: dict[str, Any]) -> None:
        listing_id = context["listing"]["id"]
        client = SupabaseClient.get_client()
        client.table("listings").delete().eq("id", listing_id).execute()
        logger.info(f"Rolled back listing {listing_id}")

    @staticmethod
    def _upload_photos(context: dict[str, Any]) -> None:
        photo_rows, errors = ListingService.store_photos(
            context["creator"]["id"], context["listing"]["id"], context["images"]
        )
        context["photo_rows"] = photo_rows
        context["photo_errors"] = errors
        if not photo_rows:
            raise PhotoUploadFailedError(errors)

    @staticmethod
    def _remove_photos(context: dict[str, Any]) -> None:
        ListingService.delete_photo_rows(context.get("photo_rows", []))

    @staticmethod
    def _sync_commerce(context: dict[str, Any]) -> None:
        listing = context["listing"]
        image_urls = [
            StorageService.get_public_url(LISTING_PHOTOS_BUCKET, row["storage_path"])
            for row in context["photo_rows"]
        ]
        result = CommerceService.sync_listing(
            context["shopify"], listing, context["creator"], image_urls, sleep=context["sleep"]
        )
        listing["shopify_product_id"] = result.product_id

    # -------------------------------------------------------------------------
    # Photos
    # -------------------------------------------------------------------------

    @staticmethod
    def store_photos(
        creator_id: str,
        listing_id: str,
        images: list[UploadedImage],
    ) -> tuple[list[dict[str, Any]], list[str]]:
        """
        Upload photos and record a listing_photos row per success.

        Returns:
            (photo rows stored, user-facing error per failed photo)
        """
        client = SupabaseClient.get_client()
        stored: list[dict[str, Any]] = []
        errors: list[str] = []

        for index, image in enumerate(images, start=1):
            label = image.filename or f"Photo {index}"
            path = StorageService.listing_photo_path(creator_id, listing_id, image)
            try:
                StorageService.upload_image(LISTING_PHOTOS_BUCKET, path, image)
            except Exception:
                errors.append(f"{label}: upload failed")
                continue

            try:
                response = client.table("listing_photos").insert({
                    "listing_id": normalize_uuid(listing_id),
                    "storage_path": path,
                    "photo_type": PHOTO_TYPE_REFERENCE,
                }).execute()
                if not response.data:
                    raise SupabaseClientError("Insert returned no data", code="INSERT_PHOTO_FAILED")
                stored.append(response.data[0])
            except Exception as e:
                logger.error(f"Failed to record photo {path}: {e}")
                StorageService.remove(LISTING_PHOTOS_BUCKET, [path])
                errors.append(f"{label}: could not be saved")

        if errors:
            logger.warning(f"Listing {listing_id}: {len(errors)} photo(s) failed, {len(stored)} stored")
        return stored, errors

    @staticmethod
    def delete_photo_rows(photo_rows: list[dict[str, Any]]) -> None:
        """Best-effort removal of photo objects and their rows."""
        if not photo_rows:
            return
        StorageService.remove(LISTING_PHOTOS_BUCKET, [row["storage_path"] for row in photo_rows])
        client = SupabaseClient.get_client()
        try:
            client.table("listing_photos").delete().in_("id", [row["id"] for row in photo_rows]).execute()
        except Exception as e:
            logger.error(f"Failed to delete {len(photo_rows)} photo row(s): {e}")

    @staticmethod
    def photo_urls(listing_id: str) -> list[str]:
        return [
            StorageService.get_public_url(LISTING_PHOTOS_BUCKET, row["storage_path"])
            for row in SupabaseClient.fetch_listing_photos(listing_id)
        ]

    @staticmethod
    def to_response(listing: dict[str, Any], photo_rows: list[dict[str, Any]]) -> ListingResponse:
        photos = [
            ListingPhoto(
                id=str(row["id"]),
                storage_path=row["storage_path"],
                photo_type=row.get("photo_type") or PHOTO_TYPE_REFERENCE,
                url=StorageService.get_public_url(LISTING_PHOTOS_BUCKET, row["storage_path"]),
            )
            for row in photo_rows
        ]
        return ListingResponse(**{**listing, "id": str(listing["id"]),
                                  "creator_id": str(listing["creator_id"]), "photos": photos})

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    @staticmethod
    def list_for_creator(creator_id: str) -> list[ListingResponse]:
        client = SupabaseClient.get_client()
        response = (
            client.table("listings")
            .select("*, listing_photos(id, storage_path, photo_type, created_at)")
            .eq("creator_id", normalize_uuid(creator_id))
            .order("created_at", desc=True)
            .execute()
        )
        return [
            ListingService.to_response(row, row.pop("listing_photos", None) or [])
            for row in response.data or []
        ]

    @staticmethod
    def get_for_creator(listing_id: str, creator_id: str) -> ListingResponse:
        """
        Raises:
            ListingNotFoundError: If missing or owned by someone else
        """
        listing = SupabaseClient.fetch_listing(listing_id, creator_id=creator_id)
        if not listing:
            raise ListingNotFoundError(str(listing_id))
        return ListingService.to_response(listing, SupabaseClient.fetch_listing_photos(listing_id))

    # -------------------------------------------------------------------------
    # Edit
    # -------------------------------------------------------------------------

    @staticmethod
    def update_listing(
        listing_id: str,
        creator: dict[str, Any],
        fields: dict[str, Any],
        new_images: list[UploadedImage],
        delete_photo_ids: list[str],
    ) -> ListingCreateResponse:
        """
        Edit a draft or pending listing.

        Submitted fields are merged over the stored ones and re-validated.
        The listing goes back to pending_approval. At least one photo must
        remain afterwards.

        Raises:
            ListingNotFoundError: If missing or not owned
            ListingNotEditableError: If already approved, live or sold
            ValidationFailedError: On invalid fields or no photos left
            PhotoUploadFailedError: If new photos were needed and none stored
        """
        creator_id = creator["id"]
        listing = SupabaseClient.fetch_listing(listing_id, creator_id=creator_id)
        if not listing:
            raise ListingNotFoundError(str(listing_id))
        if listing.get("status") not in {s.value for s in ListingStatus.editable()}:
            raise ListingNotEditableError(str(listing_id), str(listing.get("status")))

        current = {
            "title": listing.get("title"),
            "story": listing.get("story"),
            "category": listing.get("category"),
            "condition": listing.get("condition"),
            "price_cents": listing.get("price_cents"),
        }
        submitted = {key: value for key, value in fields.items() if value is not None}
        if "price" in submitted:
            submitted["price_cents"] = submitted.pop("price")
        draft = validate_draft({**current, **submitted})

        existing = SupabaseClient.fetch_listing_photos(listing_id)
        to_delete = [row for row in existing if str(row["id"]) in {str(i) for i in delete_photo_ids}]
        keep_count = len(existing) - len(to_delete)
        if keep_count + len(new_images) < 1:
            raise ValidationFailedError(field_errors={"photos": "At least one photo is required"})
        if keep_count + len(new_images) > settings.MAX_LISTING_PHOTOS:
            raise ValidationFailedError(
                field_errors={"photos": f"You can upload up to {settings.MAX_LISTING_PHOTOS} photos"}
            )

        stored, errors = ListingService.store_photos(creator_id, listing_id, new_images)
        if new_images and not stored and keep_count == 0:
            raise PhotoUploadFailedError(errors)

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("listings")
                .update({**draft.to_row(), "status": ListingStatus.PENDING_APPROVAL.value})
                .eq("id", normalize_uuid(listing_id))
                .eq("creator_id", normalize_uuid(creator_id))
                .execute()
            )
        except Exception as e:
            ListingService.delete_photo_rows(stored)
            raise UpstreamServiceError("listings", str(e))
        if not response.data:
            ListingService.delete_photo_rows(stored)
            raise ListingNotFoundError(str(listing_id))

        ListingService.delete_photo_rows(to_delete)

        photos = [row for row in existing if row not in to_delete] + stored
        logger.info(f"Updated listing {listing_id} (+{len(stored)} / -{len(to_delete)} photos)")
        return ListingCreateResponse(
            listing=ListingService.to_response(response.data[0], photos),
            photos_uploaded=len(stored),
            warnings=errors,
            commerce_synced=bool(response.data[0].get("shopify_product_id")),
        )

    # -------------------------------------------------------------------------
    # Public storefront
    # -------------------------------------------------------------------------

    @staticmethod
    def list_public_for_creator(creator_id: str) -> list[ListingResponse]:
        """Approved and live listings shown on a storefront."""
        client = SupabaseClient.get_client()
        response = (
            client.table("listings")
            .select("id, creator_id, title, story, category, condition, price_cents, status, "
                    "shopify_product_id, created_at, listing_photos(id, storage_path, photo_type, created_at)")
            .eq("creator_id", normalize_uuid(creator_id))
            .in_("status", [ListingStatus.APPROVED.value, ListingStatus.LIVE.value])
            .order("created_at", desc=True)
            .execute()
        )
        return [
            ListingService.to_response(row, row.pop("listing_photos", None) or [])
            for row in response.data or []
        ]
