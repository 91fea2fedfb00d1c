# =============================================================================
# core/services/creator_service.py - Creator Profile Business Logic
# =============================================================================
# Profile lookup / first-login creation, profile and payout settings
# updates, public storefront profiles and admin creator views.
#
# Settings updates collect every field error before touching the database,
# so the client can show all problems at once.
# =============================================================================

import logging
import re
import time
from datetime import datetime, timezone
from typing import Any

from app.exceptions import (
    CreatorNotFoundError,
    ValidationFailedError,
    safe_client_error,
)
from core.models.creator import (
    PUBLIC_CREATOR_COLUMNS,
    CreatorProfile,
    PayoutMethod,
    PayoutSettingsResponse,
    PublicCreatorProfile,
    VerificationStatus,
)
from core.services.storage_service import (
    COVER_IMAGES_BUCKET,
    PROFILE_IMAGES_BUCKET,
    StorageService,
)
from lib.file_validation import UploadedImage
from lib.paypal import PayPalVerifier
from lib.platforms import PlatformRegistry
from lib.sanitize import (
    MAX_BIO_LENGTH,
    MAX_DISPLAY_NAME_LENGTH,
    MAX_NAME_LENGTH,
    MAX_USERNAME_LENGTH,
    MIN_USERNAME_LENGTH,
    clean_text,
    normalize_email,
    sanitize_bio,
    sanitize_display_name,
    sanitize_name,
    validate_email,
    validate_username,
)
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
NOT_NULL_VIOLATION = "23502"
HANDLE_DISALLOWED_RE = re.compile(r"[^a-z0-9-]+")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _base_handle(email: str) -> str:
    """jane.doe+shop@example.com -> jane-doe-shop"""
    local = email.split("@", 1)[0].lower()
    handle = HANDLE_DISALLOWED_RE.sub("-", local).strip("-")[:20].strip("-")
    if len(handle) < MIN_USERNAME_LENGTH:
        handle = f"creator-{handle}".strip("-") if handle else "creator"
    return handle


def _raise_write_error(e: Exception) -> None:
    """Map a creators write failure to a client-safe error."""
    text = str(e)
    if UNIQUE_VIOLATION in text:
        if "handle" in text:
            raise safe_client_error(Exception("Username is already taken"))
        if "email" in text:
            raise ValidationFailedError(message="Email is already in use.")
        raise ValidationFailedError(message="A field with this value already exists.")
    if NOT_NULL_VIOLATION in text:
        raise ValidationFailedError(message="Required fields cannot be empty.")
    logger.error(f"Creator profile write failed: {e}")
    raise safe_client_error(e)


class CreatorService:
    """Service for creator profiles and settings."""

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    @staticmethod
    def require_by_email(email: str | None) -> dict[str, Any]:
        """
        Raises:
            CreatorNotFoundError: If the user has no creator profile
        """
        creator = SupabaseClient.fetch_creator_by_email((email or "").strip().lower())
        if not creator:
            raise CreatorNotFoundError()
        return creator

    @staticmethod
    def ensure_profile(email: str, metadata: dict[str, Any] | None = None) -> tuple[dict[str, Any], bool]:
        """
        Return the creator for `email`, creating one on first login.

        The display name comes from the identity provider's metadata when
        present, otherwise from the email's local part. A handle collision
        is retried once with a timestamp suffix.

        Returns:
            (creator row, created)
        """
        normalized = normalize_email(email)
        existing = SupabaseClient.fetch_creator_by_email(normalized)
        if existing:
            return existing, False

        metadata = metadata or {}
        display_name = (
            metadata.get("full_name") or metadata.get("name") or metadata.get("display_name") or ""
        )
        if not display_name:
            local = normalized.split("@", 1)[0]
            display_name = local[:1].upper() + local[1:]
        display_name = clean_text(display_name, MAX_DISPLAY_NAME_LENGTH) or "Creator"

        handle = _base_handle(normalized)
        row = {
            "email": normalized,
            "display_name": display_name,
            "handle": handle,
            "first_name": metadata.get("given_name"),
            "last_name": metadata.get("family_name"),
            "profile_image_url": metadata.get("avatar_url") or metadata.get("picture"),
            "verification_status": VerificationStatus.PENDING.value,
        }

        client = SupabaseClient.get_client()
        try:
            response = client.table("creators").insert(row).execute()
        except Exception as e:
            if UNIQUE_VIOLATION not in str(e) or "handle" not in str(e):
                raise SupabaseClientError(f"Failed to create creator: {e}", code="CREATE_CREATOR_FAILED")
            suffix = format(int(time.time() * 1000), "x")[-8:]
            row["handle"] = f"{handle}-{suffix}"[:MAX_USERNAME_LENGTH]
            response = client.table("creators").insert(row).execute()

        if not response.data:
            raise SupabaseClientError("Insert returned no data", code="CREATE_CREATOR_FAILED")
        logger.info(f"Created creator profile {response.data[0]['id']}")
        return response.data[0], True

    # -------------------------------------------------------------------------
    # Profile Settings
    # -------------------------------------------------------------------------

    @staticmethod
    def validate_profile_fields(fields: dict[str, str | None]) -> dict[str, Any]:
        """
        Sanitize and validate submitted profile fields.

        Only fields present (not None) are validated and returned, keyed by
        database column.

        Raises:
            ValidationFailedError: With every field error found
        """
        errors: dict[str, str] = {}
        updates: dict[str, Any] = {}

        for field, label in (("first_name", "First name"), ("last_name", "Last name")):
            raw = fields.get(field)
            if raw is None:
                continue
            if len(raw) > MAX_NAME_LENGTH:
                errors[field] = f"{label} must be {MAX_NAME_LENGTH} characters or less."
            elif raw and not raw.strip():
                errors[field] = f"{label} cannot be only whitespace"
            else:
                updates[field] = sanitize_name(raw) or None

        raw = fields.get("display_name")
        if raw is not None:
            cleaned = sanitize_display_name(raw)
            if not cleaned:
                errors["display_name"] = "Display name is required"
            elif len(raw.strip()) > MAX_DISPLAY_NAME_LENGTH:
                errors["display_name"] = f"Display name must be {MAX_DISPLAY_NAME_LENGTH} characters or less."
            else:
                updates["display_name"] = cleaned

        raw = fields.get("username")
        if raw is not None:
            candidate = raw.strip()
            if not candidate:
                errors["username"] = "Username is required"
            elif len(candidate) < MIN_USERNAME_LENGTH:
                errors["username"] = f"Username must be at least {MIN_USERNAME_LENGTH} characters long."
            elif len(candidate) > MAX_USERNAME_LENGTH:
                errors["username"] = f"Username must be {MAX_USERNAME_LENGTH} characters or less."
            elif not validate_username(candidate):
                errors["username"] = (
                    "Username can only contain letters, numbers, and hyphens. "
                    "It must start and end with a letter or number."
                )
            else:
                updates["handle"] = candidate

        raw = fields.get("bio")
        if raw is not None:
            if len(raw) > MAX_BIO_LENGTH:
                errors["bio"] = f"Bio must be {MAX_BIO_LENGTH} characters or less."
            elif raw and not raw.strip():
                errors["bio"] = "Bio cannot be only whitespace"
            else:
                updates["bio"] = sanitize_bio(raw) or None

        if errors:
            raise ValidationFailedError(field_errors=errors)
        return updates

    @staticmethod
    def update_profile(
        creator: dict[str, Any],
        fields: dict[str, str | None],
        profile_image: UploadedImage | None = None,
        cover_image: UploadedImage | None = None,
    ) -> CreatorProfile:
        """
        Update profile fields and (optionally) profile / cover images.

        Images are uploaded only after every text field validated. If a
        later upload or the database update fails, images already uploaded
        by this call are removed.
        """
        updates = CreatorService.validate_profile_fields(fields)
        creator_id = normalize_uuid(creator["id"])
        uploaded: list[tuple[str, str]] = []

        try:
            if profile_image is not None:
                path = StorageService.creator_image_path(creator_id, profile_image)
                StorageService.upload_image(PROFILE_IMAGES_BUCKET, path, profile_image)
                uploaded.append((PROFILE_IMAGES_BUCKET, path))
                updates["profile_image_url"] = StorageService.get_public_url(PROFILE_IMAGES_BUCKET, path)

            if cover_image is not None:
                path = StorageService.creator_image_path(creator_id, cover_image)
                StorageService.upload_image(COVER_IMAGES_BUCKET, path, cover_image)
                uploaded.append((COVER_IMAGES_BUCKET, path))
                updates["cover_image_storage_path"] = path

            if not updates:
                return CreatorProfile(**creator)

            row = CreatorService._update_row(creator_id, updates)
        except Exception:
            for bucket, path in uploaded:
                StorageService.remove(bucket, [path])
            raise

        logger.info(f"Updated profile for creator {creator_id}: {sorted(updates)}")
        return CreatorProfile(**row)

    @staticmethod
    def _update_row(creator_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("creators")
                .update(updates)
                .eq("id", creator_id)
                .execute()
            )
        except Exception as e:
            _raise_write_error(e)
        if not response.data:
            raise CreatorNotFoundError(creator_id)
        return response.data[0]

    # -------------------------------------------------------------------------
    # Payout Settings
    # -------------------------------------------------------------------------

    @staticmethod
    def update_payout_settings(
        creator: dict[str, Any],
        paypal_email: str | None,
        verifier: PayPalVerifier | None,
    ) -> PayoutSettingsResponse:
        """
        Save the PayPal payout email.

        PayPal verification never blocks saving; an unverified email is
        stored with paypal_email_verified = False.
        """
        email = normalize_email(paypal_email)
        if not email:
            raise ValidationFailedError(
                field_errors={"paypal_email": "PayPal email is required when PayPal is selected as payout method"}
            )
        if not validate_email(email):
            raise ValidationFailedError(field_errors={"paypal_email": "Please enter a valid PayPal email address"})

        updates: dict[str, Any] = {
            "payout_method": PayoutMethod.PAYPAL.value,
            "paypal_email": email,
            "paypal_email_verified": False,
            "paypal_payer_id": None,
            "paypal_email_verified_at": None,
        }
        message = "Email saved. It will be verified before payouts are processed."

        if verifier is not None:
            try:
                verification = verifier.verify(email)
            except Exception as e:
                logger.error(f"PayPal verification error: {e}")
                verification = None
            if verification is not None and verification.verified:
                updates.update({
                    "paypal_email_verified": True,
                    "paypal_payer_id": verification.payer_id,
                    "paypal_email_verified_at": _now_iso(),
                })
                message = "PayPal account verified."
            elif verification is not None and verification.error:
                logger.info(f"PayPal email left unverified: {verification.error}")

        CreatorService._update_row(normalize_uuid(creator["id"]), updates)
        return PayoutSettingsResponse(
            paypal_email=email,
            paypal_email_verified=updates["paypal_email_verified"],
            verification_message=message,
        )

    # -------------------------------------------------------------------------
    # Public Storefront
    # -------------------------------------------------------------------------

    @staticmethod
    def get_public_profile(handle: str, platforms: PlatformRegistry) -> tuple[PublicCreatorProfile, str]:
        """
        Returns:
            (public profile, creator id)

        Raises:
            CreatorNotFoundError: Unknown handle
        """
        if not validate_username(handle):
            raise CreatorNotFoundError(handle)

        client = SupabaseClient.get_client()
        response = (
            client.table("creators")
            .select(PUBLIC_CREATOR_COLUMNS)
            .eq("handle", handle.strip())
            .limit(1)
            .execute()
        )
        if not response.data:
            raise CreatorNotFoundError(handle)

        row = response.data[0]
        cover_path = row.get("cover_image_storage_path")
        cover_url = None
        if cover_path:
            cover_url = (
                cover_path if cover_path.startswith(("http://", "https://"))
                else StorageService.get_public_url(COVER_IMAGES_BUCKET, cover_path)
            )
        return PublicCreatorProfile.from_row(row, cover_url, platforms), str(row["id"])

    # -------------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------------

    @staticmethod
    def list_all() -> list[CreatorProfile]:
        client = SupabaseClient.get_client()
        response = (
            client.table("creators")
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        return [CreatorProfile(**row) for row in response.data or []]

    @staticmethod
    def get_admin_detail(creator_id: str) -> dict[str, Any]:
        """Creator profile with their listings and latest verification."""
        creator = SupabaseClient.fetch_creator(creator_id)
        if not creator:
            raise CreatorNotFoundError(creator_id)

        client = SupabaseClient.get_client()
        listings = (
            client.table("listings")
            .select("id, title, status, price_cents, created_at")
            .eq("creator_id", creator["id"])
            .order("created_at", desc=True)
            .execute()
        ).data or []
        verifications = (
            client.table("creator_verifications")
            .select("*")
            .eq("creator_id", creator["id"])
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        ).data or []

        return {
            "creator": CreatorProfile(**creator),
            "listings": listings,
            "verification": verifications[0] if verifications else None,
        }

    @staticmethod
    def verify_paypal(creator_id: str, verifier: PayPalVerifier) -> PayoutSettingsResponse:
        """Admin: re-run PayPal verification for a creator's stored email."""
        creator = SupabaseClient.fetch_creator(creator_id)
        if not creator:
            raise CreatorNotFoundError(creator_id)
        if not creator.get("paypal_email"):
            raise ValidationFailedError(field_errors={"paypal_email": "Creator has no PayPal email on file"})
        return CreatorService.update_payout_settings(creator, creator["paypal_email"], verifier)
