# =============================================================================
# tests/test_creator_service.py - Creator Profile Tests
# =============================================================================

from unittest.mock import MagicMock, patch

import pytest

from app.exceptions import CreatorNotFoundError, StorageUploadError, ValidationFailedError
from core.services.creator_service import CreatorService, _base_handle
from core.services.storage_service import PROFILE_IMAGES_BUCKET, StorageService
from lib.file_validation import UploadedImage
from lib.paypal import PayPalVerification
from lib.platforms import build_platform_registry
from lib.supabase_client import SupabaseClient
from tests.conftest import CREATOR_ID, db_result
from tests.test_platforms import make_settings


def image(name="avatar.png"):
    return UploadedImage(data=b"\x89PNG-bytes", content_type="image/png", width=8, height=8, filename=name)


def creators_update(supabase):
    return supabase.tables["creators"].update.return_value.eq.return_value.execute


# =============================================================================
# First Login
# =============================================================================

class TestEnsureProfile:
    """Tests for CreatorService.ensure_profile."""

    @pytest.mark.parametrize("email, handle", [
        ("jane.doe+shop@example.com", "jane-doe-shop"),
        ("JD@example.com", "creator-jd"),
        ("___@example.com", "creator"),
    ])
    def test_base_handle(self, email, handle):
        assert _base_handle(email) == handle

    def test_existing_profile_returned(self, supabase, creator_row):
        with patch.object(SupabaseClient, "fetch_creator_by_email", return_value=creator_row):
            creator, created = CreatorService.ensure_profile("Jane@Example.com")

        assert creator is creator_row
        assert created is False
        supabase.tables["creators"].insert.assert_not_called()

    def test_creates_profile_from_metadata(self, supabase):
        supabase.tables["creators"].insert.return_value.execute.return_value = db_result([{"id": CREATOR_ID}])

        with patch.object(SupabaseClient, "fetch_creator_by_email", return_value=None):
            _, created = CreatorService.ensure_profile(
                "jane@example.com", {"full_name": "Jane Doe", "avatar_url": "https://img.test/a.png"}
            )

        row = supabase.tables["creators"].insert.call_args[0][0]
        assert created is True
        assert row["display_name"] == "Jane Doe"
        assert row["handle"] == "jane"
        assert row["profile_image_url"] == "https://img.test/a.png"
        assert row["verification_status"] == "pending"

    def test_display_name_from_email(self, supabase):
        supabase.tables["creators"].insert.return_value.execute.return_value = db_result([{"id": CREATOR_ID}])

        with patch.object(SupabaseClient, "fetch_creator_by_email", return_value=None):
            CreatorService.ensure_profile("jane@example.com")

        assert supabase.tables["creators"].insert.call_args[0][0]["display_name"] == "Jane"

    def test_handle_collision_retried_with_suffix(self, supabase):
        execute = supabase.tables["creators"].insert.return_value.execute
        execute.side_effect = [
            Exception('23505 duplicate key value violates unique constraint "creators_handle_key"'),
            db_result([{"id": CREATOR_ID}]),
        ]

        with patch.object(SupabaseClient, "fetch_creator_by_email", return_value=None):
            CreatorService.ensure_profile("jane@example.com")

        second = supabase.tables["creators"].insert.call_args_list[1][0][0]
        assert second["handle"].startswith("jane-")
        assert len(second["handle"]) <= 30

    def test_require_by_email_missing(self, supabase):
        with patch.object(SupabaseClient, "fetch_creator_by_email", return_value=None):
            with pytest.raises(CreatorNotFoundError):
                CreatorService.require_by_email("ghost@example.com")


# =============================================================================
# Profile Settings
# =============================================================================

class TestValidateProfileFields:
    """Tests for CreatorService.validate_profile_fields."""

    def test_only_submitted_fields_returned(self):
        updates = CreatorService.validate_profile_fields({
            "first_name": " Jane ", "display_name": "Jane D.", "username": "jane-doe", "bio": None,
        })

        assert updates == {"first_name": "Jane", "display_name": "Jane D.", "handle": "jane-doe"}

    def test_all_errors_reported(self):
        with pytest.raises(ValidationFailedError) as exc_info:
            CreatorService.validate_profile_fields({
                "first_name": "x" * 51,
                "last_name": "   ",
                "display_name": "<>",
                "username": "-bad-",
                "bio": "y" * 1001,
            })

        assert set(exc_info.value.field_errors) == {"first_name", "last_name", "display_name", "username", "bio"}

    @pytest.mark.parametrize("username, message", [
        ("", "Username is required"),
        ("ab", "at least 3"),
        ("a" * 31, "30 characters or less"),
        ("jane_doe", "letters, numbers, and hyphens"),
    ])
    def test_username_messages(self, username, message):
        with pytest.raises(ValidationFailedError) as exc_info:
            CreatorService.validate_profile_fields({"username": username})

        assert message in exc_info.value.field_errors["username"]

    def test_bio_sanitized(self):
        updates = CreatorService.validate_profile_fields({"bio": "<p>Hi</p><script>x()</script>"})

        assert updates["bio"] == "<p>Hi</p>"


class TestUpdateProfile:
    """Tests for CreatorService.update_profile."""

    def test_fields_and_images_saved(self, supabase, creator_row):
        creators_update(supabase).return_value = db_result([{**creator_row, "display_name": "JD"}])

        profile = CreatorService.update_profile(
            creator_row, {"display_name": "JD"}, profile_image=image(), cover_image=image("cover.png")
        )

        updates = supabase.tables["creators"].update.call_args[0][0]
        assert profile.display_name == "JD"
        assert updates["profile_image_url"].startswith(f"https://cdn.test/{CREATOR_ID}/")
        assert updates["cover_image_storage_path"].startswith(f"{CREATOR_ID}/")

    def test_uploaded_images_removed_when_update_fails(self, supabase, creator_row):
        creators_update(supabase).side_effect = Exception("connection reset")

        with pytest.raises(Exception):
            CreatorService.update_profile(creator_row, {"display_name": "JD"}, profile_image=image())

        supabase.storage.from_.return_value.remove.assert_called_once()

    def test_profile_image_removed_when_cover_upload_fails(self, supabase, creator_row):
        supabase.storage.from_.return_value.upload.side_effect = [None, Exception("quota exceeded")]

        with patch.object(StorageService, "remove") as remove:
            with pytest.raises(StorageUploadError):
                CreatorService.update_profile(
                    creator_row, {"display_name": "JD"}, profile_image=image(), cover_image=image("cover.png")
                )

        bucket, paths = remove.call_args[0]
        remove.assert_called_once()
        assert bucket == PROFILE_IMAGES_BUCKET
        assert paths[0].startswith(f"{CREATOR_ID}/")
        supabase.tables["creators"].update.assert_not_called()

    def test_invalid_fields_upload_nothing(self, supabase, creator_row):
        with pytest.raises(ValidationFailedError):
            CreatorService.update_profile(creator_row, {"username": "x"}, profile_image=image())

        supabase.storage.from_.return_value.upload.assert_not_called()

    def test_storage_failure_surfaces(self, supabase, creator_row):
        supabase.storage.from_.return_value.upload.side_effect = Exception("bucket missing")

        with pytest.raises(StorageUploadError):
            CreatorService.update_profile(creator_row, {}, profile_image=image())

    def test_username_taken(self, supabase, creator_row):
        creators_update(supabase).side_effect = Exception(
            '23505 duplicate key value violates unique constraint "creators_handle_key"'
        )

        with pytest.raises(ValidationFailedError) as exc_info:
            CreatorService.update_profile(creator_row, {"username": "taken-name"})

        assert "already taken" in exc_info.value.field_errors["username"]

    def test_nothing_to_update(self, supabase, creator_row):
        profile = CreatorService.update_profile(creator_row, {})

        assert profile.id == CREATOR_ID
        supabase.tables["creators"].update.assert_not_called()


# =============================================================================
# Payout Settings
# =============================================================================

class TestUpdatePayoutSettings:
    """Tests for CreatorService.update_payout_settings."""

    def test_verified_email(self, supabase, creator_row):
        creators_update(supabase).return_value = db_result([creator_row])
        verifier = MagicMock()
        verifier.verify.return_value = PayPalVerification(valid=True, verified=True, payer_id="PAYER1")

        result = CreatorService.update_payout_settings(creator_row, " Jane@Example.com ", verifier)

        updates = supabase.tables["creators"].update.call_args[0][0]
        assert result.paypal_email_verified is True
        assert updates["paypal_email"] == "jane@example.com"
        assert updates["paypal_payer_id"] == "PAYER1"
        assert updates["paypal_email_verified_at"]

    def test_unverified_email_still_saved(self, supabase, creator_row):
        creators_update(supabase).return_value = db_result([creator_row])
        verifier = MagicMock()
        verifier.verify.return_value = PayPalVerification(valid=False, verified=False, error="not a PayPal account")

        result = CreatorService.update_payout_settings(creator_row, "jane@example.com", verifier)

        assert result.paypal_email_verified is False
        assert supabase.tables["creators"].update.call_args[0][0]["paypal_email_verified"] is False

    def test_verifier_crash_does_not_block_save(self, supabase, creator_row):
        creators_update(supabase).return_value = db_result([creator_row])
        verifier = MagicMock()
        verifier.verify.side_effect = RuntimeError("boom")

        result = CreatorService.update_payout_settings(creator_row, "jane@example.com", verifier)

        assert result.paypal_email_verified is False

    def test_no_verifier(self, supabase, creator_row):
        creators_update(supabase).return_value = db_result([creator_row])

        result = CreatorService.update_payout_settings(creator_row, "jane@example.com", None)

        assert result.verification_message.startswith("Email saved")

    @pytest.mark.parametrize("email", ["", None, "nope"])
    def test_invalid_email(self, supabase, creator_row, email):
        with pytest.raises(ValidationFailedError):
            CreatorService.update_payout_settings(creator_row, email, None)


# =============================================================================
# Public Storefront
# =============================================================================

class TestPublicProfile:
    """Tests for CreatorService.get_public_profile."""

    def test_profile_with_cover_and_links(self, supabase):
        select = supabase.tables["creators"].select.return_value.eq.return_value.limit.return_value
        select.execute.return_value = db_result([{
            "id": CREATOR_ID,
            "handle": "jane-doe",
            "display_name": "Jane Doe",
            "cover_image_storage_path": f"{CREATOR_ID}/cover.png",
            "instagram_url": "https://instagram.com/jane",
            "x_url": None,
        }])

        profile, creator_id = CreatorService.get_public_profile("jane-doe", build_platform_registry(make_settings()))

        assert creator_id == CREATOR_ID
        assert profile.cover_image_url == f"https://cdn.test/{CREATOR_ID}/cover.png"
        assert profile.social_links == {"instagram": "https://instagram.com/jane"}

    def test_invalid_handle_not_queried(self, supabase):
        with pytest.raises(CreatorNotFoundError):
            CreatorService.get_public_profile("../etc", build_platform_registry(make_settings()))

        supabase.tables["creators"].select.assert_not_called()
