# =============================================================================
# core/services/social_link_service.py - Social Links & OAuth Verification
# =============================================================================
# Creators link social profiles two ways:
#   - submitted links: URLs typed in by the creator, stored on the latest
#     creator_verifications row (submitted_links JSON)
#   - verified links: set on the creators row after an OAuth round trip
#     ({platform}_url, {platform}_username, {platform}_verified)
#
# When both exist for a platform, the verified link wins.
# =============================================================================

import logging
from typing import Any
from urllib.parse import urlencode

from app.config import settings
from app.exceptions import (
    OAuthStateError,
    UpstreamServiceError,
    ValidationFailedError,
)
from core.models.social import (
    DisconnectResponse,
    SaveSocialLinksResponse,
    SocialLink,
    SocialLinksResponse,
    VerifyStartResponse,
)
from core.services.oauth_service import OAuthStateService
from lib.oauth_client import (
    OAuthClient,
    OAuthProviderError,
    build_authorize_url,
    generate_pkce_pair,
    generate_state_token,
)
from lib.platforms import Platform, PlatformRegistry
from lib.saga import Saga, SagaError, SagaStep
from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/api/v1/creator/social-links/oauth/callback"
SOCIAL_LINKS_PAGE = "/creator/social-links"
MAX_ERROR_CODE_LENGTH = 64


def oauth_redirect_uri() -> str:
    """Callback URL registered with every provider; never derived from request headers."""
    return f"{settings.public_app_origin}{CALLBACK_PATH}"


def social_links_page_url(**params: str) -> str:
    base = f"{settings.public_app_origin}{SOCIAL_LINKS_PAGE}"
    return f"{base}?{urlencode(params)}" if params else base


def _submitted_url(links: dict[str, Any], platform: Platform) -> str | None:
    return links.get(platform.url_field) or links.get(platform.key) or None


def _require_platform(platforms: PlatformRegistry, key: str | None) -> Platform:
    platform = platforms.get(key)
    if platform is None:
        raise ValidationFailedError(field_errors={"platform": "Invalid platform specified"})
    return platform


class SocialLinkService:
    """Service for social link storage and verification."""

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    @staticmethod
    def latest_verification(creator_id: str) -> dict[str, Any] | None:
        client = SupabaseClient.get_client()
        response = (
            client.table("creator_verifications")
            .select("id, submitted_links")
            .eq("creator_id", normalize_uuid(creator_id))
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    @staticmethod
    def get_links(creator: dict[str, Any], platforms: PlatformRegistry) -> SocialLinksResponse:
        """Merged view of submitted and verified links."""
        verification = SocialLinkService.latest_verification(creator["id"])
        submitted = (verification or {}).get("submitted_links") or {}

        links = []
        for platform in platforms:
            verified_url = creator.get(platform.url_field)
            if verified_url:
                links.append(SocialLink(
                    platform=platform.key,
                    display_name=platform.display_name,
                    url=verified_url,
                    username=creator.get(platform.username_field),
                    verified=bool(creator.get(platform.verified_field)),
                    source="oauth",
                ))
                continue
            url = _submitted_url(submitted, platform)
            links.append(SocialLink(
                platform=platform.key,
                display_name=platform.display_name,
                url=url,
                source="submitted" if url else None,
            ))
        return SocialLinksResponse(links=links)

    # -------------------------------------------------------------------------
    # Save
    # -------------------------------------------------------------------------

    @staticmethod
    def save_links(
        creator: dict[str, Any],
        raw_links: dict[str, str | None],
        platforms: PlatformRegistry,
    ) -> SaveSocialLinksResponse:
        """
        Validate and store submitted profile URLs.

        Each non-empty URL must be HTTPS on one of the platform's domains;
        invalid ones are dropped and reported in `rejected`. The stored set
        replaces the previous one.
        """
        saved: dict[str, str] = {}
        rejected: list[str] = []
        for platform in platforms:
            raw = raw_links.get(platform.key)
            if raw is None or not str(raw).strip():
                continue
            url = platforms.validate_profile_url(platform.key, raw)
            if url:
                saved[platform.url_field] = url
            else:
                rejected.append(platform.key)

        creator_id = normalize_uuid(creator["id"])
        client = SupabaseClient.get_client()
        try:
            existing = SocialLinkService.latest_verification(creator_id)
            if existing:
                (
                    client.table("creator_verifications")
                    .update({"submitted_links": saved})
                    .eq("id", existing["id"])
                    .eq("creator_id", creator_id)
                    .execute()
                )
            else:
                (
                    client.table("creator_verifications")
                    .insert({"creator_id": creator_id, "submitted_links": saved, "status": "pending"})
                    .execute()
                )
        except Exception as e:
            raise UpstreamServiceError("creator_verifications", str(e))

        logger.info(f"Saved {len(saved)} social link(s) for creator {creator_id}; rejected {rejected}")
        return SaveSocialLinksResponse(saved=saved, rejected=rejected)

    # -------------------------------------------------------------------------
    # OAuth Verification
    # -------------------------------------------------------------------------

    @staticmethod
    def start_verification(
        creator: dict[str, Any],
        platform_key: str | None,
        platforms: PlatformRegistry,
    ) -> VerifyStartResponse:
        """
        Create an OAuth state and return the provider authorize URL.

        Raises:
            ValidationFailedError: Unknown or unconfigured platform
            UpstreamServiceError: If the state could not be stored
        """
        platform = _require_platform(platforms, platform_key)
        if not platform.oauth.configured:
            raise ValidationFailedError(
                field_errors={"platform": f"{platform.display_name} verification is not available"}
            )

        state = generate_state_token()
        code_verifier = code_challenge = None
        if platform.oauth.uses_pkce:
            code_verifier, code_challenge = generate_pkce_pair()

        try:
            OAuthStateService.create(state, platform.key, creator["id"], code_verifier)
        except Exception as e:
            raise UpstreamServiceError("oauth_states", str(e))

        logger.info(f"Started {platform.key} verification for creator {creator['id']}")
        return VerifyStartResponse(
            platform=platform.key,
            authorize_url=build_authorize_url(platform, oauth_redirect_uri(), state, code_challenge),
        )

    @staticmethod
    def complete_verification(
        state: str | None,
        code: str | None,
        provider_error: str | None,
        current_creator_id: str | None,
        platforms: PlatformRegistry,
        oauth: OAuthClient,
    ) -> str | None:
        """
        Finish an OAuth round trip.

        Returns:
            None on success, otherwise a short error code for the redirect
            (e.g. "invalid_state", "authentication_mismatch")
        """
        if provider_error:
            # The state is still burned so it cannot be replayed
            if state:
                try:
                    OAuthStateService.consume(state)
                except OAuthStateError:
                    pass
            return "".join(ch for ch in provider_error if ch.isalnum() or ch == "_")[:MAX_ERROR_CODE_LENGTH] or "oauth_error"

        try:
            record = OAuthStateService.consume(state)
        except OAuthStateError as e:
            logger.warning(f"OAuth callback rejected: {e.reason}")
            return "invalid_state"

        if current_creator_id and normalize_uuid(current_creator_id) != normalize_uuid(record.creator_id):
            logger.warning(f"OAuth state creator mismatch for platform {record.platform}")
            return "authentication_mismatch"

        platform = platforms.get(record.platform)
        if platform is None:
            return "invalid_platform"
        if not code:
            return "missing_code"

        try:
            profile = oauth.fetch_verified_profile(
                platform, code, oauth_redirect_uri(), record.code_verifier
            )
        except OAuthProviderError as e:
            logger.error(f"OAuth verification failed: {e}")
            return "verification_failed"

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("creators")
                .update({
                    platform.url_field: profile.profile_url,
                    platform.username_field: profile.username,
                    platform.verified_field: True,
                })
                .eq("id", normalize_uuid(record.creator_id))
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to store verified {platform.key} profile: {e}")
            return "save_failed"
        if not response.data:
            return "save_failed"

        logger.info(f"Verified {platform.key} for creator {record.creator_id}")
        return None

    # -------------------------------------------------------------------------
    # Disconnect
    # -------------------------------------------------------------------------

    @staticmethod
    def disconnect(
        creator: dict[str, Any],
        platform_key: str | None,
        platforms: PlatformRegistry,
    ) -> DisconnectResponse:
        """
        Remove a platform from both the submitted links and the creator row.

        The submitted-links update is undone if clearing the creator row
        fails. If that restore also fails the inconsistency is logged for
        manual repair.
        """
        platform = _require_platform(platforms, platform_key)
        creator_id = normalize_uuid(creator["id"])

        verification = SocialLinkService.latest_verification(creator_id)
        submitted = dict((verification or {}).get("submitted_links") or {})
        in_submitted = bool(_submitted_url(submitted, platform))
        in_creator = bool(
            creator.get(platform.url_field)
            or creator.get(platform.username_field)
            or creator.get(platform.verified_field)
        )
        if not in_submitted and not in_creator:
            raise ValidationFailedError(field_errors={"platform": "Platform is not connected."})

        client = SupabaseClient.get_client()

        def clear_submitted(context):
            updated = {
                key: value for key, value in submitted.items()
                if key not in (platform.url_field, platform.key)
            }
            (
                client.table("creator_verifications")
                .update({"submitted_links": updated})
                .eq("id", verification["id"])
                .eq("creator_id", creator_id)
                .execute()
            )

        def restore_submitted(context):
            (
                client.table("creator_verifications")
                .update({"submitted_links": submitted})
                .eq("id", verification["id"])
                .eq("creator_id", creator_id)
                .execute()
            )

        def clear_creator(context):
            (
                client.table("creators")
                .update({
                    platform.url_field: None,
                    platform.username_field: None,
                    platform.verified_field: False,
                })
                .eq("id", creator_id)
                .execute()
            )

        steps = []
        if in_submitted:
            steps.append(SagaStep("clear-submitted-link", clear_submitted, restore_submitted))
        steps.append(SagaStep("clear-creator-link", clear_creator))

        try:
            Saga("disconnect-social-link", steps).run()
        except SagaError as e:
            if e.result.compensation_failures:
                logger.critical(
                    f"Manual intervention required: {platform.key} link for creator {creator_id} "
                    f"removed from submitted links but not from the creator profile"
                )
            raise UpstreamServiceError("social_links", str(e.cause))

        logger.info(f"Disconnected {platform.key} for creator {creator_id}")
        return DisconnectResponse(
            platform=platform.key,
            message=f"{platform.display_name} disconnected",
        )
