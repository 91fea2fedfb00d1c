# =============================================================================
# app/routers/social_links.py - Social Link Endpoints
# =============================================================================
# Creators submit profile URLs for their social platforms and may prove
# ownership through the platform's OAuth flow. Verified data (from OAuth)
# always takes precedence over submitted URLs.
#
# Endpoints:
#   GET  /                   merged view of submitted + verified links
#   POST /                   save submitted URLs
#   POST /verify             start OAuth verification for one platform
#   GET  /oauth/callback     provider redirect target
#   POST /disconnect         remove a platform's link
# =============================================================================

import logging
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import RedirectResponse

from app.auth import AuthUser, get_current_creator, get_current_user_optional
from app.dependencies import OAuthClientDep, PlatformsDep, rate_limit, require_csrf
from core.models.social import (
    DisconnectResponse,
    SaveSocialLinksResponse,
    SocialLinksResponse,
    VerifyStartResponse,
)
from core.services.social_link_service import SocialLinkService, social_links_page_url
from lib.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

router = APIRouter()

social_write_guards = [
    Depends(rate_limit("social-links", "RATE_LIMIT_SOCIAL_LINKS")),
    Depends(require_csrf),
]


@router.get("", response_model=SocialLinksResponse)
async def get_social_links(
    platforms: PlatformsDep,
    creator: dict[str, Any] = Depends(get_current_creator),
):
    """Submitted and verified links for every supported platform."""
    return SocialLinkService.get_links(creator, platforms)


@router.post("", response_model=SaveSocialLinksResponse, dependencies=social_write_guards)
async def save_social_links(
    request: Request,
    platforms: PlatformsDep,
    creator: dict[str, Any] = Depends(get_current_creator),
):
    """
    Save submitted profile URLs.

    Form fields are named `{platform}_url` (e.g. `instagram_url`). URLs that
    are not HTTPS on the platform's own domains are dropped and listed in
    `rejected`.
    """
    form = await request.form()
    raw_links = {}
    for platform in platforms:
        value = form.get(f"{platform.key}_url")
        raw_links[platform.key] = value if isinstance(value, str) else None
    return SocialLinkService.save_links(creator, raw_links, platforms)


@router.post("/verify", response_model=VerifyStartResponse, dependencies=social_write_guards)
async def start_verification(
    platforms: PlatformsDep,
    platform: Annotated[str | None, Form()] = None,
    creator: dict[str, Any] = Depends(get_current_creator),
):
    """
    Begin OAuth verification.

    Returns the provider authorize URL; the client navigates there. The
    state token expires after OAUTH_STATE_TTL_MINUTES.
    """
    return SocialLinkService.start_verification(creator, platform, platforms)


@router.get(
    "/oauth/callback",
    response_class=RedirectResponse,
    dependencies=[Depends(rate_limit("oauth-callback", "RATE_LIMIT_OAUTH_CALLBACK", authenticated=False))],
)
def oauth_callback(
    platforms: PlatformsDep,
    oauth: OAuthClientDep,
    state: Annotated[str | None, Query()] = None,
    code: Annotated[str | None, Query()] = None,
    error: Annotated[str | None, Query()] = None,
    user: Optional[AuthUser] = Depends(get_current_user_optional),
):
    """
    Provider redirect target.

    The state token identifies the creator who started the flow, so no
    session is required here. If the caller is signed in as a different
    creator the verification is refused.

    Always redirects back to the social links page with either
    `verified=true` or `error=<code>`.
    """
    current_creator_id = None
    if user is not None and user.email:
        creator = SupabaseClient.fetch_creator_by_email(user.email)
        current_creator_id = creator["id"] if creator else None

    error_code = SocialLinkService.complete_verification(
        state, code, error, current_creator_id, platforms, oauth
    )
    if error_code:
        return RedirectResponse(social_links_page_url(error=error_code), status_code=303)
    return RedirectResponse(social_links_page_url(verified="true"), status_code=303)


@router.post("/disconnect", response_model=DisconnectResponse, dependencies=social_write_guards)
async def disconnect_platform(
    platforms: PlatformsDep,
    platform: Annotated[str | None, Form()] = None,
    creator: dict[str, Any] = Depends(get_current_creator),
):
    """Remove a platform's submitted and verified link."""
    return SocialLinkService.disconnect(creator, platform, platforms)
