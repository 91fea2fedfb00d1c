# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# API endpoints for authentication-related operations.
#
# Note: Actual signup/login is handled by Supabase Auth client-side.
# These routes are for getting user info after authentication.
# Mounted in main.py under /api/v1/auth.
# =============================================================================

import logging

from fastapi import APIRouter, Depends

from app.auth.dependencies import get_current_user, is_admin_email
from app.auth.models import AuthUser, MeResponse
from app.exceptions import AuthenticationError
from core.models.creator import CreatorProfile
from core.services.creator_service import CreatorService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/me", response_model=MeResponse)
async def get_current_user_info(
    user: AuthUser = Depends(get_current_user)
) -> MeResponse:
    """
    Get the current authenticated user and their creator profile.

    A creator profile is created on first access, with the display name
    taken from the identity provider (or the email) and a generated handle.

    Raises:
        401: If not authenticated
    """
    if not user.email:
        raise AuthenticationError("Token has no email claim")

    creator, created = CreatorService.ensure_profile(user.email, user.metadata)
    return MeResponse(
        id=user.id,
        email=user.email,
        is_admin=is_admin_email(user.email),
        creator=CreatorProfile(**creator),
        created=created,
    )


@router.get("/verify")
async def verify_token(
    user: AuthUser = Depends(get_current_user)
) -> dict:
    """
    Verify that the current token is valid.

    Useful for checking if a stored token is still valid.

    Raises:
        401: If token is invalid or expired
    """
    return {
        "valid": True,
        "user_id": str(user.id),
    }
