# =============================================================================
# app/routers/settings.py - Creator Settings Endpoints
# =============================================================================
# Profile fields and images, and the PayPal payout email.
# =============================================================================

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool

from app.auth import get_current_creator
from app.dependencies import PayPalDep, rate_limit, require_csrf
from app.uploads import read_optional_image
from core.models.creator import PayoutSettingsResponse, ProfileUpdateResponse
from core.services.creator_service import CreatorService

logger = logging.getLogger(__name__)

router = APIRouter()

settings_guards = [
    Depends(rate_limit("settings", "RATE_LIMIT_SETTINGS")),
    Depends(require_csrf),
]


@router.patch("/profile", response_model=ProfileUpdateResponse, dependencies=settings_guards)
async def update_profile(
    creator: dict[str, Any] = Depends(get_current_creator),
    first_name: Annotated[str | None, Form()] = None,
    last_name: Annotated[str | None, Form()] = None,
    display_name: Annotated[str | None, Form()] = None,
    username: Annotated[str | None, Form()] = None,
    bio: Annotated[str | None, Form()] = None,
    profile_image: Annotated[UploadFile | None, File()] = None,
    cover_image: Annotated[UploadFile | None, File()] = None,
):
    """
    Update profile settings.

    Only submitted fields change. All field errors are returned together
    as VALIDATION_ERROR with `field_errors`.
    """
    fields = {
        "first_name": first_name,
        "last_name": last_name,
        "display_name": display_name,
        "username": username,
        "bio": bio,
    }
    # Text fields are checked before any image is read or uploaded
    CreatorService.validate_profile_fields(fields)

    profile = await run_in_threadpool(
        CreatorService.update_profile,
        creator,
        fields,
        profile_image=await read_optional_image(profile_image, "profile_image"),
        cover_image=await read_optional_image(cover_image, "cover_image"),
    )
    return ProfileUpdateResponse(profile=profile)


@router.patch("/payouts", response_model=PayoutSettingsResponse, dependencies=settings_guards)
def update_payout_settings(
    verifier: PayPalDep,
    paypal_email: Annotated[str | None, Form()] = None,
    creator: dict[str, Any] = Depends(get_current_creator),
):
    """
    Save the PayPal payout email.

    PayPal is the only payout method. The email is saved even when PayPal
    cannot confirm the account; `paypal_email_verified` reports the result.
    """
    return CreatorService.update_payout_settings(creator, paypal_email, verifier)
