# =============================================================================
# app/routers/csrf.py - CSRF Token Issuance
# =============================================================================
# Clients fetch a fresh token before rendering a form and send it back with
# the state-changing request (csrf_token field or X-CSRF-Token header).
# Every token is single use.
# =============================================================================

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.auth import AuthUser, get_current_user
from app.config import settings
from app.dependencies import get_csrf_store
from lib.csrf import CSRFTokenStore

router = APIRouter()


class CSRFTokenResponse(BaseModel):
    csrf_token: str = Field(..., description="Single-use token for the next form submission")
    expires_in: int = Field(..., examples=[3600], description="Seconds until the token expires")


@router.get("/csrf", response_model=CSRFTokenResponse)
async def issue_csrf_token(
    user: AuthUser = Depends(get_current_user),
    store: CSRFTokenStore = Depends(get_csrf_store),
):
    """
    Issue a CSRF token for the authenticated user.
    """
    return CSRFTokenResponse(
        csrf_token=store.issue(user.session_key),
        expires_in=settings.CSRF_TOKEN_TTL_SECONDS,
    )
