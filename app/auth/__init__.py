# =============================================================================
# app/auth/__init__.py - Authentication Module
# =============================================================================
# Provides JWT-based authentication using Supabase Auth, plus the creator
# and admin role dependencies.
#
# Usage:
#   from app.auth import get_current_creator, AuthUser
#
#   @router.get("/protected")
#   async def protected(creator: dict = Depends(get_current_creator)):
#       return {"creator_id": creator["id"]}
# =============================================================================

from app.auth.dependencies import (
    get_current_creator,
    get_current_user,
    get_current_user_optional,
    is_admin_email,
    require_admin,
)
from app.auth.models import AuthUser, MeResponse

__all__ = [
    "get_current_creator",
    "get_current_user",
    "get_current_user_optional",
    "is_admin_email",
    "require_admin",
    "AuthUser",
    "MeResponse",
]
