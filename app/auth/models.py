# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data.
# =============================================================================

from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID
from typing import Any, Optional

from core.models.creator import CreatorProfile


class AuthUser(BaseModel):
    """
    Authenticated user extracted from Supabase JWT.

    This is the minimal user info available from the token itself,
    without querying the database.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID
    email: Optional[str] = None
    # Identity provider profile (full_name, avatar_url, ...)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def session_key(self) -> str:
        """Key that scopes per-user server-side state (CSRF tokens, rate limits)."""
        return str(self.id)


class MeResponse(BaseModel):
    """
    Current user with their creator profile (if any).
    """
    id: UUID
    email: Optional[str] = None
    is_admin: bool = False
    creator: Optional[CreatorProfile] = None
    created: bool = False

