# =============================================================================
# core/models/social.py - Social Link Schemas
# =============================================================================

from pydantic import BaseModel, Field


class SocialLink(BaseModel):
    """One platform's link as shown to the creator."""
    platform: str
    display_name: str
    url: str | None = None
    username: str | None = None
    verified: bool = False
    # "oauth" when verified through the provider, "submitted" for manual links
    source: str | None = None


class SocialLinksResponse(BaseModel):
    links: list[SocialLink] = Field(default_factory=list)


class SaveSocialLinksResponse(BaseModel):
    success: bool = True
    saved: dict[str, str] = Field(default_factory=dict)
    # Platforms whose submitted URL failed validation
    rejected: list[str] = Field(default_factory=list)


class VerifyStartResponse(BaseModel):
    platform: str
    authorize_url: str


class DisconnectResponse(BaseModel):
    success: bool = True
    platform: str
    message: str
