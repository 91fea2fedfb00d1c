# =============================================================================
# core/models/listing.py - Listing Schemas
# =============================================================================
# These models define the API contract for listings:
# - ListingStatus / ListingCondition: Enums for listing state and wear level
# - LISTING_CATEGORIES: Fixed category allow-list
# - ListingDraft: Validated listing fields (title, story, category, price)
# - ListingResponse / ListingPhoto: Output shapes
#
# Prices are entered in dollars and stored as integer cents.
# =============================================================================

from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from lib.sanitize import clean_text, sanitize_html

MAX_TITLE_LENGTH = 200
MAX_STORY_LENGTH = 5000
MIN_PRICE_DOLLARS = Decimal("100")
# Upper bound keeps cents inside a Postgres integer
MAX_PRICE_DOLLARS = Decimal("1000000")


# -----------------------------------------------------------------------------
# Categories
# -----------------------------------------------------------------------------

CLOTHING_CATEGORIES = (
    "Tops",
    "Bottoms",
    "Dresses & One-Pieces",
    "Skirts",
    "Outerwear",
    "Activewear",
    "Swimwear",
    "Intimates & Lingerie",
    "Sleepwear & Loungewear",
    "Accessories",
    "Shoes",
    "Jewelry",
)

MARKETPLACE_CATEGORIES = (
    "Electronics",
    "Home & Garden",
    "Beauty & Personal Care",
    "Health & Wellness",
    "Sports & Outdoors",
    "Toys & Games",
    "Books & Media",
    "Automotive",
    "Pet Supplies",
    "Office Supplies",
    "Food & Beverages",
    "Other",
)

LISTING_CATEGORIES = CLOTHING_CATEGORIES + MARKETPLACE_CATEGORIES


def category_type(category: str) -> str | None:
    """"clothing", "marketplace", or None for unknown categories."""
    if category in CLOTHING_CATEGORIES:
        return "clothing"
    if category in MARKETPLACE_CATEGORIES:
        return "marketplace"
    return None


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class ListingStatus(str, Enum):
    """
    Listing lifecycle.

    Flow: pending_approval -> approved | rejected
    Creators may edit draft and pending_approval listings; an edit puts the
    listing back into pending_approval.
    """
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    LIVE = "live"
    SOLD = "sold"

    @classmethod
    def editable(cls) -> tuple["ListingStatus", ...]:
        return (cls.DRAFT, cls.PENDING_APPROVAL)


class ListingCondition(str, Enum):
    """How worn an item is. Values are the display labels."""
    BARELY_WORN = "Barely worn"
    LIGHTLY_WORN = "Lightly worn"
    HEAVILY_WORN = "Heavily worn"

    @property
    def slug(self) -> str:
        """API form, e.g. "barely-worn"."""
        return self.value.lower().replace(" ", "-")

    @classmethod
    def parse(cls, value: str | None) -> "ListingCondition":
        """Accept either the label ("Barely worn") or slug ("barely-worn")."""
        text = (value or "").strip()
        for condition in cls:
            if text == condition.value or text.lower() == condition.slug:
                return condition
        raise ValueError("Condition must be one of: " + ", ".join(c.value for c in cls))


# -----------------------------------------------------------------------------
# Price
# -----------------------------------------------------------------------------

def parse_price_to_cents(value: Any) -> int:
    """
    Convert a dollar amount to integer cents, rounding half up.

    Raises:
        ValueError: Non-numeric, NaN/infinite, below $100 or absurdly large

    Example:
        parse_price_to_cents("125.505")  # 12551
    """
    if isinstance(value, bool) or value is None:
        raise ValueError("Price is required")
    try:
        amount = Decimal(str(value).strip().lstrip("$").replace(",", ""))
    except InvalidOperation:
        raise ValueError("Price must be a number")

    if not amount.is_finite():
        raise ValueError("Price must be a number")
    if amount < MIN_PRICE_DOLLARS:
        raise ValueError(f"Price must be at least ${MIN_PRICE_DOLLARS}")
    if amount > MAX_PRICE_DOLLARS:
        raise ValueError("Price is too large")

    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# -----------------------------------------------------------------------------
# Input
# -----------------------------------------------------------------------------

class ListingDraft(BaseModel):
    """
    Validated listing fields from the create/edit forms.

    Field validators sanitize as they validate: the title is trimmed and
    stripped of control characters, the story is HTML-sanitized.
    """

    title: str = Field(..., description="Listing title (1-200 characters)")
    story: str = Field(default="", description="Item story, sanitized HTML")
    category: str = Field(..., description="One of LISTING_CATEGORIES")
    condition: ListingCondition = Field(..., description="Wear level")
    price_cents: int = Field(..., ge=10000, description="Price in cents")

    @field_validator("title", mode="before")
    @classmethod
    def _clean_title(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Title is required")
        raw = value.strip()
        if len(raw) > MAX_TITLE_LENGTH:
            raise ValueError(f"Title must be {MAX_TITLE_LENGTH} characters or fewer")
        cleaned = clean_text(raw, MAX_TITLE_LENGTH)
        if not cleaned:
            raise ValueError("Title is required")
        return cleaned

    @field_validator("story", mode="before")
    @classmethod
    def _clean_story(cls, value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError("Story must be text")
        if len(value.strip()) > MAX_STORY_LENGTH:
            raise ValueError(f"Story must be {MAX_STORY_LENGTH} characters or fewer")
        story = sanitize_html(clean_text(value, MAX_STORY_LENGTH, keep_newlines=True))
        # Escaping can lengthen the text
        if len(story) > MAX_STORY_LENGTH:
            raise ValueError(f"Story must be {MAX_STORY_LENGTH} characters or fewer")
        return story

    @field_validator("category", mode="before")
    @classmethod
    def _check_category(cls, value: Any) -> str:
        text = value.strip() if isinstance(value, str) else ""
        if text not in LISTING_CATEGORIES:
            raise ValueError("Please choose a valid category")
        return text

    @field_validator("condition", mode="before")
    @classmethod
    def _parse_condition(cls, value: Any) -> ListingCondition:
        if isinstance(value, ListingCondition):
            return value
        return ListingCondition.parse(value)

    @field_validator("price_cents", mode="before")
    @classmethod
    def _parse_price(cls, value: Any) -> int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return parse_price_to_cents(value)

    def to_row(self) -> dict[str, Any]:
        """Column values for the listings table."""
        return {
            "title": self.title,
            "story": self.story,
            "category": self.category,
            "condition": self.condition.value,
            "price_cents": self.price_cents,
        }


# -----------------------------------------------------------------------------
# Output
# -----------------------------------------------------------------------------

class ListingPhoto(BaseModel):
    id: str
    storage_path: str
    photo_type: str = "reference"
    url: str | None = None


class ListingResponse(BaseModel):
    """
    Listing as returned to creators and admins.

    Example:
        {
            "id": "550e8400-...",
            "title": "Vintage denim jacket",
            "status": "pending_approval",
            "price_cents": 12500,
            "photos": [{"id": "...", "storage_path": "...", "url": "https://..."}]
        }
    """

    id: str
    creator_id: str
    title: str
    story: str | None = None
    category: str | None = None
    condition: str | None = None
    price_cents: int
    status: ListingStatus
    shopify_product_id: str | None = None
    admin_notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    photos: list[ListingPhoto] = Field(default_factory=list)

    @property
    def price_dollars(self) -> Decimal:
        return Decimal(self.price_cents) / 100


class ListingCreateResponse(BaseModel):
    """Result of POST /creator/listings."""
    listing: ListingResponse
    photos_uploaded: int
    warnings: list[str] = Field(default_factory=list)
    commerce_synced: bool = False
