# =============================================================================
# lib/shopify_admin.py - Shopify Admin API Client
# =============================================================================
# Creates marketplace products for newly submitted listings.
#
# Flow (create_product):
# 1. Client-credentials access token (cached until an hour before expiry)
# 2. productCreate (GraphQL) - title, vendor, type, description, status
# 3. Look up the auto-created default variant
# 4. Variant update (REST) - price, SKU = listing id, inventory_policy deny
# 5. Publish to every sales channel              (non-critical)
# 6. productCreateMedia from public image URLs    (non-critical)
# 7. metafieldsSet custom.worn_level              (non-critical)
#
# Once the product exists, failures carry its id (ShopifyAdminError.product_id)
# so callers can still link or queue it for manual follow-up.
# =============================================================================

import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import httpx

from lib.utils import ApplicationError

logger = logging.getLogger(__name__)

# Refresh the token this many seconds before Shopify says it expires
TOKEN_EXPIRY_MARGIN_SECONDS = 3600
DEFAULT_TOKEN_LIFETIME_SECONDS = 86400
MAX_MEDIA_ALT_LENGTH = 255

PRODUCT_CREATE_MUTATION = """
mutation productCreate($input: ProductInput!) {
  productCreate(input: $input) {
    product { id title status }
    userErrors { field message }
  }
}
"""

DEFAULT_VARIANT_QUERY = """
query getProduct($id: ID!) {
  product(id: $id) {
    id
    variants(first: 1) { edges { node { id } } }
  }
}
"""

PUBLICATIONS_QUERY = """
query getPublications {
  publications(first: 10) { edges { node { id name } } }
}
"""

PUBLISH_MUTATION = """
mutation publishablePublish($id: ID!, $input: [PublicationInput!]!) {
  publishablePublish(id: $id, input: $input) {
    userErrors { field message }
  }
}
"""

CREATE_MEDIA_MUTATION = """
mutation productCreateMedia($productId: ID!, $media: [CreateMediaInput!]!) {
  productCreateMedia(productId: $productId, media: $media) {
    media { id mediaContentType }
    mediaUserErrors { field message }
  }
}
"""

METAFIELDS_SET_MUTATION = """
mutation metafieldsSet($metafields: [MetafieldsSetInput!]!) {
  metafieldsSet(metafields: $metafields) {
    metafields { id namespace key value }
    userErrors { field message }
  }
}
"""


class ShopifyAdminError(ApplicationError):
    """Shopify Admin API failure. `product_id` is set if the product was created."""

    def __init__(self, message: str, product_id: str | None = None, **kwargs):
        super().__init__(message, code="SHOPIFY_ADMIN_ERROR", **kwargs)
        self.product_id = product_id


@dataclass
class ProductInput:
    """Listing data needed to create a product."""
    title: str
    vendor: str
    price_cents: int
    sku: str
    description_html: str = ""
    product_type: str = ""
    condition: str | None = None
    image_urls: list[str] = field(default_factory=list)


@dataclass
class ProductResult:
    product_id: str
    variant_id: str | None = None
    warnings: list[str] = field(default_factory=list)


def format_price(price_cents: int) -> str:
    """Cents to Shopify's decimal string, e.g. 12550 -> "125.50"."""
    return f"{Decimal(price_cents) / 100:.2f}"


def gid_to_numeric_id(gid: str) -> str:
    """gid://shopify/ProductVariant/123 -> 123"""
    return gid.rsplit("/", 1)[-1]


class ShopifyAdminClient:
    """
    Thin Shopify Admin API client.

    One instance per process is enough; it caches its access token.
    `http` may be injected (tests pass an httpx.Client with a MockTransport).
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        store_domain: str,
        api_version: str = "2024-10",
        http: httpx.Client | None = None,
        timeout: float = 30.0,
    ):
        if not (client_id and client_secret and store_domain):
            raise ShopifyAdminError(
                "Shopify client id, client secret and store domain are required",
                suggestion="Set SHOPIFY_ADMIN_CLIENT_ID, SHOPIFY_ADMIN_CLIENT_SECRET and PUBLIC_STORE_DOMAIN",
            )
        self.client_id = client_id
        self.client_secret = client_secret
        self.store_domain = store_domain.replace("https://", "").rstrip("/")
        self.api_version = api_version
        self.http = http or httpx.Client(timeout=timeout)
        self._access_token: str | None = None
        self._token_expires_at: float = 0.0

    @classmethod
    def from_settings(cls, settings) -> "ShopifyAdminClient":
        return cls(
            client_id=settings.SHOPIFY_ADMIN_CLIENT_ID,
            client_secret=settings.SHOPIFY_ADMIN_CLIENT_SECRET,
            store_domain=settings.PUBLIC_STORE_DOMAIN,
            api_version=settings.SHOPIFY_API_VERSION,
        )

    @property
    def admin_base_url(self) -> str:
        return f"https://{self.store_domain}/admin/api/{self.api_version}"

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    def get_access_token(self) -> str:
        """Return a cached token or fetch a new one (client-credentials grant)."""
        if self._access_token and time.time() < self._token_expires_at:
            return self._access_token

        try:
            response = self.http.post(
                f"https://{self.store_domain}/admin/oauth/access_token",
                json={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "grant_type": "client_credentials",
                },
            )
        except httpx.HTTPError as e:
            raise ShopifyAdminError(f"Access token request failed: {e}")

        if response.status_code >= 400:
            raise ShopifyAdminError(f"Failed to get access token: HTTP {response.status_code}")

        payload = response.json()
        token = payload.get("access_token")
        if not token:
            raise ShopifyAdminError("No access token in OAuth response")

        expires_in = int(payload.get("expires_in") or DEFAULT_TOKEN_LIFETIME_SECONDS)
        self._access_token = token
        self._token_expires_at = time.time() + max(expires_in - TOKEN_EXPIRY_MARGIN_SECONDS, 0)
        logger.info("Obtained Shopify Admin access token")
        return token

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self.get_access_token(),
        }

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Run a GraphQL request and return its `data`.

        Raises:
            ShopifyAdminError: On HTTP errors or top-level GraphQL errors
        """
        try:
            response = self.http.post(
                f"{self.admin_base_url}/graphql.json",
                headers=self._headers(),
                json={"query": query, "variables": variables or {}},
            )
        except httpx.HTTPError as e:
            raise ShopifyAdminError(f"GraphQL request failed: {e}")

        if response.status_code >= 400:
            raise ShopifyAdminError(f"GraphQL request failed: HTTP {response.status_code}")

        result = response.json()
        if result.get("errors"):
            errors = result["errors"]
            message = "; ".join(e.get("message", str(e)) for e in errors) if isinstance(errors, list) else str(errors)
            raise ShopifyAdminError(f"GraphQL errors: {message}")
        return result.get("data") or {}

    @staticmethod
    def _raise_user_errors(errors: list[dict] | None, context: str, product_id: str | None = None) -> None:
        if errors:
            message = "; ".join(f"{e.get('field')}: {e.get('message')}" for e in errors)
            raise ShopifyAdminError(f"{context}: {message}", product_id=product_id)

    # -------------------------------------------------------------------------
    # Product Creation
    # -------------------------------------------------------------------------

    def create_product(self, product: ProductInput) -> ProductResult:
        """
        Create a product with one priced variant, images and metafield.

        Returns:
            ProductResult; non-critical sub-step failures are in `warnings`

        Raises:
            ShopifyAdminError: If the product or its variant could not be set up
        """
        if not (product.title and product.vendor and product.sku) or product.price_cents <= 0:
            raise ShopifyAdminError("Missing required product fields: title, price, sku, or vendor")

        data = self.graphql(PRODUCT_CREATE_MUTATION, {
            "input": {
                "title": product.title.strip(),
                "productType": product.product_type or "",
                "vendor": product.vendor.strip(),
                "status": "ACTIVE",
                "descriptionHtml": product.description_html or "",
            }
        })
        payload = data.get("productCreate") or {}
        self._raise_user_errors(payload.get("userErrors"), "productCreate")

        product_id = (payload.get("product") or {}).get("id")
        if not product_id:
            raise ShopifyAdminError("productCreate returned no product id")
        logger.info(f"Created Shopify product {product_id} for SKU {product.sku}")

        result = ProductResult(product_id=product_id)

        try:
            result.variant_id = self._update_default_variant(product_id, product)
        except ShopifyAdminError as e:
            e.product_id = product_id
            raise
        except Exception as e:
            raise ShopifyAdminError(f"Variant update failed: {e}", product_id=product_id)

        for step_name, step in (
            ("publish", lambda: self.publish_to_all_channels(product_id)),
            ("media", lambda: self.attach_images(product_id, product.image_urls, product.title)),
            ("metafield", lambda: self.set_worn_level(product_id, product.condition)),
        ):
            try:
                step()
            except Exception as e:
                logger.warning(f"Shopify {step_name} step failed for {product_id} (non-critical): {e}")
                result.warnings.append(f"{step_name}: {e}")

        return result

    def _update_default_variant(self, product_id: str, product: ProductInput) -> str:
        data = self.graphql(DEFAULT_VARIANT_QUERY, {"id": product_id})
        edges = (((data.get("product") or {}).get("variants") or {}).get("edges")) or []
        if not edges:
            raise ShopifyAdminError("Product has no default variant", product_id=product_id)
        variant_gid = edges[0]["node"]["id"]
        variant_id = gid_to_numeric_id(variant_gid)

        try:
            response = self.http.put(
                f"{self.admin_base_url}/variants/{variant_id}.json",
                headers=self._headers(),
                json={
                    "variant": {
                        "id": int(variant_id),
                        "price": format_price(product.price_cents),
                        "sku": str(product.sku),
                        "inventory_policy": "deny",
                    }
                },
            )
        except httpx.HTTPError as e:
            raise ShopifyAdminError(f"Variant update request failed: {e}", product_id=product_id)

        if response.status_code >= 400:
            raise ShopifyAdminError(
                f"Variant update failed: HTTP {response.status_code}", product_id=product_id
            )
        return variant_gid

    def publish_to_all_channels(self, product_id: str) -> int:
        """Publish to every sales channel; returns the number of channels."""
        data = self.graphql(PUBLICATIONS_QUERY)
        edges = ((data.get("publications") or {}).get("edges")) or []
        publication_ids = [edge["node"]["id"] for edge in edges]
        if not publication_ids:
            return 0

        data = self.graphql(PUBLISH_MUTATION, {
            "id": product_id,
            "input": [{"publicationId": pid} for pid in publication_ids],
        })
        self._raise_user_errors(
            (data.get("publishablePublish") or {}).get("userErrors"), "publishablePublish", product_id
        )
        return len(publication_ids)

    def attach_images(self, product_id: str, image_urls: list[str], alt_text: str) -> int:
        """Attach images by URL; returns the number submitted."""
        urls = [url.strip() for url in image_urls if isinstance(url, str) and url.strip()]
        if not urls:
            return 0

        alt = alt_text.strip()[:MAX_MEDIA_ALT_LENGTH]
        data = self.graphql(CREATE_MEDIA_MUTATION, {
            "productId": product_id,
            "media": [
                {"originalSource": url, "alt": alt, "mediaContentType": "IMAGE"}
                for url in urls
            ],
        })
        self._raise_user_errors(
            (data.get("productCreateMedia") or {}).get("mediaUserErrors"), "productCreateMedia", product_id
        )
        logger.info(f"Attached {len(urls)} image(s) to Shopify product {product_id}")
        return len(urls)

    def set_worn_level(self, product_id: str, condition: str | None) -> bool:
        """Set the custom.worn_level metafield to the listing condition."""
        if not condition or not condition.strip():
            return False
        data = self.graphql(METAFIELDS_SET_MUTATION, {
            "metafields": [{
                "ownerId": product_id,
                "namespace": "custom",
                "key": "worn_level",
                "value": condition.strip(),
                "type": "single_line_text_field",
            }]
        })
        self._raise_user_errors(
            (data.get("metafieldsSet") or {}).get("userErrors"), "metafieldsSet", product_id
        )
        return True
