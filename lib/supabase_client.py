# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides a typed wrapper for Supabase database operations.
# It implements the singleton pattern to reuse a single client connection
# and provides the lookups shared by several services:
# - Creator profiles (by email, id or public handle)
# - Listings and their photo records
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   creator = SupabaseClient.fetch_creator_by_email("jane@example.com")
# =============================================================================

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from supabase import create_client, Client

from app.config import settings
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)

# PostgREST code returned by .single() when no row matches
NOT_FOUND_CODE = "PGRST116"


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Messages may contain database details, so they are logged and never
    relayed to API clients verbatim.
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


def is_not_found(error: Exception) -> bool:
    """True when a PostgREST error means "no rows"."""
    return NOT_FOUND_CODE in str(error)


class SupabaseClient:
    """
    Typed wrapper for Supabase database operations.

    One client instance is shared across the application. All methods are
    class methods for easy access without instantiation.

    Example:
        creator = SupabaseClient.fetch_creator_by_email(user.email)
        listing = SupabaseClient.fetch_listing(listing_id, creator_id=creator["id"])
    """

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the singleton Supabase client.

        Uses service_role key which bypasses Row Level Security (RLS), so
        every caller must scope its queries to the authenticated creator.

        Raises:
            SupabaseClientError: If client creation fails
        """
        if cls._instance is None:
            try:
                cls._instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_SERVICE_KEY
                )
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                )
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the cached client (used by tests)."""
        cls._instance = None

    @classmethod
    def _fetch_single(
        cls,
        table: str,
        column: str,
        value: str,
        columns: str = "*",
        error_code: str = "FETCH_FAILED",
    ) -> dict[str, Any] | None:
        client = cls.get_client()
        try:
            response = (
                client.table(table)
                .select(columns)
                .eq(column, value)
                .single()
                .execute()
            )
            return response.data
        except Exception as e:
            if is_not_found(e):
                return None
            raise SupabaseClientError(
                message=f"Failed to fetch from {table}: {e}",
                code=error_code,
                details={"table": table, "column": column},
            )

    # -------------------------------------------------------------------------
    # Creators
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_creator_by_email(cls, email: str) -> dict[str, Any] | None:
        """
        Fetch the creator profile linked to an auth email.

        Returns:
            Creator dict, or None if the user hasn't created a profile yet
        """
        if not email:
            return None
        return cls._fetch_single(
            "creators", "email", email, error_code="FETCH_CREATOR_FAILED"
        )

    @classmethod
    def fetch_creator(cls, creator_id: str | UUID) -> dict[str, Any] | None:
        """Fetch a creator by primary key."""
        return cls._fetch_single(
            "creators", "id", normalize_uuid(creator_id), error_code="FETCH_CREATOR_FAILED"
        )

    @classmethod
    def fetch_creator_by_handle(cls, handle: str) -> dict[str, Any] | None:
        """Fetch a creator by public handle (storefront URL segment)."""
        return cls._fetch_single(
            "creators", "handle", handle, error_code="FETCH_CREATOR_FAILED"
        )

    # -------------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_listing(
        cls,
        listing_id: str | UUID,
        creator_id: str | UUID | None = None,
    ) -> dict[str, Any] | None:
        """
        Fetch a listing by ID.

        Args:
            listing_id: The listing UUID
            creator_id: If provided, only return the listing when it belongs
                to this creator

        Returns:
            Listing dict, or None if not found (or not owned)
        """
        client = cls.get_client()
        listing_id_str = normalize_uuid(listing_id)

        try:
            query = client.table("listings").select("*").eq("id", listing_id_str)
            if creator_id is not None:
                query = query.eq("creator_id", normalize_uuid(creator_id))
            response = query.single().execute()
            return response.data

        except Exception as e:
            if is_not_found(e):
                return None
            raise SupabaseClientError(
                message=f"Failed to fetch listing: {e}",
                code="FETCH_LISTING_FAILED",
                details={"listing_id": listing_id_str}
            )

    @classmethod
    def fetch_listing_photos(cls, listing_id: str | UUID) -> list[dict[str, Any]]:
        """Fetch photo records for a listing, oldest first."""
        client = cls.get_client()
        listing_id_str = normalize_uuid(listing_id)

        try:
            response = (
                client.table("listing_photos")
                .select("id, listing_id, storage_path, photo_type, created_at")
                .eq("listing_id", listing_id_str)
                .order("created_at")
                .execute()
            )
            return response.data or []

        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to fetch listing photos: {e}",
                code="FETCH_PHOTOS_FAILED",
                details={"listing_id": listing_id_str}
            )
