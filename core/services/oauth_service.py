# =============================================================================
# core/services/oauth_service.py - OAuth State Storage
# =============================================================================
# OAuth `state` values are stored in the oauth_states table together with
# the creator who started the flow and (for PKCE platforms) the code
# verifier. A state is consumed with a single DELETE ... RETURNING so it
# can only ever be used once, even under concurrent callbacks.
# =============================================================================

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from app.config import settings
from app.exceptions import OAuthStateError
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import normalize_uuid

logger = logging.getLogger(__name__)

TABLE = "oauth_states"


@dataclass(frozen=True)
class OAuthState:
    state: str
    platform: str
    creator_id: str
    code_verifier: str | None
    expires_at: datetime


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class OAuthStateService:
    """Create, consume and expire OAuth state records."""

    @staticmethod
    def create(
        state: str,
        platform: str,
        creator_id: str,
        code_verifier: str | None = None,
        now: datetime | None = None,
    ) -> OAuthState:
        """
        Store a new state.

        Raises:
            SupabaseClientError: If the insert fails
        """
        now = now or datetime.now(timezone.utc)
        expires_at = now + timedelta(minutes=settings.OAUTH_STATE_TTL_MINUTES)
        row = {
            "state": state,
            "platform": platform,
            "creator_id": normalize_uuid(creator_id),
            "code_verifier": code_verifier,
            "expires_at": expires_at.isoformat(),
        }

        client = SupabaseClient.get_client()
        try:
            client.table(TABLE).insert(row).execute()
        except Exception as e:
            raise SupabaseClientError(f"Failed to store OAuth state: {e}", code="OAUTH_STATE_STORE_FAILED")

        return OAuthState(
            state=state,
            platform=platform,
            creator_id=row["creator_id"],
            code_verifier=code_verifier,
            expires_at=expires_at,
        )

    @staticmethod
    def consume(state: str | None, now: datetime | None = None) -> OAuthState:
        """
        Fetch and delete a state in one statement.

        Raises:
            OAuthStateError: Missing, unknown, already used or expired
        """
        if not state:
            raise OAuthStateError("missing_state")

        client = SupabaseClient.get_client()
        try:
            response = client.table(TABLE).delete().eq("state", state).execute()
        except Exception as e:
            logger.error(f"Failed to consume OAuth state: {e}")
            raise OAuthStateError("invalid_state")

        if not response.data:
            raise OAuthStateError("invalid_state")

        row = response.data[0]
        record = OAuthState(
            state=row["state"],
            platform=row["platform"],
            creator_id=str(row["creator_id"]),
            code_verifier=row.get("code_verifier"),
            expires_at=_parse_timestamp(row["expires_at"]),
        )
        if record.expires_at <= (now or datetime.now(timezone.utc)):
            raise OAuthStateError("expired_state")
        return record

    @staticmethod
    def delete_expired(now: datetime | None = None) -> int:
        """Remove expired states; returns how many were deleted."""
        now = now or datetime.now(timezone.utc)
        client = SupabaseClient.get_client()
        response = client.table(TABLE).delete().lt("expires_at", now.isoformat()).execute()
        deleted = len(response.data or [])
        if deleted:
            logger.info(f"Deleted {deleted} expired OAuth state(s)")
        return deleted
