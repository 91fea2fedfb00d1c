# =============================================================================
# tests/test_oauth_state.py - OAuth State Storage Tests
# =============================================================================

from datetime import datetime, timedelta, timezone

import pytest

from app.exceptions import OAuthStateError
from core.services.oauth_service import OAuthStateService
from lib.supabase_client import SupabaseClientError
from tests.conftest import CREATOR_ID, db_result

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def state_row(expires_at):
    return {
        "state": "state-abc",
        "platform": "x",
        "creator_id": CREATOR_ID,
        "code_verifier": "verifier",
        "expires_at": expires_at,
    }


class TestCreate:
    """Tests for OAuthStateService.create."""

    def test_row_written_with_ttl(self, supabase):
        record = OAuthStateService.create("state-abc", "x", CREATOR_ID, "verifier", now=NOW)

        row = supabase.tables["oauth_states"].insert.call_args[0][0]
        assert row["state"] == "state-abc"
        assert row["creator_id"] == CREATOR_ID
        assert row["code_verifier"] == "verifier"
        assert record.expires_at == NOW + timedelta(minutes=10)

    def test_insert_failure(self, supabase):
        supabase.tables["oauth_states"].insert.return_value.execute.side_effect = Exception("db down")

        with pytest.raises(SupabaseClientError):
            OAuthStateService.create("state-abc", "x", CREATOR_ID, now=NOW)


class TestConsume:
    """Tests for OAuthStateService.consume."""

    def _delete_result(self, supabase, data):
        table = supabase.tables["oauth_states"]
        table.delete.return_value.eq.return_value.execute.return_value = db_result(data)
        return table

    def test_valid_state(self, supabase):
        table = self._delete_result(supabase, [state_row("2026-03-01T12:05:00Z")])

        record = OAuthStateService.consume("state-abc", now=NOW)

        assert record.platform == "x"
        assert record.code_verifier == "verifier"
        table.delete.return_value.eq.assert_called_once_with("state", "state-abc")

    def test_unknown_or_used_state(self, supabase):
        self._delete_result(supabase, [])

        with pytest.raises(OAuthStateError) as exc_info:
            OAuthStateService.consume("state-abc", now=NOW)

        assert exc_info.value.reason == "invalid_state"

    def test_expired_state(self, supabase):
        self._delete_result(supabase, [state_row("2026-03-01T11:59:59+00:00")])

        with pytest.raises(OAuthStateError) as exc_info:
            OAuthStateService.consume("state-abc", now=NOW)

        assert exc_info.value.reason == "expired_state"

    def test_naive_timestamp_treated_as_utc(self, supabase):
        self._delete_result(supabase, [state_row("2026-03-01T12:01:00")])

        assert OAuthStateService.consume("state-abc", now=NOW).state == "state-abc"

    def test_missing_state(self, supabase):
        with pytest.raises(OAuthStateError) as exc_info:
            OAuthStateService.consume(None)

        assert exc_info.value.reason == "missing_state"

    def test_database_error(self, supabase):
        supabase.tables["oauth_states"].delete.return_value.eq.return_value.execute.side_effect = Exception("down")

        with pytest.raises(OAuthStateError):
            OAuthStateService.consume("state-abc", now=NOW)


class TestDeleteExpired:
    """Tests for OAuthStateService.delete_expired."""

    def test_returns_count(self, supabase):
        table = supabase.tables["oauth_states"]
        table.delete.return_value.lt.return_value.execute.return_value = db_result([{}, {}, {}])

        assert OAuthStateService.delete_expired(now=NOW) == 3
        table.delete.return_value.lt.assert_called_once_with("expires_at", NOW.isoformat())
