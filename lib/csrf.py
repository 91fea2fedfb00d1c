# =============================================================================
# lib/csrf.py - One-Time CSRF Tokens
# =============================================================================
# Tokens are issued per page load and consumed by the next state-changing
# request. Format:
#
#   <nonce>.<hex HMAC-SHA256(SESSION_SECRET, session_key + ":" + nonce)>
#
# The token is also stored in Redis under csrf:<session_key>:<nonce> with a
# TTL. Validation checks the signature and stored value with constant-time
# comparison, then deletes the key. DELETE returns 1 only for the first
# caller, which makes each token single-use even under concurrent requests.
# =============================================================================

import hashlib
import hmac
import logging
import secrets

import redis

logger = logging.getLogger(__name__)

KEY_PREFIX = "csrf"


class CSRFTokenStore:
    """Issues and consumes one-time tokens bound to a session key."""

    def __init__(self, client: redis.Redis, secret: str, ttl_seconds: int = 3600):
        self.client = client
        self._secret = secret.encode("utf-8")
        self.ttl_seconds = ttl_seconds

    def _sign(self, session_key: str, nonce: str) -> str:
        message = f"{session_key}:{nonce}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    @staticmethod
    def _key(session_key: str, nonce: str) -> str:
        return f"{KEY_PREFIX}:{session_key}:{nonce}"

    def issue(self, session_key: str) -> str:
        """Create, store and return a fresh token for this session."""
        nonce = secrets.token_urlsafe(24)
        token = f"{nonce}.{self._sign(session_key, nonce)}"
        self.client.set(self._key(session_key, nonce), token, ex=self.ttl_seconds)
        return token

    def consume(self, session_key: str, token: str | None) -> bool:
        """
        Validate and invalidate a token.

        Returns False for a missing, malformed, forged, expired or
        already-used token. Never raises for bad input.
        """
        if not token or not isinstance(token, str) or "." not in token:
            return False

        nonce, _, signature = token.partition(".")
        if not nonce or not signature:
            return False

        if not hmac.compare_digest(signature, self._sign(session_key, nonce)):
            logger.warning("CSRF token signature mismatch")
            return False

        key = self._key(session_key, nonce)
        try:
            stored = self.client.get(key)
            if stored is None or not hmac.compare_digest(str(stored), token):
                return False
            # Only the request that actually deletes the key wins
            return int(self.client.delete(key)) == 1
        except redis.RedisError as e:
            logger.error(f"CSRF store unavailable: {e}")
            return False
