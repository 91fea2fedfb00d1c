# =============================================================================
# lib/paypal.py - PayPal Email Verification
# =============================================================================
# Checks that a payout email belongs to a PayPal account using the classic
# NVP AddressVerify call. A dummy street/ZIP is sent; only the account
# lookup matters.
#
# Verification never blocks saving a payout email: callers store the email
# and record whether it was verified.
# =============================================================================

import logging
from dataclasses import dataclass
from urllib.parse import parse_qs

import httpx

from lib.sanitize import validate_email

logger = logging.getLogger(__name__)

LIVE_NVP_URL = "https://api-3t.paypal.com/nvp"
SANDBOX_NVP_URL = "https://api-3t.sandbox.paypal.com/nvp"
NVP_VERSION = "204.0"
# NVP error code for "email is not a PayPal account"
NOT_A_PAYPAL_ACCOUNT = "10736"


@dataclass(frozen=True)
class PayPalVerification:
    """
    valid: the email is acceptable for payouts
    verified: PayPal confirmed the account exists
    """
    valid: bool
    verified: bool
    payer_id: str | None = None
    error: str | None = None


def _mask(email: str) -> str:
    return email[:3] + "***"


class PayPalVerifier:
    """AddressVerify client. `http` can be injected for tests."""

    def __init__(
        self,
        username: str,
        password: str,
        signature: str,
        sandbox: bool = False,
        http: httpx.Client | None = None,
        timeout: float = 15.0,
    ):
        self.username = username
        self.password = password
        self.signature = signature
        self.url = SANDBOX_NVP_URL if sandbox else LIVE_NVP_URL
        self.http = http or httpx.Client(timeout=timeout)

    @classmethod
    def from_settings(cls, settings) -> "PayPalVerifier":
        return cls(
            username=settings.PAYPAL_API_USERNAME,
            password=settings.PAYPAL_API_PASSWORD,
            signature=settings.PAYPAL_API_SIGNATURE,
            sandbox=settings.PAYPAL_SANDBOX,
        )

    def verify(self, email: str) -> PayPalVerification:
        if not email or not self.username or not self.password:
            return PayPalVerification(valid=False, verified=False, error="Missing required PayPal credentials")

        normalized = email.strip().lower()
        if not validate_email(normalized):
            return PayPalVerification(valid=False, verified=False, error="Invalid email format")

        if not self.signature or not self.signature.strip():
            return PayPalVerification(
                valid=True,
                verified=False,
                error="API Signature required for verification",
            )

        try:
            response = self.http.post(self.url, data={
                "METHOD": "AddressVerify",
                "VERSION": NVP_VERSION,
                "USER": self.username,
                "PWD": self.password,
                "SIGNATURE": self.signature,
                "EMAIL": normalized,
                "STREET": "123 Test St",
                "ZIP": "12345",
            })
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"PayPal AddressVerify request failed: {e}")
            return PayPalVerification(
                valid=False,
                verified=False,
                error="PayPal verification service unavailable. Please try again later.",
            )

        fields = {key: values[0] for key, values in parse_qs(response.text).items()}
        ack = fields.get("ACK")
        error_code = fields.get("L_ERRORCODE0")

        if ack in ("Success", "SuccessWithWarning"):
            logger.info(f"PayPal account verified for {_mask(normalized)}")
            return PayPalVerification(valid=True, verified=True, payer_id=fields.get("PAYERID"))

        if ack == "Failure" and error_code == NOT_A_PAYPAL_ACCOUNT:
            return PayPalVerification(
                valid=False, verified=False, error="Email not associated with a PayPal account"
            )

        if ack == "Failure":
            logger.warning(
                f"PayPal AddressVerify failed for {_mask(normalized)}: "
                f"{error_code} {fields.get('L_SHORTMESSAGE0')}"
            )
            return PayPalVerification(
                valid=False, verified=False, error="PayPal verification failed. Please try again later."
            )

        return PayPalVerification(valid=False, verified=False, error="Unknown verification response")
