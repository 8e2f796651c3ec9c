"""Midtrans notification signature verification.

Security contract:
- signature_key = hex(SHA512(order_id + status_code + gross_amount + server_key))
- Concatenation order is fixed by Midtrans and must not change
- Inputs are hashed as received (no amount normalization)
- Comparison is exact and case-sensitive, using hmac.compare_digest()
- Verification never raises: any internal error -> False (fail-closed)
- Neither the server key nor the computed digest is ever logged
"""

from __future__ import annotations

import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)


def compute_signature(
    order_id: str, status_code: str, gross_amount: str, server_key: str
) -> str:
    """Compute the expected Midtrans signature_key for a notification."""
    payload = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(payload.encode("utf-8")).hexdigest()


class SignatureVerifier:
    """Verifies notification signatures against a fixed server key."""

    def __init__(self, server_key: str):
        self._server_key = server_key

    def verify(
        self,
        order_id: str,
        status_code: str,
        gross_amount: str,
        signature: str,
    ) -> bool:
        """Check a received signature_key.

        Args:
            order_id: Midtrans order_id (our payments.transaction_id)
            status_code: Gateway status code, as received (e.g. "200")
            gross_amount: Amount as received (e.g. "10000.00")
            signature: The notification's signature_key

        Returns:
            True if the signature matches
        """
        try:
            for value in (order_id, status_code, gross_amount, signature):
                if not isinstance(value, str):
                    raise TypeError(f"expected str, got {type(value).__name__}")
            expected = compute_signature(
                order_id, status_code, gross_amount, self._server_key
            )
            match = hmac.compare_digest(
                expected.encode("utf-8"), signature.encode("utf-8")
            )
        except Exception:
            logger.exception("Error in signature verification for order %r", order_id)
            return False

        logger.info(
            "Signature verification order=%s status_code=%s gross_amount=%s match=%s",
            order_id,
            status_code,
            gross_amount,
            match,
        )
        return match
