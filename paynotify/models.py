"""Data model for Midtrans notifications and the records they update."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict

# Fields without which a notification cannot be verified or matched
REQUIRED_FIELDS = ("order_id", "status_code", "gross_amount", "signature_key")


class PaymentStatus(str, Enum):
    """Values of payments.status."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Outcome(str, Enum):
    """Result of processing one notification, as seen by the gateway."""
    ACCEPTED = "accepted"
    BAD_REQUEST = "bad_request"
    INVALID_SIGNATURE = "invalid_signature"
    NOT_FOUND = "not_found"
    UPDATE_FAILED = "update_failed"
    INTERNAL_ERROR = "internal_error"

    @property
    def status_code(self) -> int:
        return _OUTCOME_STATUS_CODES[self]


_OUTCOME_STATUS_CODES = {
    Outcome.ACCEPTED: 200,
    Outcome.BAD_REQUEST: 400,
    Outcome.INVALID_SIGNATURE: 400,
    Outcome.NOT_FOUND: 404,
    Outcome.UPDATE_FAILED: 500,
    Outcome.INTERNAL_ERROR: 500,
}


class PaymentNotification(BaseModel):
    """Inbound Midtrans HTTP notification body.

    Every field is optional on the wire. Numbers are kept as their textual
    form because the signature is computed over the raw strings.
    """

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    transaction_status: str | None = None
    transaction_id: str | None = None
    order_id: str | None = None
    gross_amount: str | None = None
    signature_key: str | None = None
    fraud_status: str | None = None
    status_code: str | None = None
    payment_type: str | None = None

    def missing_fields(self) -> list[str]:
        """Names of required fields that are absent or empty."""
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]

    def log_summary(self) -> dict[str, str | None]:
        """Field values safe to log (signature reduced to presence)."""
        data = self.model_dump()
        data["signature_key"] = "Present" if self.signature_key else "Missing"
        return data


@dataclass
class PaymentRecord:
    """A row of the payments table, as far as notification processing needs it."""

    transaction_id: str
    quiz_result_id: str
    user_id: str | None = None
