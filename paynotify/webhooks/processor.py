"""Notification processor: verifies, classifies and applies Midtrans notifications.

Processing order:
1. Required fields present (order_id, status_code, gross_amount, signature_key)
2. Signature verified
3. transaction_status classified into successful / failed / pending / unrecognized
4. Store updated:
   - successful: payment lookup -> quiz result premium -> payment completed
   - failed / pending: payment status only
   - unrecognized: nothing (acknowledged, logged as a warning)

Only the first two steps of the successful path can fail the notification.
Payment-status updates after a premium update, and on the failed/pending
paths, are bookkeeping: failures are recorded as TransientLogError and the
notification is still acknowledged so the gateway does not retry it.

There is no deduplication. A repeated notification reapplies its update.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Mapping

from pydantic import ValidationError as PydanticValidationError

from paynotify.errors import (
    AuthenticationError,
    NotFoundError,
    NotificationError,
    StoreError,
    TransientLogError,
    UnexpectedError,
    UpdateError,
    ValidationError,
)
from paynotify.models import Outcome, PaymentNotification, PaymentStatus
from paynotify.store import PaymentStore
from paynotify.webhooks.verification import SignatureVerifier

logger = logging.getLogger(__name__)

_FAILED_STATUSES = frozenset({"cancel", "deny", "expire"})

_ERROR_MESSAGES = {
    Outcome.BAD_REQUEST: "Missing required fields",
    Outcome.INVALID_SIGNATURE: "Invalid signature",
    Outcome.NOT_FOUND: "Payment record not found",
    Outcome.UPDATE_FAILED: "Failed to update quiz result",
    Outcome.INTERNAL_ERROR: "Internal server error",
}


class StatusBucket(str, Enum):
    """Classification of a Midtrans transaction_status."""
    SUCCESSFUL = "successful"
    FAILED = "failed"
    PENDING = "pending"
    UNRECOGNIZED = "unrecognized"


def classify_status(transaction_status: str | None, fraud_status: str | None = None) -> StatusBucket:
    """Map transaction_status (and fraud_status for captures) to a bucket."""
    if transaction_status == "settlement":
        return StatusBucket.SUCCESSFUL
    if transaction_status == "capture" and fraud_status == "accept":
        return StatusBucket.SUCCESSFUL
    if transaction_status in _FAILED_STATUSES:
        return StatusBucket.FAILED
    if transaction_status == "pending":
        return StatusBucket.PENDING
    return StatusBucket.UNRECOGNIZED


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ProcessingResult:
    """What happened to one notification."""

    outcome: Outcome
    order_id: str | None = None
    bucket: StatusBucket | None = None
    processing_time_ms: int = 0
    errors: list[TransientLogError] = field(default_factory=list)

    @property
    def status_code(self) -> int:
        return self.outcome.status_code

    def to_response(self) -> dict[str, Any]:
        """JSON body for the gateway. Never includes internal detail."""
        if self.outcome is Outcome.ACCEPTED:
            return {
                "message": "Notification processed successfully",
                "order_id": self.order_id,
                "processing_time_ms": self.processing_time_ms,
            }
        return {"error": _ERROR_MESSAGES[self.outcome]}


class NotificationProcessor:
    """Applies verified Midtrans notifications to the payment store."""

    def __init__(
        self,
        verifier: SignatureVerifier,
        store: PaymentStore,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._verifier = verifier
        self._store = store
        self._clock = clock

    async def process(self, payload: Mapping[str, Any] | PaymentNotification) -> ProcessingResult:
        """Process one notification body and return its outcome.

        Never raises: unexpected faults become Outcome.INTERNAL_ERROR.
        """
        start = time.monotonic()
        logger.info("=== PAYMENT NOTIFICATION RECEIVED ===")
        result = ProcessingResult(outcome=Outcome.ACCEPTED)

        try:
            notification = self._parse(payload)
            result.order_id = notification.order_id
            result.bucket = await self._handle(notification, result.errors)
        except NotificationError as e:
            result.outcome = e.outcome
            logger.error("Notification rejected (%s): %s", e.outcome.value, e)
        except Exception as e:
            result.outcome = UnexpectedError(repr(e)).outcome
            logger.exception("Unexpected error processing notification")

        result.processing_time_ms = int((time.monotonic() - start) * 1000)
        if result.outcome is Outcome.ACCEPTED:
            logger.info(
                "Notification processing completed in %dms (order=%s, errors=%d)",
                result.processing_time_ms,
                result.order_id,
                len(result.errors),
            )
        else:
            logger.error(
                "=== PAYMENT NOTIFICATION PROCESSING FAILED === outcome=%s after %dms",
                result.outcome.value,
                result.processing_time_ms,
            )
        return result

    @staticmethod
    def _parse(payload: Mapping[str, Any] | PaymentNotification) -> PaymentNotification:
        if isinstance(payload, PaymentNotification):
            notification = payload
        elif isinstance(payload, Mapping):
            try:
                notification = PaymentNotification.model_validate(dict(payload))
            except PydanticValidationError as e:
                fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
                raise ValidationError(fields) from e
        else:
            raise ValidationError()

        logger.info("Extracted notification data: %s", notification.log_summary())
        missing = notification.missing_fields()
        if missing:
            raise ValidationError(missing)
        return notification

    async def _handle(
        self, notification: PaymentNotification, errors: list[TransientLogError]
    ) -> StatusBucket:
        order_id = notification.order_id

        if not self._verifier.verify(
            order_id,
            notification.status_code,
            notification.gross_amount,
            notification.signature_key,
        ):
            raise AuthenticationError(f"Invalid signature for order {order_id}")

        bucket = classify_status(notification.transaction_status, notification.fraud_status)
        logger.info(
            "Transaction status analysis order=%s transaction_status=%s fraud_status=%s bucket=%s",
            order_id,
            notification.transaction_status,
            notification.fraud_status,
            bucket.value,
        )

        if bucket is StatusBucket.SUCCESSFUL:
            await self._apply_success(order_id, errors)
        elif bucket is StatusBucket.FAILED:
            await self._set_status(order_id, PaymentStatus.FAILED, errors)
        elif bucket is StatusBucket.PENDING:
            await self._set_status(order_id, PaymentStatus.PENDING, errors)
        else:
            logger.warning(
                "Unhandled transaction status %r for order %s",
                notification.transaction_status,
                order_id,
            )
        return bucket

    async def _apply_success(self, order_id: str, errors: list[TransientLogError]) -> None:
        try:
            payment = await self._store.find_payment_by_transaction_id(order_id)
        except StoreError as e:
            raise NotFoundError(f"No payment record for transaction {order_id}: {e}") from e
        logger.info("Payment record found: %s", payment)

        try:
            await self._store.update_quiz_result_premium(payment.quiz_result_id, True)
        except StoreError as e:
            raise UpdateError(
                f"Could not set premium on quiz result {payment.quiz_result_id}: {e}"
            ) from e
        logger.info("Quiz result %s updated to premium", payment.quiz_result_id)

        await self._set_status(order_id, PaymentStatus.COMPLETED, errors, completed_at=self._clock())

    async def _set_status(
        self,
        order_id: str,
        status: PaymentStatus,
        errors: list[TransientLogError],
        completed_at: datetime | None = None,
    ) -> None:
        try:
            await self._store.update_payment_status(order_id, status, completed_at)
        except StoreError as e:
            error = TransientLogError(f"update payment status to {status.value}", order_id, e)
            errors.append(error)
            logger.error("Error updating payment status: %s", error)
            return
        logger.info("Payment %s status updated to %s", order_id, status.value)
