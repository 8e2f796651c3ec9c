"""Error taxonomy for payment notification processing.

Each processing error carries the Outcome it maps to, so the HTTP layer
never has to inspect exception types:

- ValidationError / AuthenticationError short-circuit before any store access
- NotFoundError / UpdateError short-circuit the successful-payment path
- TransientLogError is recorded on the result and logged, never raised out
- UnexpectedError covers everything else
"""

from __future__ import annotations

from paynotify.models import Outcome


class ConfigurationError(Exception):
    """Raised at startup when required configuration is missing."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required configuration: {', '.join(missing)}")


# ── Store errors ──────────────────────────────────────────────────────────


class StoreError(Exception):
    """A call to the external payment store failed."""


class RecordNotFoundError(StoreError):
    """A lookup did not resolve to exactly one row."""

    def __init__(self, table: str, key: str, matches: int = 0):
        self.table = table
        self.key = key
        self.matches = matches
        super().__init__(f"{table}: expected exactly one row for {key!r}, got {matches}")


# ── Processing errors ─────────────────────────────────────────────────────


class NotificationError(Exception):
    """Base class for errors raised while processing a notification."""

    outcome = Outcome.INTERNAL_ERROR


class ValidationError(NotificationError):
    """Required notification fields are missing or unreadable."""

    outcome = Outcome.BAD_REQUEST

    def __init__(self, missing: list[str] | None = None):
        self.missing = missing or []
        super().__init__(f"Missing required fields: {', '.join(self.missing) or 'body'}")


class AuthenticationError(NotificationError):
    """The notification signature did not match."""

    outcome = Outcome.INVALID_SIGNATURE


class NotFoundError(NotificationError):
    """No single payment record matches the notification's order_id."""

    outcome = Outcome.NOT_FOUND


class UpdateError(NotificationError):
    """Setting the quiz result premium flag failed."""

    outcome = Outcome.UPDATE_FAILED


class TransientLogError(NotificationError):
    """A secondary bookkeeping update failed; logged, not surfaced."""

    outcome = Outcome.ACCEPTED

    def __init__(self, operation: str, transaction_id: str, cause: BaseException | None = None):
        self.operation = operation
        self.transaction_id = transaction_id
        self.cause = cause
        super().__init__(f"{operation} failed for {transaction_id}: {cause}")


class UnexpectedError(NotificationError):
    """Any other fault during processing."""

    outcome = Outcome.INTERNAL_ERROR
