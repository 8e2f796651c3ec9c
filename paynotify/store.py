"""Payment store: Supabase (PostgREST) access for payments and quiz results.

The processor only depends on the PaymentStore protocol; SupabaseStore is the
production implementation over the Supabase REST API using httpx.

Every call is a network round trip and may fail. Transport errors and
non-2xx responses surface as StoreError; lookups that do not resolve to
exactly one row raise RecordNotFoundError. No retries here.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

import httpx

from paynotify.errors import RecordNotFoundError, StoreError
from paynotify.models import PaymentRecord, PaymentStatus

logger = logging.getLogger(__name__)

# Columns joined into the payment-status view
_STATUS_SELECT = (
    "*,"
    "quiz_results!inner(id,is_premium,personality_type),"
    "users!inner(email,full_name)"
)


@runtime_checkable
class PaymentStore(Protocol):
    """Lookup-and-update capability the notification processor depends on."""

    async def find_payment_by_transaction_id(self, transaction_id: str) -> PaymentRecord:
        """Return the single payment with this transaction_id."""
        ...

    async def update_quiz_result_premium(
        self, quiz_result_id: str, is_premium: bool = True
    ) -> None:
        """Set quiz_results.is_premium."""
        ...

    async def update_payment_status(
        self,
        transaction_id: str,
        status: PaymentStatus,
        completed_at: datetime | None = None,
    ) -> None:
        """Set payments.status (and payment_date when completed_at is given)."""
        ...

    async def get_payment_status(self, transaction_id: str) -> dict[str, Any]:
        """Payment row joined with its quiz result and user."""
        ...

    async def check_connection(self) -> bool:
        """Cheap connectivity probe. Never raises."""
        ...

    async def aclose(self) -> None:
        ...


class SupabaseStore:
    """PaymentStore backed by the Supabase REST API."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    @classmethod
    def from_settings(cls, settings) -> "SupabaseStore":
        """Create a store with its own AsyncClient from Settings."""
        base_url = settings.supabase_url.rstrip("/") + "/rest/v1"
        key = settings.supabase_service_key
        client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "apikey": key,
                "Authorization": f"Bearer {key}",
                "Content-Type": "application/json",
            },
            timeout=settings.store_timeout,
        )
        return cls(client)

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str],
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method, f"/{table}", params=params, json=json
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StoreError(
                f"{method} {table} returned HTTP {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise StoreError(f"{method} {table} failed: {e}") from e
        return response

    async def _select_one(self, table: str, select: str, key: str, value: str) -> dict[str, Any]:
        response = await self._request(
            "GET", table, params={"select": select, key: f"eq.{value}"}
        )
        try:
            rows = response.json()
        except ValueError as e:
            raise StoreError(f"GET {table} returned invalid JSON") from e
        if not isinstance(rows, list) or len(rows) != 1:
            raise RecordNotFoundError(
                table, value, len(rows) if isinstance(rows, list) else 0
            )
        return rows[0]

    async def find_payment_by_transaction_id(self, transaction_id: str) -> PaymentRecord:
        row = await self._select_one(
            "payments", "quiz_result_id,user_id", "transaction_id", transaction_id
        )
        return PaymentRecord(
            transaction_id=transaction_id,
            quiz_result_id=row["quiz_result_id"],
            user_id=row.get("user_id"),
        )

    async def update_quiz_result_premium(
        self, quiz_result_id: str, is_premium: bool = True
    ) -> None:
        await self._request(
            "PATCH",
            "quiz_results",
            params={"id": f"eq.{quiz_result_id}"},
            json={"is_premium": is_premium},
        )

    async def update_payment_status(
        self,
        transaction_id: str,
        status: PaymentStatus,
        completed_at: datetime | None = None,
    ) -> None:
        fields: dict[str, Any] = {"status": PaymentStatus(status).value}
        if completed_at is not None:
            fields["payment_date"] = completed_at.isoformat()
        await self._request(
            "PATCH",
            "payments",
            params={"transaction_id": f"eq.{transaction_id}"},
            json=fields,
        )

    async def get_payment_status(self, transaction_id: str) -> dict[str, Any]:
        return await self._select_one(
            "payments", _STATUS_SELECT, "transaction_id", transaction_id
        )

    async def check_connection(self) -> bool:
        logger.info("Testing Supabase connection...")
        try:
            await self._request("GET", "users", params={"select": "count", "limit": "1"})
        except StoreError:
            logger.error("Supabase connection test failed", exc_info=True)
            return False
        logger.info("Supabase connection successful")
        return True

    async def aclose(self) -> None:
        await self._client.aclose()
