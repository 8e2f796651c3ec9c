"""Shared fixtures for the payment notification test suite."""

from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Any

import pytest
from fastapi.testclient import TestClient

from paynotify.config import Settings
from paynotify.errors import RecordNotFoundError, StoreError
from paynotify.models import PaymentRecord, PaymentStatus
from paynotify.serve import create_app

SERVER_KEY = "SB-Mid-server-test-key"


def sign(order_id: str, status_code: str, gross_amount: str, key: str = SERVER_KEY) -> str:
    """Midtrans signature_key, computed independently of the code under test."""
    return hashlib.sha512(f"{order_id}{status_code}{gross_amount}{key}".encode()).hexdigest()


def make_notification(
    order_id: str = "ORDER-1001",
    transaction_status: str = "settlement",
    status_code: str = "200",
    gross_amount: str = "25000.00",
    **extra: Any,
) -> dict[str, Any]:
    """A signed notification body as Midtrans would send it."""
    body = {
        "transaction_status": transaction_status,
        "transaction_id": "b5f6c1e2-0000-4a6b-9d1e-123456789abc",
        "order_id": order_id,
        "gross_amount": gross_amount,
        "status_code": status_code,
        "payment_type": "qris",
        "fraud_status": "accept",
        "signature_key": sign(order_id, status_code, gross_amount),
    }
    body.update(extra)
    return body


class FakeStore:
    """In-memory PaymentStore that records every call."""

    def __init__(self) -> None:
        self.payments: dict[str, dict[str, Any]] = {}
        self.quiz_results: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple] = []
        self.fail_on: set[str] = set()
        self.connected = True
        self.closed = False

    def add_payment(
        self,
        transaction_id: str,
        quiz_result_id: str = "qr-1",
        user_id: str = "user-1",
        status: str = "pending",
    ) -> None:
        self.payments[transaction_id] = {
            "transaction_id": transaction_id,
            "quiz_result_id": quiz_result_id,
            "user_id": user_id,
            "status": status,
            "payment_date": None,
        }
        self.quiz_results.setdefault(
            quiz_result_id,
            {"id": quiz_result_id, "is_premium": False, "personality_type": "INTJ"},
        )

    def _maybe_fail(self, name: str) -> None:
        if name in self.fail_on:
            raise StoreError(f"{name} failed")

    async def find_payment_by_transaction_id(self, transaction_id: str) -> PaymentRecord:
        self.calls.append(("find_payment_by_transaction_id", transaction_id))
        self._maybe_fail("find_payment_by_transaction_id")
        row = self.payments.get(transaction_id)
        if row is None:
            raise RecordNotFoundError("payments", transaction_id)
        return PaymentRecord(transaction_id, row["quiz_result_id"], row["user_id"])

    async def update_quiz_result_premium(self, quiz_result_id: str, is_premium: bool = True) -> None:
        self.calls.append(("update_quiz_result_premium", quiz_result_id, is_premium))
        self._maybe_fail("update_quiz_result_premium")
        self.quiz_results[quiz_result_id]["is_premium"] = is_premium

    async def update_payment_status(
        self,
        transaction_id: str,
        status: PaymentStatus,
        completed_at: datetime | None = None,
    ) -> None:
        self.calls.append(("update_payment_status", transaction_id, status, completed_at))
        self._maybe_fail("update_payment_status")
        row = self.payments.get(transaction_id)
        if row is not None:
            row["status"] = PaymentStatus(status).value
            if completed_at is not None:
                row["payment_date"] = completed_at.isoformat()

    async def get_payment_status(self, transaction_id: str) -> dict[str, Any]:
        self.calls.append(("get_payment_status", transaction_id))
        self._maybe_fail("get_payment_status")
        row = self.payments.get(transaction_id)
        if row is None:
            raise RecordNotFoundError("payments", transaction_id)
        return {
            **row,
            "quiz_results": self.quiz_results[row["quiz_result_id"]],
            "users": {"email": "user@example.com", "full_name": "Test User"},
        }

    async def check_connection(self) -> bool:
        return self.connected

    async def aclose(self) -> None:
        self.closed = True

    def method_calls(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-role-key",
        midtrans_server_key=SERVER_KEY,
        _env_file=None,
    )


@pytest.fixture
def client(settings, store):
    """TestClient over the full app with an in-memory store."""
    app = create_app(settings, store=store)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def notification():
    """Factory for signed notification bodies (see make_notification)."""
    return make_notification


@pytest.fixture
def server_key() -> str:
    return SERVER_KEY


@pytest.fixture
def signer():
    """Factory computing a valid signature_key for the test server key."""
    return sign
