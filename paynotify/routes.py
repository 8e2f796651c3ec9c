"""Health and payment-status routes."""

from __future__ import annotations

import logging
import resource
import sys
import time
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from paynotify.errors import RecordNotFoundError, StoreError
from paynotify.store import PaymentStore

logger = logging.getLogger(__name__)

SERVICE_NAME = "Midtrans Payment Notification Handler"


def _memory_usage() -> dict[str, int]:
    """Peak resident set size of this process."""
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # Linux reports KiB, macOS reports bytes
    if sys.platform != "darwin":
        peak *= 1024
    return {"max_rss_bytes": peak}


def register_status_routes(app: FastAPI, store: PaymentStore) -> None:
    """Register /health and /payment-status/{order_id}."""
    started = time.monotonic()

    @app.get("/health")
    async def health():
        """Liveness probe with static service metadata."""
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "uptime": round(time.monotonic() - started, 3),
            "memory": _memory_usage(),
        }

    @app.get("/payment-status/{order_id}")
    async def payment_status(order_id: str):
        """Payment joined with its quiz result and user, for manual checks."""
        logger.info("Payment status request for order: %s", order_id)
        try:
            data = await store.get_payment_status(order_id)
        except RecordNotFoundError:
            logger.error("Payment status not found for order %s", order_id)
            return JSONResponse({"error": "Payment not found"}, status_code=404)
        except StoreError:
            logger.error("Payment status lookup failed for order %s", order_id, exc_info=True)
            return JSONResponse({"error": "Payment not found"}, status_code=404)

        logger.info("Payment status retrieved successfully for order %s", order_id)
        return data
