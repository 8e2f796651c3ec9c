"""FastAPI application for the payment notification service.

create_app() wires the explicitly constructed Settings into the store,
signature verifier and notification processor, then installs middleware:

1. CORS (outermost)
2. Request logging
3. Catch-all exception handler -> 500 {"error": "Internal server error"}
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from paynotify.config import Settings
from paynotify.routes import register_status_routes
from paynotify.store import PaymentStore, SupabaseStore
from paynotify.webhooks.handlers import register_notification_routes
from paynotify.webhooks.processor import NotificationProcessor
from paynotify.webhooks.verification import SignatureVerifier

logger = logging.getLogger(__name__)

_LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install timestamped logging on the root logger."""
    logging.basicConfig(level=level.upper(), format=_LOG_FORMAT, force=True)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path and client IP for every request."""

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        logger.info("%s %s - IP: %s", request.method, request.url.path, client_ip)
        logger.debug("Headers: %s", dict(request.headers))
        return await call_next(request)


async def _unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


def _log_banner(settings: Settings) -> None:
    logger.info("=" * 50)
    logger.info("Payment Notification Handler Starting...")
    for key, value in settings.summary().items():
        logger.info("- %s: %s", key, value)
    logger.info("=" * 50)


def create_app(settings: Settings, store: PaymentStore | None = None) -> FastAPI:
    """Build the FastAPI app.

    Args:
        settings: Loaded configuration
        store: Payment store to use; a SupabaseStore is created (and closed
            on shutdown) when omitted
    """
    owns_store = store is None
    if store is None:
        store = SupabaseStore.from_settings(settings)

    verifier = SignatureVerifier(settings.midtrans_server_key)
    processor = NotificationProcessor(verifier, store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _log_banner(settings)
        # Connectivity is reported, not required, to start serving
        await store.check_connection()
        logger.info("Server startup complete - ready to receive notifications")
        try:
            yield
        finally:
            if owns_store:
                await store.aclose()
            logger.info("Process terminated")

    app = FastAPI(title="Midtrans Payment Notification Handler", lifespan=lifespan)

    register_notification_routes(app, processor)
    register_status_routes(app, store)

    app.add_exception_handler(Exception, _unhandled_exception)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app
