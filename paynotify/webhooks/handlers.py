"""Webhook HTTP handler: FastAPI route for Midtrans payment notifications.

The handler:
1. Reads and parses the JSON body
2. Hands it to the NotificationProcessor
3. Maps the processing outcome to a status code and JSON body

Security contract:
- Never return error details or stack traces to the gateway
- Return 200 for unrecognized transaction statuses (acknowledged, ignored)
- Return 400 for missing fields and signature failures
"""

from __future__ import annotations

import json
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from paynotify.models import Outcome
from paynotify.webhooks.processor import NotificationProcessor, ProcessingResult

logger = logging.getLogger(__name__)


async def _handle_notification(request: Request, processor: NotificationProcessor) -> JSONResponse:
    body = await request.body()

    try:
        payload = json.loads(body) if body else {}
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.error("Notification body is not valid JSON (%d bytes)", len(body))
        result = ProcessingResult(outcome=Outcome.BAD_REQUEST)
        return JSONResponse(result.to_response(), status_code=result.status_code)

    result = await processor.process(payload)
    return JSONResponse(result.to_response(), status_code=result.status_code)


def register_notification_routes(app: FastAPI, processor: NotificationProcessor) -> None:
    """Register the payment notification endpoint on the FastAPI app."""

    @app.post("/payment-notification")
    async def payment_notification(request: Request):
        """Receive Midtrans HTTP notifications (signature-verified)."""
        return await _handle_notification(request, processor)

    logger.info("Webhook route registered: POST /payment-notification")
