"""Run the payment notification server: python -m paynotify."""

from __future__ import annotations

import logging
import sys

from paynotify.config import load_settings
from paynotify.errors import ConfigurationError
from paynotify.serve import configure_logging, create_app

logger = logging.getLogger("paynotify")


def main() -> int:
    configure_logging()
    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error("Refusing to start: %s", e)
        return 1

    configure_logging(settings.log_level)

    import uvicorn

    app = create_app(settings)
    logger.info("Notification endpoint: http://%s:%d/payment-notification", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
