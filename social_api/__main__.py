"""
Social API — Process Entry Point
==================================

Usage:
    python -m social_api
    PORT=9000 social-api

Exit codes:
    0  clean shutdown after SIGINT/SIGTERM
    1  shutdown deadline exceeded, listener failure (exit policy),
       invalid environment settings or conflicting routes
"""

import asyncio
import logging
import sys

from pydantic import ValidationError

from social_api.config import get_settings
from social_api.exceptions import ConfigurationError
from social_api.lifecycle import ServerLifecycle

logger = logging.getLogger("social_api")


def main() -> None:
    try:
        app_settings = get_settings()
    except ValidationError as exc:
        logger.error("Invalid settings: %s", exc)
        sys.exit(1)

    lifecycle = ServerLifecycle(app_settings)
    try:
        exit_code = asyncio.run(lifecycle.run())
    except ConfigurationError as exc:
        logger.error("Configuration error: %s | Context: %s", exc.message, exc.context)
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
