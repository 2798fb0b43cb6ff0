"""Process-wide logging setup."""

import logging
import sys

from mailprefs.core.config import Settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(settings: Settings) -> logging.Handler:
    """Send logs to stdout in production, to ``LOG_FILE`` in development.

    Development falls back to stdout when ``LOG_TO_FILE`` is false or the
    log file cannot be opened.
    """
    level = logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL.upper()
    handler: logging.Handler = logging.StreamHandler(sys.stdout)
    reason = "production environment" if settings.is_production else "LOG_TO_FILE=false"

    if not settings.is_production and settings.LOG_TO_FILE:
        try:
            handler = logging.FileHandler(settings.LOG_FILE)
            reason = f"writing to {settings.LOG_FILE}"
        except OSError as e:
            reason = f"could not open {settings.LOG_FILE} ({e})"

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[handler], force=True)
    logging.getLogger("mailprefs").info("Logging configured: %s", reason)
    return handler


def mask_secret(value: str, visible: int = 4) -> str:
    """Show only the first few characters of a credential."""
    if not value:
        return ""
    return value[:visible] + "*" * max(len(value) - visible, 3)
