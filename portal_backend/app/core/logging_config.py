"""
Logging setup for the portal API.

Plain-text records on stderr; the level comes from ``LOG_LEVEL``.
"""

import logging
import sys

from app.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty third-party loggers kept at WARNING
_QUIET_LOGGERS = ("httpx", "httpcore", "PIL", "multipart")


def setup_logging(level: str | None = None) -> logging.Logger:
    """Configure the root ``portal`` logger once and return it."""
    root = logging.getLogger("portal")
    resolved = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    root.setLevel(resolved)

    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(handler)
    root.propagate = False

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root


def get_logger(name: str) -> logging.Logger:
    """Child logger under ``portal``, e.g. ``get_logger("exporter")``."""
    return logging.getLogger(f"portal.{name}")


logger = logging.getLogger("portal")
