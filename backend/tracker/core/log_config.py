"""
Logging configuration.

WHAT: Root logger setup with the current request id on every record.

WHY: Mutations, denials and upstream failures are logged from services
that never see the Request object. The request id lets a single request's
lines be grepped out of interleaved async output.

HOW: RequestIdFilter reads the ContextVar set by RequestContextMiddleware
and stamps record.request_id ("-" outside a request).
"""

import logging
import sys

from tracker.middleware.request_context import get_request_context


LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s: %(message)s"


class RequestIdFilter(logging.Filter):
    """Attach the current request id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = get_request_context()
        record.request_id = context.request_id if context else "-"
        return True


def configure_logging(level_name: str = "INFO") -> None:
    """
    Set up a single stderr handler on the root logger.

    Args:
        level_name: Log level name, e.g. "INFO" or "DEBUG"
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    root = logging.getLogger()
    # Remove existing handlers to prevent duplicates when the app is rebuilt
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())
    handler.setLevel(level)
    root.addHandler(handler)
    root.setLevel(level)

    # Quieten noisy libraries
    for noisy in ("sqlalchemy.engine", "httpx", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
