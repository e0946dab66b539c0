"""Logging configuration for the application."""

import logging
import sys

from basin.core.config import get_settings
from basin.core.request_context import get_request_id, get_tenant_id

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[tenant=%(tenant_id)s request=%(request_id)s] %(message)s"
)


class RequestContextFilter(logging.Filter):
    """Attach the current tenant and request ID (or '-') to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "tenant_id"):
            record.tenant_id = get_tenant_id() or "-"
        if not hasattr(record, "request_id"):
            record.request_id = get_request_id() or "-"
        return True


def setup_logging() -> None:
    """Configure application-wide logging.

    Level is DEBUG when settings.debug is True, otherwise INFO.
    Output goes to stdout.
    """
    settings = get_settings()
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter())
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format=LOG_FORMAT,
        handlers=[handler],
    )
    # SQL echo goes through sqlalchemy.engine; keep it at WARNING unless asked for.
    if not settings.database_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
