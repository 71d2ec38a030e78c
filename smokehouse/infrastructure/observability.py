"""Structured Logging — JSON log lines tagged with the storefront's business identifiers.

Invariants:
    - Every line carries timestamp, level, logger, message and, inside a request, request_id
    - Known extra fields (order_id, quote_id, provider, trigger...) are emitted when present
    - Calling setup_logging again replaces the handler; lines are never duplicated

Design Decisions:
    - request_id travels in a ContextVar set by api/middleware.py, so service code logs
      it without threading the id through call signatures
    - Plain stdlib logging with a custom formatter; "text" format for local runs
"""

import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

EXTRA_FIELDS = (
    "order_id", "quote_id", "cart_id", "provider", "trigger", "recipient",
    "error_code", "client_ip", "path", "attempt",
)


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = request_id_var.get()
        if request_id:
            entry["request_id"] = request_id
        for key in EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is None:
                continue
            entry[key] = value if isinstance(value, (int, float, bool)) else str(value)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


_handler: logging.Handler | None = None


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    global _handler
    handler = logging.StreamHandler()
    handler.setFormatter(
        JSONFormatter() if fmt == "json"
        else logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")
    )
    if _handler is not None:
        logging.root.removeHandler(_handler)
    _handler = handler
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    # httpx logs every provider request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
