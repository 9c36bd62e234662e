"""LiveBadge: Structured JSON Logging."""

import logging
import json
import sys
from datetime import datetime, timezone

ROOT_LOGGER = "livebadge"
EXTRA_FIELDS = (
    "badge_id",
    "metric_kind",
    "state",
    "tier",
    "duration_ms",
    "status_code",
)


class JSONFormatter(logging.Formatter):
    """Produces structured JSON log lines for production observability."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        # Attach extra fields if present
        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)
        return json.dumps(log_entry)


def _root_logger() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)
        root.setLevel(logging.INFO)
    return root


def configure_logging(level: str) -> None:
    """Apply the configured level to every LiveBadge logger."""
    _root_logger().setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str) -> logging.Logger:
    """Return a named logger under the structured JSON handler."""
    _root_logger()
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
