"""
Logging Setup

Configures the standard library root logger from LoggingSettings.
"""

import json
import logging
from datetime import datetime, timezone

from studytrust.config import Settings, get_settings


class JSONFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(settings: Settings | None = None) -> None:
    """
    Install a single stream handler on the root logger.

    Safe to call more than once; earlier handlers installed here are replaced.
    """
    settings = settings or get_settings()
    root = logging.getLogger()

    for handler in list(root.handlers):
        if getattr(handler, "_studytrust", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler._studytrust = True  # type: ignore[attr-defined]
    if settings.logging.log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root.addHandler(handler)
    root.setLevel(settings.logging.log_level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
