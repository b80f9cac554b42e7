"""
Logging setup for the Repo Health API.

Production (ENVIRONMENT=production) writes one JSON object per line for log
aggregation; anything else gets a readable single-line format.
"""

import json
import logging
import sys
from datetime import datetime, timezone

SERVICE_NAME = "repo-health"

DEV_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEV_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Attributes set through logger.xxx(..., extra={...}) that are copied into JSON lines
EXTRA_FIELDS = ("analysis_id", "repository", "provider", "duration")

QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore")


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(
            {key: getattr(record, key) for key in EXTRA_FIELDS if getattr(record, key, None) is not None}
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(environment: str = "development", log_level: str = "INFO", stream=None) -> None:
    """Replace root handlers with a single stream handler for the environment."""
    if environment.lower() == "production":
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(DEV_FORMAT, datefmt=DEV_DATEFMT)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    # Reloads would otherwise stack handlers
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
