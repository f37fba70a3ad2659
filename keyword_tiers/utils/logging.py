"""Logging configuration for CLI and pipeline runs."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Literal, TextIO

from keyword_tiers.config import get_settings

# Third-party loggers that are too chatty below WARNING
NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")

# Attributes passed through ``extra=`` that JSON output keeps
CONTEXT_FIELDS = ("project_id", "tier", "keyword_id", "attempt", "status_code")


def setup_logging(
    level: str | None = None,
    format_type: Literal["json", "text"] | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    Configure the root logger.

    Logs go to stderr by default because the CLI prints its tables and
    results on stdout.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Output format (json or text)
        stream: Destination stream, stderr when omitted
    """
    settings = get_settings()
    level = (level or settings.log_level).upper()
    format_type = format_type or settings.log_format

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    if format_type == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with run context such as project and tier."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)
