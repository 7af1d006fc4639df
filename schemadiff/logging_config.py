"""
Logging setup for the schemadiff command line tool.

Human-readable console logging by default; structured JSON lines when
requested (--json-logs or JSON_LOGGING=true).
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

from schemadiff.utils.correlation import RunIdFilter

CONSOLE_FORMAT = "[%(asctime)s] %(levelname)s - %(message)s"
CONSOLE_DATEFMT = "%Y-%m-%d %H:%M:%S"


class StructuredJSONFormatter(logging.Formatter):
    """JSON formatter with run ID support."""

    def format(self, record):
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": getattr(record, "run_id", None),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add extra fields
        if hasattr(record, "table"):
            log_data["table"] = record.table
        if hasattr(record, "side"):
            log_data["side"] = record.side
        if hasattr(record, "duration"):
            log_data["duration_seconds"] = record.duration

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def json_logging_enabled(json_logs: Optional[bool] = None) -> bool:
    if json_logs is not None:
        return json_logs
    return os.getenv("JSON_LOGGING", "false").lower() == "true"


def configure_logging(verbose: bool = False, json_logs: Optional[bool] = None, stream=None) -> logging.Logger:
    """
    Configure the ``schemadiff`` logger hierarchy.

    Args:
        verbose: Log at DEBUG instead of INFO
        json_logs: Emit JSON lines; defaults to the JSON_LOGGING env var
        stream: Output stream (stderr by default, keeping stdout for reports)

    Returns:
        The configured package logger
    """
    logger = logging.getLogger("schemadiff")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_logging_enabled(json_logs):
        handler.setFormatter(StructuredJSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=CONSOLE_DATEFMT))
    handler.addFilter(RunIdFilter())

    logger.addHandler(handler)
    return logger
