"""
Run ID Utility for Schema Comparison

Tags every log record of one comparison run with the same run ID, including
records emitted from snapshot worker threads.
"""

import contextvars
import logging
import uuid
from typing import Optional

_run_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "run_id",
    default=None
)


def new_run_id() -> str:
    """
    Start a new run: generate a run ID and make it current.

    Returns:
        The new run ID (UUID4 string)
    """
    run_id = str(uuid.uuid4())
    _run_id.set(run_id)
    return run_id


def get_run_id() -> Optional[str]:
    """Return the current run ID, or None outside a run."""
    return _run_id.get()


def set_run_id(run_id: str) -> None:
    """
    Make *run_id* current, e.g. inside a worker thread.

    Raises:
        ValueError: If run_id is empty
    """
    if not run_id or not isinstance(run_id, str):
        raise ValueError("Run ID must be a non-empty string")
    _run_id.set(run_id)


def clear_run_id() -> None:
    _run_id.set(None)


class RunIdFilter(logging.Filter):
    """Logging filter that stamps records with the current run ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "run_id"):
            record.run_id = get_run_id()
        return True
