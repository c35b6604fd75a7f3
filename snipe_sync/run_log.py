"""Per-run log buffer feeding the plain-text summary returned to the caller."""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List

PACKAGE_LOGGER = 'snipe_sync'

LEVEL_LABELS = {
    logging.INFO: 'INFO',
    logging.WARNING: 'WARN',
    logging.ERROR: 'ERROR',
    logging.CRITICAL: 'ERROR',
}


@dataclass
class RunCounters:
    successful_checkouts: int = 0
    checkins: int = 0
    accessories_created: int = 0
    warnings: int = 0
    errors: int = 0


class RunLogBuffer(logging.Handler):
    """Collects INFO and above as ``[LEVEL] message`` lines; DEBUG is never captured."""

    def __init__(self, level: int = logging.INFO):
        super().__init__(level)
        self.lines: List[str] = []
        self.counters = RunCounters()

    def emit(self, record: logging.LogRecord) -> None:
        label = LEVEL_LABELS.get(record.levelno)
        if label is None:
            return
        try:
            message = record.getMessage()
        except Exception:
            self.handleError(record)
            return
        self.lines.append(f"[{label}] {message}")

    def clear(self) -> None:
        self.lines = []
        self.counters = RunCounters()


@contextmanager
def capture_run_log(logger_name: str = PACKAGE_LOGGER) -> Iterator[RunLogBuffer]:
    """Attach a fresh buffer to the package logger for the duration of one run."""
    target = logging.getLogger(logger_name)
    buffer = RunLogBuffer()
    previous_level = target.level
    if target.getEffectiveLevel() > logging.INFO:
        target.setLevel(logging.INFO)
    target.addHandler(buffer)
    try:
        yield buffer
    finally:
        target.removeHandler(buffer)
        target.setLevel(previous_level)
