"""
Structured event log for the compiler, codec and service.

Each event is one JSON object on stdout:

    {"event_type": "PARQUET_WRITE_COMPLETED", "level": "INFO",
     "timestamp": "2024-01-15T09:30:00.123456+00:00", "rows": 2, ...}

Set JSONPARQUET_LOG_LEVEL to filter (DEBUG, INFO, WARNING, ERROR) and
LOG_COLOR=1 to colour events by level on a terminal.
"""

import json
import logging
import os
import sys
import time
import uuid
from datetime import datetime, timezone

LOGGER_NAME = "json_parquet_accelerator"

_RESET = "\033[0m"
_LEVEL_COLORS = {
    logging.DEBUG: "\033[2m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
}


def _use_color() -> bool:
    return os.getenv("LOG_COLOR", "0") == "1" and sys.stdout.isatty()


def get_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(os.getenv("JSONPARQUET_LOG_LEVEL", "INFO").upper())
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


logger = get_logger()


def generate_request_id() -> str:
    return uuid.uuid4().hex


def log_event(event_type: str, payload: dict, level: int = logging.INFO):
    """
    Emit one structured event. Payload values that are not JSON types
    (paths, exceptions, ...) are written with str().
    """
    if not logger.isEnabledFor(level):
        return

    record = {
        "event_type": event_type,
        "level": logging.getLevelName(level),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **payload,
    }
    text = json.dumps(record, default=str)

    if _use_color():
        text = f"{_LEVEL_COLORS.get(level, '')}{text}{_RESET}"
    logger.log(level, text)


class RequestTimer:
    """
    Wall-clock timer for a single compile / write / request.
    """

    def __init__(self):
        self.start_time = time.perf_counter()

    def duration(self) -> float:
        return round(time.perf_counter() - self.start_time, 4)
