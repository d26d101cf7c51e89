import json
import logging

import pytest

from jsonparquet.observability.logger import RequestTimer, generate_request_id, log_event, logger


class _Collect(logging.Handler):
    def __init__(self):
        super().__init__()
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


@pytest.fixture
def events():
    handler = _Collect()
    logger.addHandler(handler)
    yield handler.messages
    logger.removeHandler(handler)


def test_event_is_one_json_object(events):
    log_event("PARQUET_WRITE_COMPLETED", {"rows": 2})

    event = json.loads(events[-1])
    assert event["event_type"] == "PARQUET_WRITE_COMPLETED"
    assert event["level"] == "INFO"
    assert event["rows"] == 2
    assert "timestamp" in event


def test_non_json_values_are_stringified(events):
    log_event("SCHEMA_FIELD_FAILED", {"error": ValueError("bad")}, level=logging.ERROR)

    event = json.loads(events[-1])
    assert event["level"] == "ERROR"
    assert event["error"] == "bad"


def test_events_below_level_are_dropped(events):
    log_event("DETAIL", {}, level=logging.DEBUG)
    assert events == []


def test_request_helpers():
    assert generate_request_id() != generate_request_id()
    assert RequestTimer().duration() >= 0
