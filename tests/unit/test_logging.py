"""
Unit tests for structured logging setup.
"""

import io
import json
import logging

import pytest

from pgqueue.observability.logging import bind_context, clear_context, setup_logging


@pytest.fixture
def stream():
    root = logging.getLogger()
    handlers, level = root.handlers, root.level
    out = io.StringIO()
    yield out
    clear_context()
    root.handlers, root.level = handlers, level


def test_json_output_carries_extra_fields(stream: io.StringIO):
    """Test that ``extra`` fields and bound context end up in the JSON event."""
    setup_logging(log_level="DEBUG", log_format="json", stream=stream)
    bind_context(worker_id="worker-1")

    logging.getLogger("pgqueue.claim").debug(
        "Released claim", extra={"task_id": "28667ce4-1999-4af4-9ff2-1757b3844048"}
    )

    event = json.loads(stream.getvalue().splitlines()[-1])
    assert event["event"] == "Released claim"
    assert event["level"] == "debug"
    assert event["task_id"] == "28667ce4-1999-4af4-9ff2-1757b3844048"
    assert event["worker_id"] == "worker-1"
    assert "timestamp" in event


def test_level_filtering(stream: io.StringIO):
    setup_logging(log_level="WARNING", log_format="json", stream=stream)

    logging.getLogger("pgqueue.client").info("Truncated queue")

    assert stream.getvalue() == ""


def test_unknown_format(stream: io.StringIO):
    with pytest.raises(ValueError):
        setup_logging(log_format="xml", stream=stream)
