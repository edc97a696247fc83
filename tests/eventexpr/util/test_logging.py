import io
import logging

import pytest
from structlog.testing import capture_logs

from eventexpr.util.logging import enable_logging, getLogger, parse_log_level


@pytest.mark.parametrize(
    "name,level",
    [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("warn", logging.WARNING), (None, logging.WARNING), (10, 10)],
)
def test_parse_log_level(name, level):
    assert parse_log_level(name) == level


def test_unknown_level():
    with pytest.raises(ValueError, match="Unknown log level"):
        parse_log_level("loud")


def test_fields_are_captured():
    with capture_logs() as logs:
        getLogger("eventexpr.test").info("lookup_done", function="commit", ms=12)
    assert logs == [
        {
            "event": "lookup_done",
            "function": "commit",
            "ms": 12,
            "logger": "eventexpr.test",
            "log_level": "info",
        }
    ]


def test_fields_are_rendered():
    stream = io.StringIO()
    enable_logging("debug", stream=stream)
    getLogger("eventexpr.test").debug("lookup_done", function="commit", ms=12)
    line = stream.getvalue()
    assert "lookup_done" in line
    assert "function=commit" in line
    assert "ms=12" in line
    assert "eventexpr.test" in line
    assert "debug" in line


def test_level_filters():
    stream = io.StringIO()
    enable_logging("warning", stream=stream)
    getLogger("eventexpr.test").info("quiet")
    assert stream.getvalue() == ""


def test_enable_twice_replaces_stream():
    first, second = io.StringIO(), io.StringIO()
    enable_logging("info", stream=first)
    enable_logging("info", stream=second)
    getLogger("eventexpr.test").info("moved")
    assert first.getvalue() == ""
    assert "moved" in second.getvalue()
