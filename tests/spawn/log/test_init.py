"""Tests for the aspawn.log factory helpers."""

import io
import logging

import pytest

from aspawn.log import InvalidLogLevelError, LogConstants, create_lg, resolve_level


class TestResolveLevel:
    """Tests for resolve_level()."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("debug", logging.DEBUG),
            ("INFO", logging.INFO),
            ("warning", logging.WARNING),
            ("error", logging.ERROR),
            ("trace", LogConstants.CUSTOM_LEVELS["TRACE"]),
            ("15", 15),
            (20, 20),
            (False, False),
            ("false", False),
        ],
    )
    def test_valid(self, name, expected):
        assert resolve_level(name) == expected

    def test_invalid(self):
        with pytest.raises(InvalidLogLevelError, match="Invalid log level: loud"):
            resolve_level("loud")


class TestCreateLg:
    """Tests for create_lg()."""

    def test_level_filtering(self):
        stream = io.StringIO()
        lg = create_lg("aspawn.test", "warning", stream=stream)
        lg.info("hidden")
        lg.warning("shown")
        assert "hidden" not in stream.getvalue()
        assert "shown" in stream.getvalue()

    def test_loggers_do_not_share_handlers(self):
        a = create_lg("aspawn.same", "info", stream=io.StringIO())
        b = create_lg("aspawn.same", "info", stream=io.StringIO())
        assert a is not b
        assert len(a.handlers) == 1
        assert len(b.handlers) == 1
