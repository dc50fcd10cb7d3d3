"""Tests for GridSettings and logging setup."""

import logging
from pathlib import Path

import pytest

from oppgrid.debug_trace import logger, perf_timer, setup_debug_logging
from oppgrid.models.constants import SEARCH_DEBOUNCE_MS
from oppgrid.settings import GridSettings


class TestGridSettings:
    """Tests for command-line parsing."""

    def test_defaults(self):
        settings = GridSettings.from_argv([])
        assert settings.data_dir == Path("data")
        assert settings.search_debounce_ms == SEARCH_DEBOUNCE_MS
        assert settings.debug is False

    def test_flags(self):
        settings = GridSettings.from_argv(["-data", "/tmp/opps", "-debounce", "150", "-debug"])
        assert settings.data_dir == Path("/tmp/opps")
        assert settings.search_debounce_ms == 150
        assert settings.debug is True

    @pytest.mark.parametrize("flag", ["-data", "-debounce"])
    def test_missing_value(self, flag):
        with pytest.raises(ValueError):
            GridSettings.from_argv([flag])


class TestDebugLogging:
    """Tests for setup_debug_logging()."""

    @pytest.fixture(autouse=True)
    def clean_logger(self):
        saved_handlers = list(logger.handlers)
        saved_level = logger.level
        logger.handlers.clear()
        yield
        logger.handlers[:] = saved_handlers
        logger.setLevel(saved_level)

    def test_debug_adds_console_handler(self):
        setup_debug_logging(debug=True)
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_debug_setup_is_idempotent(self):
        setup_debug_logging(debug=True)
        setup_debug_logging(debug=True)
        assert len(logger.handlers) == 1

    def test_non_debug_is_warning_only(self):
        setup_debug_logging(debug=False)
        assert logger.level == logging.WARNING
        assert logger.handlers == []

    def test_perf_timer_logs(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="oppgrid"):
            with perf_timer("commit", row_count=3):
                pass
        assert "PERF: commit (3 rows)" in caplog.text

    def test_perf_timer_silent_above_debug(self, caplog):
        setup_debug_logging(debug=False)
        with caplog.at_level(logging.WARNING, logger="oppgrid"):
            with perf_timer("commit", row_count=3):
                pass
        assert "PERF" not in caplog.text
