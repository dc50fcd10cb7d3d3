"""Unit tests for TkTaskRunner."""

from unittest.mock import MagicMock

import pytest

from oppgrid.services import task_runner as task_runner_module
from oppgrid.services.task_runner import TkTaskRunner

POLL_MS = 50


class InlineThread:
    """Runs the target synchronously when started."""

    def __init__(self, target, daemon=None):
        self._target = target

    def start(self):
        self._target()


@pytest.fixture
def inline_threads(monkeypatch):
    monkeypatch.setattr(task_runner_module.threading, "Thread", InlineThread)


@pytest.fixture
def runner(tk_root, inline_threads):
    return TkTaskRunner(tk_root, POLL_MS)


class TestTaskRunner:
    """Tests for result delivery through after() polling."""

    def test_result_delivered_on_poll(self, runner, tk_root):
        on_done = MagicMock()
        runner.run(lambda: 42, on_done)

        on_done.assert_not_called()
        assert runner.pending == 1

        tk_root.advance(POLL_MS)

        on_done.assert_called_once_with(42, None)
        assert runner.pending == 0
        assert tk_root.pending_timers == 0

    def test_error_delivered(self, runner, tk_root):
        on_done = MagicMock()
        error = RuntimeError("offline")

        def work():
            raise error

        runner.run(work, on_done)
        tk_root.advance(POLL_MS)

        on_done.assert_called_once_with(None, error)

    def test_single_poll_for_many_tasks(self, runner, tk_root):
        on_done = MagicMock()
        runner.run(lambda: 1, on_done)
        runner.run(lambda: 2, on_done)

        assert tk_root.pending_timers == 1
        tk_root.advance(POLL_MS)
        assert [c.args for c in on_done.call_args_list] == [(1, None), (2, None)]

    def test_handler_exception_is_contained(self, runner, tk_root):
        bad = MagicMock(side_effect=ValueError("boom"))
        good = MagicMock()
        runner.run(lambda: 1, bad)
        runner.run(lambda: 2, good)

        tk_root.advance(POLL_MS)

        good.assert_called_once_with(2, None)
        assert runner.pending == 0

    def test_close_stops_delivery(self, runner, tk_root):
        on_done = MagicMock()
        runner.run(lambda: 1, on_done)
        runner.close()
        tk_root.advance(POLL_MS * 2)

        on_done.assert_not_called()
        runner.run(lambda: 2, on_done)
        assert runner.pending == 1

    def test_keeps_polling_while_pending(self, tk_root):
        """Unfinished work reschedules the poll."""
        runner = TkTaskRunner(tk_root, POLL_MS)
        runner._pending = 1
        runner._schedule_poll()

        tk_root.advance(POLL_MS)
        assert tk_root.pending_timers == 1
