"""Shared fakes: a virtual-clock Tk root, task runners and a data source."""

from datetime import date

import pytest

from oppgrid.data.data_source import DataSource
from oppgrid.models.record import Record


class FakeTkRoot:
    """Stands in for tk.Tk: after()/after_cancel() on a virtual clock.

    Callbacks only run when the test calls advance(ms).
    """

    def __init__(self):
        self.now = 0
        self._timers = {}
        self._next_id = 0

    def after(self, ms, callback):
        self._next_id += 1
        after_id = f"after#{self._next_id}"
        self._timers[after_id] = (self.now + ms, self._next_id, callback)
        return after_id

    def after_cancel(self, after_id):
        self._timers.pop(after_id, None)

    @property
    def pending_timers(self):
        return len(self._timers)

    def advance(self, ms):
        """Move the clock forward, running due callbacks in order."""
        target = self.now + ms
        while True:
            due = [(when, seq, aid) for aid, (when, seq, _cb) in self._timers.items() if when <= target]
            if not due:
                break
            when, _seq, after_id = min(due)
            _when, _seq, callback = self._timers.pop(after_id)
            self.now = when
            callback()
        self.now = target


class ImmediateTaskRunner:
    """Runs work synchronously and calls on_done right away."""

    def __init__(self):
        self.calls = 0

    def run(self, work, on_done):
        self.calls += 1
        try:
            result = work()
        except Exception as exc:
            on_done(None, exc)
            return
        on_done(result, None)


class ManualTaskRunner:
    """Queues work; the test completes tasks in whatever order it likes."""

    def __init__(self):
        self.tasks = []

    def run(self, work, on_done):
        self.tasks.append((work, on_done))

    @property
    def pending(self):
        return len(self.tasks)

    def complete(self, index=0, result=None, error=None):
        """Finish a queued task with a canned result or error."""
        _work, on_done = self.tasks.pop(index)
        on_done(result, error)

    def run_task(self, index=0):
        """Finish a queued task by actually running its work."""
        work, on_done = self.tasks.pop(index)
        try:
            result = work()
        except Exception as exc:
            on_done(None, exc)
            return
        on_done(result, None)


class FakeDataSource(DataSource):
    """In-memory backend with call counters."""

    def __init__(self, records=None, stages=None, accounts=None):
        self.records = list(records or [])
        self.stages = list(stages or ["Prospecting", "Closed Won"])
        self.accounts = list(accounts or [])
        self.list_calls = 0
        self.search_calls = []
        self.update_calls = []
        self.update_error = None
        self.list_error = None

    def list_records(self):
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        return list(self.records)

    def list_stage_options(self):
        return list(self.stages)

    def search_related(self, term):
        self.search_calls.append(term)
        return [a for a in self.accounts if term.lower() in a["Name"].lower()]

    def update_batch(self, records):
        self.update_calls.append([dict(r) for r in records])
        if self.update_error is not None:
            raise self.update_error
        return [Record.from_dict(r) for r in records]


def make_record(record_id="006A", **overrides):
    values = {
        "id": record_id,
        "name": "Acme Renewal",
        "account_id": "001A",
        "account_name": "Acme",
        "stage_name": "Prospecting",
        "close_date": date(2025, 1, 31),
        "is_private": False,
    }
    values.update(overrides)
    return Record(**values)


@pytest.fixture
def tk_root():
    return FakeTkRoot()


@pytest.fixture
def records():
    return [
        make_record("006A"),
        make_record(
            "006B",
            name="Globex Expansion",
            account_id="001B",
            account_name="Globex",
            stage_name="Closed Won",
            close_date=date(2025, 6, 30),
            is_private=True,
        ),
        make_record(
            "006C",
            name="Initech Pilot",
            account_id=None,
            account_name="",
            stage_name="Prospecting",
            close_date=None,
        ),
    ]
