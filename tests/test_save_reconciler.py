"""Tests for SaveReconciler load/save/cancel orchestration."""

from unittest.mock import MagicMock

import pytest
from conftest import FakeDataSource, ImmediateTaskRunner, ManualTaskRunner, make_record

from oppgrid.data.data_source import BackendError
from oppgrid.data.record_store import RecordStore
from oppgrid.models.constants import Severity
from oppgrid.models.record import LookupOption
from oppgrid.services.save_reconciler import SaveReconciler


@pytest.fixture
def data_source(records):
    return FakeDataSource(records)


@pytest.fixture
def store(tk_root):
    return RecordStore(tk_root)


@pytest.fixture
def notify():
    return MagicMock()


@pytest.fixture
def reconciler(store, data_source, notify):
    r = SaveReconciler(store, data_source, ImmediateTaskRunner(), notify=notify)
    r.load()
    return r


def _last_notification(notify):
    return notify.call_args[0][0]


class TestLoad:
    """Tests for load() and refresh()."""

    def test_load_fills_store(self, reconciler, store, data_source):
        assert [row.id for row in store.rows] == ["006A", "006B", "006C"]
        assert data_source.list_calls == 1

    def test_refresh_discards_edits(self, reconciler, store, data_source):
        store.set_field("006A", "Name", "Unsaved")
        reconciler.refresh()

        assert store.get_row("006A").editable.name == "Acme Renewal"
        assert not store.is_dirty()
        assert data_source.list_calls == 2

    def test_load_failure_empties_store(self, reconciler, store, data_source, notify):
        data_source.list_error = BackendError(status_text="Service Unavailable")
        reconciler.refresh()

        assert store.rows == []
        notification = _last_notification(notify)
        assert notification.title == "Error loading"
        assert notification.message == "Service Unavailable"
        assert notification.severity == Severity.ERROR

    def test_only_latest_load_applies(self, tk_root, data_source):
        runner = ManualTaskRunner()
        store = RecordStore(tk_root)
        r = SaveReconciler(store, data_source, runner)

        r.load()
        r.load()
        runner.complete(1, result=[make_record("NEW")])
        runner.complete(0, result=[make_record("OLD")])

        assert [row.id for row in store.rows] == ["NEW"]

    def test_stage_options(self, reconciler):
        callback = MagicMock()
        reconciler.set_stage_options_callback(callback)
        reconciler.load_stage_options()

        assert reconciler.stage_options == [
            LookupOption("Prospecting", "Prospecting"),
            LookupOption("Closed Won", "Closed Won"),
        ]
        callback.assert_called_once_with()

    def test_stage_options_failure(self, store, notify):
        data_source = MagicMock()
        data_source.list_stage_options.side_effect = BackendError(message="no picklist")
        r = SaveReconciler(store, data_source, ImmediateTaskRunner(), notify=notify)

        r.load_stage_options()

        assert r.stage_options == []
        assert _last_notification(notify).title == "Error loading stages"
        assert _last_notification(notify).message == "no picklist"


class TestSaveAll:
    """Tests for save_all()."""

    def test_save_sends_only_dirty_rows(self, reconciler, store, data_source):
        store.set_field("006A", "Name", "Acme Renewal 2")
        assert not reconciler.save_disabled

        assert reconciler.save_all() is True

        assert len(data_source.update_calls) == 1
        payload = data_source.update_calls[0]
        assert [p["Id"] for p in payload] == ["006A"]
        assert payload[0]["Name"] == "Acme Renewal 2"

    def test_save_rebaselines_and_disables(self, reconciler, store, notify):
        store.set_field("006A", "Name", "Acme Renewal 2")
        reconciler.save_all()

        assert store.snapshot("006A") == store.get_row("006A").editable
        assert store.dirty_rows() == []
        assert reconciler.save_disabled
        notification = _last_notification(notify)
        assert notification.title == "Success"
        assert notification.severity == Severity.SUCCESS

    def test_clean_save_makes_no_call(self, reconciler, data_source, notify):
        notify.reset_mock()
        assert reconciler.save_all() is False
        assert data_source.update_calls == []
        notify.assert_not_called()

    def test_failure_keeps_edits(self, reconciler, store, data_source, notify):
        data_source.update_error = BackendError(body={"message": "conflict"})
        store.set_field("006A", "Name", "A2")
        store.set_field("006B", "Name", "B2")

        reconciler.save_all()

        assert [row.id for row in store.dirty_rows()] == ["006A", "006B"]
        assert store.get_row("006A").editable.name == "A2"
        notification = _last_notification(notify)
        assert notification.title == "Error saving"
        assert notification.message == "conflict"
        assert not reconciler.is_saving

    def test_failure_with_plain_error_payload(self, tk_root, data_source, records, notify):
        """A {body: {message}} payload is reported by its message."""
        runner = ManualTaskRunner()
        store = RecordStore(tk_root)
        store.initialize(records)
        r = SaveReconciler(store, data_source, runner, notify=notify)
        store.set_field("006A", "Name", "A2")

        r.save_all()
        runner.complete(error={"body": {"message": "conflict"}})

        assert _last_notification(notify).message == "conflict"
        assert [row.id for row in store.dirty_rows()] == ["006A"]

    def test_failure_joins_messages(self, reconciler, store, data_source, notify):
        data_source.update_error = BackendError(
            body=[{"message": "bad name"}, {"message": "bad stage"}],
        )
        store.set_field("006A", "Name", "A2")
        reconciler.save_all()
        assert _last_notification(notify).message == "bad name, bad stage"

    def test_save_in_flight_blocks_second_save(self, tk_root, data_source, records):
        runner = ManualTaskRunner()
        store = RecordStore(tk_root)
        store.initialize(records)
        r = SaveReconciler(store, data_source, runner)
        store.set_field("006A", "Name", "A2")

        assert r.save_all() is True
        assert r.is_saving
        assert r.save_disabled
        assert r.save_all() is False
        assert runner.pending == 1

        runner.run_task()
        assert not r.is_saving
        assert not store.is_dirty()

    def test_edits_on_unsaved_rows_survive_commit(self, tk_root, data_source, records):
        runner = ManualTaskRunner()
        store = RecordStore(tk_root)
        store.initialize(records)
        r = SaveReconciler(store, data_source, runner)

        store.set_field("006A", "Name", "A2")
        r.save_all()
        store.set_field("006B", "Name", "B2 while saving")
        runner.run_task()

        assert [row.id for row in store.dirty_rows()] == ["006B"]


class TestCancelAll:
    """Tests for cancel_all()."""

    def test_cancel_restores_snapshots_without_backend(self, reconciler, store, data_source, notify):
        snapshots = {row.id: store.snapshot(row.id) for row in store.rows}
        store.set_field("006A", "Name", "A2")
        store.set_field("006B", "StageName", "Prospecting")

        assert reconciler.cancel_all() is True

        for row in store.rows:
            assert row.editable == snapshots[row.id]
        assert data_source.update_calls == []
        assert data_source.list_calls == 1
        notification = _last_notification(notify)
        assert notification.title == "Cancelled"
        assert notification.severity == Severity.INFO

    def test_cancel_when_clean(self, reconciler, notify):
        notify.reset_mock()
        assert reconciler.cancel_all() is False
        notify.assert_not_called()

    def test_no_notify_callback(self, store, data_source):
        r = SaveReconciler(store, data_source, ImmediateTaskRunner())
        r.load()
        store.set_field("006A", "Name", "A2")
        assert r.cancel_all() is True
