from __future__ import annotations

import logging
from datetime import datetime

import pytest
from sqlalchemy.exc import SQLAlchemyError

from broadcast_task_scheduler import db as db_module
from broadcast_task_scheduler import dispatcher, models
from broadcast_task_scheduler.dispatcher import Dispatcher
from broadcast_task_scheduler.errors import (
    ApplicationError,
    FormatError,
    SchemaError,
    TransportError,
)
from broadcast_task_scheduler.invoker import InvocationResponse, RemoteInvoker
from broadcast_task_scheduler.models import TaskStatus
from broadcast_task_scheduler.store import TaskStore

from fakes import FakeInvoker, endpoint_response


class RecordingStore(TaskStore):
    """TaskStore that records every mutation it is asked to perform."""

    def __init__(self, session):
        super().__init__(session)
        self.mutations = []

    def set_status(self, task_id, status):
        self.mutations.append(("set_status", task_id, status))
        return super().set_status(task_id, status)

    def delete_by_id(self, task_id):
        self.mutations.append(("delete", task_id))
        return super().delete_by_id(task_id)


def _all_tasks(db_session):
    db_session.expire_all()
    return db_session.query(models.Task).all()


def test_no_pending_task_does_nothing(db_session):
    store = RecordingStore(db_session)
    invoker = FakeInvoker()

    assert Dispatcher(store, invoker).run_dispatch_cycle() is None

    assert store.mutations == []
    assert invoker.payloads == []


def test_doing_task_is_not_reselected(db_session, make_task):
    make_task(status=TaskStatus.DOING)
    store = RecordingStore(db_session)
    invoker = FakeInvoker()

    assert Dispatcher(store, invoker).run_dispatch_cycle() is None

    assert store.mutations == []
    assert invoker.payloads == []
    assert [t.status for t in _all_tasks(db_session)] == [TaskStatus.DOING]


def test_pending_task_is_invoked_once_and_deleted(db_session, make_task):
    make_task(id="pending-1")
    store = RecordingStore(db_session)
    invoker = FakeInvoker(response=endpoint_response())

    assert Dispatcher(store, invoker).run_dispatch_cycle() == "pending-1"

    assert store.mutations == [
        ("set_status", "pending-1", TaskStatus.DOING),
        ("delete", "pending-1"),
    ]
    assert len(invoker.payloads) == 1
    assert invoker.payloads[0].id == "pending-1"
    assert invoker.payloads[0].from_time.hour == 3
    assert _all_tasks(db_session) == []


def test_application_error_leaves_task_doing(db_session, make_task):
    make_task()
    invoker = FakeInvoker(response=endpoint_response(status_code=400, message="failed"))

    with pytest.raises(ApplicationError) as exc_info:
        Dispatcher(TaskStore(db_session), invoker).run_dispatch_cycle()

    assert str(exc_info.value).startswith("remote application error:")
    assert len(invoker.payloads) == 1
    tasks = _all_tasks(db_session)
    assert len(tasks) == 1
    assert tasks[0].status == TaskStatus.DOING


def test_task_is_claimed_before_invocation(db_session, make_task):
    make_task(id="claim-me")
    seen = []

    class PeekingInvoker(FakeInvoker):
        def invoke(self, payload):
            seen.append(_all_tasks(db_session)[0].status)
            return super().invoke(payload)

    Dispatcher(TaskStore(db_session), PeekingInvoker()).run_dispatch_cycle()

    assert seen == [TaskStatus.DOING]


@pytest.mark.parametrize(
    "invoker, error",
    [
        (FakeInvoker(error=TransportError(None, "ConnectionError")), TransportError),
        (FakeInvoker(response=endpoint_response(outer_status=500)), TransportError),
        (FakeInvoker(response=InvocationResponse(200, "")), SchemaError),
        (FakeInvoker(response=endpoint_response(message="failed")), ApplicationError),
    ],
)
def test_failures_leave_task_doing_and_propagate(db_session, make_task, invoker, error):
    make_task()

    with pytest.raises(error):
        Dispatcher(TaskStore(db_session), invoker).run_dispatch_cycle()

    assert [t.status for t in _all_tasks(db_session)] == [TaskStatus.DOING]


def test_format_error_leaves_task_doing_without_invocation(db_session, make_task):
    make_task(from_time="2024-01-01")
    invoker = FakeInvoker()

    with pytest.raises(FormatError):
        Dispatcher(TaskStore(db_session), invoker).run_dispatch_cycle()

    assert invoker.payloads == []
    assert [t.status for t in _all_tasks(db_session)] == [TaskStatus.DOING]


def test_oldest_pending_task_goes_first_one_per_cycle(db_session, make_task):
    make_task(id="newer", created_at=datetime(2024, 1, 31, 12, 0))
    make_task(id="older", created_at=datetime(2024, 1, 31, 9, 0))
    make_task(id="oldest-but-doing", created_at=datetime(2024, 1, 30, 9, 0), status=TaskStatus.DOING)
    invoker = FakeInvoker()
    cycle = Dispatcher(TaskStore(db_session), invoker)

    assert cycle.run_dispatch_cycle() == "older"
    assert [p.id for p in invoker.payloads] == ["older"]
    assert cycle.run_dispatch_cycle() == "newer"
    assert cycle.run_dispatch_cycle() is None

    assert [t.id for t in _all_tasks(db_session)] == ["oldest-but-doing"]


def test_module_entry_point_builds_its_own_session_and_invoker(db_session, make_task, monkeypatch):
    make_task(id="via-trigger")
    invoker = FakeInvoker()
    monkeypatch.setattr(RemoteInvoker, "from_settings", classmethod(lambda cls, settings: invoker))

    assert dispatcher.run_dispatch_cycle() == "via-trigger"

    assert [p.id for p in invoker.payloads] == ["via-trigger"]
    assert _all_tasks(db_session) == []


def test_task_deleted_before_claim_is_skipped(db_session, make_task, caplog):
    make_task(id="gone")

    class VanishingStore(TaskStore):
        def select_oldest_pending(self):
            task = super().select_oldest_pending()
            other = db_module.SessionLocal()
            try:
                other.query(models.Task).filter(models.Task.id == "gone").delete()
                other.commit()
            finally:
                other.close()
            return task

    invoker = FakeInvoker()
    with caplog.at_level(logging.WARNING, logger="broadcast_task_scheduler.dispatcher"):
        assert Dispatcher(VanishingStore(db_session), invoker).run_dispatch_cycle() is None

    assert invoker.payloads == []
    assert _all_tasks(db_session) == []
    assert "vanished" in caplog.text


def _fail_commit_on_call(db_session, monkeypatch, failing_call):
    """Make the session's Nth commit (1-based) raise."""
    real_commit = db_session.commit
    calls = []

    def commit():
        calls.append(1)
        if len(calls) == failing_call:
            raise SQLAlchemyError("commit failed")
        return real_commit()

    monkeypatch.setattr(db_session, "commit", commit)


def test_store_error_during_claim_rolls_back_and_propagates(db_session, make_task, monkeypatch):
    make_task(id="unclaimed")
    _fail_commit_on_call(db_session, monkeypatch, failing_call=1)
    invoker = FakeInvoker()

    with pytest.raises(SQLAlchemyError):
        Dispatcher(TaskStore(db_session), invoker).run_dispatch_cycle()

    monkeypatch.undo()
    assert invoker.payloads == []
    # Session still usable; the claim was rolled back
    assert [t.status for t in _all_tasks(db_session)] == [TaskStatus.PENDING]


def test_store_error_during_delete_rolls_back_and_propagates(db_session, make_task, monkeypatch):
    make_task(id="invoked")
    _fail_commit_on_call(db_session, monkeypatch, failing_call=2)
    invoker = FakeInvoker()

    with pytest.raises(SQLAlchemyError):
        Dispatcher(TaskStore(db_session), invoker).run_dispatch_cycle()

    monkeypatch.undo()
    assert [p.id for p in invoker.payloads] == ["invoked"]
    assert [(t.id, t.status) for t in _all_tasks(db_session)] == [("invoked", TaskStatus.DOING)]


def test_failure_is_logged_once_without_traceback(db_session, make_task, caplog):
    make_task()
    invoker = FakeInvoker(response=endpoint_response(message="failed"))

    with caplog.at_level(logging.DEBUG, logger="broadcast_task_scheduler.dispatcher"):
        with pytest.raises(ApplicationError):
            Dispatcher(TaskStore(db_session), invoker).run_dispatch_cycle()

    failures = [r for r in caplog.records if r.levelno >= logging.WARNING]
    assert len(failures) == 1
    assert failures[0].levelno == logging.WARNING
    assert failures[0].exc_info is None
    assert "left as doing" in failures[0].getMessage()
