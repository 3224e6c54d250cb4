"""
Tests: DocumentStore handle: run / fan_out / time budget.
"""

import logging
import time

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from docmanager.core.exceptions import StoreTimeoutError
from docmanager.models import db as _db
from docmanager.store import BranchOutcome, DocumentStore, get_document_store, raise_first_failure


class _QueryCanceled(Exception):
    pgcode = "57014"


def _slow(session):
    time.sleep(0.6)
    return "late"


def _nap(session):
    time.sleep(0.3)
    return "rested"


def _boom(session):
    raise RuntimeError("boom")


@pytest.fixture()
def tight_store():
    store = DocumentStore(_db.engine, max_time_ms=200, workers=4)
    yield store
    store.close()


@pytest.fixture()
def single_worker_store():
    store = DocumentStore(_db.engine, max_time_ms=500, workers=1)
    yield store
    store.close()


class TestRun:
    def test_runs_with_fresh_session(self, store):
        assert store.run("ping", lambda s: s.execute(text("SELECT 1")).scalar()) == 1

    def test_exceeding_budget_raises_timeout(self, tight_store):
        with pytest.raises(StoreTimeoutError) as exc_info:
            tight_store.run("slow_op", _slow)
        assert exc_info.value.operation == "slow_op"
        assert exc_info.value.budget_ms == 200

    def test_timeout_logged_with_operation_label(self, tight_store, caplog):
        with caplog.at_level(logging.WARNING, logger="docmanager.store"):
            with pytest.raises(StoreTimeoutError):
                tight_store.run("slow_op", _slow)
        assert any(getattr(r, "operation", None) == "slow_op" for r in caplog.records)

    def test_time_waiting_for_a_worker_is_not_charged(self, single_worker_store):
        single_worker_store._executor.submit(time.sleep, 0.3)
        assert single_worker_store.run("queued", _nap) == "rested"

    def test_statement_timeout_mapped_to_store_timeout(self, store):
        def _canceled(session):
            raise OperationalError("SELECT 1", {}, _QueryCanceled("canceling statement due to statement timeout"))

        with pytest.raises(StoreTimeoutError):
            store.run("canceled", _canceled)

    def test_other_operational_errors_propagate(self, store):
        def _broken(session):
            raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

        with pytest.raises(OperationalError):
            store.run("broken", _broken)

    def test_registered_as_app_extension(self, app, store):
        assert get_document_store() is store
        assert store.max_time_ms == app.config["STORE_OP_MAX_MS"]


class TestFanOut:
    def test_all_branches_collected(self, store):
        outcomes = store.fan_out({
            "a": lambda s: 1,
            "b": lambda s: s.execute(text("SELECT 2")).scalar(),
        })
        assert list(outcomes) == ["a", "b"]
        assert [o.value for o in outcomes.values()] == [1, 2]
        assert all(o.ok for o in outcomes.values())

    def test_failures_captured_per_branch(self, tight_store):
        outcomes = tight_store.fan_out({"fast": lambda s: "ok", "slow": _slow, "boom": _boom})

        assert outcomes["fast"].ok and outcomes["fast"].value == "ok"
        assert isinstance(outcomes["slow"].error, StoreTimeoutError)
        assert isinstance(outcomes["boom"].error, RuntimeError)

    def test_queued_branches_get_their_own_budget(self, single_worker_store):
        outcomes = single_worker_store.fan_out({"a": _nap, "b": _nap})

        assert outcomes["a"].ok and outcomes["b"].ok
        assert [o.value for o in outcomes.values()] == ["rested", "rested"]

    def test_queued_branch_still_bounded_once_running(self, single_worker_store):
        outcomes = single_worker_store.fan_out({"a": _nap, "slow": lambda s: time.sleep(0.8)})

        assert outcomes["a"].ok
        assert isinstance(outcomes["slow"].error, StoreTimeoutError)

    def test_empty_calls(self, store):
        assert store.fan_out({}) == {}

    def test_raise_first_failure_in_call_order(self):
        first, second = ValueError("first"), KeyError("second")
        outcomes = {
            "ok": BranchOutcome("ok", value=1),
            "x": BranchOutcome("x", error=first),
            "y": BranchOutcome("y", error=second),
        }
        with pytest.raises(ValueError, match="first"):
            raise_first_failure(outcomes)

    def test_raise_first_failure_noop_when_all_ok(self):
        raise_first_failure({"ok": BranchOutcome("ok", value=1)})
