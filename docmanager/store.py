"""
Document store handle: explicit session factory, time budget and fan-out.

The handle is created once by the app factory and threaded through every
resolver call as the ``store`` argument; no resolver reaches for a global
connection.

Two execution primitives:

    store.run(label, fn)        one operation, bounded by STORE_OP_MAX_MS
    store.fan_out({key: fn})    N independent operations, join barrier

``fn`` always receives a fresh SQLAlchemy Session of its own.  Fan-out
branches run on the store's worker pool; ``fan_out`` returns only when every
branch has finished or hit the budget, and records each branch's failure
individually.  A branch that times out is reported as StoreTimeoutError;
siblings already in flight are not cancelled.

The budget counts from the moment a worker starts the operation; time spent
queued behind other requests for a free worker is not charged.

Usage:
    store = get_document_store()
    rows = store.run("hierarchy_rows", lambda s: s.execute(stmt).all())

    outcomes = store.fan_out({"process": q1, "task": q2})
    raise_first_failure(outcomes)
"""

from __future__ import annotations

import atexit
import logging
import time
from collections.abc import Callable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import Event
from typing import Any

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from docmanager.core.exceptions import StoreTimeoutError

logger = logging.getLogger(__name__)

_EXTENSION_KEY = "document_store"

# PostgreSQL SQLSTATE for query_canceled (statement_timeout)
_PG_QUERY_CANCELED = "57014"


@dataclass
class BranchOutcome:
    """Result of one fan-out branch: either ``value`` or ``error``."""

    key: str
    value: Any = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class _PendingOp:
    """A submitted operation plus the moment a worker picked it up."""

    future: Future | None = None
    started: Event = field(default_factory=Event)
    started_at: float = 0.0


def _is_statement_timeout(exc: OperationalError) -> bool:
    if getattr(exc.orig, "pgcode", None) == _PG_QUERY_CANCELED:
        return True
    msg = str(exc.orig).lower()
    return "statement timeout" in msg or "canceling statement" in msg


class DocumentStore:
    """Process-wide store handle.

    Args:
        engine: SQLAlchemy engine the sessions bind to.
        max_time_ms: Budget for every single store operation.
        workers: Size of the fan-out worker pool.
    """

    def __init__(self, engine, max_time_ms: int = 25000, workers: int = 8) -> None:
        self.engine = engine
        self.max_time_ms = max_time_ms
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="docstore")

    # ── Sessions ─────────────────────────────────────────────────────────

    @contextmanager
    def session(self):
        """Yield a fresh Session, closed on exit."""
        session: Session = self._session_factory()
        try:
            yield session
        finally:
            session.close()

    def _invoke(self, label: str, fn: Callable[[Session], Any]) -> Any:
        started = time.perf_counter()
        try:
            with self.session() as session:
                if self.engine.dialect.name == "postgresql":
                    session.execute(text(f"SET LOCAL statement_timeout = {int(self.max_time_ms)}"))
                result = fn(session)
        except OperationalError as exc:
            if _is_statement_timeout(exc):
                raise StoreTimeoutError(label, self.max_time_ms) from exc
            raise
        logger.debug("Store op %s finished in %.1fms", label, (time.perf_counter() - started) * 1000)
        return result

    # ── Execution primitives ─────────────────────────────────────────────

    def _submit(self, label: str, fn: Callable[[Session], Any]) -> _PendingOp:
        pending = _PendingOp()

        def _task():
            pending.started_at = time.monotonic()
            pending.started.set()
            return self._invoke(label, fn)

        pending.future = self._executor.submit(_task)
        return pending

    def _wait(self, label: str, pending: _PendingOp) -> Any:
        """Block for ``pending``; the budget runs from the moment it started.

        Raises:
            StoreTimeoutError: the operation ran longer than ``max_time_ms``.
        """
        budget = self.max_time_ms / 1000
        # time queued behind other operations is not charged
        while not pending.started.wait(timeout=budget):
            if pending.future.done():
                break
        remaining = budget
        if pending.started.is_set():
            remaining = max(pending.started_at + budget - time.monotonic(), 0)
        try:
            return pending.future.result(timeout=remaining)
        except FuturesTimeout:
            logger.warning("Store op %s exceeded %dms budget", label, self.max_time_ms,
                           extra={"operation": label})
            raise StoreTimeoutError(label, self.max_time_ms) from None

    def run(self, label: str, fn: Callable[[Session], Any]) -> Any:
        """Execute one store operation under the time budget.

        Raises:
            StoreTimeoutError: the operation exceeded ``max_time_ms``.
        """
        return self._wait(label, self._submit(label, fn))

    def fan_out(self, calls: Mapping[str, Callable[[Session], Any]]) -> dict[str, BranchOutcome]:
        """Run independent operations concurrently and wait for all of them.

        Returns one BranchOutcome per key, in the order of ``calls``.
        Never raises for a failing branch.
        """
        if not calls:
            return {}

        pending = {key: self._submit(key, fn) for key, fn in calls.items()}

        outcomes: dict[str, BranchOutcome] = {}
        for key, op in pending.items():
            try:
                outcomes[key] = BranchOutcome(key, value=self._wait(key, op))
            except Exception as exc:
                logger.warning("Fan-out branch %s failed: %s", key, exc, extra={"operation": key})
                outcomes[key] = BranchOutcome(key, error=exc)
        return outcomes

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


def raise_first_failure(outcomes: Mapping[str, BranchOutcome]) -> None:
    """Re-raise the first failed branch's error, if any."""
    for outcome in outcomes.values():
        if not outcome.ok:
            raise outcome.error


# ── Flask integration ────────────────────────────────────────────────────


def init_document_store(app, db) -> DocumentStore:
    """Create the store handle for ``app`` and register it as an extension."""
    with app.app_context():
        engine = db.engine
    store = DocumentStore(
        engine,
        max_time_ms=app.config.get("STORE_OP_MAX_MS", 25000),
        workers=app.config.get("STORE_FANOUT_WORKERS", 8),
    )
    app.extensions[_EXTENSION_KEY] = store
    atexit.register(store.close)
    return store


def get_document_store() -> DocumentStore:
    """Return the store handle of the current Flask app."""
    return current_app.extensions[_EXTENSION_KEY]
