"""
In-process realtime change feed.

Row changes to the watched tables are collected while a session flushes
and handed to subscribers only after the transaction commits, so a
viewer is never told about a write that was rolled back. Each commit's
changes are delivered in flush order, one commit at a time.

Subscribers should treat every change as "something changed, re-fetch";
the before/after payloads are a convenience, not a consistent snapshot.
"""

from __future__ import annotations

import enum
import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

WATCHED_TABLES = frozenset(
    {
        "shipments",
        "tracking_events",
        "notifications",
        "support_conversations",
        "support_messages",
        "payments",
    }
)

_PENDING_KEY = "auracargo.pending_changes"


class ChangeOperation(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class RowChange:
    table: str
    operation: ChangeOperation
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None


Predicate = Callable[[Mapping[str, Any]], bool]
ChangeCallback = Callable[[RowChange], None]


def match_filter(filters: Mapping[str, Any] | None) -> Predicate | None:
    """Build an equality predicate; values are compared as strings."""
    if not filters:
        return None
    expected = {k: str(v) for k, v in filters.items()}

    def predicate(row: Mapping[str, Any]) -> bool:
        for key, value in expected.items():
            if key not in row or row[key] is None or str(row[key]) != value:
                return False
        return True

    return predicate


@dataclass(eq=False)
class SubscriptionHandle:
    id: str
    table: str
    predicate: Predicate | None
    callback: ChangeCallback
    active: bool = field(default=True)

    def matches(self, change: RowChange) -> bool:
        if change.table != self.table:
            return False
        if self.predicate is None:
            return True
        # An update that moves a row out of scope is still news to the watcher.
        return any(
            row is not None and self.predicate(row)
            for row in (change.after, change.before)
        )


class ChangeFeed:
    def __init__(self) -> None:
        self._subscriptions: dict[str, SubscriptionHandle] = {}
        self._lock = threading.RLock()
        self._ids = itertools.count(1)

    def subscribe(
        self,
        table: str,
        predicate: Predicate | Mapping[str, Any] | None,
        on_change: ChangeCallback,
    ) -> SubscriptionHandle:
        if table not in WATCHED_TABLES:
            raise ValueError(f"Table '{table}' is not published on the change feed")
        if predicate is not None and not callable(predicate):
            predicate = match_filter(predicate)
        with self._lock:
            handle = SubscriptionHandle(
                id=f"sub-{next(self._ids)}",
                table=table,
                predicate=predicate,
                callback=on_change,
            )
            self._subscriptions[handle.id] = handle
        logger.debug("Subscribed %s to %s", handle.id, table)
        return handle

    def unsubscribe(self, handle: SubscriptionHandle | str) -> bool:
        """Stop delivery. Safe to call any number of times."""
        handle_id = handle if isinstance(handle, str) else handle.id
        with self._lock:
            removed = self._subscriptions.pop(handle_id, None)
            if removed is None:
                return False
            removed.active = False
        logger.debug("Unsubscribed %s", handle_id)
        return True

    def subscriber_count(self, table: str | None = None) -> int:
        with self._lock:
            return sum(
                1
                for s in self._subscriptions.values()
                if table is None or s.table == table
            )

    def publish(self, changes: list[RowChange]) -> None:
        if not changes:
            return
        with self._lock:
            subscriptions = list(self._subscriptions.values())
        # Callbacks run outside the lock
        for change in changes:
            for sub in subscriptions:
                if not sub.active or not sub.matches(change):
                    continue
                try:
                    sub.callback(change)
                except Exception:
                    # One bad subscriber must not starve the others
                    logger.exception(
                        "Change feed callback failed (subscription=%s)", sub.id
                    )


feed = ChangeFeed()


def _column_values(obj) -> tuple[str, dict[str, Any], dict[str, Any]]:
    """Return (table, before, after) using only already-loaded state."""
    state = inspect(obj)
    table = state.mapper.local_table.name
    before: dict[str, Any] = {}
    after: dict[str, Any] = {}
    for attr in state.mapper.column_attrs:
        key = attr.key
        if key not in state.dict:
            continue
        after[key] = state.dict[key]
        history = state.attrs[key].history
        before[key] = history.deleted[0] if history.deleted else state.dict[key]
    return table, before, after


@event.listens_for(Session, "after_flush")
def _collect_changes(session: Session, flush_context) -> None:
    pending: list[RowChange] = session.info.setdefault(_PENDING_KEY, [])
    for obj in session.new:
        table, _, after = _column_values(obj)
        if table in WATCHED_TABLES:
            pending.append(RowChange(table, ChangeOperation.INSERT, None, after))
    for obj in session.dirty:
        if not session.is_modified(obj, include_collections=False):
            continue
        table, before, after = _column_values(obj)
        if table in WATCHED_TABLES:
            pending.append(RowChange(table, ChangeOperation.UPDATE, before, after))
    for obj in session.deleted:
        table, before, _ = _column_values(obj)
        if table in WATCHED_TABLES:
            pending.append(RowChange(table, ChangeOperation.DELETE, before, None))


@event.listens_for(Session, "after_commit")
def _publish_changes(session: Session) -> None:
    changes = session.info.pop(_PENDING_KEY, None)
    if changes:
        feed.publish(changes)


@event.listens_for(Session, "after_transaction_end")
def _discard_changes(session: Session, transaction) -> None:
    # after_commit has already drained committed changes; whatever is left
    # belongs to a transaction that was rolled back or abandoned.
    if transaction.parent is not None:
        return
    dropped = session.info.pop(_PENDING_KEY, None)
    if dropped:
        logger.debug("Discarded %d unpublished row changes on rollback", len(dropped))
