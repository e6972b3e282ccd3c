import threading

import pytest

from auracargo.core.errors import InvalidTransitionError
from auracargo.models.notification import Notification
from auracargo.services import shipments as shipment_service
from auracargo.services.change_feed import ChangeFeed, ChangeOperation, RowChange, feed
from auracargo.services.notifications import notify


@pytest.fixture
def received():
    changes = []
    handles = []

    def watch(table, predicate=None):
        handles.append(feed.subscribe(table, predicate, changes.append))
        return handles[-1]

    yield changes, watch
    for handle in handles:
        feed.unsubscribe(handle)


def test_commit_publishes_insert(db, make_profile, received):
    changes, watch = received
    user = make_profile()
    watch("notifications", {"user_id": user.id})

    notify(db, user.id, "Hello", "World")

    assert len(changes) == 1
    assert changes[0].operation == ChangeOperation.INSERT
    assert changes[0].after["title"] == "Hello"


def test_predicate_scopes_delivery(db, make_profile, received):
    changes, watch = received
    mine = make_profile("me@example.com")
    theirs = make_profile("them@example.com")
    watch("notifications", {"user_id": mine.id})

    notify(db, theirs.id, "Not for me", "skip")
    notify(db, mine.id, "For me", "deliver")

    assert [c.after["title"] for c in changes] == ["For me"]


def test_rollback_is_never_published(db, make_profile, received):
    changes, watch = received
    user = make_profile()
    watch("notifications")

    db.add(Notification(user_id=user.id, title="draft", content="never committed"))
    db.flush()
    db.rollback()

    assert changes == []


def test_failed_transition_publishes_nothing(db, make_profile, received):
    changes, watch = received
    owner = make_profile()
    shipment = shipment_service.create_shipment(
        db, owner.id, {"origin": "A", "destination": "B", "weight": 1}
    )
    watch("shipments")
    watch("tracking_events")
    with pytest.raises(InvalidTransitionError):
        shipment_service.change_status(db, shipment.id, "Delivered")
    assert changes == []


def test_status_change_publishes_shipment_event_and_notification(db, make_profile, received):
    changes, watch = received
    owner = make_profile()
    shipment = shipment_service.create_shipment(
        db, owner.id, {"origin": "A", "destination": "B", "weight": 1}
    )
    for table in ("shipments", "tracking_events", "notifications"):
        watch(table)

    shipment_service.approve_shipment(db, shipment.id)

    by_table = {}
    for change in changes:
        by_table.setdefault(change.table, []).append(change.operation)
    assert by_table == {
        "shipments": [ChangeOperation.UPDATE],
        "tracking_events": [ChangeOperation.INSERT],
        "notifications": [ChangeOperation.INSERT],
    }
    update = next(c for c in changes if c.table == "shipments")
    assert update.before["status"] == "Pending"
    assert update.after["status"] == "Approved"


def test_unsubscribe_is_idempotent():
    local = ChangeFeed()
    seen = []
    handle = local.subscribe("shipments", None, seen.append)
    assert local.unsubscribe(handle) is True
    assert local.unsubscribe(handle) is False
    assert local.unsubscribe(handle.id) is False
    local.publish([RowChange("shipments", ChangeOperation.INSERT, None, {"id": 1})])
    assert seen == []
    assert local.subscriber_count() == 0


def test_failing_subscriber_does_not_block_others():
    local = ChangeFeed()
    seen = []

    def broken(change):
        raise RuntimeError("boom")

    local.subscribe("shipments", None, broken)
    local.subscribe("shipments", None, seen.append)
    local.publish([RowChange("shipments", ChangeOperation.INSERT, None, {"id": 1})])
    assert len(seen) == 1


def test_unwatched_table_is_refused():
    with pytest.raises(ValueError):
        ChangeFeed().subscribe("profiles", None, lambda change: None)


def test_update_leaving_scope_is_still_delivered():
    local = ChangeFeed()
    seen = []
    local.subscribe("support_conversations", {"status": "open"}, seen.append)
    local.publish(
        [
            RowChange(
                "support_conversations",
                ChangeOperation.UPDATE,
                {"id": 1, "status": "open"},
                {"id": 1, "status": "closed"},
            )
        ]
    )
    assert len(seen) == 1


def test_callbacks_run_without_holding_the_lock():
    local = ChangeFeed()
    finished = []

    def subscribe_elsewhere():
        local.subscribe("payments", None, lambda change: None)
        finished.append(True)

    def on_change(change):
        worker = threading.Thread(target=subscribe_elsewhere)
        worker.start()
        worker.join(timeout=2)

    local.subscribe("shipments", None, on_change)
    local.publish([RowChange("shipments", ChangeOperation.INSERT, None, {"id": "1"})])
    assert finished == [True]
    assert local.subscriber_count() == 2
