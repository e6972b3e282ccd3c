import uuid

import pytest

from auracargo.core.errors import NotFoundError, ValidationError
from auracargo.services import shipments as shipment_service
from auracargo.services.tracking_events import (
    append_event,
    latest_event,
    list_by_shipment,
)


@pytest.fixture
def shipment(db, make_profile):
    owner = make_profile()
    return shipment_service.create_shipment(
        db, owner.id, {"origin": "Lagos", "destination": "Accra", "weight": 2}
    )


def test_reads_are_stable_and_ordered(db, shipment):
    append_event(db, shipment.id, "approved", "Lagos Hub")
    append_event(db, shipment.id, "processing")

    first = [e.id for e in list_by_shipment(db, shipment.id)]
    second = [e.id for e in list_by_shipment(db, shipment.id)]
    assert first == second
    assert [e.event_type for e in list_by_shipment(db, shipment.id)] == [
        "pending",
        "approved",
        "processing",
    ]
    assert [e.id for e in list_by_shipment(db, shipment.id, order="desc")] == first[::-1]
    assert latest_event(db, shipment.id).event_type == "processing"


def test_shipment_without_events_reads_empty(db):
    assert list_by_shipment(db, uuid.uuid4()) == []
    assert latest_event(db, uuid.uuid4()) is None


def test_append_to_missing_shipment_fails(db):
    with pytest.raises(NotFoundError):
        append_event(db, uuid.uuid4(), "approved")


def test_event_type_is_required(db, shipment):
    with pytest.raises(ValidationError):
        append_event(db, shipment.id, "  ")


def test_admin_manual_event(client, admin, customer):
    shipment = client.post(
        "/shipments",
        json={"origin": "Lagos", "destination": "Kano", "weight": 1},
        headers=customer["headers"],
    ).json()
    resp = client.post(
        f"/admin/shipments/{shipment['id']}/events",
        json={"event_type": "customs-check", "location": "Kano Port"},
        headers=admin["headers"],
    )
    assert resp.status_code == 201
    events = client.get(f"/shipments/{shipment['id']}/events", headers=customer["headers"]).json()
    assert events[-1]["event_type"] == "customs-check"
