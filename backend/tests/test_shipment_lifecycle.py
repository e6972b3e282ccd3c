import random
from decimal import Decimal

import pytest

from auracargo.core.errors import InvalidTransitionError, ValidationError
from auracargo.core.shipment_lifecycle import (
    ShipmentStatus,
    allowed_next_statuses,
    event_type_for,
    generate_tracking_number,
    is_valid_tracking_number,
    parse_status,
    shipping_fee,
    validate_transition,
)


def test_forward_path_is_allowed():
    path = [
        ShipmentStatus.PENDING,
        ShipmentStatus.APPROVED,
        ShipmentStatus.PROCESSING,
        ShipmentStatus.IN_TRANSIT,
        ShipmentStatus.DELIVERED,
    ]
    for current, target in zip(path, path[1:]):
        assert validate_transition(current, target) == target


def test_reject_is_reachable_from_any_non_rejected_state():
    for status in ShipmentStatus:
        if status == ShipmentStatus.REJECTED:
            assert allowed_next_statuses(status) == frozenset()
        else:
            assert ShipmentStatus.REJECTED in allowed_next_statuses(status)


def test_same_status_is_not_a_transition():
    with pytest.raises(InvalidTransitionError):
        validate_transition("Approved", "Approved")


def test_skipping_approval_is_rejected():
    with pytest.raises(InvalidTransitionError):
        validate_transition("Pending", "In Transit")


def test_delivered_is_terminal_except_for_rejection():
    with pytest.raises(InvalidTransitionError):
        validate_transition("Delivered", "Delayed")


def test_unknown_status_is_a_validation_error():
    with pytest.raises(ValidationError):
        parse_status("in-transit")


def test_event_type_slug():
    assert event_type_for(ShipmentStatus.IN_TRANSIT) == "in-transit"
    assert event_type_for("On Hold") == "on-hold"
    assert event_type_for(ShipmentStatus.PENDING) == "pending"


def test_tracking_number_format():
    number = generate_tracking_number("AUR", random.Random(7))
    assert is_valid_tracking_number(number)
    assert len(number) == 9
    assert not is_valid_tracking_number("AUR12345")
    assert not is_valid_tracking_number("XYZ123456")


def test_fee_rounds_up_to_minor_unit():
    assert shipping_fee(10.5, Decimal("1000")) == Decimal("10500.00")
    assert shipping_fee("0.333", Decimal("1")) == Decimal("0.34")


@pytest.mark.parametrize("weight", [0, -1, "abc", None])
def test_fee_rejects_bad_weight(weight):
    with pytest.raises(ValidationError):
        shipping_fee(weight, Decimal("1000"))
