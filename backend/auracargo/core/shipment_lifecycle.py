"""Shipment status vocabulary, allowed transitions, tracking numbers and fees."""

from __future__ import annotations

import enum
import random
import re
from decimal import ROUND_CEILING, Decimal, InvalidOperation

from auracargo.core.errors import InvalidTransitionError, ValidationError


class ShipmentStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    PROCESSING = "Processing"
    IN_TRANSIT = "In Transit"
    DELIVERED = "Delivered"
    ON_HOLD = "On Hold"
    DELAYED = "Delayed"
    REJECTED = "Rejected"


INITIAL_STATUS = ShipmentStatus.PENDING
TERMINAL_STATUSES = frozenset({ShipmentStatus.DELIVERED, ShipmentStatus.REJECTED})

# Forward edges. Rejected is reachable from every non-rejected state as an override.
STATUS_TRANSITIONS: dict[ShipmentStatus, frozenset[ShipmentStatus]] = {
    ShipmentStatus.PENDING: frozenset({ShipmentStatus.APPROVED}),
    ShipmentStatus.APPROVED: frozenset(
        {ShipmentStatus.PROCESSING, ShipmentStatus.ON_HOLD}
    ),
    ShipmentStatus.PROCESSING: frozenset(
        {ShipmentStatus.IN_TRANSIT, ShipmentStatus.DELAYED, ShipmentStatus.ON_HOLD}
    ),
    ShipmentStatus.IN_TRANSIT: frozenset(
        {ShipmentStatus.DELIVERED, ShipmentStatus.DELAYED}
    ),
    ShipmentStatus.DELAYED: frozenset(
        {ShipmentStatus.IN_TRANSIT, ShipmentStatus.PROCESSING}
    ),
    ShipmentStatus.ON_HOLD: frozenset(
        {ShipmentStatus.IN_TRANSIT, ShipmentStatus.PROCESSING}
    ),
    ShipmentStatus.DELIVERED: frozenset(),
    ShipmentStatus.REJECTED: frozenset(),
}


def parse_status(value: str | ShipmentStatus) -> ShipmentStatus:
    if isinstance(value, ShipmentStatus):
        return value
    try:
        return ShipmentStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ShipmentStatus)
        raise ValidationError(f"Unknown shipment status '{value}'. Allowed: {allowed}")


def allowed_next_statuses(current: ShipmentStatus) -> frozenset[ShipmentStatus]:
    allowed = set(STATUS_TRANSITIONS[current])
    if current != ShipmentStatus.REJECTED:
        allowed.add(ShipmentStatus.REJECTED)
    return frozenset(allowed)


def validate_transition(
    current: str | ShipmentStatus, target: str | ShipmentStatus
) -> ShipmentStatus:
    """Return the parsed target status or raise InvalidTransitionError."""
    current_status = parse_status(current)
    target_status = parse_status(target)
    if target_status == current_status:
        raise InvalidTransitionError(
            f"Shipment is already {current_status.value}"
        )
    if target_status not in allowed_next_statuses(current_status):
        raise InvalidTransitionError(
            f"Invalid transition: {current_status.value} -> {target_status.value}"
        )
    return target_status


def event_type_for(status: str | ShipmentStatus) -> str:
    """'In Transit' -> 'in-transit'."""
    value = status.value if isinstance(status, ShipmentStatus) else str(status)
    return value.strip().lower().replace(" ", "-")


def generate_tracking_number(prefix: str = "AUR", rng: random.Random | None = None) -> str:
    rng = rng or random
    return f"{prefix}{rng.randint(100000, 999999)}"


def is_valid_tracking_number(value: str, prefix: str = "AUR") -> bool:
    return re.fullmatch(rf"{re.escape(prefix)}\d{{6}}", value or "") is not None


_CENTS = Decimal("0.01")


def shipping_fee(weight, price_per_kg: Decimal) -> Decimal:
    """Flat per-kilogram fee, rounded up to the next minor unit."""
    try:
        kg = Decimal(str(weight))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Weight must be numeric, got {weight!r}")
    if not kg.is_finite() or kg <= 0:
        raise ValidationError("Weight must be greater than 0")
    return (kg * Decimal(price_per_kg)).quantize(_CENTS, rounding=ROUND_CEILING)
