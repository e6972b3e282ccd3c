"""
Shipment store and status transitions.

Every status change goes through ``change_status`` which, inside one
transaction, updates the shipment, appends exactly one tracking event and
(when the shipment has an owner) stages exactly one notification. If any
of the three writes fails the whole transition is rolled back and logged.
"""

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from auracargo.config import settings
from auracargo.core.errors import ConflictError, NotFoundError, PortalError, ValidationError
from auracargo.core.shipment_lifecycle import (
    INITIAL_STATUS,
    ShipmentStatus,
    event_type_for,
    generate_tracking_number,
    parse_status,
    shipping_fee,
    validate_transition,
)
from auracargo.models.shipment import Shipment
from auracargo.services.notifications import build_notification
from auracargo.services.tracking_events import DEFAULT_EVENT_LOCATION, build_event

logger = logging.getLogger(__name__)

# Editable through the admin detail form; status is handled separately.
DETAIL_FIELDS = (
    "origin",
    "destination",
    "weight",
    "physical_weight",
    "volume",
    "dimensions",
    "quantity",
    "term",
    "service_type",
    "current_location",
    "sender_name",
    "sender_email",
    "receiver_name",
    "receiver_email",
    "estimated_delivery",
)
REQUIRED_FIELDS = ("origin", "destination", "weight")


def get_shipment(db: Session, shipment_id: UUID) -> Shipment | None:
    return db.query(Shipment).filter(Shipment.id == shipment_id).first()


def require_shipment(db: Session, shipment_id: UUID) -> Shipment:
    shipment = get_shipment(db, shipment_id)
    if not shipment:
        raise NotFoundError("Shipment not found")
    return shipment


def get_by_tracking_number(db: Session, tracking_number: str) -> Shipment | None:
    return (
        db.query(Shipment)
        .filter(Shipment.tracking_number == tracking_number.strip().upper())
        .first()
    )


def list_shipments(
    db: Session,
    user_id: UUID | None = None,
    status: str | None = None,
    search: str | None = None,
) -> list[Shipment]:
    q = db.query(Shipment).order_by(Shipment.created_at.desc())
    if user_id:
        q = q.filter(Shipment.user_id == user_id)
    if status:
        q = q.filter(Shipment.status == parse_status(status).value)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(
            or_(
                Shipment.tracking_number.ilike(like),
                Shipment.origin.ilike(like),
                Shipment.destination.ilike(like),
                Shipment.sender_name.ilike(like),
                Shipment.receiver_name.ilike(like),
            )
        )
    return q.all()


def generate_unique_tracking_number(db: Session) -> str:
    # A concurrent insert of the same number after this check trips the
    # unique constraint at commit; _commit reports that as ConflictError.
    for _ in range(max(1, settings.tracking_number_attempts)):
        candidate = generate_tracking_number(settings.tracking_prefix)
        exists = (
            db.query(Shipment.id)
            .filter(Shipment.tracking_number == candidate)
            .first()
        )
        if not exists:
            return candidate
        logger.info("Tracking number collision on %s, retrying", candidate)
    raise ConflictError("Could not allocate a unique tracking number, please retry")


def quote(weight) -> Decimal:
    return shipping_fee(weight, settings.price_per_kg)


def _validate_measurements(data: dict) -> None:
    for key in ("weight", "physical_weight"):
        value = data.get(key)
        if value is not None and value <= 0:
            raise ValidationError(f"{key} must be greater than 0")
    quantity = data.get("quantity")
    if quantity is not None and quantity < 1:
        raise ValidationError("quantity must be at least 1")


def _reject_cleared_required(data: dict) -> None:
    for key in REQUIRED_FIELDS:
        if key in data and data[key] is None:
            raise ValidationError(f"{key} cannot be cleared")


def _commit(db: Session, what: str, shipment_id) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning("%s rolled back for shipment %s: %s", what, shipment_id, e)
        raise ConflictError(f"{what} conflicted with existing data")
    except SQLAlchemyError:
        db.rollback()
        logger.warning(
            "%s rolled back for shipment %s; no partial effects kept",
            what,
            shipment_id,
            exc_info=True,
        )
        raise


def create_shipment(db: Session, owner_id: UUID | None, data: dict) -> Shipment:
    """Insert a Pending shipment with its first tracking event and notification."""
    if data.get("weight") is None:
        raise ValidationError("weight is required")
    _validate_measurements(data)
    fields = {k: data.get(k) for k in DETAIL_FIELDS if data.get(k) is not None}
    shipment = Shipment(
        tracking_number=generate_unique_tracking_number(db),
        user_id=owner_id,
        status=INITIAL_STATUS.value,
        version=1,
        **fields,
    )
    db.add(shipment)
    db.flush()

    build_event(
        db,
        shipment.id,
        event_type_for(INITIAL_STATUS),
        location=shipment.origin,
        description="Shipment created and pending approval",
    )
    if owner_id:
        build_notification(
            db,
            owner_id,
            "New Shipment Created",
            f"Your shipment to {shipment.destination} has been created with "
            f"tracking number {shipment.tracking_number} and is pending approval.",
        )
    _commit(db, "Shipment creation", shipment.id)
    db.refresh(shipment)
    logger.info(
        "Created shipment %s (%s)", shipment.tracking_number, shipment.id
    )
    return shipment


def _claim_version(db: Session, shipment: Shipment, expected_version: int | None) -> None:
    """Bump the version, or fail if the caller edited a stale copy."""
    if expected_version is None:
        # Last write wins
        shipment.version = (shipment.version or 0) + 1
        return
    claimed = (
        db.query(Shipment)
        .filter(Shipment.id == shipment.id, Shipment.version == expected_version)
        .update({Shipment.version: expected_version + 1}, synchronize_session=False)
    )
    if not claimed:
        raise ConflictError(
            "Shipment was modified by someone else; reload and try again"
        )
    shipment.version = expected_version + 1


def _stage_transition(
    db: Session,
    shipment: Shipment,
    target: ShipmentStatus,
    location: str | None = None,
    description: str | None = None,
    notice: tuple[str, str] | None = None,
) -> None:
    previous = shipment.status
    shipment.status = target.value
    if location:
        shipment.current_location = location

    build_event(
        db,
        shipment.id,
        event_type_for(target),
        location=location or shipment.current_location or DEFAULT_EVENT_LOCATION,
        description=description
        or f"Shipment status updated from {previous} to {target.value}",
    )
    if shipment.user_id:
        title, content = notice or (
            f"Shipment {target.value}",
            f"Your shipment #{shipment.tracking_number} has been updated to "
            f"{target.value}.",
        )
        build_notification(db, shipment.user_id, title, content)


def change_status(
    db: Session,
    shipment_id: UUID,
    new_status: str | ShipmentStatus,
    location: str | None = None,
    description: str | None = None,
    expected_version: int | None = None,
    notice: tuple[str, str] | None = None,
) -> Shipment:
    shipment = require_shipment(db, shipment_id)
    target = validate_transition(shipment.status, new_status)
    previous = shipment.status
    try:
        _claim_version(db, shipment, expected_version)
        _stage_transition(db, shipment, target, location, description, notice)
    except PortalError as e:
        db.rollback()
        logger.warning(
            "Status change rolled back for shipment %s: %s", shipment_id, e.message
        )
        raise
    _commit(db, "Status change", shipment_id)
    db.refresh(shipment)
    logger.info(
        "Shipment %s: %s -> %s", shipment.tracking_number, previous, target.value
    )
    return shipment


def approve_shipment(db: Session, shipment_id: UUID) -> Shipment:
    shipment = require_shipment(db, shipment_id)
    return change_status(
        db,
        shipment_id,
        ShipmentStatus.APPROVED,
        description="Shipment has been approved",
        notice=(
            "Shipment Approved",
            f"Your shipment #{shipment.tracking_number} has been approved "
            "and is being processed.",
        ),
    )


def reject_shipment(db: Session, shipment_id: UUID) -> Shipment:
    shipment = require_shipment(db, shipment_id)
    return change_status(
        db,
        shipment_id,
        ShipmentStatus.REJECTED,
        description="Shipment has been rejected",
        notice=(
            "Shipment Rejected",
            f"Your shipment #{shipment.tracking_number} has been rejected. "
            "Please contact customer service for more information.",
        ),
    )


def update_shipment(
    db: Session,
    shipment_id: UUID,
    data: dict,
    expected_version: int | None = None,
) -> Shipment:
    """Admin edit. A changed status runs through the transition rules."""
    shipment = require_shipment(db, shipment_id)
    _reject_cleared_required(data)
    _validate_measurements(data)
    requested_status = data.get("status")
    target = None
    if requested_status is not None and parse_status(requested_status).value != shipment.status:
        target = validate_transition(shipment.status, requested_status)

    try:
        _claim_version(db, shipment, expected_version)
        for key in DETAIL_FIELDS:
            if key in data:
                setattr(shipment, key, data[key])
        if target is not None:
            _stage_transition(
                db, shipment, target, location=data.get("current_location")
            )
    except PortalError as e:
        db.rollback()
        logger.warning(
            "Shipment update rolled back for shipment %s: %s", shipment_id, e.message
        )
        raise
    _commit(db, "Shipment update", shipment.id)
    db.refresh(shipment)
    return shipment


def status_counts(db: Session) -> dict[str, int]:
    rows = (
        db.query(Shipment.status, func.count(Shipment.id))
        .group_by(Shipment.status)
        .all()
    )
    counts = {s.value: 0 for s in ShipmentStatus}
    for status, count in rows:
        counts[status] = count
    return counts
