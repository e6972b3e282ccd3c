"""Append-only tracking history per shipment."""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from sqlalchemy.orm import Session

from auracargo.core.errors import NotFoundError, ValidationError
from auracargo.models.shipment import Shipment
from auracargo.models.tracking_event import TrackingEvent

DEFAULT_EVENT_LOCATION = "Processing Center"

EventOrder = Literal["asc", "desc"]


def build_event(
    db: Session,
    shipment_id: UUID,
    event_type: str,
    location: str | None = None,
    description: str | None = None,
) -> TrackingEvent:
    """Stage an event in the current transaction without committing."""
    if not event_type or not event_type.strip():
        raise ValidationError("event_type is required")
    event = TrackingEvent(
        shipment_id=shipment_id,
        event_type=event_type.strip(),
        location=location,
        description=description,
    )
    db.add(event)
    return event


def append_event(
    db: Session,
    shipment_id: UUID,
    event_type: str,
    location: str | None = None,
    description: str | None = None,
) -> TrackingEvent:
    if db.get(Shipment, shipment_id) is None:
        raise NotFoundError("Shipment not found")
    event = build_event(db, shipment_id, event_type, location, description)
    db.commit()
    db.refresh(event)
    return event


def list_by_shipment(
    db: Session, shipment_id: UUID, order: EventOrder = "asc"
) -> list[TrackingEvent]:
    """Timeline (asc) or history (desc). Empty list when nothing happened yet."""
    if order == "desc":
        ordering = (TrackingEvent.created_at.desc(), TrackingEvent.id.desc())
    else:
        ordering = (TrackingEvent.created_at.asc(), TrackingEvent.id.asc())
    return (
        db.query(TrackingEvent)
        .filter(TrackingEvent.shipment_id == shipment_id)
        .order_by(*ordering)
        .all()
    )


def latest_event(db: Session, shipment_id: UUID) -> TrackingEvent | None:
    events = list_by_shipment(db, shipment_id, order="desc")
    return events[0] if events else None
