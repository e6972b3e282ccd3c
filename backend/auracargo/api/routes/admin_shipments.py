"""Back-office shipment management."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auracargo.database import get_db
from auracargo.api.deps import AuthContext, get_admin_context
from auracargo.core.errors import UnknownRecipientError
from auracargo.schemas.shipment import (
    AdminCreateShipment,
    ManualEvent,
    ShipmentResponse,
    StatusChange,
    TrackingEventResponse,
    UpdateShipment,
)
from auracargo.services import shipments as shipment_service
from auracargo.services.profiles import get_profile_by_id
from auracargo.services.tracking_events import append_event

router = APIRouter(prefix="/admin/shipments", tags=["admin-shipments"])


@router.get("", response_model=list[ShipmentResponse])
def list_all(
    status: str | None = Query(None),
    search: str | None = Query(None),
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
):
    return shipment_service.list_shipments(db, status=status, search=search)


@router.post("", response_model=ShipmentResponse, status_code=201)
def create_on_behalf(
    dto: AdminCreateShipment,
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
):
    data = dto.model_dump(exclude={"user_id"})
    if dto.user_id is not None and get_profile_by_id(db, dto.user_id) is None:
        raise UnknownRecipientError(f"No profile with id {dto.user_id}")
    return shipment_service.create_shipment(db, dto.user_id, data)


@router.put("/{shipment_id}", response_model=ShipmentResponse)
def update(
    shipment_id: UUID,
    dto: UpdateShipment,
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
):
    data = dto.model_dump(exclude_unset=True, exclude={"expected_version"})
    return shipment_service.update_shipment(
        db, shipment_id, data, expected_version=dto.expected_version
    )


@router.post("/{shipment_id}/status", response_model=ShipmentResponse)
def change_status(
    shipment_id: UUID,
    dto: StatusChange,
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
):
    return shipment_service.change_status(
        db,
        shipment_id,
        dto.status,
        location=dto.location,
        description=dto.description,
        expected_version=dto.expected_version,
    )


@router.post("/{shipment_id}/approve", response_model=ShipmentResponse)
def approve(
    shipment_id: UUID,
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
):
    return shipment_service.approve_shipment(db, shipment_id)


@router.post("/{shipment_id}/reject", response_model=ShipmentResponse)
def reject(
    shipment_id: UUID,
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
):
    return shipment_service.reject_shipment(db, shipment_id)


@router.post(
    "/{shipment_id}/events", response_model=TrackingEventResponse, status_code=201
)
def add_event(
    shipment_id: UUID,
    dto: ManualEvent,
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
):
    return append_event(
        db, shipment_id, dto.event_type, location=dto.location, description=dto.description
    )
