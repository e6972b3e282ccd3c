from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auracargo.config import settings
from auracargo.database import get_db
from auracargo.api.deps import AuthContext, get_auth_context
from auracargo.core.errors import NotFoundError
from auracargo.models.shipment import Shipment
from auracargo.schemas.shipment import (
    CreateShipment,
    QuoteResponse,
    ShipmentResponse,
    TrackingEventResponse,
)
from auracargo.services import shipments as shipment_service
from auracargo.services.tracking_events import list_by_shipment

router = APIRouter(prefix="/shipments", tags=["shipments"])


def _visible_shipment(db: Session, shipment_id: UUID, ctx: AuthContext) -> Shipment:
    shipment = shipment_service.require_shipment(db, shipment_id)
    if not ctx.is_admin and shipment.user_id != ctx.profile_id:
        # Do not reveal other customers' shipments exist
        raise NotFoundError("Shipment not found")
    return shipment


@router.get("/quote", response_model=QuoteResponse)
def quote_shipment(weight: float = Query(..., gt=0)):
    return QuoteResponse(
        weight=weight,
        price_per_kg=settings.price_per_kg,
        amount=shipment_service.quote(weight),
        currency=settings.currency,
    )


@router.get("", response_model=list[ShipmentResponse])
def list_my_shipments(
    status: str | None = Query(None),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    return shipment_service.list_shipments(db, user_id=ctx.profile_id, status=status)


@router.post("", response_model=ShipmentResponse, status_code=201)
def create(
    dto: CreateShipment,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    return shipment_service.create_shipment(db, ctx.profile_id, dto.model_dump())


@router.get("/{shipment_id}", response_model=ShipmentResponse)
def get_shipment(
    shipment_id: UUID,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    return _visible_shipment(db, shipment_id, ctx)


@router.get("/{shipment_id}/events", response_model=list[TrackingEventResponse])
def list_events(
    shipment_id: UUID,
    order: Literal["asc", "desc"] = Query("asc"),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    _visible_shipment(db, shipment_id, ctx)
    return list_by_shipment(db, shipment_id, order=order)
