"""Public tracking lookup by tracking number; no account required."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from auracargo.database import get_db
from auracargo.core.errors import NotFoundError
from auracargo.schemas.shipment import PublicTrackingResponse, TrackingEventResponse
from auracargo.services.shipments import get_by_tracking_number
from auracargo.services.tracking_events import list_by_shipment

router = APIRouter(prefix="/tracking", tags=["tracking"])


@router.get("/{tracking_number}", response_model=PublicTrackingResponse)
def track(tracking_number: str, db: Session = Depends(get_db)):
    shipment = get_by_tracking_number(db, tracking_number)
    if shipment is None:
        raise NotFoundError("No shipment found with this tracking number")
    events = list_by_shipment(db, shipment.id, order="desc")
    return PublicTrackingResponse(
        tracking_number=shipment.tracking_number,
        status=shipment.status,
        origin=shipment.origin,
        destination=shipment.destination,
        current_location=shipment.current_location,
        estimated_delivery=shipment.estimated_delivery,
        updated_at=shipment.updated_at,
        events=[TrackingEventResponse.model_validate(e) for e in events],
    )
