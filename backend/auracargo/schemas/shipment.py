from pydantic import BaseModel, EmailStr, Field
from uuid import UUID
from datetime import datetime
from decimal import Decimal

from auracargo.core.shipment_lifecycle import ShipmentStatus


class ShipmentDetails(BaseModel):
    sender_name: str | None = None
    sender_email: EmailStr | None = None
    receiver_name: str | None = None
    receiver_email: EmailStr | None = None
    physical_weight: float | None = Field(None, gt=0)
    volume: str | None = None
    dimensions: str | None = None
    quantity: int | None = Field(None, ge=1)
    term: str | None = None
    service_type: str | None = None
    current_location: str | None = None
    estimated_delivery: datetime | None = None


class CreateShipment(ShipmentDetails):
    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    weight: float = Field(..., gt=0, description="Weight in kg")


class AdminCreateShipment(CreateShipment):
    user_id: UUID | None = None


class UpdateShipment(ShipmentDetails):
    origin: str | None = Field(None, min_length=1)
    destination: str | None = Field(None, min_length=1)
    weight: float | None = Field(None, gt=0)
    status: ShipmentStatus | None = None
    expected_version: int | None = None


class StatusChange(BaseModel):
    status: ShipmentStatus
    location: str | None = None
    description: str | None = None
    expected_version: int | None = None


class ManualEvent(BaseModel):
    event_type: str = Field(..., min_length=1)
    location: str | None = None
    description: str | None = None


class TrackingEventResponse(BaseModel):
    id: int
    shipment_id: UUID
    event_type: str
    location: str | None = None
    description: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ShipmentResponse(BaseModel):
    id: UUID
    tracking_number: str
    user_id: UUID | None = None
    origin: str
    destination: str
    weight: float | None = None
    physical_weight: float | None = None
    volume: str | None = None
    dimensions: str | None = None
    quantity: int | None = None
    term: str | None = None
    service_type: str | None = None
    status: str
    current_location: str | None = None
    sender_name: str | None = None
    sender_email: str | None = None
    receiver_name: str | None = None
    receiver_email: str | None = None
    estimated_delivery: datetime | None = None
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class PublicTrackingResponse(BaseModel):
    tracking_number: str
    status: str
    origin: str
    destination: str
    current_location: str | None = None
    estimated_delivery: datetime | None = None
    updated_at: datetime | None = None
    events: list[TrackingEventResponse]


class QuoteResponse(BaseModel):
    weight: float
    price_per_kg: Decimal
    amount: Decimal
    currency: str
