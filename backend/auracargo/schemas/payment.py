from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from decimal import Decimal


class StartCheckout(BaseModel):
    amount: Decimal | None = Field(None, gt=0)
    shipment_id: UUID | None = None


class VerifyPayment(BaseModel):
    reference: str = Field(..., min_length=1)


class PaymentResponse(BaseModel):
    id: UUID
    user_id: UUID | None = None
    shipment_id: UUID | None = None
    amount: Decimal
    currency: str
    status: str
    payment_method: str
    payment_provider: str | None = None
    payment_reference: str | None = None
    transaction_id: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class CheckoutResponse(BaseModel):
    payment: PaymentResponse
    authorization_url: str | None = None
    access_code: str | None = None


class PaymentSummary(BaseModel):
    total_paid: Decimal
    outstanding: Decimal
    pending_count: int


class PaymentStats(BaseModel):
    total_revenue: Decimal
    pending_revenue: Decimal
    failed_revenue: Decimal
    completed_count: int
    pending_count: int
    failed_count: int
