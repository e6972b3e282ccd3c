from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auracargo.database import get_db
from auracargo.api.deps import AuthContext, get_auth_context, get_gateway
from auracargo.schemas.payment import (
    CheckoutResponse,
    PaymentResponse,
    PaymentSummary,
    StartCheckout,
    VerifyPayment,
)
from auracargo.services import payments as payment_service
from auracargo.services.payment_gateway import PaymentGateway

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/checkout", response_model=CheckoutResponse, status_code=201)
def checkout(
    dto: StartCheckout,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    gateway: PaymentGateway = Depends(get_gateway),
):
    payment, session = payment_service.start_checkout(
        db, gateway, ctx.profile, amount=dto.amount, shipment_id=dto.shipment_id
    )
    return CheckoutResponse(
        payment=PaymentResponse.model_validate(payment),
        authorization_url=session.authorization_url,
        access_code=session.access_code,
    )


@router.post("/verify", response_model=PaymentResponse)
def verify(
    dto: VerifyPayment,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    gateway: PaymentGateway = Depends(get_gateway),
):
    return payment_service.verify_reference(db, gateway, dto.reference, ctx.profile)


@router.get("", response_model=list[PaymentResponse])
def list_my_payments(
    status: str | None = Query(None),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    return payment_service.list_payments(db, user_id=ctx.profile_id, status=status)


@router.get("/summary", response_model=PaymentSummary)
def my_summary(
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
):
    return payment_service.payment_summary(db, ctx.profile_id)
