from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auracargo.database import get_db
from auracargo.api.deps import AuthContext, get_admin_context, get_gateway
from auracargo.schemas.payment import PaymentResponse, PaymentStats
from auracargo.services import payments as payment_service
from auracargo.services.payment_gateway import PaymentGateway

router = APIRouter(prefix="/admin/payments", tags=["admin-payments"])


@router.get("", response_model=list[PaymentResponse])
def list_all(
    status: str | None = Query(None),
    search: str | None = Query(None),
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
):
    return payment_service.list_payments(db, status=status, search=search)


@router.get("/stats", response_model=PaymentStats)
def stats(
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
):
    return payment_service.payment_stats(db)


@router.post("/{payment_id}/verify", response_model=PaymentResponse)
def verify(
    payment_id: UUID,
    db: Session = Depends(get_db),
    _: AuthContext = Depends(get_admin_context),
    gateway: PaymentGateway = Depends(get_gateway),
):
    payment = payment_service.require_payment(db, payment_id)
    return payment_service.apply_verification(db, payment, gateway)
