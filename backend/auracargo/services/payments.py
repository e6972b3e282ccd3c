import logging
import secrets
import time
from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from auracargo.config import settings
from auracargo.core.errors import (
    ExternalServiceError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from auracargo.models.payment import Payment, PaymentProvider, PaymentStatus
from auracargo.models.profile import Profile
from auracargo.services.notifications import build_notification
from auracargo.services.payment_gateway import CheckoutSession, PaymentGateway
from auracargo.services.shipments import quote, require_shipment

logger = logging.getLogger(__name__)

_STATUS_ALIASES = {
    "paid": PaymentStatus.PAID,
    "completed": PaymentStatus.PAID,
    "success": PaymentStatus.PAID,
    "pending": PaymentStatus.PENDING,
    "failed": PaymentStatus.FAILED,
    "abandoned": PaymentStatus.ABANDONED,
}

# Gateway outcomes that settle a pending payment without success
_TERMINAL_FAILURES = {"failed": PaymentStatus.FAILED, "abandoned": PaymentStatus.ABANDONED}


def normalize_status(value: str | None) -> PaymentStatus:
    """Map legacy spellings ('Completed', 'success', ...) onto the canonical set."""
    if not value:
        return PaymentStatus.PENDING
    try:
        return _STATUS_ALIASES[value.strip().lower()]
    except KeyError:
        raise ValidationError(f"Unknown payment status '{value}'")


def new_reference() -> str:
    return f"pay_{int(time.time() * 1000)}_{secrets.token_hex(3)}"


def get_by_reference(db: Session, reference: str) -> Payment | None:
    return db.query(Payment).filter(Payment.payment_reference == reference).first()


def require_payment(db: Session, payment_id: UUID) -> Payment:
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise NotFoundError("Payment not found")
    return payment


def list_payments(
    db: Session,
    user_id: UUID | None = None,
    status: str | None = None,
    search: str | None = None,
) -> list[Payment]:
    q = db.query(Payment).order_by(Payment.created_at.desc())
    if user_id:
        q = q.filter(Payment.user_id == user_id)
    if status:
        q = q.filter(Payment.status == normalize_status(status).value)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(
            or_(
                Payment.payment_reference.ilike(like),
                Payment.transaction_id.ilike(like),
                Payment.payment_method.ilike(like),
            )
        )
    return q.all()


def start_checkout(
    db: Session,
    gateway: PaymentGateway,
    payer: Profile,
    amount: Decimal | None = None,
    shipment_id: UUID | None = None,
) -> tuple[Payment, CheckoutSession]:
    """Record a pending payment and open a hosted checkout for it."""
    if shipment_id is not None:
        shipment = require_shipment(db, shipment_id)
        if shipment.user_id != payer.id and not payer.is_back_office:
            raise NotFoundError("Shipment not found")
        if amount is None:
            if shipment.weight is None:
                raise ValidationError("Shipment has no weight to price")
            amount = quote(shipment.weight)
    if amount is None:
        raise ValidationError("Either amount or shipment_id is required")
    if amount <= 0:
        raise ValidationError("Amount must be greater than 0")

    payment = Payment(
        user_id=payer.id,
        shipment_id=shipment_id,
        amount=amount,
        currency=settings.currency,
        status=PaymentStatus.PENDING.value,
        payment_method="Paystack",
        payment_provider=PaymentProvider.PAYSTACK.value,
        payment_reference=new_reference(),
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)

    try:
        session = gateway.initialize(payment.amount, payer.email, payment.payment_reference)
    except ExternalServiceError:
        payment.status = PaymentStatus.FAILED.value
        db.commit()
        logger.warning(
            "Checkout initialisation failed; payment %s marked failed",
            payment.payment_reference,
        )
        raise
    return payment, session


def _confirmation_notice(payment: Payment) -> tuple[str, str]:
    return (
        "Payment Confirmed",
        f"Your payment of {payment.currency} {Decimal(payment.amount):,.2f} "
        f"(ref {payment.payment_reference}) has been confirmed.",
    )


def apply_verification(db: Session, payment: Payment, gateway: PaymentGateway) -> Payment:
    """Ask the gateway about a pending payment and record the outcome."""
    if payment.status == PaymentStatus.PAID.value:
        return payment
    if not payment.payment_reference:
        raise ValidationError("Payment has no gateway reference to verify")
    result = gateway.verify(payment.payment_reference)
    if result.success:
        payment.status = PaymentStatus.PAID.value
        payment.transaction_id = result.transaction_id
        if payment.user_id:
            build_notification(db, payment.user_id, *_confirmation_notice(payment))
    elif result.status in _TERMINAL_FAILURES:
        payment.status = _TERMINAL_FAILURES[result.status].value
    else:
        logger.info(
            "Payment %s still %s at gateway", payment.payment_reference, result.status
        )
    db.commit()
    db.refresh(payment)
    return payment


def verify_reference(
    db: Session, gateway: PaymentGateway, reference: str, payer: Profile
) -> Payment:
    """
    Verify a checkout reference for the caller.

    Unknown references that the gateway reports as successful are recorded
    as a new paid payment for the caller.
    """
    reference = (reference or "").strip()
    if not reference:
        raise ValidationError("Payment reference is required")
    payment = get_by_reference(db, reference)
    if payment is not None:
        if payment.user_id != payer.id and not payer.is_back_office:
            raise UnauthorizedError("This payment belongs to another account")
        return apply_verification(db, payment, gateway)

    result = gateway.verify(reference)
    if not result.success:
        raise ValidationError("Payment verification failed")
    amount = Decimal(result.amount_minor or 0) / 100
    payment = Payment(
        user_id=payer.id,
        amount=amount,
        currency=settings.currency,
        status=PaymentStatus.PAID.value,
        payment_method="Paystack",
        payment_provider=PaymentProvider.PAYSTACK.value,
        payment_reference=reference,
        transaction_id=result.transaction_id,
    )
    db.add(payment)
    db.flush()
    build_notification(db, payer.id, *_confirmation_notice(payment))
    db.commit()
    db.refresh(payment)
    return payment


def reconcile_pending(db: Session, gateway: PaymentGateway, limit: int = 50) -> int:
    """Re-verify pending payments that carry a reference. Returns how many settled."""
    pending = (
        db.query(Payment)
        .filter(
            Payment.status == PaymentStatus.PENDING.value,
            Payment.payment_reference.isnot(None),
        )
        .order_by(Payment.created_at.asc())
        .limit(limit)
        .all()
    )
    settled = 0
    for payment in pending:
        try:
            updated = apply_verification(db, payment, gateway)
        except ExternalServiceError as e:
            logger.warning(
                "Reconciliation skipped %s: %s", payment.payment_reference, e
            )
            continue
        if updated.status != PaymentStatus.PENDING.value:
            settled += 1
    return settled


def _totals(payments: list[Payment]) -> dict[str, Decimal | int]:
    buckets = {
        "paid": Decimal("0"),
        "pending": Decimal("0"),
        "failed": Decimal("0"),
    }
    counts = {"paid": 0, "pending": 0, "failed": 0}
    for payment in payments:
        status = normalize_status(payment.status)
        if status == PaymentStatus.PAID:
            key = "paid"
        elif status == PaymentStatus.PENDING:
            key = "pending"
        else:
            key = "failed"
        buckets[key] += Decimal(payment.amount)
        counts[key] += 1
    return {
        "total_revenue": buckets["paid"],
        "pending_revenue": buckets["pending"],
        "failed_revenue": buckets["failed"],
        "completed_count": counts["paid"],
        "pending_count": counts["pending"],
        "failed_count": counts["failed"],
    }


def payment_stats(db: Session) -> dict:
    return _totals(db.query(Payment).all())


def payment_summary(db: Session, user_id: UUID) -> dict:
    totals = _totals(list_payments(db, user_id=user_id))
    return {
        "total_paid": totals["total_revenue"],
        "outstanding": totals["pending_revenue"] + totals["failed_revenue"],
        "pending_count": totals["pending_count"],
    }
