import uuid
import enum
from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Uuid

from auracargo.core.clock import utcnow
from auracargo.database import Base


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    ABANDONED = "abandoned"


class PaymentProvider(str, enum.Enum):
    PAYSTACK = "paystack"
    OTHER = "other"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid,
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    shipment_id = Column(
        Uuid,
        ForeignKey("shipments.id", ondelete="SET NULL"),
        nullable=True,
    )

    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(8), nullable=False, default="NGN")
    status = Column(String(16), nullable=False, default=PaymentStatus.PENDING.value)
    payment_method = Column(String(64), nullable=False, default="Paystack")
    payment_provider = Column(
        String(16), nullable=True, default=PaymentProvider.PAYSTACK.value
    )
    payment_reference = Column(String(128), unique=True, nullable=True, index=True)
    transaction_id = Column(String(128), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
