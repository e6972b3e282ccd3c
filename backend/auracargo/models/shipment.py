"""Customer shipment with a public tracking number and a lifecycle status."""

import uuid
from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from auracargo.core.clock import utcnow
from auracargo.core.shipment_lifecycle import INITIAL_STATUS
from auracargo.database import Base


class Shipment(Base):
    __tablename__ = "shipments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tracking_number = Column(String(16), unique=True, nullable=False, index=True)
    user_id = Column(
        Uuid,
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    origin = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)

    weight = Column(Float, nullable=True)
    physical_weight = Column(Float, nullable=True)
    volume = Column(String(64), nullable=True)
    dimensions = Column(String(64), nullable=True)
    quantity = Column(Integer, nullable=True)
    term = Column(String(64), nullable=True)
    service_type = Column(String(64), nullable=True)

    status = Column(String(32), nullable=False, default=INITIAL_STATUS.value, index=True)
    current_location = Column(String(255), nullable=True)

    sender_name = Column(String(255), nullable=True)
    sender_email = Column(String(255), nullable=True)
    receiver_name = Column(String(255), nullable=True)
    receiver_email = Column(String(255), nullable=True)

    estimated_delivery = Column(DateTime(timezone=True), nullable=True)

    # Bumped on every write; callers may pass it back for optimistic locking.
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    owner = relationship("Profile")
    events = relationship(
        "TrackingEvent",
        back_populates="shipment",
        cascade="all, delete-orphan",
        order_by="TrackingEvent.id",
    )
