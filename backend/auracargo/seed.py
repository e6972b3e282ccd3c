"""Seed a demo admin, a demo customer and sample portal data if empty. Call from startup or manually."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from auracargo.database import Base, SessionLocal, engine
from auracargo.core.shipment_lifecycle import ShipmentStatus
from auracargo.models.notification import Notification
from auracargo.models.payment import Payment, PaymentProvider, PaymentStatus
from auracargo.models.profile import Profile, ProfileRole
from auracargo.models.shipment import Shipment
from auracargo.services import shipments as shipment_service
from auracargo.services.payments import new_reference
from auracargo.services.support import append_message, create_conversation

logger = logging.getLogger(__name__)

SEED_PROFILES = [
    {
        "id": UUID("5b1f0c7e-2d4a-4c43-9a53-0c8e6f4a1d01"),
        "email": "admin@auracargo.com",
        "first_name": "Aura",
        "last_name": "Admin",
        "role": ProfileRole.ADMIN.value,
    },
    {
        "id": UUID("0e6a3b9d-7f21-4b8c-8d55-4c2f9e71b302"),
        "email": "customer@auracargo.com",
        "first_name": "Demo",
        "last_name": "Customer",
        "role": ProfileRole.CUSTOMER.value,
    },
]

DEMO_CUSTOMER_ID = SEED_PROFILES[1]["id"]

# (shipment details, statuses to walk through after creation)
SEED_SHIPMENTS = [
    (
        {
            "origin": "New York, USA",
            "destination": "London, UK",
            "weight": 15.5,
            "service_type": "Express",
            "dimensions": "30x40x20 cm",
        },
        [
            ShipmentStatus.APPROVED,
            ShipmentStatus.PROCESSING,
            ShipmentStatus.IN_TRANSIT,
        ],
    ),
    (
        {
            "origin": "Berlin, Germany",
            "destination": "Paris, France",
            "weight": 8.2,
            "service_type": "Standard",
            "dimensions": "20x30x15 cm",
        },
        [
            ShipmentStatus.APPROVED,
            ShipmentStatus.PROCESSING,
            ShipmentStatus.IN_TRANSIT,
            ShipmentStatus.DELIVERED,
        ],
    ),
    (
        {
            "origin": "Tokyo, Japan",
            "destination": "Seoul, South Korea",
            "weight": 5.7,
            "service_type": "Economy",
            "dimensions": "15x20x10 cm",
        },
        [],
    ),
]

SEED_NOTIFICATIONS = [
    (
        "Welcome to Auracargo!",
        "Thank you for joining Auracargo. Explore your dashboard to get started.",
    ),
    (
        "Complete your profile",
        "Update your profile information in the settings tab for a better experience.",
    ),
]


def _seed_profiles(db: Session) -> None:
    """Insert seed profiles if they do not already exist (by id)."""
    for data in SEED_PROFILES:
        if db.query(Profile).filter(Profile.id == data["id"]).first() is not None:
            continue
        db.add(Profile(**data))
    db.commit()


def _create_portal_seed_data(db: Session) -> None:
    shipments = []
    for details, path in SEED_SHIPMENTS:
        shipment = shipment_service.create_shipment(db, DEMO_CUSTOMER_ID, details)
        for status in path:
            shipment = shipment_service.change_status(db, shipment.id, status)
        shipments.append(shipment)

    for title, content in SEED_NOTIFICATIONS:
        db.add(Notification(user_id=DEMO_CUSTOMER_ID, title=title, content=content))

    payment_states = [PaymentStatus.PAID, PaymentStatus.PAID, PaymentStatus.PENDING]
    for shipment, status in zip(shipments, payment_states):
        db.add(
            Payment(
                user_id=DEMO_CUSTOMER_ID,
                shipment_id=shipment.id,
                amount=shipment_service.quote(shipment.weight),
                status=status.value,
                payment_method="Paystack",
                payment_provider=PaymentProvider.PAYSTACK.value,
                payment_reference=new_reference(),
                transaction_id=f"seed-{shipment.tracking_number}"
                if status == PaymentStatus.PAID
                else None,
            )
        )
    db.commit()

    customer = db.get(Profile, DEMO_CUSTOMER_ID)
    conversation = create_conversation(
        db,
        "Delivery window",
        f"Can you confirm the delivery window for {shipments[0].tracking_number}?",
        user=customer,
    )
    append_message(
        db,
        conversation.id,
        "Your shipment is in transit and should arrive within 3 business days.",
        is_admin=True,
        sender=db.get(Profile, SEED_PROFILES[0]["id"]),
    )


def seed_all_if_empty() -> None:
    """Create all tables, seed profiles, and sample portal data if there are no shipments."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        _seed_profiles(db)
        if db.query(Shipment).first():
            return
        _create_portal_seed_data(db)
        logger.info("Seeded demo shipments, payments and support data")
    finally:
        db.close()
