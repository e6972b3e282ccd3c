from auracargo.models.profile import Profile, ProfileRole, ProfileStatus
from auracargo.models.shipment import Shipment
from auracargo.models.tracking_event import TrackingEvent
from auracargo.models.notification import Notification
from auracargo.models.support import (
    ConversationStatus,
    SupportConversation,
    SupportMessage,
)
from auracargo.models.payment import Payment, PaymentProvider, PaymentStatus

__all__ = [
    "Profile",
    "ProfileRole",
    "ProfileStatus",
    "Shipment",
    "TrackingEvent",
    "Notification",
    "ConversationStatus",
    "SupportConversation",
    "SupportMessage",
    "Payment",
    "PaymentProvider",
    "PaymentStatus",
]
