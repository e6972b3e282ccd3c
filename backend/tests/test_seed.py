from auracargo.models.payment import Payment
from auracargo.models.profile import Profile
from auracargo.models.shipment import Shipment
from auracargo.models.tracking_event import TrackingEvent
from auracargo.seed import DEMO_CUSTOMER_ID, seed_all_if_empty


def test_seed_is_idempotent(db):
    seed_all_if_empty()
    seed_all_if_empty()

    assert db.query(Profile).count() == 2
    statuses = sorted(s.status for s in db.query(Shipment))
    assert statuses == ["Delivered", "In Transit", "Pending"]
    assert db.query(Payment).filter(Payment.user_id == DEMO_CUSTOMER_ID).count() == 3
    # creation event plus one per walked transition
    assert db.query(TrackingEvent).count() == 3 + 3 + 4
