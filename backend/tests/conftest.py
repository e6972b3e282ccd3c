import os
from decimal import Decimal

# In-memory SQLite shared by every session; must be set before auracargo is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("ADMIN_SIGNUP_CODE", "let-me-in")

import pytest
from fastapi.testclient import TestClient

from auracargo.database import Base, SessionLocal, engine
from auracargo.api.deps import get_gateway
from auracargo.models.profile import Profile, ProfileRole
from auracargo.services.payment_gateway import (
    CheckoutSession,
    PaymentGateway,
    VerificationResult,
    to_minor_units,
)

import main


class FakeGateway(PaymentGateway):
    """Records checkouts; ``outcomes`` maps reference -> gateway status."""

    def __init__(self):
        self.initialized: list[tuple[Decimal, str, str]] = []
        self.outcomes: dict[str, str] = {}
        self.amounts: dict[str, Decimal] = {}

    def initialize(self, amount, email, reference):
        self.initialized.append((amount, email, reference))
        self.amounts[reference] = Decimal(amount)
        return CheckoutSession(
            reference=reference,
            authorization_url=f"https://checkout.test/{reference}",
            access_code="ac_test",
        )

    def verify(self, reference):
        status = self.outcomes.get(reference, "ongoing")
        amount = self.amounts.get(reference, Decimal("0"))
        return VerificationResult(
            reference=reference,
            success=status == "success",
            status=status,
            transaction_id=f"txn-{reference}" if status == "success" else None,
            amount_minor=to_minor_units(amount),
        )


@pytest.fixture(autouse=True)
def reset_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(gateway):
    main.app.dependency_overrides[get_gateway] = lambda: gateway
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()


def _register(client, email, **extra):
    resp = client.post("/auth/register", json={"email": email, **extra})
    assert resp.status_code == 200, resp.text
    return resp.json()


@pytest.fixture
def customer(client):
    body = _register(client, "ada@example.com", first_name="Ada", last_name="Obi")
    return {
        "id": body["profile"]["id"],
        "headers": {"Authorization": f"Bearer {body['token']}"},
        "token": body["token"],
    }


@pytest.fixture
def admin(client):
    body = _register(client, "ops@auracargo.com", first_name="Ops", admin_code="let-me-in")
    assert body["is_admin"] is True
    return {
        "id": body["profile"]["id"],
        "headers": {"Authorization": f"Bearer {body['token']}"},
        "token": body["token"],
    }


@pytest.fixture
def make_profile(db):
    def _make(email="someone@example.com", role=ProfileRole.CUSTOMER):
        profile = Profile(email=email, first_name=email.split("@")[0], role=role.value)
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile

    return _make
