from decimal import Decimal

import httpx
import pytest

from auracargo.core.errors import ExternalServiceError, ValidationError
from auracargo.models.payment import Payment
from auracargo.services import payments as payment_service
from auracargo.services.payment_gateway import PaystackGateway, to_minor_units


def _shipment(client, customer, weight=2.5):
    return client.post(
        "/shipments",
        json={"origin": "Lagos", "destination": "Ibadan", "weight": weight},
        headers=customer["headers"],
    ).json()


def test_checkout_prices_shipment_and_records_pending(client, customer, gateway):
    shipment = _shipment(client, customer)
    resp = client.post(
        "/payments/checkout", json={"shipment_id": shipment["id"]}, headers=customer["headers"]
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["payment"]["status"] == "pending"
    assert Decimal(body["payment"]["amount"]) == Decimal("2500.00")
    assert body["payment"]["payment_reference"].startswith("pay_")
    assert body["authorization_url"].endswith(body["payment"]["payment_reference"])
    assert gateway.initialized[0][1] == "ada@example.com"


def test_verify_success_marks_paid_and_notifies(client, customer, gateway):
    checkout = client.post(
        "/payments/checkout", json={"amount": "1200"}, headers=customer["headers"]
    ).json()
    reference = checkout["payment"]["payment_reference"]
    gateway.outcomes[reference] = "success"

    resp = client.post("/payments/verify", json={"reference": reference}, headers=customer["headers"])
    assert resp.status_code == 200
    assert resp.json()["status"] == "paid"
    assert resp.json()["transaction_id"] == f"txn-{reference}"

    titles = [n["title"] for n in client.get("/notifications", headers=customer["headers"]).json()]
    assert "Payment Confirmed" in titles

    summary = client.get("/payments/summary", headers=customer["headers"]).json()
    assert Decimal(summary["total_paid"]) == Decimal("1200")
    assert summary["pending_count"] == 0


def test_verify_abandoned(client, customer, gateway):
    checkout = client.post(
        "/payments/checkout", json={"amount": "50"}, headers=customer["headers"]
    ).json()
    reference = checkout["payment"]["payment_reference"]
    gateway.outcomes[reference] = "abandoned"
    resp = client.post("/payments/verify", json={"reference": reference}, headers=customer["headers"])
    assert resp.json()["status"] == "abandoned"


def test_checkout_needs_amount_or_shipment(client, customer):
    resp = client.post("/payments/checkout", json={}, headers=customer["headers"])
    assert resp.status_code == 422


def test_gateway_failure_marks_payment_failed(db, make_profile):
    class DownGateway:
        def initialize(self, amount, email, reference):
            raise ExternalServiceError("Payment gateway temporarily unavailable")

    payer = make_profile()
    with pytest.raises(ExternalServiceError):
        payment_service.start_checkout(db, DownGateway(), payer, amount=Decimal("10"))
    assert [p.status for p in db.query(Payment)] == ["failed"]


def test_reconcile_settles_pending(db, make_profile, gateway):
    payer = make_profile()
    settled, _ = payment_service.start_checkout(db, gateway, payer, amount=Decimal("10"))
    still_pending, _ = payment_service.start_checkout(db, gateway, payer, amount=Decimal("20"))
    gateway.outcomes[settled.payment_reference] = "success"

    assert payment_service.reconcile_pending(db, gateway) == 1
    db.expire_all()
    assert db.get(Payment, settled.id).status == "paid"
    assert db.get(Payment, still_pending.id).status == "pending"


def test_legacy_status_spellings():
    assert payment_service.normalize_status("Completed").value == "paid"
    assert payment_service.normalize_status("success").value == "paid"
    with pytest.raises(ValidationError):
        payment_service.normalize_status("overdue")


def test_admin_stats_and_verify(client, customer, admin, gateway):
    checkout = client.post(
        "/payments/checkout", json={"amount": "300"}, headers=customer["headers"]
    ).json()
    payment = checkout["payment"]
    gateway.outcomes[payment["payment_reference"]] = "success"

    resp = client.post(f"/admin/payments/{payment['id']}/verify", headers=admin["headers"])
    assert resp.json()["status"] == "paid"

    stats = client.get("/admin/payments/stats", headers=admin["headers"]).json()
    assert Decimal(stats["total_revenue"]) == Decimal("300")
    assert stats["completed_count"] == 1


def test_paystack_gateway_over_mock_transport():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer sk_test"
        if request.url.path == "/transaction/initialize":
            return httpx.Response(
                200,
                json={
                    "status": True,
                    "data": {"authorization_url": "https://pay/abc", "access_code": "abc", "reference": "r1"},
                },
            )
        return httpx.Response(
            200,
            json={"status": True, "data": {"status": "success", "id": 42, "amount": 150000}},
        )

    gw = PaystackGateway(
        secret_key="sk_test", base_url="https://paystack.test", transport=httpx.MockTransport(handler)
    )
    session = gw.initialize(Decimal("1500"), "a@b.c", "r1")
    assert session.authorization_url == "https://pay/abc"
    result = gw.verify("r1")
    assert result.success is True
    assert result.transaction_id == "42"
    assert result.amount_minor == to_minor_units(Decimal("1500"))


def test_paystack_gateway_http_error():
    gw = PaystackGateway(
        secret_key="sk_test",
        base_url="https://paystack.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(401, json={"message": "Invalid key"})),
    )
    with pytest.raises(ExternalServiceError):
        gw.verify("r1")
