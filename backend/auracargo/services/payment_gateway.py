"""
Hosted-checkout payment gateway client.

The portal only needs two calls: start a checkout for an amount and payer
email, and verify a reference afterwards. Amounts go over the wire in
minor units (kobo for NGN).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import httpx

from auracargo.config import settings
from auracargo.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)


@dataclass
class CheckoutSession:
    reference: str
    authorization_url: str | None = None
    access_code: str | None = None


@dataclass
class VerificationResult:
    reference: str
    success: bool
    status: str
    transaction_id: str | None = None
    amount_minor: int | None = None
    raw: dict[str, Any] = field(default_factory=dict)


class PaymentGateway(ABC):
    @abstractmethod
    def initialize(self, amount: Decimal, email: str, reference: str) -> CheckoutSession:
        ...

    @abstractmethod
    def verify(self, reference: str) -> VerificationResult:
        ...


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).to_integral_value())


class PaystackGateway(PaymentGateway):
    def __init__(
        self,
        secret_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self._secret_key = secret_key or settings.paystack_secret_key or ""
        self._base_url = (base_url or settings.paystack_base_url).rstrip("/")
        self._timeout = timeout or settings.payment_gateway_timeout_seconds
        self._transport = transport
        if not self._secret_key:
            logger.warning(
                "Paystack secret key not configured. "
                "Set PAYSTACK_SECRET_KEY in .env; gateway calls will fail."
            )

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self._secret_key}",
                "Content-Type": "application/json",
            },
        )

    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        if not self._secret_key:
            raise ExternalServiceError("Payment gateway is not configured")
        try:
            with self._client() as client:
                resp = client.request(method, path, **kwargs)
                resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning("Payment gateway HTTP error %s %s: %s", method, path, e)
            message = ""
            try:
                message = e.response.json().get("message", "")
            except ValueError:
                message = e.response.text
            raise ExternalServiceError(f"Payment gateway error: {message or e}")
        except httpx.HTTPError as e:
            logger.warning("Payment gateway unreachable %s %s: %s", method, path, e)
            raise ExternalServiceError("Payment gateway temporarily unavailable")

    def initialize(self, amount: Decimal, email: str, reference: str) -> CheckoutSession:
        payload = {
            "email": email,
            "amount": to_minor_units(amount),
            "reference": reference,
            "currency": settings.currency,
        }
        if settings.payment_callback_url:
            payload["callback_url"] = settings.payment_callback_url
        body = self._request("POST", "/transaction/initialize", json=payload)
        data = body.get("data") or {}
        return CheckoutSession(
            reference=data.get("reference", reference),
            authorization_url=data.get("authorization_url"),
            access_code=data.get("access_code"),
        )

    def verify(self, reference: str) -> VerificationResult:
        logger.info("Verifying payment reference: %s", reference)
        body = self._request("GET", f"/transaction/verify/{reference}")
        data = body.get("data") or {}
        status = str(data.get("status") or "unknown").lower()
        transaction_id = data.get("id")
        return VerificationResult(
            reference=reference,
            success=bool(body.get("status")) and status == "success",
            status=status,
            transaction_id=str(transaction_id) if transaction_id is not None else None,
            amount_minor=data.get("amount"),
            raw=body,
        )


_gateway: PaymentGateway | None = None


def get_payment_gateway() -> PaymentGateway:
    global _gateway
    if _gateway is None:
        _gateway = PaystackGateway()
    return _gateway
