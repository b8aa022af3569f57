"""
Платёжный шлюз.

Для бизнес-логики это «начать оплату» и «проверить результат по reference».
Реализация — Paystack (суммы в копейках/kobo).
"""
import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel

from app.core.config import settings
from app.core.errors import PaymentError

logger = logging.getLogger(__name__)


class PaymentInit(BaseModel):
    reference: str
    authorization_url: str
    access_code: Optional[str] = None


class PaymentVerification(BaseModel):
    reference: str
    success: bool
    amount: Decimal = Decimal("0")


class PaymentGateway(ABC):

    @abstractmethod
    def initialize(
        self, reference: str, amount: Decimal, email: str, metadata: Optional[Dict[str, Any]] = None
    ) -> PaymentInit:
        ...

    @abstractmethod
    def verify(self, reference: str) -> PaymentVerification:
        ...


class PaystackGateway(PaymentGateway):

    def __init__(
        self,
        secret_key: Optional[str],
        base_url: str = settings.PAYSTACK_BASE_URL,
        callback_url: str = settings.PAYMENT_CALLBACK_URL,
        timeout: float = settings.PAYMENT_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.secret_key = secret_key
        self.base_url = base_url
        self.callback_url = callback_url
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls) -> "PaystackGateway":
        return cls(settings.PAYSTACK_SECRET_KEY)

    def _client(self) -> httpx.Client:
        if not self.secret_key:
            raise PaymentError("Payment provider is not configured")
        return httpx.Client(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.secret_key}"},
            timeout=self.timeout,
            transport=self.transport,
        )

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        with self._client() as client:
            try:
                response = client.request(method, path, **kwargs)
                response.raise_for_status()
                payload = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                logger.error("Paystack %s %s failed: %s", method, path, exc)
                raise PaymentError("Payment provider request failed") from exc

        if not payload.get("status"):
            raise PaymentError(payload.get("message") or "Payment provider rejected the request")
        return payload.get("data") or {}

    def initialize(self, reference, amount, email, metadata=None):
        data = self._request(
            "POST",
            "/transaction/initialize",
            json={
                "amount": int(Decimal(amount) * 100),
                "email": email,
                "reference": reference,
                "metadata": metadata or {},
                "callback_url": self.callback_url,
            },
        )
        return PaymentInit(
            reference=data.get("reference", reference),
            authorization_url=data["authorization_url"],
            access_code=data.get("access_code"),
        )

    def verify(self, reference):
        data = self._request("GET", f"/transaction/verify/{reference}")
        return PaymentVerification(
            reference=data.get("reference", reference),
            success=data.get("status") == "success",
            amount=Decimal(data.get("amount") or 0) / 100,
        )

