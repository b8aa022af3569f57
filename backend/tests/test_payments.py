import json
from decimal import Decimal

import httpx
import pytest

from app.core.errors import PaymentError
from app.services.payments import PaystackGateway


def gateway(handler, secret_key="sk_test_123"):
    return PaystackGateway(
        secret_key,
        base_url="https://api.paystack.test",
        callback_url="https://shop.test/checkout/success",
        transport=httpx.MockTransport(handler),
    )


class TestPaystackGateway:

    def setup_method(self):
        self.requests = []

    def test_initialize_sends_amount_in_kobo(self):
        def handler(request):
            self.requests.append(request)
            return httpx.Response(200, json={
                "status": True,
                "data": {"authorization_url": "https://checkout.paystack.com/abc", "reference": "RC-1"},
            })

        payment = gateway(handler).initialize("RC-1", Decimal("615.50"), "buyer@gmail.com", {"order_id": 1})

        assert payment.authorization_url == "https://checkout.paystack.com/abc"
        sent = json.loads(self.requests[0].content)
        assert sent["amount"] == 61550
        assert sent["reference"] == "RC-1"
        assert sent["callback_url"] == "https://shop.test/checkout/success"
        assert self.requests[0].headers["Authorization"] == "Bearer sk_test_123"

    def test_verify(self):
        def handler(request):
            assert request.url.path == "/transaction/verify/RC-1"
            return httpx.Response(200, json={
                "status": True,
                "data": {"status": "success", "reference": "RC-1", "amount": 61550},
            })

        result = gateway(handler).verify("RC-1")

        assert result.success
        assert result.amount == Decimal("615.50")

    def test_abandoned_payment(self):
        def handler(request):
            return httpx.Response(200, json={"status": True, "data": {"status": "abandoned", "amount": 0}})

        assert not gateway(handler).verify("RC-1").success

    def test_provider_error(self):
        def handler(request):
            return httpx.Response(500, json={"status": False, "message": "boom"})

        with pytest.raises(PaymentError):
            gateway(handler).verify("RC-1")

    def test_rejected_request(self):
        def handler(request):
            return httpx.Response(200, json={"status": False, "message": "Invalid key"})

        with pytest.raises(PaymentError) as exc_info:
            gateway(handler).initialize("RC-1", Decimal("1"), "buyer@gmail.com")
        assert exc_info.value.message == "Invalid key"

    def test_not_configured(self):
        with pytest.raises(PaymentError):
            gateway(lambda request: httpx.Response(200), secret_key=None).verify("RC-1")
