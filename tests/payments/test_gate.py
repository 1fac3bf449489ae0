"""Tests for the payment gates."""

from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import pytest

from timetravel_press.constants import PurchaseStage
from timetravel_press.errors import PaymentError
from timetravel_press.payments import (
    PRICING,
    PaymentToken,
    StripePaymentGate,
    TestModePaymentGate,
    create_payment_gate,
)


class FakeStripe:
    """Records requests and answers like the Stripe REST API."""

    def __init__(
        self,
        status: str = "succeeded",
        fail_with: int | None = None,
        product_id: str = "timetravel_text",
        amount: int = 80,
    ):
        self.status = status
        self.fail_with = fail_with
        self.product_id = product_id
        self.amount = amount
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with:
            return httpx.Response(self.fail_with, json={"error": {"message": "nope"}})

        path = request.url.path
        if request.method == "POST" and path == "/v1/payment_intents":
            return httpx.Response(200, json={"id": "pi_123", "client_secret": "pi_123_secret_abc"})
        if request.method == "GET" and path.startswith("/v1/payment_intents/"):
            return httpx.Response(200, json={
                "id": path.rsplit("/", 1)[1],
                "status": self.status,
                "amount": self.amount,
                "metadata": {"product_id": self.product_id},
            })
        if request.method == "POST" and path == "/v1/refunds":
            return httpx.Response(200, json={"id": "re_456"})
        return httpx.Response(404, json={})

    def form(self, index: int = -1) -> dict[str, str]:
        body = self.requests[index].content.decode()
        return {k: v[0] for k, v in parse_qs(body).items()}


def _gate(fake: FakeStripe) -> StripePaymentGate:
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake.handler))
    return StripePaymentGate(secret_key="sk_test_123", http_client=client)


class TestPricing:
    """Tests for the price table."""

    def test_prices(self):
        assert PRICING[PurchaseStage.TEXT_ONLY]["price"] == 80
        assert PRICING[PurchaseStage.ADD_IMAGES]["price"] == 500
        assert all(p["currency"] == "jpy" for p in PRICING.values())


class TestStripePaymentGate:
    """Tests for StripePaymentGate against a mocked Stripe API."""

    def test_requires_secret_key(self):
        with pytest.raises(PaymentError):
            StripePaymentGate(secret_key=None)

    @pytest.mark.asyncio
    async def test_confirm_creates_intent(self):
        fake = FakeStripe()
        gate = _gate(fake)

        token = await gate.confirm(PurchaseStage.TEXT_ONLY, 80, {"session_id": "abc"})
        await gate.close()

        assert token.payment_intent_id == "pi_123"
        assert token.client_secret == "pi_123_secret_abc"
        assert token.stage == PurchaseStage.TEXT_ONLY
        assert token.amount == 80

        request = fake.requests[0]
        assert request.headers["Authorization"] == "Bearer sk_test_123"
        form = fake.form()
        assert form["amount"] == "80"
        assert form["currency"] == "jpy"
        assert form["metadata[product_id]"] == "timetravel_text"
        assert form["metadata[session_id]"] == "abc"
        assert form["automatic_payment_methods[enabled]"] == "true"

    @pytest.mark.asyncio
    async def test_confirm_failure_raises(self):
        gate = _gate(FakeStripe(fail_with=402))
        with pytest.raises(PaymentError):
            await gate.confirm(PurchaseStage.ADD_IMAGES, 500)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,expected", [
        ("succeeded", True),
        ("processing", False),
        ("requires_payment_method", False),
    ])
    async def test_verify_status(self, status, expected):
        fake = FakeStripe(status=status)
        gate = _gate(fake)

        assert await gate.verify("pi_999") is expected
        assert fake.requests[0].url.path == "/v1/payment_intents/pi_999"

    @pytest.mark.asyncio
    async def test_verify_accepts_token(self):
        fake = FakeStripe()
        token = PaymentToken(payment_intent_id="pi_777", stage=PurchaseStage.TEXT_ONLY, amount=80)
        assert await _gate(fake).verify(token)
        assert fake.requests[0].url.path.endswith("pi_777")

    @pytest.mark.asyncio
    async def test_verify_rejects_text_payment_for_image_stage(self):
        """A paid text intent does not count as the image purchase."""
        gate = _gate(FakeStripe(product_id="timetravel_text", amount=80))

        assert await gate.verify("pi_text", PurchaseStage.TEXT_ONLY, 80)
        assert not await gate.verify("pi_text", PurchaseStage.ADD_IMAGES, 500)
        assert not await gate.verify("pi_text", PurchaseStage.ADD_IMAGES)

    @pytest.mark.asyncio
    async def test_verify_checks_amount(self):
        gate = _gate(FakeStripe(product_id="timetravel_images", amount=100))

        assert not await gate.verify("pi_cheap", PurchaseStage.ADD_IMAGES, 500)
        assert await gate.verify("pi_cheap", PurchaseStage.ADD_IMAGES)

    @pytest.mark.asyncio
    async def test_verify_token_for_other_stage_skips_lookup(self):
        fake = FakeStripe()
        token = PaymentToken(payment_intent_id="pi_777", stage=PurchaseStage.TEXT_ONLY, amount=80)

        assert not await _gate(fake).verify(token, PurchaseStage.ADD_IMAGES, 500)
        assert fake.requests == []

    @pytest.mark.asyncio
    async def test_verify_http_error_is_false(self):
        assert await _gate(FakeStripe(fail_with=500)).verify("pi_1") is False

    @pytest.mark.asyncio
    async def test_refund(self):
        fake = FakeStripe()
        refund_id = await _gate(fake).refund("pi_123", reason="images failed")

        assert refund_id == "re_456"
        form = fake.form()
        assert form["payment_intent"] == "pi_123"
        assert form["reason"] == "requested_by_customer"
        assert form["metadata[custom_reason]"] == "images failed"

    @pytest.mark.asyncio
    async def test_refund_failure_returns_none(self):
        assert await _gate(FakeStripe(fail_with=400)).refund("pi_123") is None


class TestTestModePaymentGate:
    """Tests for the always-approving gate."""

    @pytest.mark.asyncio
    async def test_confirm_and_verify(self):
        gate = TestModePaymentGate()
        token = await gate.confirm(PurchaseStage.ADD_IMAGES, 500)

        assert token.payment_intent_id.startswith("pi_test_")
        assert await gate.verify(token)
        assert await gate.refund(token) == f"re_test_{token.payment_intent_id}"


    @pytest.mark.asyncio
    async def test_verify_checks_token_stage(self):
        gate = TestModePaymentGate()
        token = await gate.confirm(PurchaseStage.TEXT_ONLY, 80)

        assert await gate.verify(token, PurchaseStage.TEXT_ONLY, 80)
        assert not await gate.verify(token, PurchaseStage.ADD_IMAGES, 500)
        assert not await gate.verify(token, PurchaseStage.TEXT_ONLY, 500)
        assert await gate.verify("pi_plain", PurchaseStage.ADD_IMAGES, 500)


class TestCreatePaymentGate:
    """Tests for the gate factory."""

    def test_test_mode(self):
        assert isinstance(create_payment_gate(test_mode=True), TestModePaymentGate)

    def test_live_mode(self):
        gate = create_payment_gate(test_mode=False, secret_key="sk_live_x")
        assert isinstance(gate, StripePaymentGate)

    def test_live_mode_without_key(self):
        with pytest.raises(PaymentError):
            create_payment_gate(test_mode=False)
