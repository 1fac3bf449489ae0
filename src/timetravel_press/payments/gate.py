"""Payment gating for the priced stages.

Step 1 (text) and step 2 (images, PDF included) are separate purchases. The
orchestrator verifies a stage's payment once, before the stage's first
provider call.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any

import httpx
from pydantic import BaseModel

from ..constants import PurchaseStage
from ..errors import PaymentError

_logger = logging.getLogger("payments")

PRICING: dict[PurchaseStage, dict[str, Any]] = {
    PurchaseStage.TEXT_ONLY: {
        "id": "timetravel_text",
        "name": "記事生成",
        "description": "記念日新聞のテキスト生成（画像なし）",
        "price": 80,
        "currency": "jpy",
    },
    PurchaseStage.ADD_IMAGES: {
        "id": "timetravel_images",
        "name": "画像追加",
        "description": "記事に画像を追加（4枚）+ PDF出力無料",
        "price": 500,
        "currency": "jpy",
    },
}


class PaymentToken(BaseModel):
    """Confirmation handle for one purchase."""

    payment_intent_id: str
    client_secret: str | None = None
    stage: PurchaseStage
    amount: int
    currency: str = "jpy"


def _intent_id(token: PaymentToken | str) -> str:
    return token.payment_intent_id if isinstance(token, PaymentToken) else token


def _token_matches(token: PaymentToken | str, stage: PurchaseStage | None, amount: int | None) -> bool:
    """False when a PaymentToken was issued for another stage or price."""
    if not isinstance(token, PaymentToken):
        return True
    if stage is not None and token.stage != stage:
        return False
    return amount is None or token.amount == amount


class PaymentGate(ABC):
    """Creates and verifies payment confirmations."""

    @abstractmethod
    async def confirm(
        self,
        stage: PurchaseStage,
        amount: int,
        metadata: dict[str, str] | None = None,
    ) -> PaymentToken:
        """Create a payment for a stage.

        Raises:
            PaymentError: If the payment could not be created.
        """

    @abstractmethod
    async def verify(
        self,
        token: PaymentToken | str,
        stage: PurchaseStage | None = None,
        amount: int | None = None,
    ) -> bool:
        """True if the payment behind ``token`` has succeeded.

        With ``stage`` (and ``amount``), the payment must also have been made
        for that product at that price.
        """

    @abstractmethod
    async def refund(self, token: PaymentToken | str, reason: str | None = None) -> str | None:
        """Refund a payment. Returns the refund id, or None on failure."""

    async def close(self) -> None:
        """Release network resources."""


class TestModePaymentGate(PaymentGate):
    """Gate that approves every payment made for the right stage. For development and tests."""

    __test__ = False  # not a pytest test class

    async def confirm(
        self,
        stage: PurchaseStage,
        amount: int,
        metadata: dict[str, str] | None = None,
    ) -> PaymentToken:
        return PaymentToken(
            payment_intent_id=f"pi_test_{uuid.uuid4().hex[:16]}",
            client_secret=None,
            stage=stage,
            amount=amount,
        )

    async def verify(
        self,
        token: PaymentToken | str,
        stage: PurchaseStage | None = None,
        amount: int | None = None,
    ) -> bool:
        return _token_matches(token, stage, amount)

    async def refund(self, token: PaymentToken | str, reason: str | None = None) -> str | None:
        return f"re_test_{_intent_id(token)}"


class StripePaymentGate(PaymentGate):
    """Stripe PaymentIntents over the REST API.

    Usage:
        gate = StripePaymentGate(secret_key="sk_live_...")
        token = await gate.confirm(PurchaseStage.TEXT_ONLY, 80)
        # ... client completes payment with token.client_secret ...
        paid = await gate.verify(token)
    """

    def __init__(
        self,
        secret_key: str | None,
        api_base: str = "https://api.stripe.com/v1",
        currency: str = "jpy",
        http_client: httpx.AsyncClient | None = None,
    ):
        if not secret_key:
            raise PaymentError("STRIPE_SECRET_KEY is not configured")
        self._secret_key = secret_key
        self._api_base = api_base.rstrip("/")
        self._currency = currency
        self._http_client = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _request(self, method: str, path: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
        client = await self._get_http_client()
        response = await client.request(
            method,
            f"{self._api_base}{path}",
            data=data,
            headers={"Authorization": f"Bearer {self._secret_key}"},
        )
        response.raise_for_status()
        return response.json()

    async def confirm(
        self,
        stage: PurchaseStage,
        amount: int,
        metadata: dict[str, str] | None = None,
    ) -> PaymentToken:
        pricing = PRICING[stage]
        form: dict[str, Any] = {
            "amount": str(amount),
            "currency": self._currency,
            "automatic_payment_methods[enabled]": "true",
            "metadata[product_id]": pricing["id"],
            "metadata[product_name]": pricing["name"],
        }
        for key, value in (metadata or {}).items():
            form[f"metadata[{key}]"] = value

        try:
            intent = await self._request("POST", "/payment_intents", form)
        except httpx.HTTPError as e:
            _logger.warning(f"PAYMENT_CREATE_ERROR | stage:{stage.value} | error:{e}")
            raise PaymentError(f"Failed to create payment intent: {e}") from e

        client_secret = intent.get("client_secret")
        if not client_secret:
            raise PaymentError("Failed to create payment intent")

        _logger.info(f"PAYMENT_CREATED | stage:{stage.value} | intent:{intent['id']} | amount:{amount}")

        return PaymentToken(
            payment_intent_id=intent["id"],
            client_secret=client_secret,
            stage=stage,
            amount=amount,
            currency=self._currency,
        )

    async def verify(
        self,
        token: PaymentToken | str,
        stage: PurchaseStage | None = None,
        amount: int | None = None,
    ) -> bool:
        intent_id = _intent_id(token)
        if not _token_matches(token, stage, amount):
            _logger.warning(
                f"PAYMENT_TOKEN_MISMATCH | intent:{intent_id} | "
                f"expected:{stage.value if stage else '-'}/{amount}"
            )
            return False
        try:
            intent = await self._request("GET", f"/payment_intents/{intent_id}")
        except (httpx.HTTPError, ValueError) as e:
            _logger.warning(f"PAYMENT_VERIFY_ERROR | intent:{intent_id} | error:{e}")
            return False

        status = intent.get("status")
        if status != "succeeded":
            _logger.info(f"PAYMENT_UNPAID | intent:{intent_id} | status:{status}")
            return False

        product_id = (intent.get("metadata") or {}).get("product_id")
        if stage is not None and product_id != PRICING[stage]["id"]:
            _logger.warning(
                f"PAYMENT_STAGE_MISMATCH | intent:{intent_id} | product:{product_id} | "
                f"expected:{PRICING[stage]['id']}"
            )
            return False
        if amount is not None and intent.get("amount") != amount:
            _logger.warning(
                f"PAYMENT_AMOUNT_MISMATCH | intent:{intent_id} | amount:{intent.get('amount')} | "
                f"expected:{amount}"
            )
            return False

        _logger.info(f"PAYMENT_VERIFIED | intent:{intent_id} | product:{product_id}")
        return True

    async def refund(self, token: PaymentToken | str, reason: str | None = None) -> str | None:
        intent_id = _intent_id(token)
        form = {
            "payment_intent": intent_id,
            "reason": "requested_by_customer",
            "metadata[custom_reason]": reason or "Customer requested refund",
        }
        try:
            refund = await self._request("POST", "/refunds", form)
        except (httpx.HTTPError, ValueError) as e:
            _logger.warning(f"PAYMENT_REFUND_ERROR | intent:{intent_id} | error:{e}")
            return None
        return refund.get("id")


def create_payment_gate(
    test_mode: bool,
    secret_key: str | None = None,
    api_base: str = "https://api.stripe.com/v1",
    currency: str = "jpy",
) -> PaymentGate:
    """Build the gate for the current deployment."""
    if test_mode:
        return TestModePaymentGate()
    return StripePaymentGate(secret_key=secret_key, api_base=api_base, currency=currency)
