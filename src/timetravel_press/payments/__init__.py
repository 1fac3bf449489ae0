"""Payment gating for priced stages."""

from .gate import (
    PRICING,
    PaymentGate,
    PaymentToken,
    StripePaymentGate,
    TestModePaymentGate,
    create_payment_gate,
)

__all__ = [
    "PRICING",
    "PaymentGate",
    "PaymentToken",
    "StripePaymentGate",
    "TestModePaymentGate",
    "create_payment_gate",
]
