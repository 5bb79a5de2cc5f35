"""
Payment gateway integration modules

Provides adapters for Paystack, Flutterwave, OPay and cryptocurrency
payments behind one interface with normalized results.
"""

from .base import (
    InitiationKind,
    InvalidPaymentGatewayError,
    PaymentGateway,
    PaymentGatewayError,
    PaymentInitiationResult,
    PaymentVerificationResult,
    RefundResult,
    VerificationStatus,
    WebhookEvent,
    WebhookRequest,
    WebhookStatus,
)
from .crypto_adapter import CryptoAdapter
from .flutterwave_adapter import FlutterwaveAdapter
from .manager import PaymentGatewayManager
from .opay_adapter import OpayAdapter
from .paystack_adapter import PaystackAdapter

__all__ = [
    "InitiationKind",
    "InvalidPaymentGatewayError",
    "PaymentGateway",
    "PaymentGatewayError",
    "PaymentInitiationResult",
    "PaymentVerificationResult",
    "RefundResult",
    "VerificationStatus",
    "WebhookEvent",
    "WebhookRequest",
    "WebhookStatus",
    "CryptoAdapter",
    "FlutterwaveAdapter",
    "OpayAdapter",
    "PaystackAdapter",
    "PaymentGatewayManager",
]
