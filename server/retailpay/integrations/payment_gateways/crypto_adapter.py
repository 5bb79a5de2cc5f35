"""
Cryptocurrency Payment Gateway Adapter

Accepts BTC, ETH, USDT and other coins through a NOWPayments-style API.
Orders are quoted in fiat; the customer pays the converted coin amount to a
one-off wallet address. On-chain payments cannot be reversed, so refunds are
never supported.
"""

import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Optional
from urllib.parse import quote

from retailpay.core.config import CryptoConfig, Settings
from retailpay.schemas.order import Order, OrderPayment

from .base import (
    PaymentGateway,
    PaymentInitiationResult,
    PaymentVerificationResult,
    RefundResult,
    WebhookEvent,
    WebhookRequest,
    WebhookStatus,
    constant_time_equals,
)
from .money import to_decimal

SIGNATURE_HEADER = "x-nowpayments-sig"
DEFAULT_PAY_CURRENCY = "btc"
DEFAULT_QUOTE_CURRENCY = "USD"
PAYMENT_WINDOW = timedelta(minutes=30)

SUCCESS_STATUSES = frozenset({"finished", "confirmed"})
PENDING_STATUSES = frozenset({"waiting", "confirming", "sending"})
FAILED_STATUSES = frozenset({"failed", "expired", "refunded"})


def canonical_payload(payload: Dict[str, Any]) -> bytes:
    """
    Serialize an IPN payload the way the provider signs it: keys sorted,
    compact separators, forward slashes left unescaped.
    """
    return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")


def _parse_expiry(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class CryptoAdapter(PaymentGateway):
    """Cryptocurrency payment gateway adapter."""

    config: CryptoConfig

    def _default_config(self, settings: Settings) -> CryptoConfig:
        return settings.crypto

    def _default_headers(self) -> Dict[str, str]:
        return {"x-api-key": self.config.api_key or ""}

    def get_identifier(self) -> str:
        return "crypto"

    def get_name(self) -> str:
        return "Cryptocurrency"

    def get_supported_currencies(self) -> FrozenSet[str]:
        return frozenset({"USD", "EUR", "NGN", "GBP"})

    def supports_refunds(self) -> bool:
        return False

    def _not_configured_message(self) -> str:
        return "Crypto payments are not configured"

    async def initialize_payment(
        self, order: Order, options: Optional[Dict[str, Any]] = None
    ) -> PaymentInitiationResult:
        """
        Create a crypto payment.

        Args:
            order: The order to be paid
            options: ``pay_currency`` selects the coin (default ``btc``);
                ``metadata`` is merged into the result metadata

        Returns:
            PaymentInitiationResult of the ``crypto`` variant
        """
        if not self.is_available():
            return PaymentInitiationResult.failed(self._not_configured_message())

        options = options or {}
        reference = self.generate_reference(order)
        currency = order.payment_currency
        pay_currency = str(options.get("pay_currency") or DEFAULT_PAY_CURRENCY).lower()

        payload = {
            "price_amount": float(order.total_amount),
            "price_currency": currency.lower(),
            "pay_currency": pay_currency,
            "ipn_callback_url": self.get_webhook_url(),
            "order_id": reference,
            "order_description": f"Order #{order.order_number}",
        }

        response = await self.http.request("POST", "/payment", json=payload)

        if not response.success:
            return PaymentInitiationResult.failed(
                response.message or "Failed to create crypto payment", reference
            )

        data = response.data
        expires_at = _parse_expiry(data.get("expiration_estimate_date"))
        if expires_at is None:
            expires_at = datetime.now(timezone.utc) + PAYMENT_WINDOW

        self._log_payment_event(
            "payment_initialized",
            order,
            reference=reference,
            amount=str(order.total_amount),
            currency=currency,
            pay_currency=pay_currency,
        )

        return PaymentInitiationResult.crypto(
            reference=reference,
            wallet_address=data.get("pay_address") or "",
            crypto_amount=to_decimal(data.get("pay_amount")),
            crypto_currency=pay_currency.upper(),
            qr_code=data.get("qr_code"),
            expires_at=expires_at,
            metadata={
                "payment_id": data.get("payment_id"),
                "payment_url": data.get("invoice_url"),
                **(options.get("metadata") or {}),
            },
        )

    async def verify_payment(self, reference: str) -> PaymentVerificationResult:
        if not self.is_available():
            return PaymentVerificationResult.failed(reference, self._not_configured_message())

        response = await self.http.request("GET", f"/payment/{quote(reference, safe='')}")

        if not response.success:
            return PaymentVerificationResult.failed(
                reference,
                response.message or "Verification request failed",
                response.data or None,
            )

        data = response.data
        status = str(data.get("payment_status") or "waiting")

        if status in SUCCESS_STATUSES:
            return PaymentVerificationResult.success(
                reference=reference,
                amount=to_decimal(data.get("price_amount")),
                currency=str(data.get("price_currency") or DEFAULT_QUOTE_CURRENCY).upper(),
                gateway_reference=str(data.get("payment_id") or reference),
                payment_method=f"crypto_{data.get('pay_currency') or DEFAULT_PAY_CURRENCY}",
                raw_response=data,
            )

        if status in PENDING_STATUSES:
            return PaymentVerificationResult.pending(reference, f"Payment status: {status}", data)

        return PaymentVerificationResult.failed(reference, f"Payment {status}", data)

    async def refund(
        self,
        payment: OrderPayment,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        return RefundResult.failed(
            payment.reference_number,
            "Cryptocurrency payments cannot be refunded automatically. Please process manually.",
        )

    def validate_webhook(self, request: WebhookRequest) -> bool:
        signature = request.header(SIGNATURE_HEADER)
        secret = self.config.signing_secret

        if not signature or not secret:
            return False

        computed = hmac.new(
            secret.encode("utf-8"), canonical_payload(request.json()), hashlib.sha512
        ).hexdigest()
        return constant_time_equals(computed, signature)

    def parse_webhook(self, request: WebhookRequest) -> WebhookEvent:
        payload = request.json()
        provider_status = str(payload.get("payment_status") or "")

        if provider_status in SUCCESS_STATUSES:
            status = WebhookStatus.SUCCESS
        elif provider_status in FAILED_STATUSES:
            status = WebhookStatus.FAILED
        else:
            status = WebhookStatus.PENDING

        return WebhookEvent(
            type=f"payment.{status.value}",
            reference=str(payload.get("order_id") or ""),
            status=status,
            amount=to_decimal(payload.get("price_amount")),
            currency=str(payload.get("price_currency") or DEFAULT_QUOTE_CURRENCY).upper(),
            gateway_reference=str(payload.get("payment_id") or ""),
            metadata={
                "pay_amount": payload.get("pay_amount"),
                "pay_currency": payload.get("pay_currency"),
                "actually_paid": payload.get("actually_paid"),
            },
            raw_payload=payload,
        )
