"""
Paystack Payment Gateway Adapter

Card, bank transfer, USSD and mobile money payments for Nigerian Naira and
other African currencies. Paystack amounts are integer minor units.
"""

import hashlib
import hmac
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Optional
from urllib.parse import quote

from retailpay.core.config import PaystackConfig, Settings
from retailpay.schemas.order import DEFAULT_CURRENCY, Order, OrderPayment

from .base import (
    PaymentGateway,
    PaymentInitiationResult,
    PaymentVerificationResult,
    RefundResult,
    WebhookEvent,
    WebhookRequest,
    WebhookStatus,
    as_channel_list,
    as_dict,
    constant_time_equals,
)
from .money import from_smallest_unit, to_smallest_unit

SIGNATURE_HEADER = "x-paystack-signature"

WEBHOOK_EVENT_STATUS = {
    "charge.success": WebhookStatus.SUCCESS,
    "charge.failed": WebhookStatus.FAILED,
}

TRANSACTION_STATUS = {
    "success": WebhookStatus.SUCCESS,
    "failed": WebhookStatus.FAILED,
    "reversed": WebhookStatus.FAILED,
    "abandoned": WebhookStatus.FAILED,
    "pending": WebhookStatus.PENDING,
    "ongoing": WebhookStatus.PENDING,
    "processing": WebhookStatus.PENDING,
    "queued": WebhookStatus.PENDING,
}


class PaystackAdapter(PaymentGateway):
    """Paystack payment gateway adapter."""

    config: PaystackConfig

    def _default_config(self, settings: Settings) -> PaystackConfig:
        return settings.paystack

    def get_identifier(self) -> str:
        return "paystack"

    def get_name(self) -> str:
        return "Paystack"

    def get_supported_currencies(self) -> FrozenSet[str]:
        return frozenset({"NGN", "GHS", "ZAR", "USD"})

    def supports_inline_payment(self) -> bool:
        return True

    async def initialize_payment(
        self, order: Order, options: Optional[Dict[str, Any]] = None
    ) -> PaymentInitiationResult:
        """
        Initialize a Paystack transaction.

        The redirect result carries the hosted checkout URL plus an
        ``inline_data`` block for the embedded Paystack popup.
        """
        if not self.is_available():
            return PaymentInitiationResult.failed(self._not_configured_message())

        options = options or {}
        reference = self.generate_reference(order)
        currency = order.payment_currency
        amount = to_smallest_unit(order.total_amount, currency)
        email = order.customer_email

        payload: Dict[str, Any] = {
            "email": email,
            "amount": amount,
            "currency": currency,
            "reference": reference,
            "callback_url": options.get("callback_url") or self.get_callback_url(order),
            "metadata": {
                "order_id": order.id,
                "order_number": order.order_number,
                "tenant_id": order.tenant_id,
                "shop_id": order.shop_id,
                "custom_fields": [
                    {
                        "display_name": "Order Number",
                        "variable_name": "order_number",
                        "value": order.order_number,
                    },
                ],
                **(options.get("metadata") or {}),
            },
        }

        channels = as_channel_list(options.get("channels"))
        if channels:
            payload["channels"] = channels

        response = await self.http.request("POST", "/transaction/initialize", json=payload)

        if not response.success or not response.data.get("status"):
            return PaymentInitiationResult.failed(
                response.message or "Failed to initialize payment", reference
            )

        data = as_dict(response.data.get("data"))
        authorization_url = data.get("authorization_url")
        if not authorization_url:
            return PaymentInitiationResult.failed("Paystack did not return an authorization URL", reference)

        self._log_payment_event(
            "payment_initialized",
            order,
            reference=reference,
            amount=str(order.total_amount),
            currency=currency,
        )

        return PaymentInitiationResult.redirect(
            reference=reference,
            authorization_url=authorization_url,
            access_code=data.get("access_code"),
            metadata={
                "public_key": self.get_public_key(),
                "inline_data": {
                    "key": self.get_public_key(),
                    "email": email,
                    "amount": amount,
                    "currency": currency,
                    "ref": reference,
                },
            },
        )

    async def verify_payment(self, reference: str) -> PaymentVerificationResult:
        if not self.is_available():
            return PaymentVerificationResult.failed(reference, self._not_configured_message())

        response = await self.http.request("GET", f"/transaction/verify/{quote(reference, safe='')}")

        if not response.success:
            return PaymentVerificationResult.failed(
                reference,
                response.message or "Verification request failed",
                response.data or None,
            )

        data = as_dict(response.data.get("data"))
        status = data.get("status") or "failed"

        if status == "success":
            currency = data.get("currency") or DEFAULT_CURRENCY
            channel = data.get("channel")
            return PaymentVerificationResult.success(
                reference=reference,
                amount=from_smallest_unit(data.get("amount"), currency),
                currency=currency,
                gateway_reference=str(data.get("id") or reference),
                payment_method=channel or "card",
                channel=channel,
                gateway_fee=from_smallest_unit(data["fees"], currency) if data.get("fees") is not None else None,
                paid_at=data.get("paid_at"),
                raw_response=data,
            )

        if status in ("pending", "ongoing"):
            return PaymentVerificationResult.pending(reference, "Payment is still being processed", data)

        return PaymentVerificationResult.failed(
            reference, data.get("gateway_response") or "Payment failed", data
        )

    async def refund(
        self,
        payment: OrderPayment,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        if not self.is_available():
            return RefundResult.failed(payment.reference_number, self._not_configured_message())

        gateway_reference = payment.resolve_gateway_reference()
        if not gateway_reference:
            return RefundResult.failed(
                payment.reference_number, "Gateway reference not found for this payment"
            )

        payload: Dict[str, Any] = {"transaction": gateway_reference}

        if amount is not None:
            payload["amount"] = to_smallest_unit(amount, self._refund_currency(payment))
        if reason:
            payload["merchant_note"] = reason

        response = await self.http.request("POST", "/refund", json=payload)

        if not response.success or not response.data.get("status"):
            return RefundResult.failed(
                payment.reference_number,
                response.message or "Refund request failed",
                response.data or None,
            )

        data = as_dict(response.data.get("data"))
        currency = data.get("currency") or DEFAULT_CURRENCY

        return RefundResult.succeeded(
            reference=payment.reference_number,
            amount=from_smallest_unit(data.get("amount"), currency),
            currency=currency,
            refund_reference=str(data.get("id") or ""),
            raw_response=data,
        )

    def validate_webhook(self, request: WebhookRequest) -> bool:
        signature = request.header(SIGNATURE_HEADER)
        secret = self.config.webhook_secret

        if not signature or not secret:
            return False

        computed = hmac.new(secret.encode("utf-8"), request.body, hashlib.sha512).hexdigest()
        return constant_time_equals(computed, signature)

    def parse_webhook(self, request: WebhookRequest) -> WebhookEvent:
        payload = request.json()
        event = str(payload.get("event") or "")
        data = as_dict(payload.get("data"))

        status = WEBHOOK_EVENT_STATUS.get(event)
        if status is None:
            status = TRANSACTION_STATUS.get(str(data.get("status") or ""), WebhookStatus.UNKNOWN)

        currency = data.get("currency") or DEFAULT_CURRENCY

        return WebhookEvent(
            type=event,
            reference=str(data.get("reference") or ""),
            status=status,
            amount=from_smallest_unit(data["amount"], currency) if data.get("amount") is not None else None,
            currency=currency,
            gateway_reference=str(data.get("id") or ""),
            paid_at=data.get("paid_at"),
            gateway_fee=from_smallest_unit(data["fees"], currency) if data.get("fees") is not None else None,
            metadata=data.get("metadata") if isinstance(data.get("metadata"), dict) else None,
            raw_payload=payload,
        )

    def _refund_currency(self, payment: OrderPayment) -> str:
        order = payment.order
        if order is not None and order.shop is not None and order.shop.currency:
            return order.shop.currency.upper()
        return (payment.currency or DEFAULT_CURRENCY).upper()
