"""
Flutterwave Payment Gateway Adapter

Card, bank transfer, mobile money and USSD payments across several African
markets. Flutterwave takes and returns decimal major-unit amounts.
"""

from decimal import Decimal
from typing import Any, Dict, FrozenSet, Optional
from urllib.parse import quote

from retailpay.core.config import FlutterwaveConfig, Settings
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
from .money import to_decimal

SIGNATURE_HEADER = "verif-hash"

TRANSACTION_STATUS = {
    "successful": WebhookStatus.SUCCESS,
    "success": WebhookStatus.SUCCESS,
    "completed": WebhookStatus.SUCCESS,
    "failed": WebhookStatus.FAILED,
    "cancelled": WebhookStatus.FAILED,
    "error": WebhookStatus.FAILED,
    "pending": WebhookStatus.PENDING,
}


def _decimal_or_none(value: Any) -> Optional[Decimal]:
    return to_decimal(value) if value is not None else None


class FlutterwaveAdapter(PaymentGateway):
    """Flutterwave payment gateway adapter."""

    config: FlutterwaveConfig

    def _default_config(self, settings: Settings) -> FlutterwaveConfig:
        return settings.flutterwave

    def get_identifier(self) -> str:
        return "flutterwave"

    def get_name(self) -> str:
        return "Flutterwave"

    def get_supported_currencies(self) -> FrozenSet[str]:
        return frozenset({"NGN", "GHS", "KES", "ZAR", "TZS", "UGX", "USD", "EUR", "GBP"})

    def supports_inline_payment(self) -> bool:
        return True

    async def initialize_payment(
        self, order: Order, options: Optional[Dict[str, Any]] = None
    ) -> PaymentInitiationResult:
        if not self.is_available():
            return PaymentInitiationResult.failed(self._not_configured_message())

        options = options or {}
        reference = self.generate_reference(order)
        currency = order.payment_currency
        customer = order.customer

        customer_payload = {
            "email": order.customer_email,
            "name": (customer.name if customer else None) or "Customer",
            "phonenumber": (customer.phone if customer else None) or "",
        }

        payload: Dict[str, Any] = {
            "tx_ref": reference,
            "amount": float(order.total_amount),
            "currency": currency,
            "redirect_url": options.get("callback_url") or self.get_callback_url(order),
            "customer": customer_payload,
            "customizations": {
                "title": self.settings.app_name,
                "description": f"Payment for Order #{order.order_number}",
            },
            "meta": {
                "order_id": order.id,
                "order_number": order.order_number,
                "tenant_id": order.tenant_id,
                **(options.get("metadata") or {}),
            },
        }

        channels = as_channel_list(options.get("channels"))
        if channels:
            payload["payment_options"] = ",".join(channels)

        response = await self.http.request("POST", "/payments", json=payload)

        if not response.success or response.data.get("status") != "success":
            return PaymentInitiationResult.failed(
                response.message or "Failed to initialize payment", reference
            )

        data = as_dict(response.data.get("data"))

        self._log_payment_event(
            "payment_initialized",
            order,
            reference=reference,
            amount=str(order.total_amount),
            currency=currency,
        )

        return PaymentInitiationResult.redirect(
            reference=reference,
            authorization_url=data.get("link") or "",
            metadata={
                "public_key": self.get_public_key(),
                "inline_data": {
                    "public_key": self.get_public_key(),
                    "tx_ref": reference,
                    "amount": float(order.total_amount),
                    "currency": currency,
                    "customer": customer_payload,
                },
            },
        )

    async def verify_payment(self, reference: str) -> PaymentVerificationResult:
        if not self.is_available():
            return PaymentVerificationResult.failed(reference, self._not_configured_message())

        response = await self.http.request(
            "GET", "/transactions/verify_by_reference", params={"tx_ref": reference}
        )

        if not response.success or response.data.get("status") != "success":
            return PaymentVerificationResult.failed(
                reference,
                response.message or "Verification failed",
                response.data or None,
            )

        data = as_dict(response.data.get("data"))
        status = data.get("status") or "failed"

        if status == "successful":
            payment_type = data.get("payment_type")
            return PaymentVerificationResult.success(
                reference=reference,
                amount=to_decimal(data.get("amount")),
                currency=data.get("currency") or DEFAULT_CURRENCY,
                gateway_reference=str(data.get("id") or ""),
                payment_method=payment_type or "card",
                channel=payment_type,
                gateway_fee=to_decimal(data.get("app_fee")),
                paid_at=data.get("created_at"),
                raw_response=data,
            )

        if status == "pending":
            return PaymentVerificationResult.pending(reference, "Payment is pending", data)

        return PaymentVerificationResult.failed(
            reference, data.get("processor_response") or "Payment failed", data
        )

    async def refund(
        self,
        payment: OrderPayment,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        if not self.is_available():
            return RefundResult.failed(payment.reference_number, self._not_configured_message())

        transaction_id = payment.resolve_gateway_reference()
        if not transaction_id:
            return RefundResult.failed(
                payment.reference_number, "Transaction ID not found for this payment"
            )

        refund_amount = amount if amount is not None else payment.amount
        payload: Dict[str, Any] = {"amount": float(refund_amount)}
        if reason:
            payload["comments"] = reason

        response = await self.http.request(
            "POST", f"/transactions/{quote(transaction_id, safe='')}/refund", json=payload
        )

        if not response.success or response.data.get("status") != "success":
            return RefundResult.failed(
                payment.reference_number,
                response.message or "Refund failed",
                response.data or None,
            )

        data = as_dict(response.data.get("data"))
        refunded = data.get("amount_refunded")

        return RefundResult.succeeded(
            reference=payment.reference_number,
            amount=to_decimal(refunded) if refunded is not None else refund_amount,
            currency=data.get("currency") or DEFAULT_CURRENCY,
            refund_reference=str(data.get("id") or ""),
            raw_response=data,
        )

    def validate_webhook(self, request: WebhookRequest) -> bool:
        """
        Flutterwave sends the configured secret hash verbatim in ``verif-hash``;
        there is no HMAC over the body.
        """
        signature = request.header(SIGNATURE_HEADER)
        secret = self.config.webhook_secret

        if not signature or not secret:
            return False

        return constant_time_equals(secret, signature)

    def parse_webhook(self, request: WebhookRequest) -> WebhookEvent:
        payload = request.json()
        event = str(payload.get("event") or "")
        data = as_dict(payload.get("data"))
        provider_status = str(data.get("status") or "")

        if event == "charge.completed":
            status = WebhookStatus.SUCCESS if provider_status == "successful" else WebhookStatus.FAILED
        else:
            status = TRANSACTION_STATUS.get(provider_status, WebhookStatus.UNKNOWN)

        return WebhookEvent(
            type=event,
            reference=str(data.get("tx_ref") or ""),
            status=status,
            amount=_decimal_or_none(data.get("amount")),
            currency=data.get("currency") or DEFAULT_CURRENCY,
            gateway_reference=str(data.get("id") or ""),
            paid_at=data.get("created_at"),
            gateway_fee=_decimal_or_none(data.get("app_fee")),
            metadata=data.get("meta") if isinstance(data.get("meta"), dict) else None,
            raw_payload=payload,
        )
