"""
OPay Payment Gateway Adapter

Cashier checkout for cards, bank transfer, USSD and OPay wallet, NGN only.
OPay has no refund API; refunds go through the OPay merchant dashboard.
"""

import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Optional

from retailpay.core.config import OpayConfig, Settings
from retailpay.schemas.order import Order, OrderPayment

from .base import (
    PaymentGateway,
    PaymentInitiationResult,
    PaymentVerificationResult,
    RefundResult,
    WebhookEvent,
    WebhookRequest,
    WebhookStatus,
    as_dict,
    constant_time_equals,
)
from .money import from_smallest_unit, to_smallest_unit

CURRENCY = "NGN"
SUCCESS_CODE = "00000"
CHECKOUT_EXPIRY = timedelta(minutes=30)
SIGNATURE_HEADER = "Authorization"
DEFAULT_CLIENT_IP = "127.0.0.1"

WEBHOOK_STATUS = {
    "SUCCESS": WebhookStatus.SUCCESS,
    "FAIL": WebhookStatus.FAILED,
    "FAILED": WebhookStatus.FAILED,
    "CLOSE": WebhookStatus.FAILED,
}


class OpayAdapter(PaymentGateway):
    """OPay payment gateway adapter."""

    config: OpayConfig

    def _default_config(self, settings: Settings) -> OpayConfig:
        return settings.opay

    def _default_headers(self) -> Dict[str, str]:
        headers = super()._default_headers()
        if self.config.merchant_id:
            headers["MerchantId"] = self.config.merchant_id
        return headers

    def get_identifier(self) -> str:
        return "opay"

    def get_name(self) -> str:
        return "OPay"

    def get_supported_currencies(self) -> FrozenSet[str]:
        return frozenset({CURRENCY})

    async def initialize_payment(
        self, order: Order, options: Optional[Dict[str, Any]] = None
    ) -> PaymentInitiationResult:
        """
        Create an OPay cashier order.

        OPay answers HTTP 200 for business failures too; only response
        code ``00000`` counts as success.
        """
        if not self.is_available():
            return PaymentInitiationResult.failed(self._not_configured_message())

        options = options or {}
        reference = self.generate_reference(order)
        amount = to_smallest_unit(order.total_amount, CURRENCY)
        callback_url = options.get("callback_url") or self.get_callback_url(order)
        expire_at = datetime.now(timezone.utc) + CHECKOUT_EXPIRY

        payload = {
            "reference": reference,
            "mchShortName": self.settings.app_name,
            "productName": f"Order #{order.order_number}",
            "productDesc": f"Payment for order {order.order_number}",
            "userPhone": (order.customer.phone if order.customer else None) or "",
            "userRequestIp": options.get("client_ip") or DEFAULT_CLIENT_IP,
            "amount": str(amount),
            "currency": CURRENCY,
            "callbackUrl": callback_url,
            "returnUrl": options.get("return_url") or callback_url,
            "expireAt": str(int(expire_at.timestamp())),
        }

        response = await self.http.request("POST", "/api/v3/cashier/initialize", json=payload)

        if not response.success or str(response.data.get("code") or "") != SUCCESS_CODE:
            return PaymentInitiationResult.failed(
                response.message or "Failed to initialize OPay payment", reference
            )

        data = as_dict(response.data.get("data"))

        self._log_payment_event(
            "payment_initialized",
            order,
            reference=reference,
            amount=str(order.total_amount),
            currency=CURRENCY,
        )

        return PaymentInitiationResult.redirect(
            reference=reference,
            authorization_url=data.get("cashierUrl") or "",
            metadata={"order_no": data.get("orderNo") or ""},
        )

    async def verify_payment(self, reference: str) -> PaymentVerificationResult:
        if not self.is_available():
            return PaymentVerificationResult.failed(reference, self._not_configured_message())

        response = await self.http.request(
            "POST", "/api/v3/cashier/status", json={"reference": reference}
        )

        if not response.success:
            return PaymentVerificationResult.failed(
                reference,
                response.message or "Verification request failed",
                response.data or None,
            )

        data = as_dict(response.data.get("data"))
        status = data.get("status") or "FAIL"

        if status == "SUCCESS":
            return PaymentVerificationResult.success(
                reference=reference,
                amount=from_smallest_unit(data.get("amount"), CURRENCY),
                currency=CURRENCY,
                gateway_reference=str(data.get("orderNo") or reference),
                payment_method="opay",
                raw_response=data,
            )

        if status in ("PENDING", "INITIAL"):
            return PaymentVerificationResult.pending(reference, "Payment is being processed", data)

        return PaymentVerificationResult.failed(
            reference, data.get("failureReason") or "Payment failed", data
        )

    def supports_refunds(self) -> bool:
        return False

    async def refund(
        self,
        payment: OrderPayment,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        return RefundResult.failed(
            payment.reference_number,
            "OPay refunds must be processed through the OPay merchant dashboard",
        )

    def validate_webhook(self, request: WebhookRequest) -> bool:
        signature = request.header(SIGNATURE_HEADER)
        secret = self.config.webhook_secret

        if not signature or not secret:
            return False

        computed = hmac.new(secret.encode("utf-8"), request.body, hashlib.sha512).hexdigest()
        return constant_time_equals(f"Bearer {computed}", signature)

    def parse_webhook(self, request: WebhookRequest) -> WebhookEvent:
        payload = request.json()
        nested = payload.get("payload")
        data = nested if isinstance(nested, dict) else payload

        status = WEBHOOK_STATUS.get(str(data.get("status") or ""), WebhookStatus.PENDING)

        return WebhookEvent(
            type=f"payment.{status.value}",
            reference=str(data.get("reference") or ""),
            status=status,
            amount=from_smallest_unit(data["amount"], CURRENCY) if data.get("amount") is not None else None,
            currency=CURRENCY,
            gateway_reference=str(data.get("orderNo") or ""),
            raw_payload=payload,
        )
