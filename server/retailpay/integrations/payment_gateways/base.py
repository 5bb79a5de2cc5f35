"""
Payment Gateway Base Classes and Interfaces

Defines the contract every payment gateway adapter satisfies and the
normalized result types handed back to order and payment-recording code.
"""

import hmac
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from retailpay.core.config import Settings, get_settings
from retailpay.core.logging import get_logger
from retailpay.schemas.order import Order, OrderPayment

from .http import GatewayHttpClient
from .references import generate_reference

logger = get_logger(__name__)


class InitiationKind(str, Enum):
    """Variants of a payment initiation outcome."""
    FAILED = "failed"
    REDIRECT = "redirect"
    CRYPTO = "crypto"


class VerificationStatus(str, Enum):
    """Classification of a payment status check."""
    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"


class WebhookStatus(str, Enum):
    """Normalized status carried by inbound webhook events."""
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PaymentInitiationResult:
    """Result of starting a payment."""
    kind: InitiationKind
    reference: Optional[str] = None
    message: Optional[str] = None
    authorization_url: Optional[str] = None
    access_code: Optional[str] = None
    wallet_address: Optional[str] = None
    crypto_amount: Optional[Decimal] = None
    crypto_currency: Optional[str] = None
    qr_code: Optional[str] = None
    expires_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failed(cls, message: str, reference: Optional[str] = None) -> "PaymentInitiationResult":
        return cls(kind=InitiationKind.FAILED, reference=reference, message=message)

    @classmethod
    def redirect(
        cls,
        reference: str,
        authorization_url: str,
        access_code: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "PaymentInitiationResult":
        return cls(
            kind=InitiationKind.REDIRECT,
            reference=reference,
            authorization_url=authorization_url,
            access_code=access_code,
            metadata=metadata or {},
        )

    @classmethod
    def crypto(
        cls,
        reference: str,
        wallet_address: str,
        crypto_amount: Decimal,
        crypto_currency: str,
        expires_at: datetime,
        qr_code: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "PaymentInitiationResult":
        return cls(
            kind=InitiationKind.CRYPTO,
            reference=reference,
            wallet_address=wallet_address,
            crypto_amount=crypto_amount,
            crypto_currency=crypto_currency,
            qr_code=qr_code,
            expires_at=expires_at,
            metadata=metadata or {},
        )

    @property
    def success(self) -> bool:
        return self.kind is not InitiationKind.FAILED

    @property
    def requires_redirect(self) -> bool:
        return self.kind is InitiationKind.REDIRECT

    @property
    def is_crypto(self) -> bool:
        return self.kind is InitiationKind.CRYPTO


@dataclass(frozen=True)
class PaymentVerificationResult:
    """Result of checking a payment's status with the gateway."""
    status: VerificationStatus
    reference: str
    message: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    gateway_reference: Optional[str] = None
    payment_method: Optional[str] = None
    channel: Optional[str] = None
    gateway_fee: Optional[Decimal] = None
    paid_at: Optional[str] = None
    raw_response: Optional[Dict[str, Any]] = None

    @classmethod
    def success(
        cls,
        reference: str,
        amount: Decimal,
        currency: str,
        gateway_reference: str,
        payment_method: str,
        channel: Optional[str] = None,
        gateway_fee: Optional[Decimal] = None,
        paid_at: Optional[str] = None,
        raw_response: Optional[Dict[str, Any]] = None,
    ) -> "PaymentVerificationResult":
        return cls(
            status=VerificationStatus.SUCCESS,
            reference=reference,
            amount=amount,
            currency=currency,
            gateway_reference=gateway_reference,
            payment_method=payment_method,
            channel=channel,
            gateway_fee=gateway_fee,
            paid_at=paid_at,
            raw_response=raw_response,
        )

    @classmethod
    def pending(
        cls, reference: str, message: str, raw_response: Optional[Dict[str, Any]] = None
    ) -> "PaymentVerificationResult":
        return cls(status=VerificationStatus.PENDING, reference=reference, message=message, raw_response=raw_response)

    @classmethod
    def failed(
        cls, reference: str, message: str, raw_response: Optional[Dict[str, Any]] = None
    ) -> "PaymentVerificationResult":
        return cls(status=VerificationStatus.FAILED, reference=reference, message=message, raw_response=raw_response)

    @property
    def is_successful(self) -> bool:
        return self.status is VerificationStatus.SUCCESS

    @property
    def is_pending(self) -> bool:
        return self.status is VerificationStatus.PENDING

    @property
    def is_failed(self) -> bool:
        return self.status is VerificationStatus.FAILED


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund request."""
    success: bool
    reference: str
    message: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    refund_reference: Optional[str] = None
    raw_response: Optional[Dict[str, Any]] = None

    @classmethod
    def succeeded(
        cls,
        reference: str,
        amount: Decimal,
        currency: str,
        refund_reference: str,
        raw_response: Optional[Dict[str, Any]] = None,
    ) -> "RefundResult":
        return cls(
            success=True,
            reference=reference,
            amount=amount,
            currency=currency,
            refund_reference=refund_reference,
            raw_response=raw_response,
        )

    @classmethod
    def failed(
        cls, reference: str, message: str, raw_response: Optional[Dict[str, Any]] = None
    ) -> "RefundResult":
        return cls(success=False, reference=reference, message=message, raw_response=raw_response)


@dataclass(frozen=True)
class WebhookEvent:
    """Inbound gateway notification in normalized form."""
    type: str
    reference: str
    status: WebhookStatus
    gateway_reference: str = ""
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    paid_at: Optional[str] = None
    gateway_fee: Optional[Decimal] = None
    metadata: Optional[Dict[str, Any]] = None
    raw_payload: Dict[str, Any] = field(default_factory=dict)

    def is_successful_charge(self) -> bool:
        return self.status is WebhookStatus.SUCCESS

    def is_failed_charge(self) -> bool:
        return self.status is WebhookStatus.FAILED


class WebhookRequest:
    """
    Raw inbound webhook: headers plus the body bytes exactly as received.

    Signature checks must run over ``body``; re-encoding the parsed JSON
    changes the bytes and breaks HMAC verification.
    """

    def __init__(self, headers: Optional[Mapping[str, str]] = None, body: bytes = b""):
        self.headers = {str(k).lower(): v for k, v in (headers or {}).items()}
        self.body = body if isinstance(body, bytes) else str(body).encode("utf-8")

    @classmethod
    def from_json(cls, payload: Dict[str, Any], headers: Optional[Mapping[str, str]] = None) -> "WebhookRequest":
        return cls(headers=headers, body=json.dumps(payload).encode("utf-8"))

    def header(self, name: str) -> Optional[str]:
        value = self.headers.get(name.lower())
        return value or None

    def json(self) -> Dict[str, Any]:
        if not self.body:
            return {}
        try:
            decoded = json.loads(self.body)
        except (ValueError, RecursionError):
            return {}
        return decoded if isinstance(decoded, dict) else {}


class PaymentGatewayError(Exception):
    """Configuration or registration problems in the gateway layer."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.error_message = message
        self.provider = provider


class InvalidPaymentGatewayError(PaymentGatewayError):
    """Raised when a gateway identifier or class cannot be resolved."""


def constant_time_equals(expected: str, provided: str) -> bool:
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


def as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def as_channel_list(value: Any) -> List[str]:
    """A single channel name or an iterable of them, as a list of strings."""
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(channel) for channel in value]


MINIMUM_AMOUNTS = {
    "NGN": Decimal("100"),
    "USD": Decimal("1"),
    "GHS": Decimal("1"),
    "KES": Decimal("100"),
    "ZAR": Decimal("10"),
}


class PaymentGateway(ABC):
    """Abstract base class for payment gateway adapters."""

    def __init__(
        self,
        config: Any = None,
        http_client: Optional[GatewayHttpClient] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the gateway.

        Args:
            config: Gateway config model; defaults to the matching section of
                the application settings
            http_client: Transport override, mainly for tests
            settings: Application settings override
        """
        self.settings = settings or get_settings()
        self.config = config if config is not None else self._default_config(self.settings)
        self.http = http_client or GatewayHttpClient(
            gateway=self.get_identifier(),
            base_url=self.config.base_url,
            default_headers=self._default_headers(),
            timeout_seconds=self.settings.http_timeout_seconds,
        )

    @abstractmethod
    def _default_config(self, settings: Settings) -> Any:
        """Return this gateway's section of the application settings."""

    @abstractmethod
    def get_identifier(self) -> str:
        """Stable machine key, e.g. ``paystack``."""

    @abstractmethod
    def get_name(self) -> str:
        """Human-readable gateway name."""

    @abstractmethod
    def get_supported_currencies(self) -> FrozenSet[str]:
        """Currency codes this gateway can charge in."""

    @abstractmethod
    async def initialize_payment(
        self, order: Order, options: Optional[Dict[str, Any]] = None
    ) -> PaymentInitiationResult:
        """
        Start a payment for an order.

        Args:
            order: The order to be paid
            options: ``callback_url``, ``return_url``, ``channels``,
                ``metadata``, ``pay_currency`` (crypto), ``client_ip`` (OPay)

        Returns:
            PaymentInitiationResult
        """

    @abstractmethod
    async def verify_payment(self, reference: str) -> PaymentVerificationResult:
        """Check the status of a payment by merchant reference."""

    @abstractmethod
    async def refund(
        self,
        payment: OrderPayment,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        """Refund a recorded payment; ``amount=None`` refunds it in full."""

    @abstractmethod
    def validate_webhook(self, request: WebhookRequest) -> bool:
        """Check the webhook signature. Never raises."""

    @abstractmethod
    def parse_webhook(self, request: WebhookRequest) -> WebhookEvent:
        """Map a raw webhook to a WebhookEvent without validating it."""

    def is_available(self) -> bool:
        return self.config.is_configured()

    def supports_inline_payment(self) -> bool:
        return False

    def supports_refunds(self) -> bool:
        return True

    def supports_recurring(self) -> bool:
        return False

    def get_public_key(self) -> Optional[str]:
        return getattr(self.config, "public_key", None)

    def get_callback_url(self, order: Order) -> str:
        return f"{self.settings.app_url.rstrip('/')}/payments/{self.get_identifier()}/callback/{order.id}"

    def get_webhook_url(self) -> str:
        return f"{self.settings.app_url.rstrip('/')}/webhooks/{self.get_identifier()}"

    def generate_reference(self, order: Order) -> str:
        return generate_reference(self.get_identifier(), order)

    def get_minimum_amount(self, currency: str = "NGN") -> Decimal:
        return MINIMUM_AMOUNTS.get(currency.upper(), Decimal("1"))

    def get_maximum_amount(self, currency: str = "NGN") -> Optional[Decimal]:
        return None

    def _not_configured_message(self) -> str:
        return f"{self.get_name()} is not configured"

    def _default_headers(self) -> Dict[str, str]:
        secret_key = getattr(self.config, "secret_key", None) or ""
        return {"Authorization": f"Bearer {secret_key}"}

    def _log_payment_event(self, event: str, order: Order, **data: Any) -> None:
        logger.info(
            event,
            gateway=self.get_identifier(),
            order_id=order.id,
            order_number=order.order_number,
            tenant_id=order.tenant_id,
            **data,
        )
