"""
Payment Gateway Manager

Resolves gateway adapters by identifier and reports which of them are
configured for use.
"""

from typing import Dict, List, Optional

from retailpay.core.config import Settings, get_settings
from retailpay.core.logging import get_logger

from .base import InvalidPaymentGatewayError, PaymentGateway
from .crypto_adapter import CryptoAdapter
from .flutterwave_adapter import FlutterwaveAdapter
from .opay_adapter import OpayAdapter
from .paystack_adapter import PaystackAdapter

logger = get_logger(__name__)

BUILTIN_GATEWAYS: Dict[str, type[PaymentGateway]] = {
    "paystack": PaystackAdapter,
    "opay": OpayAdapter,
    "crypto": CryptoAdapter,
    "flutterwave": FlutterwaveAdapter,
}


class PaymentGatewayManager:
    """Registry and cache of payment gateway adapters."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._gateways: Dict[str, type[PaymentGateway]] = dict(BUILTIN_GATEWAYS)
        self._resolved: Dict[str, PaymentGateway] = {}

    def gateway(self, identifier: str) -> PaymentGateway:
        """
        Get a gateway instance by identifier.

        Raises:
            InvalidPaymentGatewayError: If the identifier is not registered
        """
        if identifier in self._resolved:
            return self._resolved[identifier]

        gateway_class = self._gateways.get(identifier)
        if gateway_class is None:
            raise InvalidPaymentGatewayError(
                f"Payment gateway [{identifier}] is not registered.", provider=identifier
            )

        instance = gateway_class(settings=self.settings)
        self._resolved[identifier] = instance
        return instance

    def default(self) -> PaymentGateway:
        return self.gateway(self.settings.default_gateway)

    def register(self, identifier: str, gateway_class: type[PaymentGateway]) -> None:
        """Register a gateway implementation, replacing any cached instance."""
        if not isinstance(gateway_class, type) or not issubclass(gateway_class, PaymentGateway):
            raise InvalidPaymentGatewayError(
                f"Gateway [{identifier}] must subclass PaymentGateway.", provider=identifier
            )
        self._gateways[identifier] = gateway_class
        self._resolved.pop(identifier, None)
        logger.info("payment_gateway.registered", gateway=identifier, gateway_class=gateway_class.__name__)

    def bind(self, identifier: str, instance: PaymentGateway) -> None:
        """Use a pre-built adapter instance, e.g. one with a custom transport."""
        self._gateways[identifier] = type(instance)
        self._resolved[identifier] = instance

    def has(self, identifier: str) -> bool:
        return identifier in self._gateways

    def registered(self) -> List[str]:
        return list(self._gateways.keys())

    def available(self) -> Dict[str, PaymentGateway]:
        """All registered gateways whose configuration is complete."""
        return {
            identifier: gateway
            for identifier, gateway in self._all_gateways().items()
            if gateway.is_available()
        }

    def select_options(self, only_available: bool = True) -> Dict[str, str]:
        gateways = self.available() if only_available else self._all_gateways()
        return {identifier: gateway.get_name() for identifier, gateway in gateways.items()}

    def find_by_identifier(self, identifier: str) -> Optional[PaymentGateway]:
        try:
            return self.gateway(identifier)
        except InvalidPaymentGatewayError:
            return None

    def _all_gateways(self) -> Dict[str, PaymentGateway]:
        return {identifier: self.gateway(identifier) for identifier in self._gateways}
