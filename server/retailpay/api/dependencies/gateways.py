from functools import lru_cache

from retailpay.integrations.payment_gateways.manager import PaymentGatewayManager
from retailpay.services.payment_events import LoggingEventSink, PaymentEventSink


@lru_cache(maxsize=None)
def get_gateway_manager() -> PaymentGatewayManager:
    return PaymentGatewayManager()


def get_event_sink() -> PaymentEventSink:
    return LoggingEventSink()
