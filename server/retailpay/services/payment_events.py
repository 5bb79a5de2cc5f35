"""
Handoff point between inbound gateway webhooks and payment recording.

The order/payment ledger implements ``PaymentEventSink`` and upserts by
``event.reference``; providers deliver at least once, so ``record`` may see
the same event repeatedly.
"""

from typing import Protocol

from retailpay.core.logging import get_logger
from retailpay.integrations.payment_gateways.base import WebhookEvent

logger = get_logger(__name__)


class PaymentEventSink(Protocol):
    async def record(self, gateway: str, event: WebhookEvent) -> None:
        ...


class LoggingEventSink:
    """Default sink: logs charge outcomes and ignores everything else."""

    async def record(self, gateway: str, event: WebhookEvent) -> None:
        if event.is_successful_charge():
            logger.info(
                "payment_webhook.charge_succeeded",
                gateway=gateway,
                reference=event.reference,
                gateway_reference=event.gateway_reference,
                amount=str(event.amount) if event.amount is not None else None,
                currency=event.currency,
            )
        elif event.is_failed_charge():
            logger.info(
                "payment_webhook.charge_failed",
                gateway=gateway,
                reference=event.reference,
            )
