from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import PlainTextResponse

from retailpay.api.dependencies.gateways import get_event_sink, get_gateway_manager
from retailpay.core.logging import get_logger
from retailpay.integrations.payment_gateways.base import WebhookRequest
from retailpay.integrations.payment_gateways.manager import PaymentGatewayManager
from retailpay.integrations.payment_gateways.references import order_number_from_reference
from retailpay.services.payment_events import PaymentEventSink

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/{gateway}", response_class=PlainTextResponse)
async def receive_gateway_webhook(
    gateway: str,
    request: Request,
    manager: PaymentGatewayManager = Depends(get_gateway_manager),
    sink: PaymentEventSink = Depends(get_event_sink),
) -> PlainTextResponse:
    payment_gateway = manager.find_by_identifier(gateway)
    if payment_gateway is None:
        logger.error("payment_webhook.unknown_gateway", gateway=gateway)
        return PlainTextResponse("Unknown gateway", status_code=status.HTTP_400_BAD_REQUEST)

    # Signatures cover the body bytes as sent
    webhook = WebhookRequest(headers=dict(request.headers), body=await request.body())

    if not payment_gateway.validate_webhook(webhook):
        logger.warning("payment_webhook.invalid_signature", gateway=gateway)
        return PlainTextResponse("Invalid signature", status_code=status.HTTP_401_UNAUTHORIZED)

    event = payment_gateway.parse_webhook(webhook)

    logger.info(
        "payment_webhook.received",
        gateway=gateway,
        type=event.type,
        reference=event.reference,
        order_number=order_number_from_reference(event.reference),
        status=event.status.value,
    )

    await sink.record(gateway, event)

    return PlainTextResponse("OK")
