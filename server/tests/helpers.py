"""
Helpers for faking gateway transports and signing webhook bodies.
"""

import hashlib
import hmac
import json
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, Mock

from retailpay.integrations.payment_gateways.http import GatewayHttpClient, GatewayResponse


PAYSTACK_WEBHOOK_SECRET = "sk_test_paystack_webhook"
FLUTTERWAVE_SECRET_HASH = "flw-secret-hash-123"
OPAY_WEBHOOK_SECRET = "opay_test_secret"
CRYPTO_IPN_SECRET = "nowpayments-ipn-secret"


def make_response(data: Optional[Dict[str, Any]] = None, success: bool = True, status: int = 200) -> GatewayResponse:
    return GatewayResponse(success=success, status=status, data=data or {})


def mock_http(*responses: GatewayResponse) -> Mock:
    """A GatewayHttpClient stand-in whose ``request`` returns the given responses in order."""
    client = Mock(spec=GatewayHttpClient)
    if len(responses) == 1:
        client.request = AsyncMock(return_value=responses[0])
    else:
        client.request = AsyncMock(side_effect=list(responses))
    return client


def hmac_sha512(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha512).hexdigest()


def json_body(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload).encode("utf-8")
