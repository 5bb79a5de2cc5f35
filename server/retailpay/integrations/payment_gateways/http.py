"""
Gateway HTTP transport

Thin wrapper over ``httpx.AsyncClient`` that never raises for transport or
provider errors; callers get a ``GatewayResponse`` and decide what it means.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from retailpay.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class GatewayResponse:
    """Outcome of one outbound gateway request."""
    success: bool
    status: int
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def message(self) -> Optional[str]:
        message = self.data.get("message")
        return str(message) if message else None


class GatewayHttpClient:
    """HTTP client bound to one gateway's base URL and credentials."""

    def __init__(
        self,
        gateway: str,
        base_url: str,
        default_headers: Optional[Dict[str, str]] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.gateway = gateway
        self.base_url = base_url.rstrip("/")
        self.default_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **(default_headers or {}),
        }
        self.timeout_seconds = timeout_seconds
        self._client = client

    def build_url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def request(
        self,
        method: str,
        endpoint: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> GatewayResponse:
        """
        Send a request to the gateway API.

        Args:
            method: HTTP method
            endpoint: Path relative to the gateway base URL
            json: JSON body for write requests
            params: Query string parameters
            headers: Extra headers, merged over the defaults

        Returns:
            GatewayResponse; transport failures come back with
            ``success=False`` and status 500
        """
        url = self.build_url(endpoint)
        merged_headers = {**self.default_headers, **(headers or {})}

        try:
            if self._client is not None:
                response = await self._send(self._client, method, url, json, params, merged_headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await self._send(client, method, url, json, params, merged_headers)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(
                "payment_gateway.request_error",
                gateway=self.gateway,
                endpoint=endpoint,
                error=str(e),
            )
            return GatewayResponse(success=False, status=500, data={"message": str(e) or "Gateway request failed"})

        data = self._decode(response)

        if not response.is_success:
            logger.error(
                "payment_gateway.request_failed",
                gateway=self.gateway,
                endpoint=endpoint,
                status=response.status_code,
                response=data,
            )

        return GatewayResponse(success=response.is_success, status=response.status_code, data=data)

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        json: Optional[Dict[str, Any]],
        params: Optional[Dict[str, Any]],
        headers: Dict[str, str],
    ) -> httpx.Response:
        return await client.request(
            method.upper(),
            url,
            json=json,
            params=params,
            headers=headers,
            timeout=self.timeout_seconds,
        )

    @staticmethod
    def _decode(response: httpx.Response) -> Dict[str, Any]:
        if not response.content:
            return {}
        try:
            decoded = response.json()
        except ValueError:
            return {"message": response.text[:500]}
        if isinstance(decoded, dict):
            return decoded
        return {"data": decoded}
