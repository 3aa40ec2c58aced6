"""Thin async adapter over the RabbitMQ Management HTTP API.

Only the write operations the console exposes are implemented, plus the
queue lookup needed to record message counts when moving messages.
"""

import base64
import binascii
from typing import Any
from urllib.parse import quote

import httpx
from loguru import logger

DEFAULT_TIMEOUT = 30.0
DEFAULT_EXCHANGE = "amq.default"


class RabbitMQApiError(Exception):
    """Raised when the Management API fails or rejects a request.

    Args:
        message: Human-readable error description, including RabbitMQ's
            ``reason`` when the response carried one.
        status_code: HTTP status returned by RabbitMQ, ``None`` for transport
            errors.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def encode_vhost(vhost: str) -> str:
    """Base64-encode a virtual host name for use as a URL path segment."""
    return base64.b64encode(vhost.encode()).decode()


def decode_vhost(value: str) -> str:
    """Decode a base64 path segment back into a virtual host name.

    Raises:
        ValueError: If ``value`` is not valid base64-encoded UTF-8.
    """
    try:
        return base64.b64decode(value, validate=True).decode()
    except (binascii.Error, UnicodeDecodeError) as e:
        msg = f"Invalid virtual host encoding '{value}': expected base64"
        raise ValueError(msg) from e


def _segment(value: str) -> str:
    return quote(value, safe="")


def _error_reason(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("reason") or body.get("error") or response.reason_phrase)
    return response.reason_phrase


class RabbitMQManagementClient:
    """Async client for a single cluster's Management API.

    Args:
        base_url: Management API base URL, e.g. ``http://rabbit:15672``.
        username: Management API user.
        password: Management API password.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth = httpx.BasicAuth(username, password)
        self._timeout = timeout
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                auth=self._auth,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, json=json, params=params)
                response.raise_for_status()
                return response
        except httpx.TimeoutException as e:
            logger.warning(f"RabbitMQ API timeout: {method} {path}")
            msg = f"RabbitMQ Management API request timed out: {method} {path}"
            raise RabbitMQApiError(msg) from e
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            reason = _error_reason(e.response)
            logger.warning(f"RabbitMQ API HTTP {status_code} for {method} {path}: {reason}")
            raise RabbitMQApiError(f"{reason} (HTTP {status_code})", status_code=status_code) from e
        except httpx.TransportError as e:
            logger.warning(f"RabbitMQ API connection error for {method} {path}: {e}")
            msg = f"Connection to RabbitMQ Management API failed: {e}"
            raise RabbitMQApiError(msg) from e

    async def create_exchange(self, vhost: str, name: str, settings: dict[str, Any]) -> None:
        await self._request("PUT", f"/api/exchanges/{_segment(vhost)}/{_segment(name)}", json=settings)

    async def delete_exchange(self, vhost: str, name: str, *, if_unused: bool = False) -> None:
        params = {"if-unused": "true"} if if_unused else None
        await self._request("DELETE", f"/api/exchanges/{_segment(vhost)}/{_segment(name)}", params=params)

    async def create_queue(self, vhost: str, name: str, settings: dict[str, Any]) -> None:
        await self._request("PUT", f"/api/queues/{_segment(vhost)}/{_segment(name)}", json=settings)

    async def delete_queue(self, vhost: str, name: str, *, if_empty: bool = False, if_unused: bool = False) -> None:
        params = {}
        if if_empty:
            params["if-empty"] = "true"
        if if_unused:
            params["if-unused"] = "true"
        await self._request("DELETE", f"/api/queues/{_segment(vhost)}/{_segment(name)}", params=params or None)

    async def purge_queue(self, vhost: str, name: str) -> None:
        await self._request("DELETE", f"/api/queues/{_segment(vhost)}/{_segment(name)}/contents")

    async def get_queue(self, vhost: str, name: str) -> dict[str, Any]:
        response = await self._request("GET", f"/api/queues/{_segment(vhost)}/{_segment(name)}")
        return response.json()

    async def create_binding(
        self,
        vhost: str,
        source: str,
        destination_type: str,
        destination: str,
        *,
        routing_key: str = "",
        arguments: dict[str, Any] | None = None,
    ) -> str | None:
        """Bind ``source`` exchange to a queue (``"q"``) or exchange (``"e"``).

        Returns:
            The binding's properties key from the ``Location`` header, if any.
        """
        path = f"/api/bindings/{_segment(vhost)}/e/{_segment(source)}/{destination_type}/{_segment(destination)}"
        response = await self._request("POST", path, json={"routing_key": routing_key, "arguments": arguments or {}})
        location = response.headers.get("location")
        return location.rsplit("/", 1)[-1] if location else None

    async def delete_binding(
        self,
        vhost: str,
        source: str,
        destination_type: str,
        destination: str,
        properties_key: str,
    ) -> None:
        path = (
            f"/api/bindings/{_segment(vhost)}/e/{_segment(source)}/{destination_type}/{_segment(destination)}"
            f"/{_segment(properties_key)}"
        )
        await self._request("DELETE", path)

    async def publish(
        self,
        vhost: str,
        exchange: str,
        *,
        routing_key: str,
        payload: str,
        payload_encoding: str = "string",
        properties: dict[str, Any] | None = None,
    ) -> bool:
        """Publish one message and return whether RabbitMQ routed it."""
        body = {
            "routing_key": routing_key,
            "payload": payload,
            "payload_encoding": payload_encoding,
            "properties": properties or {},
        }
        path = f"/api/exchanges/{_segment(vhost)}/{_segment(exchange or DEFAULT_EXCHANGE)}/publish"
        response = await self._request("POST", path, json=body)
        return bool(response.json().get("routed", False))

    async def create_shovel(self, vhost: str, name: str, value: dict[str, Any]) -> None:
        """Create a dynamic shovel (requires the ``rabbitmq_shovel`` plugin)."""
        path = f"/api/parameters/shovel/{_segment(vhost)}/{_segment(name)}"
        await self._request("PUT", path, json={"value": value})
