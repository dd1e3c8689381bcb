"""Outbound HTTP transport boundary.

Adapters never construct their own client: they receive an HttpTransport
through their AdapterContext. Any object with the five verb methods
conforms. HttpxTransport is the reference implementation on
httpx.AsyncClient.

Transports report every HTTP status as an HttpResponse. They only raise
for connection-level failures (DNS, refused, timeout), which the error
taxonomy classifies as Transient.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Protocol, runtime_checkable

import httpx

from carrierkit.utils.redaction import sanitize_headers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestConfig:
    """Per-request options passed to a transport call.

    Attributes:
        headers: Extra request headers.
        params: Query string parameters.
        timeout: Timeout in seconds. None defers to the transport default.
    """

    headers: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, Any] = field(default_factory=dict)
    timeout: float | None = None

    def with_headers(self, **headers: str) -> "RequestConfig":
        """Return a copy with the given headers merged over the existing ones."""
        return replace(self, headers={**self.headers, **headers})

    def with_header(self, name: str, value: str) -> "RequestConfig":
        """Return a copy with one header set, replacing any case variant of it."""
        merged = {k: v for k, v in self.headers.items() if k.lower() != name.lower()}
        merged[name] = value
        return replace(self, headers=merged)


@dataclass(frozen=True)
class HttpResponse:
    """Transport-neutral HTTP response.

    Attributes:
        status: HTTP status code.
        headers: Response headers.
        body: Decoded JSON body, or the raw text when it was not JSON.
        parsed: False when a non-empty body could not be decoded as JSON.
    """

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    parsed: bool = True

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        lower = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lower:
                return value
        return None


@runtime_checkable
class HttpTransport(Protocol):
    """Outbound HTTP interface consumed by adapters."""

    async def get(self, url: str, config: RequestConfig | None = None) -> HttpResponse: ...

    async def delete(self, url: str, config: RequestConfig | None = None) -> HttpResponse: ...

    async def post(
        self, url: str, body: Any = None, config: RequestConfig | None = None,
    ) -> HttpResponse: ...

    async def put(
        self, url: str, body: Any = None, config: RequestConfig | None = None,
    ) -> HttpResponse: ...

    async def patch(
        self, url: str, body: Any = None, config: RequestConfig | None = None,
    ) -> HttpResponse: ...


def decode_response(response: httpx.Response) -> HttpResponse:
    """Convert an httpx.Response into an HttpResponse.

    Args:
        response: Response received from httpx.

    Returns:
        HttpResponse with the JSON body decoded when possible.
    """
    headers = dict(response.headers)
    if not response.content:
        return HttpResponse(status=response.status_code, headers=headers, body=None)
    try:
        body = response.json()
    except ValueError:
        return HttpResponse(
            status=response.status_code,
            headers=headers,
            body=response.text,
            parsed=False,
        )
    return HttpResponse(status=response.status_code, headers=headers, body=body)


class HttpxTransport:
    """HttpTransport implementation backed by httpx.AsyncClient.

    Usage:
        async with HttpxTransport(timeout=30.0) as http:
            response = await http.get("https://api.example.com/track/123")

    Attributes:
        _client: The underlying httpx.AsyncClient.
        _owns_client: Whether close() should close the client.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        base_url: str = "",
        timeout: float = 30.0,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            client: Existing client to use. The caller keeps ownership.
            base_url: Base URL for a client created here.
            timeout: Default timeout in seconds for a client created here.
            headers: Default headers for a client created here.
        """
        if client is not None:
            self._client = client
            self._owns_client = False
        else:
            self._client = httpx.AsyncClient(
                base_url=base_url,
                timeout=timeout,
                headers=dict(headers or {}),
            )
            self._owns_client = True

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()

    async def get(self, url: str, config: RequestConfig | None = None) -> HttpResponse:
        return await self._request("GET", url, None, config)

    async def delete(self, url: str, config: RequestConfig | None = None) -> HttpResponse:
        return await self._request("DELETE", url, None, config)

    async def post(
        self, url: str, body: Any = None, config: RequestConfig | None = None,
    ) -> HttpResponse:
        return await self._request("POST", url, body, config)

    async def put(
        self, url: str, body: Any = None, config: RequestConfig | None = None,
    ) -> HttpResponse:
        return await self._request("PUT", url, body, config)

    async def patch(
        self, url: str, body: Any = None, config: RequestConfig | None = None,
    ) -> HttpResponse:
        return await self._request("PATCH", url, body, config)

    async def _request(
        self,
        method: str,
        url: str,
        body: Any,
        config: RequestConfig | None,
    ) -> HttpResponse:
        """Send one request. Raises only for connection-level failures."""
        config = config or RequestConfig()
        kwargs: dict[str, Any] = {
            "headers": dict(config.headers),
            "params": dict(config.params) or None,
        }
        if config.timeout is not None:
            kwargs["timeout"] = config.timeout
        if isinstance(body, (dict, list)):
            kwargs["json"] = body
        elif isinstance(body, (str, bytes)):
            kwargs["content"] = body
        elif body is not None:
            raise TypeError(f"Unsupported request body type: {type(body).__name__}")

        logger.debug(
            "HTTP %s %s headers=%s", method, url, sanitize_headers(kwargs["headers"]),
        )
        response = await self._client.request(method, url, **kwargs)
        logger.debug("HTTP %s %s -> %d", method, url, response.status_code)
        return decode_response(response)
