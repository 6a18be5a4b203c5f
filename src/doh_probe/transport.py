"""
HTTP transport for DoH requests.

The query executor only needs "perform a GET, get back status, headers and
body, or fail with a timeout/network error". HttpTransport describes that
capability; HttpxTransport implements it on top of httpx.AsyncClient with
TLS verification and a hard per-request deadline.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol, runtime_checkable

import httpx

from .exceptions import NetworkError, TransportTimeoutError


USER_AGENT = "doh-probe/0.1"


@dataclass
class HttpResponse:
    """A fully read HTTP response."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    content: bytes = b""

    @property
    def content_type(self) -> Optional[str]:
        for name, value in self.headers.items():
            if name.lower() == "content-type":
                return value
        return None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@runtime_checkable
class HttpTransport(Protocol):
    """Capability to perform one HTTP GET round trip."""

    async def perform(
        self,
        url: str,
        headers: dict[str, str],
        timeout_ms: int,
    ) -> HttpResponse:
        """
        Perform a GET request.

        Raises:
            TransportTimeoutError: If the round trip exceeds timeout_ms
            NetworkError: On any other failure below the HTTP layer
        """
        ...


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.perf_counter() * 1000


class HttpxTransport:
    """
    httpx-backed transport.

    Can be used as an async context manager; otherwise the client is created
    lazily on first use and must be released with close().
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        """
        Initialize the transport.

        Args:
            client: Optional pre-configured client (the caller keeps ownership)
        """
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "HttpxTransport":
        """Async context manager entry."""
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=True,  # TLS certificate verification enforced
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
            )
            self._owns_client = True
        return self._client

    async def perform(
        self,
        url: str,
        headers: dict[str, str],
        timeout_ms: int,
    ) -> HttpResponse:
        client = self._ensure_client()
        timeout = timeout_ms / 1000

        try:
            # wait_for bounds the whole round trip, body included.
            response = await asyncio.wait_for(
                client.get(url, headers=headers, timeout=httpx.Timeout(timeout)),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise TransportTimeoutError(
                code="timeout",
                message=f"Request timed out after {timeout_ms} ms",
                details={"url": url, "timeout_ms": timeout_ms},
            ) from e
        except httpx.ConnectError as e:
            error_msg = str(e) or type(e).__name__
            if "ssl" in error_msg.lower() or "certificate" in error_msg.lower():
                message = f"TLS connection error: {error_msg}"
            else:
                message = f"Connection error: {error_msg}"
            raise NetworkError(
                code="connect_error",
                message=message,
                details={"url": url},
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
            raise NetworkError(
                code="network_error",
                message=f"{type(e).__name__}: {e}",
                details={"url": url},
            ) from e

        return HttpResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            content=response.content,
        )

    async def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
