"""
HTTP transport for login calls, built on httpx.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx

from .errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass
class TransportResponse:
    """Status and raw body of an auth call."""

    status_code: int
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class Transport(ABC):
    """Transport interface used by the orchestrator for login calls."""

    @abstractmethod
    def send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        content: Optional[bytes] = None,
    ) -> TransportResponse:
        """Execute one request. Raises TransportError on wire failures."""
        ...

    def close(self) -> None:
        """Release resources."""

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class HttpxTransport(Transport):
    """Synchronous httpx transport; one client shared across caller threads."""

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        verify_ssl: bool = True,
        httpx_client: Optional[httpx.Client] = None,
    ) -> None:
        self._owns_client = httpx_client is None
        if httpx_client is not None:
            self._client = httpx_client
        else:
            self._client = httpx.Client(
                timeout=httpx.Timeout(timeout_seconds),
                verify=verify_ssl,
            )
        self._closed = False

    def send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        content: Optional[bytes] = None,
    ) -> TransportResponse:
        if self._closed:
            raise RuntimeError("Transport has been closed")

        logger.debug(f"HttpxTransport.send: {method} {url}, has_body={content is not None}")
        try:
            response = self._client.request(method, url, headers=headers, content=content)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(f"failed to execute {method} {url}: {e}", url=url) from e
        except UnicodeEncodeError as e:
            # httpx encodes header values as ASCII
            raise TransportError(
                f"failed to encode {method} {url}: non-ASCII header value ({e.reason})", url=url
            ) from e

        logger.debug(f"HttpxTransport.send: {method} {url} -> {response.status_code}")
        return TransportResponse(
            status_code=response.status_code,
            body=response.content,
            headers=dict(response.headers),
        )

    def close(self) -> None:
        if not self._closed and self._owns_client:
            self._client.close()
        self._closed = True


def create_transport(
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    verify_ssl: bool = True,
    httpx_client: Optional[httpx.Client] = None,
) -> HttpxTransport:
    """Create an httpx transport."""
    return HttpxTransport(timeout_seconds, verify_ssl, httpx_client)
