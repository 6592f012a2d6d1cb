# ============================================================================
# CLAUDE CONTEXT - OGC HTTP TRANSPORT
# ============================================================================
# STATUS: Adapter Layer - async HTTP client for WMS/WFS/ZWS
# PURPOSE: Issue Query objects against the upstream and classify transport failures
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: OGCTransport, UpstreamResponse
# DEPENDENCIES: httpx (async), util_logger
# PORTABLE: Yes - endpoints come from Query objects, credentials from config
# ============================================================================
"""
OGC HTTP Transport (ASYNC VERSION).

Thin wrapper over httpx.AsyncClient. Every failure that is not an HTTP 2xx
answer becomes a TransportError carrying the URL and status code; callers
never see httpx exceptions.

Timeouts:
    DiscoveryConfig.request_timeout_seconds = None means no client-side
    timeout. A hung request then ends only when the owning click is
    cancelled.

Usage:
    async with OGCTransport() as transport:
        response = await transport.send(query)
        print(response.status_code, response.content_type)
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import httpx

from config import get_upstream_auth
from util_logger import LoggerFactory, ComponentType

from .config import DiscoveryConfig, get_discovery_config
from .exceptions import TransportError
from .models import Query

logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "OGCTransport")


@dataclass
class UpstreamResponse:
    """Response wrapper for upstream OGC calls."""
    status_code: int
    text: str
    content_type: str = ""
    url: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class OGCTransport:
    """
    Async HTTP client for the upstream OGC services.

    Usage:
        transport = OGCTransport()
        response = await transport.send(build_layer_list_query(CatalogStrategy.REST))
        await transport.close()
    """

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        auth: Optional[Tuple[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize transport.

        Args:
            config: Discovery configuration (singleton if not provided)
            auth: Basic auth credentials; defaults to OGC_USERNAME/OGC_PASSWORD
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.config = config or get_discovery_config()
        self.auth = auth if auth is not None else get_upstream_auth()
        self.timeout = self.config.request_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                auth=httpx.BasicAuth(*self.auth) if self.auth else None,
                transport=self._transport
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "OGCTransport":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def send(self, query: Query) -> UpstreamResponse:
        """
        Issue one query.

        Args:
            query: Request description from the query builder

        Returns:
            UpstreamResponse for a 2xx answer

        Raises:
            TransportError: Network failure, timeout or non-2xx status
        """
        client = self._get_client()

        try:
            response = await client.request(
                query.method,
                query.url,
                params=query.params or None,
                headers=query.headers or None,
                content=query.body.encode("utf-8") if query.body is not None else None
            )
        except httpx.TimeoutException as e:
            if self.timeout is None:
                message = f"Upstream timeout ({type(e).__name__}): {query.url}"
            else:
                message = f"Upstream timeout after {self.timeout}s: {query.url}"
            raise TransportError(message, url=query.full_url) from e
        except httpx.RequestError as e:
            raise TransportError(
                f"Upstream request error: {str(e)}",
                url=query.full_url
            ) from e

        result = UpstreamResponse(
            status_code=response.status_code,
            text=response.text,
            content_type=response.headers.get("content-type", ""),
            url=str(response.url)
        )

        if not result.ok:
            raise TransportError(
                f"Upstream HTTP {response.status_code} for {query.label or query.url}",
                url=result.url,
                status_code=response.status_code
            )

        logger.debug(f"{query.method} {result.url} -> {result.status_code} ({len(result.text)} chars)")
        return result
