# ============================================================================
# SOURCE ACCESSIBILITY PROBER
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Service - HTTP reachability adapter
# PURPOSE: Report whether a source URI is reachable within a timeout
# CREATED: 19 OCT 2026
# ============================================================================
"""
Source Accessibility Prober

Answers one question: is this URI reachable right now?

HttpSourceProber sends a HEAD request and falls back to a ranged GET for
servers that refuse HEAD (405/501). Any 2xx/3xx answer counts as
reachable. Network errors and timeouts count as unreachable, never raise.
"""

import logging
from typing import Optional, Protocol

import httpx

logger = logging.getLogger(__name__)


class SourceProber(Protocol):
    """Contract consumed by the Source List Validator."""

    async def probe(self, uri: str, timeout: float) -> bool:
        ...


class HttpSourceProber:
    """Probe HTTP(S) sources with HEAD, falling back to a 1-byte GET."""

    HEAD_REFUSED = (405, 501)

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            client: Optional caller-owned client (tests inject a mock transport).
                    When omitted one client is created on first probe and
                    reused until close().
        """
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(follow_redirects=True)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        if self._owns_client:
            self._client = None

    async def probe(self, uri: str, timeout: float) -> bool:
        try:
            return await self._probe_with(self._get_client(), uri, timeout)
        except httpx.TimeoutException:
            logger.info(f"Probe timed out after {timeout}s: {uri}")
            return False
        except httpx.HTTPError as e:
            logger.info(f"Probe failed for {uri}: {type(e).__name__}: {e}")
            return False

    async def _probe_with(self, client: httpx.AsyncClient, uri: str, timeout: float) -> bool:
        response = await client.head(uri, timeout=timeout)
        status = response.status_code
        if status in self.HEAD_REFUSED:
            # Body is never read; servers ignoring Range must not be downloaded
            async with client.stream(
                "GET",
                uri,
                timeout=timeout,
                headers={"Range": "bytes=0-0"},
            ) as streamed:
                status = streamed.status_code

        reachable = status < 400
        if not reachable:
            logger.info(f"Probe got HTTP {status}: {uri}")
        return reachable


__all__ = ["SourceProber", "HttpSourceProber"]
