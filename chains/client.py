"""
chains/client.py - HTTP access to third-party chain endpoints.

Provides:
- Shared async HTTP client with connection limits
- Hard request timeouts
- JSON GET and JSON-RPC POST helpers
- Per-endpoint request statistics

Every failure is raised as a ProbeError carrying an ErrorCode so that
callers can turn it into a verdict without inspecting httpx types.
"""

import asyncio
import re
import time
from dataclasses import dataclass
from typing import Any

import httpx

from core.constants import ErrorCode
from core.exceptions import ProbeError
from core.logging import get_logger

logger = get_logger(__name__)

_DUPLICATE_SLASHES = re.compile(r"(?<!:)/{2,}")


def join_url(base: str, path: str) -> str:
    """
    Append a probe path to an endpoint address.

    Collapses duplicate slashes (except after the scheme) and trailing
    slashes on the base so "https://host//" + "/status" is
    "https://host/status".
    """
    base = _DUPLICATE_SLASHES.sub("/", base).rstrip("/")
    return f"{base}/{path.lstrip('/')}"


@dataclass
class EndpointStats:
    """Statistics for an endpoint address."""
    address: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_latency_ms: int = 0
    last_error: str | None = None
    last_success_ts: int | None = None

    @property
    def avg_latency_ms(self) -> int:
        if self.successful_requests == 0:
            return 0
        return self.total_latency_ms // self.successful_requests

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests


class EndpointClient:
    """
    Async HTTP client for endpoint probes.

    One instance is shared by all probers; the underlying
    httpx.AsyncClient is created lazily.
    """

    def __init__(
        self,
        timeout_seconds: float = 12.0,
        max_connections: int = 20,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout_seconds = timeout_seconds
        self.max_connections = max_connections
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._request_id = 0
        self.stats: dict[str, EndpointStats] = {}

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                limits=httpx.Limits(max_connections=self.max_connections),
                follow_redirects=False,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    def _stats_for(self, address: str) -> EndpointStats:
        if address not in self.stats:
            self.stats[address] = EndpointStats(address=address)
        return self.stats[address]

    async def _request(
        self,
        method: str,
        url: str,
        stats_key: str,
        json_body: Any = None,
    ) -> Any:
        client = await self._get_client()
        stats = self._stats_for(stats_key)
        stats.total_requests += 1
        start_ms = int(time.time() * 1000)

        try:
            resp = await asyncio.wait_for(
                client.request(method, url, json=json_body),
                timeout=self.timeout_seconds,
            )
            latency_ms = int(time.time() * 1000) - start_ms

            # Redirects are not followed: the target could be plaintext
            if not resp.is_success:
                raise ProbeError(
                    f"HTTP {resp.status_code} from {url}",
                    ErrorCode.HTTP_ERROR,
                    details={"url": url, "status": resp.status_code},
                )

            try:
                payload = resp.json()
            except ValueError as e:
                raise ProbeError(
                    f"Non-JSON body from {url}",
                    ErrorCode.MALFORMED_RESPONSE,
                    details={"url": url},
                ) from e

        except ProbeError as e:
            stats.failed_requests += 1
            stats.last_error = e.message
            raise

        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            latency_ms = int(time.time() * 1000) - start_ms
            stats.failed_requests += 1
            stats.last_error = f"Timeout after {latency_ms}ms"
            logger.debug(f"Request timeout for {url}: {latency_ms}ms")
            raise ProbeError(
                f"Timeout after {latency_ms}ms",
                ErrorCode.TIMEOUT,
                details={"url": url, "timeout_seconds": self.timeout_seconds},
            ) from e

        except httpx.HTTPError as e:
            stats.failed_requests += 1
            stats.last_error = str(e) or type(e).__name__
            logger.debug(f"Request failed for {url}: {stats.last_error}")
            raise ProbeError(
                f"Request failed: {stats.last_error}",
                ErrorCode.CONNECTION_ERROR,
                details={"url": url},
            ) from e

        stats.successful_requests += 1
        stats.total_latency_ms += latency_ms
        stats.last_success_ts = int(time.time() * 1000)
        return payload

    async def get_json(self, base: str, path: str = "") -> Any:
        """
        GET a JSON document from an endpoint.

        Args:
            base: Endpoint address (statistics are keyed by it)
            path: Path appended to the address

        Returns:
            Decoded JSON body

        Raises:
            ProbeError: On timeout, transport failure, non-2xx or non-JSON
        """
        url = join_url(base, path) if path else base
        return await self._request("GET", url, stats_key=base)

    async def json_rpc(
        self,
        address: str,
        method: str,
        params: list | None = None,
    ) -> Any:
        """
        Make a JSON-RPC 2.0 call.

        Returns:
            The "result" member

        Raises:
            ProbeError: RPC_ERROR if the response carries an "error"
                member, MALFORMED_RESPONSE if it has no "result"
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": self._next_request_id(),
        }
        body = await self._request("POST", address, stats_key=address, json_body=payload)

        if not isinstance(body, dict):
            raise ProbeError(
                f"Malformed JSON-RPC response to {method}",
                ErrorCode.MALFORMED_RESPONSE,
                details={"address": address, "method": method},
            )

        if body.get("error") is not None:
            error = body["error"]
            error_msg = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise ProbeError(
                f"RPC error: {error_msg}",
                ErrorCode.RPC_ERROR,
                details={"address": address, "method": method},
            )

        if "result" not in body:
            raise ProbeError(
                f"JSON-RPC response to {method} has no result",
                ErrorCode.MALFORMED_RESPONSE,
                details={"address": address, "method": method},
            )

        return body["result"]

    def get_stats_summary(self) -> dict:
        """Get statistics summary for all endpoints."""
        return {
            address: {
                "total_requests": s.total_requests,
                "success_rate": round(s.success_rate, 3),
                "avg_latency_ms": s.avg_latency_ms,
                "last_error": s.last_error,
            }
            for address, s in self.stats.items()
        }
