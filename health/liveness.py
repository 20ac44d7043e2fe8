"""
health/liveness.py - Freshness probes per endpoint kind.

An endpoint is live when the latest block it reports is younger than the
staleness threshold. Reachable-but-stale counts as unhealthy.

Policy:
- Plaintext addresses are rejected without any network call
- gRPC is not probed and always reported as unsupported
- Any probe failure (timeout, transport, HTTP status, malformed body,
  stale block) suppresses the address in the unhealthy cache
"""

import asyncio
import time
from datetime import datetime
from typing import Awaitable, Callable, Optional
from urllib.parse import urlsplit

from chains.client import EndpointClient
from core.constants import (
    REST_LATEST_BLOCK_PATH,
    RPC_STATUS_PATH,
    SECURE_SCHEMES,
    STALE_BLOCK_THRESHOLD_MS,
    EndpointKind,
    ErrorCode,
)
from core.exceptions import ProbeError
from core.logging import get_logger, log_verdict
from core.models import Endpoint, ProbeVerdict
from core.time import block_age_ms, now_ms
from health.parsers import (
    parse_evm_block_number,
    parse_evm_block_time,
    parse_rest_block_time,
    parse_rpc_block_time,
)
from health.unhealthy import UnhealthyCache

logger = get_logger(__name__)

INSECURE_SCHEMES = frozenset(["http", "ws"])


class LivenessProber:
    """
    Issues one kind-specific request and judges the block time it returns.

    Never raises for endpoint misbehaviour; every outcome is a verdict.
    """

    def __init__(
        self,
        client: EndpointClient,
        unhealthy: UnhealthyCache,
        stale_threshold_ms: int = STALE_BLOCK_THRESHOLD_MS,
        clock_ms: Callable[[], int] = now_ms,
    ):
        self.client = client
        self.unhealthy = unhealthy
        self.stale_threshold_ms = stale_threshold_ms
        self._clock_ms = clock_ms
        self._fetchers: dict[EndpointKind, Callable[[Endpoint], Awaitable[datetime]]] = {
            EndpointKind.RPC: self._fetch_rpc_block_time,
            EndpointKind.REST: self._fetch_rest_block_time,
            EndpointKind.EVM: self._fetch_evm_block_time,
        }

    def precheck(self, endpoint: Endpoint) -> Optional[ProbeVerdict]:
        """
        Policy checks that need no network.

        Returns:
            An unhealthy verdict if the endpoint must not be probed,
            otherwise None
        """
        if endpoint.kind not in self._fetchers:
            return ProbeVerdict.fail(
                endpoint,
                ErrorCode.UNSUPPORTED_KIND,
                detail=f"No prober for {endpoint.kind.value}",
            )

        try:
            parts = urlsplit(endpoint.address)
            hostname = parts.hostname
        except ValueError:
            return ProbeVerdict.fail(endpoint, ErrorCode.INVALID_ADDRESS, detail="Unparsable address")

        scheme = parts.scheme.lower()
        if scheme in INSECURE_SCHEMES:
            return ProbeVerdict.fail(
                endpoint,
                ErrorCode.INSECURE_SCHEME,
                detail=f"Refusing plaintext scheme {scheme}",
            )
        if scheme not in SECURE_SCHEMES or not hostname:
            return ProbeVerdict.fail(
                endpoint,
                ErrorCode.INVALID_ADDRESS,
                detail=f"Unsupported address {endpoint.address!r}",
            )

        return None

    async def probe(self, endpoint: Endpoint) -> ProbeVerdict:
        """
        Probe one endpoint.

        Args:
            endpoint: Endpoint to check

        Returns:
            ProbeVerdict; unhealthy verdicts from a network probe also
            suppress the address
        """
        verdict = self.precheck(endpoint)
        if verdict is not None:
            log_verdict(logger, verdict)
            return verdict

        # fetch timeout bounds the whole probe, not each request of it
        start = time.monotonic()
        try:
            block_time = await asyncio.wait_for(
                self._fetchers[endpoint.kind](endpoint),
                timeout=self.client.timeout_seconds,
            )
        except ProbeError as e:
            verdict = ProbeVerdict.fail(
                endpoint,
                e.code,
                detail=e.message,
                latency_ms=_elapsed_ms(start),
            )
        except asyncio.TimeoutError:
            latency_ms = _elapsed_ms(start)
            verdict = ProbeVerdict.fail(
                endpoint,
                ErrorCode.TIMEOUT,
                detail=f"Probe exceeded {self.client.timeout_seconds}s after {latency_ms}ms",
                latency_ms=latency_ms,
            )
        except Exception as e:
            logger.warning(
                f"Unexpected probe failure for {endpoint.address}: {e}",
                extra={"context": {"address": endpoint.address, "kind": endpoint.kind.value}},
                exc_info=True,
            )
            verdict = ProbeVerdict.fail(
                endpoint,
                ErrorCode.CONNECTION_ERROR,
                detail=f"{type(e).__name__}: {e}",
                latency_ms=_elapsed_ms(start),
            )
        else:
            verdict = self.judge(endpoint, block_time, latency_ms=_elapsed_ms(start))

        if not verdict.healthy:
            self.unhealthy.suppress(endpoint.address, verdict.error)

        log_verdict(logger, verdict)
        return verdict

    def judge(self, endpoint: Endpoint, block_time: datetime, latency_ms: int = 0) -> ProbeVerdict:
        """Freshness rule: healthy iff now - block_time < threshold."""
        age_ms = block_age_ms(block_time, self._clock_ms())
        if age_ms < self.stale_threshold_ms:
            return ProbeVerdict.ok(endpoint, block_time, latency_ms=latency_ms)

        return ProbeVerdict.fail(
            endpoint,
            ErrorCode.STALE_BLOCK,
            detail=f"Latest block is {age_ms // 1000}s old",
            latest_block_time=block_time,
            latency_ms=latency_ms,
        )

    async def _fetch_rpc_block_time(self, endpoint: Endpoint) -> datetime:
        payload = await self.client.get_json(endpoint.address, RPC_STATUS_PATH)
        return parse_rpc_block_time(payload)

    async def _fetch_rest_block_time(self, endpoint: Endpoint) -> datetime:
        payload = await self.client.get_json(endpoint.address, REST_LATEST_BLOCK_PATH)
        return parse_rest_block_time(payload)

    async def _fetch_evm_block_time(self, endpoint: Endpoint) -> datetime:
        number = parse_evm_block_number(
            await self.client.json_rpc(endpoint.address, "eth_blockNumber")
        )
        block = await self.client.json_rpc(
            endpoint.address, "eth_getBlockByNumber", [number, False]
        )
        return parse_evm_block_time(block)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
