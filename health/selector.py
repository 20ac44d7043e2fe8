"""
health/selector.py - Pick one live endpoint per (chain, kind).

Two modes:
- select(): declaration order, first healthy wins, stops probing at the
  first hit. This is the canonical mode.
- select_race(): probes all candidates concurrently and takes the first
  healthy verdict by completion order. Losers are cancelled.

Both return the UNKNOWN sentinel when nothing is healthy; only an
unknown chain or an unreadable registry raises.
"""

import asyncio
from typing import Optional

from chains.catalog import ChainRegistry
from core.constants import DEFAULT_MAX_CONCURRENT_PROBES, EndpointKind, ErrorCode
from core.logging import get_logger, log_selection, log_verdict
from core.models import UNKNOWN, Endpoint, EndpointOrUnknown, ProbeVerdict
from health.liveness import LivenessProber
from health.reachability import ReachabilityProber, hostname_of
from health.unhealthy import UnhealthyCache
from monitoring.health_report import ProbeMetrics

logger = get_logger(__name__)


class EndpointSelector:
    """
    Runs reachability then liveness over a chain's candidates.

    A semaphore bounds in-flight probes across every concurrent
    selection; unrelated chains never wait on a shared lock.
    """

    def __init__(
        self,
        registry: ChainRegistry,
        reachability: ReachabilityProber,
        liveness: LivenessProber,
        unhealthy: UnhealthyCache,
        max_concurrent_probes: int = DEFAULT_MAX_CONCURRENT_PROBES,
        metrics: Optional[ProbeMetrics] = None,
    ):
        self.registry = registry
        self.reachability = reachability
        self.liveness = liveness
        self.unhealthy = unhealthy
        self.metrics = metrics or ProbeMetrics()
        self._semaphore = asyncio.Semaphore(max_concurrent_probes)

    async def check(self, endpoint: Endpoint) -> Optional[ProbeVerdict]:
        """
        Check a single candidate.

        Returns:
            None if the endpoint is suppressed and was skipped without
            probing, otherwise its verdict
        """
        if self.unhealthy.is_suppressed(endpoint.address):
            logger.debug(
                f"Skipping suppressed endpoint: {endpoint.address}",
                extra={"context": {"address": endpoint.address}},
            )
            self.metrics.record_skip()
            return None

        verdict = self.liveness.precheck(endpoint)
        if verdict is None:
            async with self._semaphore:
                dns_error = await self.reachability.check(hostname_of(endpoint.address) or "")
                if dns_error is None:
                    verdict = await self.liveness.probe(endpoint)
                else:
                    verdict = ProbeVerdict.fail(
                        endpoint,
                        dns_error,
                        detail="Host did not resolve",
                    )
                    self.unhealthy.suppress(endpoint.address, dns_error)
                    log_verdict(logger, verdict)
        else:
            log_verdict(logger, verdict)

        self.metrics.record_verdict(verdict)
        return verdict

    async def select(self, chain: str, kind: EndpointKind) -> EndpointOrUnknown:
        """
        First healthy endpoint of a kind, in declaration order.

        Raises:
            UnknownChainError: If the chain is not in the registry
        """
        candidates = self.registry.get_catalog(chain).endpoints(kind)
        probes = 0

        for endpoint in candidates:
            verdict = await self.check(endpoint)
            if verdict is None:
                continue
            probes += 1
            if verdict.healthy:
                self.metrics.record_selection(True)
                log_selection(logger, chain, kind.value, endpoint.address, probes)
                return endpoint

        self._log_exhausted(chain, kind, len(candidates), probes)
        return UNKNOWN

    async def select_race(self, chain: str, kind: EndpointKind) -> EndpointOrUnknown:
        """
        First healthy endpoint by completion order.

        Pending probes are cancelled once a winner is found; their
        partial results are discarded.
        """
        candidates = self.registry.get_catalog(chain).endpoints(kind)
        by_address = {ep.address: ep for ep in candidates}
        tasks = [asyncio.ensure_future(self.check(ep)) for ep in candidates]
        probes = 0

        try:
            for next_done in asyncio.as_completed(tasks):
                verdict = await next_done
                if verdict is None:
                    continue
                probes += 1
                if verdict.healthy:
                    self.metrics.record_selection(True)
                    log_selection(
                        logger, chain, kind.value, verdict.address, probes, mode="race"
                    )
                    return by_address[verdict.address]
        finally:
            pending = [t for t in tasks if not t.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        self._log_exhausted(chain, kind, len(candidates), probes)
        return UNKNOWN

    async def probe_all(
        self,
        chain: str,
        kind: EndpointKind,
    ) -> list[tuple[Endpoint, Optional[ProbeVerdict]]]:
        """Check every candidate of a kind. Verdict None means skipped."""
        candidates = self.registry.get_catalog(chain).endpoints(kind)
        verdicts = await asyncio.gather(*(self.check(ep) for ep in candidates))
        return list(zip(candidates, verdicts))

    def _log_exhausted(self, chain: str, kind: EndpointKind, candidates: int, probes: int) -> None:
        self.metrics.record_selection(False)
        logger.warning(
            f"No healthy {kind.value} endpoint for {chain}",
            extra={"context": {
                "chain": chain,
                "kind": kind.value,
                "candidates": candidates,
                "probes": probes,
                "error": ErrorCode.NO_HEALTHY_ENDPOINT.value,
            }},
        )
