"""
health/service.py - Wires the health subsystem together.

Owns one of each: HTTP client, unhealthy cache, probers, selector and
chain health cache. Callers hold a HealthService instead of reaching for
module globals.

Usage:
    async with HealthService(settings, registry) as service:
        entry = await service.chain_cache.get_or_select("osmosis")
"""

from typing import Optional

import httpx

from chains.catalog import ChainRegistry
from chains.client import EndpointClient
from config import HealthSettings
from core.constants import EndpointKind
from core.logging import get_logger
from core.models import ChainHealthEntry, EndpointOrUnknown
from health.chain_cache import ChainHealthCache
from health.liveness import LivenessProber
from health.reachability import ReachabilityProber, Resolver
from health.selector import EndpointSelector
from health.unhealthy import UnhealthyCache
from monitoring.health_report import ProbeMetrics, build_health_report

logger = get_logger(__name__)


class HealthService:
    """Endpoint health subsystem for one process."""

    def __init__(
        self,
        settings: HealthSettings,
        registry: ChainRegistry,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        resolver: Optional[Resolver] = None,
    ):
        self.settings = settings
        self.registry = registry
        self.metrics = ProbeMetrics()

        self.client = EndpointClient(
            timeout_seconds=settings.fetch_timeout_seconds,
            transport=transport,
        )
        self.unhealthy = UnhealthyCache(reset_interval_ms=settings.unhealthy_reset_interval_ms)
        self.reachability = ReachabilityProber(
            timeout_seconds=settings.dns_timeout_seconds,
            resolver=resolver,
        )
        self.liveness = LivenessProber(
            self.client,
            self.unhealthy,
            stale_threshold_ms=settings.stale_block_threshold_ms,
        )
        self.selector = EndpointSelector(
            registry,
            self.reachability,
            self.liveness,
            self.unhealthy,
            max_concurrent_probes=settings.max_concurrent_probes,
            metrics=self.metrics,
        )
        self.chain_cache = ChainHealthCache(
            self.selector,
            self.unhealthy,
            max_age_seconds=settings.chain_health_ttl_seconds,
        )

    async def start(self) -> None:
        """Start background work (the unhealthy cache sweeper)."""
        self.unhealthy.start()
        logger.info(
            "Health service started",
            extra={"context": {
                "dns_timeout_ms": self.settings.dns_timeout_ms,
                "fetch_timeout_ms": self.settings.fetch_timeout_ms,
                "max_concurrent_probes": self.settings.max_concurrent_probes,
            }},
        )

    async def close(self) -> None:
        await self.unhealthy.stop()
        await self.client.close()

    async def __aenter__(self) -> "HealthService":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def get_or_select(self, chain: str) -> ChainHealthEntry:
        return await self.chain_cache.get_or_select(chain)

    async def select(self, chain: str, kind: EndpointKind, race: bool = False) -> EndpointOrUnknown:
        if race:
            return await self.selector.select_race(chain, kind)
        return await self.selector.select(chain, kind)

    def report(self, probes=None) -> dict:
        """Health report over everything cached so far."""
        return build_health_report(
            entries=self.chain_cache.entries(),
            probes=probes,
            metrics=self.metrics,
            unhealthy=self.unhealthy.get_stats(),
            endpoint_stats=self.client.get_stats_summary(),
        )
