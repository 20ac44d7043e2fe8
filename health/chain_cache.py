"""
health/chain_cache.py - Memoized per-chain endpoint selection.

One ChainHealthEntry per chain, replaced whole, never patched. Entries
live until explicitly invalidated (chain re-selected, operator refresh)
or until one of their endpoints is suppressed. An optional max age adds
a bounded TTL on top.

Concurrent get_or_select() calls for the same chain share one in-flight
selection. If every caller abandons it, the selection is cancelled and
nothing is stored.
"""

import asyncio
from datetime import datetime
from typing import Callable, Optional

from core.constants import EndpointKind
from core.logging import get_logger
from core.models import ChainHealthEntry, EndpointOrUnknown
from core.time import now_utc
from health.selector import EndpointSelector
from health.unhealthy import UnhealthyCache

logger = get_logger(__name__)


class ChainHealthCache:
    """
    Per-chain {rpc, rest, grpc} selection cache.

    rpc and rest are health-gated through the selector; grpc is the
    first declared endpoint since there is no gRPC prober.
    """

    def __init__(
        self,
        selector: EndpointSelector,
        unhealthy: Optional[UnhealthyCache] = None,
        max_age_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.selector = selector
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._entries: dict[str, ChainHealthEntry] = {}
        self._inflight: dict[str, asyncio.Task] = {}
        self._waiters: dict[asyncio.Task, int] = {}
        self._generation: dict[str, int] = {}
        self.selections_started = 0

        self.unhealthy = unhealthy or selector.unhealthy
        self.unhealthy.add_listener(self._on_suppressed)

    def peek(self, chain: str) -> Optional[ChainHealthEntry]:
        """Cached entry if present and not expired. Never probes."""
        entry = self._entries.get(chain)
        if entry is None:
            return None

        if (
            self.max_age_seconds is not None
            and entry.age_seconds(self._clock()) >= self.max_age_seconds
        ):
            logger.debug(
                f"Chain health entry expired: {chain}",
                extra={"context": {"chain": chain, "max_age_s": self.max_age_seconds}},
            )
            self._drop(chain)
            return None

        return entry

    async def get_or_select(self, chain: str) -> ChainHealthEntry:
        """
        Cached entry for a chain, selecting one on a miss.

        Raises:
            UnknownChainError: If the chain is not in the registry
        """
        entry = self.peek(chain)
        if entry is not None:
            return entry

        task = self._inflight.get(chain)
        if task is None:
            task = asyncio.ensure_future(self._select(chain, self._generation.get(chain, 0)))
            self._inflight[chain] = task
            task.add_done_callback(lambda t, c=chain: self._on_done(c, t))

        # Counted per task: an invalidated generation keeps its own callers
        self._waiters[task] = self._waiters.get(task, 0) + 1
        try:
            return await asyncio.shield(task)
        finally:
            self._waiters[task] -= 1
            if self._waiters[task] == 0:
                del self._waiters[task]
                if not task.done():
                    # Every caller is gone: abandon the probes
                    logger.info(
                        f"Abandoning in-flight selection for {chain}",
                        extra={"context": {"chain": chain}},
                    )
                    if self._inflight.get(chain) is task:
                        del self._inflight[chain]
                    task.cancel()

    async def _select(self, chain: str, generation: int) -> ChainHealthEntry:
        self.selections_started += 1
        catalog = self.selector.registry.get_catalog(chain)

        rpc, rest = await asyncio.gather(
            self.selector.select(chain, EndpointKind.RPC),
            self.selector.select(chain, EndpointKind.REST),
        )
        entry = ChainHealthEntry(
            chain=chain,
            rpc=rpc,
            rest=rest,
            grpc=catalog.first(EndpointKind.GRPC),
            selected_at=self._clock(),
        )

        if self._generation.get(chain, 0) != generation:
            logger.debug(
                f"Discarding selection for {chain}: invalidated while in flight",
                extra={"context": {"chain": chain}},
            )
        elif any(
            self.unhealthy.is_suppressed(ep.address)
            for ep in (rpc, rest) if ep
        ):
            logger.debug(
                f"Discarding selection for {chain}: endpoint suppressed while in flight",
                extra={"context": {"chain": chain}},
            )
        else:
            self._entries[chain] = entry
            logger.info(
                f"Chain health cached: {chain}",
                extra={"context": entry.to_dict()},
            )

        return entry

    def _on_done(self, chain: str, task: asyncio.Task) -> None:
        if self._inflight.get(chain) is task:
            del self._inflight[chain]
        # Mark the exception retrieved; waiters re-raise it themselves
        if not task.cancelled():
            task.exception()

    def _drop(self, chain: str) -> bool:
        self._generation[chain] = self._generation.get(chain, 0) + 1
        self._inflight.pop(chain, None)
        return self._entries.pop(chain, None) is not None

    def invalidate(self, chain: str) -> bool:
        """
        Forget a chain's entry so the next lookup reselects.

        A selection already in flight still answers its callers but is
        not stored.
        """
        dropped = self._drop(chain)
        if dropped:
            logger.info(f"Chain health invalidated: {chain}", extra={"context": {"chain": chain}})
        return dropped

    def invalidate_all(self) -> int:
        """Operator refresh: forget every entry."""
        chains = set(self._entries) | set(self._inflight)
        count = sum(1 for chain in chains if self._drop(chain))
        logger.info(f"Chain health cache cleared: {count} entries", extra={"context": {"count": count}})
        return count

    async def refresh(self, chain: str) -> ChainHealthEntry:
        """Invalidate and reselect."""
        self.invalidate(chain)
        return await self.get_or_select(chain)

    async def resolve(self, chain: str, kind: EndpointKind) -> EndpointOrUnknown:
        """
        One endpoint of any kind.

        rpc/rest/grpc come from the cached entry; EVM is health-gated on
        demand and not cached.
        """
        if kind == EndpointKind.EVM:
            return await self.selector.select(chain, kind)
        entry = await self.get_or_select(chain)
        return entry.get(kind)

    def _on_suppressed(self, address: str) -> None:
        for chain, entry in list(self._entries.items()):
            if entry.references(address):
                logger.info(
                    f"Cached endpoint went unhealthy, invalidating {chain}",
                    extra={"context": {"chain": chain, "address": address}},
                )
                self._drop(chain)

    def entries(self) -> list[ChainHealthEntry]:
        """Unexpired entries, ordered by chain name."""
        return [
            entry for entry in (self.peek(chain) for chain in sorted(self._entries))
            if entry is not None
        ]

    def __contains__(self, chain: object) -> bool:
        return isinstance(chain, str) and self.peek(chain) is not None

    def __len__(self) -> int:
        return len(self._entries)
