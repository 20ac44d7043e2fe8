"""
health/reachability.py - Name resolution check.

The cheapest first-line filter: a host that does not resolve within the
DNS timeout is not worth an HTTP request. Stateless; suppression of bad
hosts is the unhealthy cache's job.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlsplit

from core.constants import DEFAULT_DNS_TIMEOUT_MS, ErrorCode
from core.logging import get_logger

logger = get_logger(__name__)

Resolver = Callable[[str], Awaitable[Any]]


async def system_resolver(hostname: str) -> Any:
    """Resolve through the event loop's getaddrinfo."""
    loop = asyncio.get_running_loop()
    return await loop.getaddrinfo(hostname, None)


def hostname_of(address: str) -> Optional[str]:
    """Hostname part of an endpoint address, or None if there is none."""
    try:
        return urlsplit(address).hostname
    except ValueError:
        return None


class ReachabilityProber:
    """
    Resolves hostnames under a hard timeout.

    Never raises for resolution failures: a timeout or a resolver error
    both mean "not reachable".
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_DNS_TIMEOUT_MS / 1000,
        resolver: Optional[Resolver] = None,
    ):
        self.timeout_seconds = timeout_seconds
        self._resolver = resolver or system_resolver

    async def check(self, hostname: str) -> Optional[ErrorCode]:
        """
        Resolve a hostname.

        Returns:
            None if it resolved, otherwise TIMEOUT or UNREACHABLE_HOST
        """
        if not hostname:
            return ErrorCode.UNREACHABLE_HOST

        try:
            await asyncio.wait_for(self._resolver(hostname), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.debug(
                f"DNS timeout for {hostname}",
                extra={"context": {"hostname": hostname, "timeout_s": self.timeout_seconds}},
            )
            return ErrorCode.TIMEOUT
        except (OSError, UnicodeError, ValueError) as e:
            logger.debug(
                f"DNS resolution failed for {hostname}: {e}",
                extra={"context": {"hostname": hostname}},
            )
            return ErrorCode.UNREACHABLE_HOST

        return None

    async def reachable(self, hostname: str) -> bool:
        """True only if the hostname resolved before the timeout."""
        return await self.check(hostname) is None
