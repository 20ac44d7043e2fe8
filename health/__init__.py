"""
health/ - Endpoint health evaluation and selection.

Modules:
- reachability: DNS resolution under a timeout
- liveness: kind-specific freshness probes
- parsers: block time extraction with ordered fallbacks
- unhealthy: suppression set with a global periodic sweep
- selector: first-healthy endpoint per (chain, kind)
- chain_cache: memoized per-chain selection
- service: wiring
"""

from health.chain_cache import ChainHealthCache
from health.liveness import LivenessProber
from health.reachability import ReachabilityProber, hostname_of, system_resolver
from health.selector import EndpointSelector
from health.service import HealthService
from health.unhealthy import UnhealthyCache

__all__ = [
    "ChainHealthCache",
    "EndpointSelector",
    "HealthService",
    "LivenessProber",
    "ReachabilityProber",
    "UnhealthyCache",
    "hostname_of",
    "system_resolver",
]
