# PATH: core/constants.py
"""
Constants for chainprobe.

Contains enums, defaults, and fixed health-check thresholds.
"""

from enum import Enum
from typing import Final

# =============================================================================
# TIMEOUTS (configurable through HealthSettings, these are the defaults)
# =============================================================================

DEFAULT_DNS_TIMEOUT_MS: Final[int] = 2000
DEFAULT_FETCH_TIMEOUT_MS: Final[int] = 12000

# =============================================================================
# FIXED THRESHOLDS
# =============================================================================

# Latest block older than this is stale
STALE_BLOCK_THRESHOLD_MS: Final[int] = 60_000

# Global amnesty for suppressed endpoints
UNHEALTHY_RESET_INTERVAL_MS: Final[int] = 60_000

# =============================================================================
# REGISTRY
# =============================================================================

DEFAULT_REPO_URL: Final[str] = "https://github.com/cosmos/chain-registry.git"
DEFAULT_REPO_DIR: Final[str] = "data/repo/chain-registry"
DEFAULT_STALE_HOURS: Final[int] = 6

DEFAULT_MAX_CONCURRENT_PROBES: Final[int] = 4

# =============================================================================
# PROBE PATHS
# =============================================================================

RPC_STATUS_PATH: Final[str] = "/status"
REST_LATEST_BLOCK_PATH: Final[str] = "/cosmos/base/tendermint/v1beta1/blocks/latest"
REST_DENOM_TRACE_PATH: Final[str] = "/ibc/apps/transfer/v1/denom_traces"

SECURE_SCHEMES: Final[frozenset[str]] = frozenset(["https"])


class EndpointKind(str, Enum):
    """Protocol surfaces a chain can expose."""
    RPC = "rpc"
    REST = "rest"
    GRPC = "grpc"
    EVM = "evm-http-jsonrpc"


# Kinds that the liveness prober knows how to check
PROBED_KINDS: Final[frozenset[EndpointKind]] = frozenset([
    EndpointKind.RPC,
    EndpointKind.REST,
    EndpointKind.EVM,
])


class ErrorCode(str, Enum):
    """
    Reason codes for unhealthy verdicts and typed errors.

    Probe-level codes only ever appear inside a ProbeVerdict.
    UNKNOWN_CHAIN, REGISTRY_ERROR and CONFIG_ERROR are the only ones
    that reach callers as exceptions.
    """
    # Reachability
    UNREACHABLE_HOST = "UNREACHABLE_HOST"

    # Policy rejections (never probed)
    INSECURE_SCHEME = "INSECURE_SCHEME"
    INVALID_ADDRESS = "INVALID_ADDRESS"
    UNSUPPORTED_KIND = "UNSUPPORTED_KIND"

    # Transport
    TIMEOUT = "TIMEOUT"
    HTTP_ERROR = "HTTP_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    RPC_ERROR = "RPC_ERROR"

    # Payload
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    STALE_BLOCK = "STALE_BLOCK"

    # Selection
    NO_HEALTHY_ENDPOINT = "NO_HEALTHY_ENDPOINT"

    # Hard failures
    UNKNOWN_CHAIN = "UNKNOWN_CHAIN"
    REGISTRY_ERROR = "REGISTRY_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"
