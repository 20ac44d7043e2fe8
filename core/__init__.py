"""
core - Core utilities and models for chainprobe.

This package contains:
- models.py: Data models (Endpoint, ProbeVerdict, ChainHealthEntry)
- constants.py: Enums, defaults and fixed thresholds
- exceptions.py: Typed exceptions with error codes
- time.py: Freshness rules and timestamp parsing
- logging.py: Structured JSON logging
"""

from core.constants import (
    EndpointKind,
    ErrorCode,
    STALE_BLOCK_THRESHOLD_MS,
    UNHEALTHY_RESET_INTERVAL_MS,
)
from core.exceptions import (
    ChainProbeError,
    ConfigError,
    MalformedResponseError,
    ProbeError,
    RegistryError,
    UnknownChainError,
)
from core.logging import get_logger, setup_logging
from core.models import (
    UNKNOWN,
    ChainHealthEntry,
    Endpoint,
    EndpointOrUnknown,
    ProbeVerdict,
    UnknownEndpoint,
    address_of,
)

__all__ = [
    # Constants
    "EndpointKind",
    "ErrorCode",
    "STALE_BLOCK_THRESHOLD_MS",
    "UNHEALTHY_RESET_INTERVAL_MS",
    # Exceptions
    "ChainProbeError",
    "ConfigError",
    "MalformedResponseError",
    "ProbeError",
    "RegistryError",
    "UnknownChainError",
    # Models
    "UNKNOWN",
    "ChainHealthEntry",
    "Endpoint",
    "EndpointOrUnknown",
    "ProbeVerdict",
    "UnknownEndpoint",
    "address_of",
    # Logging
    "get_logger",
    "setup_logging",
]
