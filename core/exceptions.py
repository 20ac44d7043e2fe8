# PATH: core/exceptions.py
"""
Typed exceptions for chainprobe.

Probe errors are local and recoverable: the probers catch them and turn
them into verdicts. Configuration and registry errors propagate.
"""

from typing import Optional

from core.constants import ErrorCode


class ChainProbeError(Exception):
    """Base exception for chainprobe."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_ERROR,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self):
        return f"[{self.code.value}] {self.message}"


class ConfigError(ChainProbeError):
    """Invalid or missing configuration."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.CONFIG_ERROR, details)


class UnknownChainError(ConfigError):
    """Chain is not present in the registry."""

    def __init__(self, chain: str, details: Optional[dict] = None):
        super().__init__(f"Unknown chain: {chain}", details)
        self.code = ErrorCode.UNKNOWN_CHAIN
        self.chain = chain


class RegistryError(ChainProbeError):
    """Registry could not be read or synced."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.REGISTRY_ERROR, details)


class ProbeError(ChainProbeError):
    """
    A single probe failed.

    Raised by the HTTP client and the parsers, caught by the liveness
    prober and turned into an unhealthy verdict.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        details: Optional[dict] = None,
    ):
        super().__init__(message, code, details)


class MalformedResponseError(ProbeError):
    """Response body lacks the expected fields."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, ErrorCode.MALFORMED_RESPONSE, details)
