# PATH: core/models.py
"""
Data models for chainprobe.

Endpoints are immutable once loaded; verdicts and chain health entries
are never mutated, only superseded.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Union

from core.constants import EndpointKind, ErrorCode
from core.time import now_utc


class UnknownEndpoint:
    """
    Sentinel for "no endpoint available".

    Falsy and renders as "Unknown" so callers can drop it straight into
    a user-facing message.
    """

    _instance: Optional["UnknownEndpoint"] = None

    def __new__(cls) -> "UnknownEndpoint":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        return "Unknown"

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __reduce__(self):
        return (UnknownEndpoint, ())


UNKNOWN = UnknownEndpoint()


@dataclass(frozen=True)
class Endpoint:
    """A declared endpoint. Identity is the address string."""
    address: str
    provider: str = field(default="", compare=False)
    kind: EndpointKind = field(default=EndpointKind.RPC, compare=False)

    def __str__(self) -> str:
        return self.address

    def to_dict(self) -> dict[str, str]:
        return {
            "address": self.address,
            "provider": self.provider,
            "kind": self.kind.value,
        }


EndpointOrUnknown = Union[Endpoint, UnknownEndpoint]


def address_of(endpoint: EndpointOrUnknown) -> str:
    """Address of an endpoint, or "Unknown"."""
    return endpoint.address if isinstance(endpoint, Endpoint) else str(UNKNOWN)


@dataclass(frozen=True)
class ProbeVerdict:
    """Outcome of one health check against one endpoint."""
    address: str
    kind: EndpointKind
    healthy: bool
    latest_block_time: Optional[datetime] = None
    error: Optional[ErrorCode] = None
    detail: str = ""
    latency_ms: int = 0
    checked_at: datetime = field(default_factory=now_utc)

    @classmethod
    def ok(
        cls,
        endpoint: Endpoint,
        latest_block_time: datetime,
        latency_ms: int = 0,
    ) -> "ProbeVerdict":
        return cls(
            address=endpoint.address,
            kind=endpoint.kind,
            healthy=True,
            latest_block_time=latest_block_time,
            latency_ms=latency_ms,
        )

    @classmethod
    def fail(
        cls,
        endpoint: Endpoint,
        error: ErrorCode,
        detail: str = "",
        latest_block_time: Optional[datetime] = None,
        latency_ms: int = 0,
    ) -> "ProbeVerdict":
        return cls(
            address=endpoint.address,
            kind=endpoint.kind,
            healthy=False,
            latest_block_time=latest_block_time,
            error=error,
            detail=detail,
            latency_ms=latency_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "kind": self.kind.value,
            "healthy": self.healthy,
            "latest_block_time": (
                self.latest_block_time.isoformat() if self.latest_block_time else None
            ),
            "error": self.error.value if self.error else None,
            "detail": self.detail,
            "latency_ms": self.latency_ms,
            "checked_at": self.checked_at.isoformat(),
        }


@dataclass(frozen=True)
class ChainHealthEntry:
    """
    Memoized selection result for one chain.

    rpc and rest are health-gated. grpc is the first declared endpoint,
    taken from the catalog without probing.
    """
    chain: str
    rpc: EndpointOrUnknown = UNKNOWN
    rest: EndpointOrUnknown = UNKNOWN
    grpc: EndpointOrUnknown = UNKNOWN
    selected_at: datetime = field(default_factory=now_utc)

    def references(self, address: str) -> bool:
        """True if a health-gated slot holds this address."""
        return any(
            isinstance(ep, Endpoint) and ep.address == address
            for ep in (self.rpc, self.rest)
        )

    def get(self, kind: EndpointKind) -> EndpointOrUnknown:
        if kind == EndpointKind.RPC:
            return self.rpc
        if kind == EndpointKind.REST:
            return self.rest
        if kind == EndpointKind.GRPC:
            return self.grpc
        return UNKNOWN

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        current = now or now_utc()
        return (current - self.selected_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "chain": self.chain,
            "rpc": address_of(self.rpc),
            "rest": address_of(self.rest),
            "grpc": address_of(self.grpc),
            "selected_at": self.selected_at.isoformat(),
        }
