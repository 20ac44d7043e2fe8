"""
chains/status.py - Queries that consume a selected endpoint.

Network status reads an RPC endpoint's /status; denom traces resolve
ibc/<hash> denoms through a REST endpoint.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from chains.client import EndpointClient
from core.constants import REST_DENOM_TRACE_PATH, RPC_STATUS_PATH
from core.exceptions import MalformedResponseError
from health.parsers import (
    RPC_BLOCK_HEIGHT_PATHS,
    RPC_CATCHING_UP_PATHS,
    lookup,
    parse_rpc_block_time,
)


@dataclass(frozen=True)
class NetworkStatus:
    """Sync info reported by an RPC node."""
    latest_block_height: int
    latest_block_time: datetime
    catching_up: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "latest_block_height": self.latest_block_height,
            "latest_block_time": self.latest_block_time.isoformat(),
            "catching_up": self.catching_up,
        }


@dataclass(frozen=True)
class DenomTrace:
    """Origin of an IBC voucher denom."""
    path: str
    base_denom: str


async def fetch_network_status(client: EndpointClient, rpc_address: str) -> NetworkStatus:
    """
    Fetch sync info from an RPC endpoint.

    Raises:
        ProbeError: On transport failures or a malformed body
    """
    payload = await client.get_json(rpc_address, RPC_STATUS_PATH)

    height_raw = lookup(payload, RPC_BLOCK_HEIGHT_PATHS)
    try:
        height = int(height_raw)
    except (TypeError, ValueError) as e:
        raise MalformedResponseError(
            f"Invalid latest_block_height: {height_raw!r}",
            details={"address": rpc_address},
        ) from e

    return NetworkStatus(
        latest_block_height=height,
        latest_block_time=parse_rpc_block_time(payload),
        catching_up=bool(lookup(payload, RPC_CATCHING_UP_PATHS)),
    )


def _normalize_hash(ibc_hash: str) -> str:
    value = ibc_hash.strip()
    if value.lower().startswith("ibc/"):
        value = value[4:]
    return value


async def query_ibc_denom(client: EndpointClient, rest_address: str, ibc_hash: str) -> DenomTrace:
    """
    Resolve an IBC denom hash to its trace.

    Accepts the hash with or without the "ibc/" prefix. A response
    without a trace yields an empty path and the hash as base denom.
    """
    denom_hash = _normalize_hash(ibc_hash)
    payload = await client.get_json(rest_address, f"{REST_DENOM_TRACE_PATH}/{denom_hash}")

    trace = payload.get("denom_trace") if isinstance(payload, dict) else None
    if not isinstance(trace, dict):
        return DenomTrace(path="", base_denom=denom_hash)

    return DenomTrace(
        path=str(trace.get("path") or ""),
        base_denom=str(trace.get("base_denom") or denom_hash),
    )
