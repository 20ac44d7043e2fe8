"""
health/parsers.py - Latest block time extraction.

Providers are inconsistent about where they put the block time, so each
endpoint kind has an ordered list of accepted paths. The first path that
yields a value wins; a missing or unparsable value is a
MalformedResponseError, never a crash.
"""

from datetime import datetime
from typing import Any, Sequence

from core.exceptions import MalformedResponseError
from core.time import from_unix_seconds, parse_rfc3339

# CometBFT /status: JSON-RPC envelope first, then bare (some proxies unwrap it)
RPC_BLOCK_TIME_PATHS: tuple[tuple[str, ...], ...] = (
    ("result", "sync_info", "latest_block_time"),
    ("sync_info", "latest_block_time"),
)

# Cosmos SDK blocks/latest: legacy block first, then sdk_block (SDK >= 0.47)
REST_BLOCK_TIME_PATHS: tuple[tuple[str, ...], ...] = (
    ("block", "header", "time"),
    ("sdk_block", "header", "time"),
)

RPC_BLOCK_HEIGHT_PATHS: tuple[tuple[str, ...], ...] = (
    ("result", "sync_info", "latest_block_height"),
    ("sync_info", "latest_block_height"),
)

RPC_CATCHING_UP_PATHS: tuple[tuple[str, ...], ...] = (
    ("result", "sync_info", "catching_up"),
    ("sync_info", "catching_up"),
)


def lookup(payload: Any, paths: Sequence[Sequence[str]]) -> Any:
    """
    Return the value at the first path present in payload.

    Args:
        payload: Decoded JSON document
        paths: Candidate key paths, in priority order

    Returns:
        The value, or None if no path matches
    """
    for path in paths:
        node = payload
        for key in path:
            if not isinstance(node, dict) or key not in node:
                node = None
                break
            node = node[key]
        if node is not None:
            return node
    return None


def _parse_time(value: Any, source: str) -> datetime:
    if not isinstance(value, str) or not value:
        raise MalformedResponseError(
            f"Missing block time in {source} response",
            details={"value": value},
        )
    try:
        return parse_rfc3339(value)
    except ValueError as e:
        raise MalformedResponseError(
            f"Unparsable block time in {source} response: {value!r}",
            details={"value": value},
        ) from e


def parse_rpc_block_time(payload: Any) -> datetime:
    """Latest block time from a CometBFT /status response."""
    return _parse_time(lookup(payload, RPC_BLOCK_TIME_PATHS), "rpc")


def parse_rest_block_time(payload: Any) -> datetime:
    """Latest block time from a blocks/latest response."""
    return _parse_time(lookup(payload, REST_BLOCK_TIME_PATHS), "rest")


def parse_hex_quantity(value: Any, field: str) -> int:
    """
    Decode an EVM hex quantity ("0x1b4").

    Raises:
        MalformedResponseError: If value is not a 0x-prefixed hex string
    """
    if not isinstance(value, str) or not value.lower().startswith("0x"):
        raise MalformedResponseError(
            f"Expected hex quantity for {field}, got {value!r}",
            details={"field": field},
        )
    try:
        return int(value, 16)
    except ValueError as e:
        raise MalformedResponseError(
            f"Invalid hex quantity for {field}: {value!r}",
            details={"field": field},
        ) from e


def parse_evm_block_number(result: Any) -> str:
    """
    Validate an eth_blockNumber result.

    Returns the hex string unchanged, ready to pass to
    eth_getBlockByNumber.
    """
    parse_hex_quantity(result, "blockNumber")
    return result


def parse_evm_block_time(block: Any) -> datetime:
    """Block time from an eth_getBlockByNumber result (hex Unix seconds)."""
    if not isinstance(block, dict):
        raise MalformedResponseError(
            "eth_getBlockByNumber returned no block",
            details={"value": block},
        )
    seconds = parse_hex_quantity(block.get("timestamp"), "timestamp")
    try:
        return from_unix_seconds(seconds)
    except (OverflowError, OSError, ValueError) as e:
        raise MalformedResponseError(
            f"Block timestamp out of range: {seconds}",
            details={"timestamp": seconds},
        ) from e
