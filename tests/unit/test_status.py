# PATH: tests/unit/test_status.py
"""
Unit tests for network status and IBC denom queries.
"""

from datetime import datetime, timezone

import pytest

from chains.client import EndpointClient
from chains.status import DenomTrace, fetch_network_status, query_ibc_denom
from core.constants import ErrorCode
from core.exceptions import ProbeError

RPC = "https://rpc.status.test"
REST = "https://lcd.status.test"
TRACE_PATH = "/ibc/apps/transfer/v1/denom_traces"
HASH = "27394FB092D2ECCD56123C74F36E4C1F926001CEADA9CA97EA622B25F41E5EB2"


@pytest.fixture
def client(network):
    return EndpointClient(timeout_seconds=0.5, transport=network.transport)


class TestNetworkStatus:

    @pytest.mark.asyncio
    async def test_status(self, network, client):
        network.json(RPC, "/status", {"result": {"sync_info": {
            "latest_block_height": "15000000",
            "latest_block_time": "2024-01-01T12:00:00.5Z",
            "catching_up": True,
        }}})

        status = await fetch_network_status(client, RPC)

        assert status.latest_block_height == 15000000
        assert status.latest_block_time == datetime(2024, 1, 1, 12, 0, 0, 500000, tzinfo=timezone.utc)
        assert status.catching_up is True
        assert status.to_dict()["latest_block_time"].startswith("2024-01-01T12:00:00.5")

    @pytest.mark.asyncio
    async def test_bad_height(self, network, client):
        network.json(RPC, "/status", {"sync_info": {
            "latest_block_height": "tall",
            "latest_block_time": "2024-01-01T12:00:00Z",
        }})

        with pytest.raises(ProbeError) as exc_info:
            await fetch_network_status(client, RPC)
        assert exc_info.value.code == ErrorCode.MALFORMED_RESPONSE

    @pytest.mark.asyncio
    async def test_http_failure(self, network, client):
        network.json(RPC, "/status", {}, status=500)
        with pytest.raises(ProbeError) as exc_info:
            await fetch_network_status(client, RPC)
        assert exc_info.value.code == ErrorCode.HTTP_ERROR


class TestIbcDenom:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("denom", [HASH, f"ibc/{HASH}", f"IBC/{HASH}", f" ibc/{HASH} "])
    async def test_trace(self, network, client, denom):
        network.json(REST, f"{TRACE_PATH}/{HASH}", {
            "denom_trace": {"path": "transfer/channel-0", "base_denom": "uatom"},
        })

        trace = await query_ibc_denom(client, REST, denom)

        assert trace == DenomTrace(path="transfer/channel-0", base_denom="uatom")

    @pytest.mark.asyncio
    async def test_missing_trace(self, network, client):
        network.json(REST, f"{TRACE_PATH}/{HASH}", {})

        trace = await query_ibc_denom(client, REST, HASH)

        assert trace == DenomTrace(path="", base_denom=HASH)

    @pytest.mark.asyncio
    async def test_unknown_hash(self, network, client):
        """The fake network answers 404 for unrouted paths."""
        with pytest.raises(ProbeError) as exc_info:
            await query_ibc_denom(client, REST, "ibc/DEADBEEF")
        assert exc_info.value.code == ErrorCode.HTTP_ERROR
