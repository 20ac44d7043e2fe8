# PATH: tests/conftest.py
"""
Pytest configuration and fixtures for chainprobe tests.

FakeNetwork stands in for DNS and HTTP: hosts are declared dead, slow,
fresh or stale, and every lookup and request is recorded so tests can
assert on call counts.
"""

import asyncio
import json
import socket
import sys
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

import httpx
import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from chains.catalog import ChainRegistry  # noqa: E402
from config import HealthSettings  # noqa: E402
from core.constants import REST_LATEST_BLOCK_PATH, RPC_STATUS_PATH  # noqa: E402
from health.service import HealthService  # noqa: E402


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


def iso_ago(seconds: float, now: Optional[datetime] = None) -> str:
    """RFC3339 timestamp `seconds` in the past, nanosecond precision like CometBFT."""
    current = now or datetime.now(timezone.utc)
    dt = current - timedelta(seconds=seconds)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.%f") + "123Z"


def rpc_status_body(block_time: str, height: str = "12345678", nested: bool = True) -> dict:
    sync_info = {
        "latest_block_height": height,
        "latest_block_time": block_time,
        "catching_up": False,
    }
    if nested:
        return {"jsonrpc": "2.0", "id": -1, "result": {"sync_info": sync_info}}
    return {"sync_info": sync_info}


def rest_block_body(block_time: str) -> dict:
    return {"block": {"header": {"chain_id": "osmosis-1", "height": "1", "time": block_time}}}


Handler = Callable[[httpx.Request], Any]


class FakeNetwork:
    """DNS resolver plus httpx.MockTransport over declared hosts."""

    def __init__(self):
        self.dead_hosts: set[str] = set()
        self.slow_dns_hosts: set[str] = set()
        self.routes: dict[tuple[str, str], Handler] = {}
        self.dns_calls: list[str] = []
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    # DNS ---------------------------------------------------------------

    async def resolve(self, hostname: str) -> list:
        self.dns_calls.append(hostname)
        if hostname in self.slow_dns_hosts:
            await asyncio.sleep(30)
        if hostname in self.dead_hosts:
            raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")
        return [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("127.0.0.1", 443))]

    # HTTP --------------------------------------------------------------

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.url.host, request.url.path)
        handler = self.routes.get(key) or self.routes.get((request.url.host, "*"))
        if handler is None:
            return httpx.Response(404, json={"error": "not found"})
        result = handler(request)
        if asyncio.iscoroutine(result):
            result = await result
        return result

    def requests_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    def touched(self, address: str) -> bool:
        """True if the host of address saw a DNS lookup or an HTTP request."""
        host = urlsplit(address).hostname
        return host in self.dns_calls or bool(self.requests_to(host))

    # Declarations ------------------------------------------------------

    def dead(self, address: str) -> None:
        self.dead_hosts.add(urlsplit(address).hostname)

    def slow_dns(self, address: str) -> None:
        self.slow_dns_hosts.add(urlsplit(address).hostname)

    def route(self, address: str, path: str, handler: Handler) -> None:
        parts = urlsplit(address)
        base_path = parts.path.rstrip("/")
        full_path = f"{base_path}{path}" if path != "*" else "*"
        self.routes[(parts.hostname, full_path)] = handler

    def json(self, address: str, path: str, body: Any, status: int = 200) -> None:
        self.route(address, path, lambda request: httpx.Response(status, json=body))

    def rpc(self, address: str, age_seconds: float, nested: bool = True, delay: float = 0) -> None:
        """CometBFT /status reporting a block age_seconds old (at request time)."""

        async def handler(request: httpx.Request) -> httpx.Response:
            if delay:
                await asyncio.sleep(delay)
            return httpx.Response(200, json=rpc_status_body(iso_ago(age_seconds), nested=nested))

        self.route(address, RPC_STATUS_PATH, handler)

    def rest(self, address: str, age_seconds: float) -> None:
        self.route(
            address,
            REST_LATEST_BLOCK_PATH,
            lambda request: httpx.Response(200, json=rest_block_body(iso_ago(age_seconds))),
        )

    def evm(self, address: str, age_seconds: float, block_number: str = "0x1b4") -> None:
        """JSON-RPC node answering eth_blockNumber and eth_getBlockByNumber."""

        def handler(request: httpx.Request) -> httpx.Response:
            payload = json.loads(request.content)
            if payload["method"] == "eth_blockNumber":
                result: Any = block_number
            elif payload["method"] == "eth_getBlockByNumber":
                ts = int(datetime.now(timezone.utc).timestamp() - age_seconds)
                result = {"number": payload["params"][0], "timestamp": hex(ts)}
            else:
                return httpx.Response(200, json={
                    "jsonrpc": "2.0", "id": payload["id"],
                    "error": {"code": -32601, "message": "method not found"},
                })
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

        self.route(address, "*", handler)

    def hang(self, address: str, path: str = RPC_STATUS_PATH) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(30)
            return httpx.Response(200, json={})

        self.route(address, path, handler)


@pytest.fixture
def network() -> FakeNetwork:
    return FakeNetwork()


@pytest.fixture
def settings() -> HealthSettings:
    """Short timeouts so timeout paths finish quickly."""
    return HealthSettings(dns_timeout_ms=200, fetch_timeout_ms=500)


@pytest.fixture
def make_service(network, settings, chains_data):
    """Factory for a HealthService wired to the fake network."""

    def factory(chains: Optional[dict] = None, **overrides) -> HealthService:
        effective = replace(settings, **overrides) if overrides else settings
        registry = ChainRegistry.from_mapping(chains if chains is not None else chains_data)
        return HealthService(
            effective,
            registry,
            transport=network.transport,
            resolver=network.resolve,
        )

    return factory


@pytest.fixture
def service(make_service) -> HealthService:
    return make_service()


@pytest.fixture
def chains_data() -> dict:
    return {
        "osmosis": {
            "chain_name": "osmosis",
            "apis": {
                "rpc": [
                    {"address": "https://rpc-a.osmosis.test", "provider": "A"},
                    {"address": "https://rpc-b.osmosis.test", "provider": "B"},
                    {"address": "https://rpc-c.osmosis.test", "provider": "C"},
                ],
                "rest": [
                    {"address": "https://lcd-a.osmosis.test", "provider": "A"},
                    {"address": "https://lcd-b.osmosis.test/", "provider": "B"},
                ],
                "grpc": [
                    {"address": "grpc-a.osmosis.test:9090", "provider": "A"},
                ],
            },
        },
        "evmos": {
            "chain_name": "evmos",
            "apis": {
                "rpc": [{"address": "https://rpc.evmos.test", "provider": "E"}],
                "rest": [{"address": "https://lcd.evmos.test", "provider": "E"}],
                "evm-http-jsonrpc": [
                    {"address": "https://evm-a.evmos.test", "provider": "A"},
                    {"address": "https://evm-b.evmos.test", "provider": "B"},
                ],
            },
        },
    }
