"""
chains/ - Chain registry and endpoint access layer.

Modules:
- catalog: declared endpoints per chain, registry loaders
- client: HTTP/JSON-RPC client for endpoint probes
- repo: chain-registry checkout management
- status: network status and IBC denom queries
"""

from chains.catalog import (
    ChainRegistry,
    EndpointCatalog,
)
from chains.client import (
    EndpointClient,
    EndpointStats,
    join_url,
)
from chains.repo import (
    RegistryRepo,
    run_git,
)

__all__ = [
    # Catalog
    "ChainRegistry",
    "EndpointCatalog",
    # Client
    "EndpointClient",
    "EndpointStats",
    "join_url",
    # Repo
    "RegistryRepo",
    "run_git",
]
