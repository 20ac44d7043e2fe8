"""
chains/catalog.py - Declared endpoints per chain.

Provides:
- EndpointCatalog: read-only, ordered view of one chain's endpoints
- ChainRegistry: chain name -> catalog, backed by a mapping, a YAML
  file, or a cosmos chain-registry checkout
"""

import json
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional

import yaml

from core.constants import EndpointKind
from core.exceptions import RegistryError, UnknownChainError
from core.logging import get_logger
from core.models import UNKNOWN, Endpoint, EndpointOrUnknown

logger = get_logger(__name__)


class EndpointCatalog:
    """
    Endpoints declared for a chain, grouped by kind.

    Declaration order is preserved and is the selection priority.
    """

    def __init__(
        self,
        chain: str,
        endpoints: Mapping[EndpointKind, Iterable[Endpoint]],
    ):
        self.chain = chain
        self._endpoints: dict[EndpointKind, tuple[Endpoint, ...]] = {
            kind: tuple(eps) for kind, eps in endpoints.items()
        }

    @classmethod
    def from_chain_json(cls, chain: str, data: Mapping[str, Any]) -> "EndpointCatalog":
        """
        Build a catalog from a chain.json-shaped document.

        Reads apis.<kind> lists of {address, provider}. Entries without
        an address are dropped; duplicates keep their first position.
        """
        apis = data.get("apis") or {}
        if not isinstance(apis, Mapping):
            raise RegistryError(
                f"Invalid apis section for chain {chain}",
                details={"chain": chain},
            )

        endpoints: dict[EndpointKind, list[Endpoint]] = {}
        for kind in EndpointKind:
            seen: set[str] = set()
            entries = []
            for raw in apis.get(kind.value) or []:
                if not isinstance(raw, Mapping):
                    continue
                address = str(raw.get("address") or "").strip()
                if not address or address in seen:
                    continue
                seen.add(address)
                entries.append(
                    Endpoint(
                        address=address,
                        provider=str(raw.get("provider") or ""),
                        kind=kind,
                    )
                )
            if entries:
                endpoints[kind] = entries

        return cls(chain, endpoints)

    @property
    def kinds(self) -> list[EndpointKind]:
        return [kind for kind, eps in self._endpoints.items() if eps]

    def endpoints(self, kind: EndpointKind) -> tuple[Endpoint, ...]:
        return self._endpoints.get(kind, ())

    def first(self, kind: EndpointKind) -> EndpointOrUnknown:
        """First declared endpoint of a kind, without any health gating."""
        eps = self.endpoints(kind)
        return eps[0] if eps else UNKNOWN

    def __len__(self) -> int:
        return sum(len(eps) for eps in self._endpoints.values())

    def __repr__(self) -> str:
        counts = ", ".join(f"{k.value}={len(v)}" for k, v in self._endpoints.items())
        return f"EndpointCatalog({self.chain!r}, {counts})"


class ChainRegistry:
    """
    Registry of endpoint catalogs by chain name.

    Catalogs are loaded on first request and memoized until reload().
    """

    def __init__(
        self,
        loader: Callable[[str], Optional[Mapping[str, Any]]],
        lister: Optional[Callable[[], list[str]]] = None,
    ):
        self._loader = loader
        self._lister = lister
        self._catalogs: dict[str, EndpointCatalog] = {}

    @classmethod
    def from_mapping(cls, chains: Mapping[str, Mapping[str, Any]]) -> "ChainRegistry":
        """Registry over an in-memory {chain: chain.json-like dict} mapping."""
        data = dict(chains)
        return cls(loader=data.get, lister=lambda: sorted(data))

    @classmethod
    def from_yaml(cls, path: Path) -> "ChainRegistry":
        """Registry over a static YAML catalog (see config/chains.yaml)."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise RegistryError(
                f"Failed to read catalog {path}: {e}",
                details={"path": str(path)},
            ) from e
        if not isinstance(data, Mapping):
            raise RegistryError(f"Catalog {path} is not a mapping", details={"path": str(path)})
        return cls.from_mapping(data)

    @classmethod
    def from_directory(cls, repo_dir: Path, testnets: bool = False) -> "ChainRegistry":
        """
        Registry over a chain-registry checkout.

        Mainnets live at <repo_dir>/<chain>/chain.json, testnets at
        <repo_dir>/testnets/<chain>/chain.json.
        """
        base = Path(repo_dir) / "testnets" if testnets else Path(repo_dir)

        def load(chain: str) -> Optional[Mapping[str, Any]]:
            if not chain or "/" in chain or "\\" in chain or chain.startswith("."):
                return None
            chain_json = base / chain / "chain.json"
            if not chain_json.exists():
                return None
            try:
                with open(chain_json, "r", encoding="utf-8") as f:
                    return json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise RegistryError(
                    f"Failed to read {chain_json}: {e}",
                    details={"chain": chain, "path": str(chain_json)},
                ) from e

        def list_chains() -> list[str]:
            if not base.is_dir():
                return []
            return sorted(
                p.name for p in base.iterdir()
                if p.is_dir() and not p.name.startswith((".", "_"))
                and (p / "chain.json").exists()
            )

        return cls(loader=load, lister=list_chains)

    def get_catalog(self, chain: str) -> EndpointCatalog:
        """
        Get the catalog for a chain.

        Raises:
            UnknownChainError: If the chain is not declared
            RegistryError: If the chain data cannot be read
        """
        catalog = self._catalogs.get(chain)
        if catalog is not None:
            return catalog

        data = self._loader(chain)
        if data is None:
            raise UnknownChainError(chain)
        if not isinstance(data, Mapping):
            raise RegistryError(f"Invalid chain data for {chain}", details={"chain": chain})

        catalog = EndpointCatalog.from_chain_json(chain, data)
        self._catalogs[chain] = catalog
        logger.debug(
            f"Loaded catalog for {chain}",
            extra={"context": {"chain": chain, "endpoints": len(catalog)}},
        )
        return catalog

    def chain_names(self) -> list[str]:
        return self._lister() if self._lister else sorted(self._catalogs)

    def reload(self) -> None:
        """Drop memoized catalogs, e.g. after a registry sync."""
        self._catalogs.clear()
