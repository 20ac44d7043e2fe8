# PATH: tests/unit/test_imports_contract.py
"""
Import contract smoke tests.

Catch ImportError and circular-import regressions early.
"""

import importlib
import unittest


class TestPackageImports(unittest.TestCase):
    """Every package and module imports on its own."""

    MODULES = [
        "core",
        "core.constants",
        "core.exceptions",
        "core.logging",
        "core.models",
        "core.time",
        "config",
        "chains",
        "chains.catalog",
        "chains.client",
        "chains.repo",
        "chains.status",
        "health",
        "health.parsers",
        "health.reachability",
        "health.unhealthy",
        "health.liveness",
        "health.selector",
        "health.chain_cache",
        "health.service",
        "monitoring",
        "monitoring.health_report",
        "run_health",
    ]

    def test_import_all(self):
        for name in self.MODULES:
            with self.subTest(module=name):
                importlib.import_module(name)

    def test_public_names(self):
        """Names callers rely on are exported at package level."""
        from core import UNKNOWN, ChainHealthEntry, Endpoint, ErrorCode, UnknownChainError  # noqa: F401
        from chains import ChainRegistry, EndpointCatalog, EndpointClient, RegistryRepo  # noqa: F401
        from health import ChainHealthCache, EndpointSelector, HealthService, UnhealthyCache  # noqa: F401
        from monitoring import ProbeMetrics, build_health_report  # noqa: F401

    def test_error_codes_present(self):
        from core.constants import ErrorCode

        for name in (
            "UNREACHABLE_HOST", "INSECURE_SCHEME", "TIMEOUT", "HTTP_ERROR",
            "MALFORMED_RESPONSE", "STALE_BLOCK", "UNKNOWN_CHAIN",
        ):
            self.assertTrue(hasattr(ErrorCode, name), name)


if __name__ == "__main__":
    unittest.main()
