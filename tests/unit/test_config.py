# PATH: tests/unit/test_config.py
"""
Unit tests for configuration loading.
"""

import unittest
from pathlib import Path

from config import HealthSettings, load_chains, load_yaml
from core.constants import (
    DEFAULT_DNS_TIMEOUT_MS,
    DEFAULT_FETCH_TIMEOUT_MS,
    DEFAULT_REPO_DIR,
    DEFAULT_REPO_URL,
    STALE_BLOCK_THRESHOLD_MS,
    UNHEALTHY_RESET_INTERVAL_MS,
    ErrorCode,
)
from core.exceptions import ConfigError

CONFIG_DIR = Path(__file__).parent.parent.parent / "config"


class TestConfigLoading(unittest.TestCase):
    """Tests for config loading functions."""

    def test_config_dir_exists(self):
        """Config directory exists."""
        self.assertTrue(CONFIG_DIR.exists())

    def test_load_chains(self):
        """Can load chains.yaml."""
        chains = load_chains()

        self.assertIsInstance(chains, dict)
        self.assertIn("osmosis", chains)
        self.assertIn("rpc", chains["osmosis"]["apis"])

    def test_load_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_yaml("does_not_exist.yaml")


class TestHealthSettingsDefaults(unittest.TestCase):

    def test_defaults(self):
        settings = HealthSettings.from_env(env={})

        self.assertEqual(settings.dns_timeout_ms, DEFAULT_DNS_TIMEOUT_MS)
        self.assertEqual(settings.fetch_timeout_ms, DEFAULT_FETCH_TIMEOUT_MS)
        self.assertEqual(settings.stale_hours, 6)
        self.assertEqual(settings.repo_url, DEFAULT_REPO_URL)
        self.assertEqual(settings.repo_dir, DEFAULT_REPO_DIR)
        self.assertIsNone(settings.chain_health_ttl_seconds)
        self.assertEqual(settings.log_level, "INFO")

    def test_seconds_properties(self):
        settings = HealthSettings(dns_timeout_ms=2000, fetch_timeout_ms=12000)
        self.assertEqual(settings.dns_timeout_seconds, 2.0)
        self.assertEqual(settings.fetch_timeout_seconds, 12.0)

    def test_thresholds_are_fixed(self):
        """Environment cannot move the staleness threshold or sweep interval."""
        settings = HealthSettings.from_env(env={
            "STALE_BLOCK_THRESHOLD_MS": "1",
            "UNHEALTHY_RESET_INTERVAL_MS": "1",
        })
        self.assertEqual(settings.stale_block_threshold_ms, STALE_BLOCK_THRESHOLD_MS)
        self.assertEqual(settings.unhealthy_reset_interval_ms, UNHEALTHY_RESET_INTERVAL_MS)


class TestHealthSettingsFromEnv(unittest.TestCase):

    def test_overrides(self):
        settings = HealthSettings.from_env(env={
            "DNS_TIMEOUT": "500",
            "FETCH_TIMEOUT": "3000",
            "STALE_HOURS": "12",
            "REPO_URL": "https://example.test/registry.git",
            "REPO_DIR": "/tmp/registry",
            "MAX_CONCURRENT_PROBES": "8",
            "CHAIN_HEALTH_TTL": "300",
            "LOG_LEVEL": "debug",
        })

        self.assertEqual(settings.dns_timeout_ms, 500)
        self.assertEqual(settings.fetch_timeout_ms, 3000)
        self.assertEqual(settings.stale_hours, 12)
        self.assertEqual(settings.repo_url, "https://example.test/registry.git")
        self.assertEqual(settings.repo_dir, "/tmp/registry")
        self.assertEqual(settings.max_concurrent_probes, 8)
        self.assertEqual(settings.chain_health_ttl_seconds, 300)
        self.assertEqual(settings.log_level, "DEBUG")

    def test_blank_values_use_defaults(self):
        settings = HealthSettings.from_env(env={"DNS_TIMEOUT": "", "REPO_DIR": ""})
        self.assertEqual(settings.dns_timeout_ms, DEFAULT_DNS_TIMEOUT_MS)
        self.assertEqual(settings.repo_dir, DEFAULT_REPO_DIR)

    def test_non_numeric(self):
        with self.assertRaises(ConfigError) as ctx:
            HealthSettings.from_env(env={"FETCH_TIMEOUT": "fast"})
        self.assertEqual(ctx.exception.code, ErrorCode.CONFIG_ERROR)
        self.assertEqual(ctx.exception.details["name"], "FETCH_TIMEOUT")

    def test_zero_timeout(self):
        with self.assertRaises(ConfigError):
            HealthSettings.from_env(env={"DNS_TIMEOUT": "0"})

    def test_zero_ttl_disables_expiry(self):
        settings = HealthSettings.from_env(env={"CHAIN_HEALTH_TTL": "0"})
        self.assertIsNone(settings.chain_health_ttl_seconds)

    def test_negative_ttl(self):
        with self.assertRaises(ConfigError):
            HealthSettings.from_env(env={"CHAIN_HEALTH_TTL": "-5"})

    def test_invalid_log_level(self):
        with self.assertRaises(ConfigError):
            HealthSettings.from_env(env={"LOG_LEVEL": "chatty"})


if __name__ == "__main__":
    unittest.main()
