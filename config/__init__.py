# PATH: config/__init__.py
"""
Configuration loading utilities for chainprobe.

Environment-style settings (optionally from a .env file) and static
YAML catalogs shipped in the config directory.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from core.constants import (
    DEFAULT_DNS_TIMEOUT_MS,
    DEFAULT_FETCH_TIMEOUT_MS,
    DEFAULT_MAX_CONCURRENT_PROBES,
    DEFAULT_REPO_DIR,
    DEFAULT_REPO_URL,
    DEFAULT_STALE_HOURS,
    STALE_BLOCK_THRESHOLD_MS,
    UNHEALTHY_RESET_INTERVAL_MS,
)
from core.exceptions import ConfigError


CONFIG_DIR = Path(__file__).parent


def load_yaml(filename: str, config_dir: Path = CONFIG_DIR) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        filename: Name of file in config directory
        config_dir: Directory to look in

    Returns:
        Parsed YAML as dict
    """
    filepath = config_dir / filename
    if not filepath.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")

    with open(filepath, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_chains() -> Dict[str, Any]:
    """Load the static chain endpoint catalog."""
    return load_yaml("chains.yaml")


def _int_env(env: Mapping[str, str], name: str, default: int, minimum: int = 1) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(
            f"{name} must be an integer, got {raw!r}",
            details={"name": name, "value": raw},
        )
    if value < minimum:
        raise ConfigError(
            f"{name} must be >= {minimum}, got {value}",
            details={"name": name, "value": value},
        )
    return value


@dataclass(frozen=True)
class HealthSettings:
    """Tunable parameters for endpoint health checks."""
    dns_timeout_ms: int = DEFAULT_DNS_TIMEOUT_MS
    fetch_timeout_ms: int = DEFAULT_FETCH_TIMEOUT_MS
    stale_hours: int = DEFAULT_STALE_HOURS
    repo_url: str = DEFAULT_REPO_URL
    repo_dir: str = DEFAULT_REPO_DIR
    max_concurrent_probes: int = DEFAULT_MAX_CONCURRENT_PROBES
    chain_health_ttl_seconds: Optional[int] = None
    log_level: str = "INFO"

    # Fixed, not read from the environment
    stale_block_threshold_ms: int = STALE_BLOCK_THRESHOLD_MS
    unhealthy_reset_interval_ms: int = UNHEALTHY_RESET_INTERVAL_MS

    @property
    def dns_timeout_seconds(self) -> float:
        return self.dns_timeout_ms / 1000

    @property
    def fetch_timeout_seconds(self) -> float:
        return self.fetch_timeout_ms / 1000

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        dotenv: bool = True,
    ) -> "HealthSettings":
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read instead of os.environ
            dotenv: Load a .env file into os.environ first

        Raises:
            ConfigError: On non-numeric or out-of-range values
        """
        if env is None:
            if dotenv:
                load_dotenv()
            env = os.environ

        # 0 or unset: entries live until invalidated
        ttl = _int_env(env, "CHAIN_HEALTH_TTL", 0, minimum=0) or None

        log_level = env.get("LOG_LEVEL", "INFO").upper()
        if log_level not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ConfigError(f"Invalid LOG_LEVEL: {log_level}")

        return cls(
            dns_timeout_ms=_int_env(env, "DNS_TIMEOUT", DEFAULT_DNS_TIMEOUT_MS),
            fetch_timeout_ms=_int_env(env, "FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT_MS),
            stale_hours=_int_env(env, "STALE_HOURS", DEFAULT_STALE_HOURS),
            repo_url=env.get("REPO_URL") or DEFAULT_REPO_URL,
            repo_dir=env.get("REPO_DIR") or DEFAULT_REPO_DIR,
            max_concurrent_probes=_int_env(
                env, "MAX_CONCURRENT_PROBES", DEFAULT_MAX_CONCURRENT_PROBES
            ),
            chain_health_ttl_seconds=ttl,
            log_level=log_level,
        )
