"""
core/logging.py - Structured JSON logging.

All logs include:
- timestamp (ISO 8601)
- level
- logger
- message
- context (chain, kind, address, error, latency_ms, etc.)
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from core.models import ProbeVerdict

# Global context that gets added to all log entries
_global_context: dict[str, Any] = {}


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Output format:
    {
        "timestamp": "2026-01-04T12:00:00.000+00:00",
        "level": "INFO",
        "logger": "health.selector",
        "message": "Selected rpc endpoint",
        "context": {
            "chain": "osmosis",
            "address": "https://rpc.osmosis.zone",
            "probes": 2
        }
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = {}
        context.update(_global_context)

        if hasattr(record, "context") and record.context:
            context.update(record.context)

        if record.exc_info:
            context["exception"] = self.formatException(record.exc_info)

        if context:
            log_entry["context"] = context

        return json.dumps(log_entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable formatter for console output.
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        base = f"{timestamp} | {record.levelname:<8} | {record.name} | {record.getMessage()}"

        if hasattr(record, "context") and record.context:
            items = list(record.context.items())
            ctx_str = ", ".join(f"{k}={v}" for k, v in items[:4])
            if len(items) > 4:
                ctx_str += f", ... (+{len(items) - 4} more)"
            base += f" | {ctx_str}"

        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)

        return base


class ContextAdapter(logging.LoggerAdapter):
    """
    Logger adapter that adds context to all log entries.
    """

    def process(
        self, msg: str, kwargs: dict[str, Any]
    ) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})
        context = {**self.extra, **extra.get("context", {})}

        kwargs["extra"] = {"context": context}
        return msg, kwargs


def set_global_context(**kwargs: Any) -> None:
    """
    Set global context that gets added to all log entries.

    Example:
        set_global_context(service="chainprobe", version="0.1.0")
    """
    _global_context.update(kwargs)


def clear_global_context() -> None:
    """Clear global logging context."""
    _global_context.clear()


def get_logger(name: str, **context: Any) -> ContextAdapter:
    """
    Get a logger with optional default context.

    Args:
        name: Logger name (e.g., "health.liveness")
        **context: Default context for all log entries from this logger

    Returns:
        ContextAdapter with structured logging
    """
    logger = logging.getLogger(name)
    return ContextAdapter(logger, context)


def setup_logging(
    level: str = "INFO",
    json_output: bool = True,
    log_file: str | None = None,
) -> None:
    """
    Setup logging configuration.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_output: Use JSON formatting (recommended for production)
        log_file: Optional file path for logging (always JSON)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    root_logger.handlers.clear()

    formatter: logging.Formatter = JSONFormatter() if json_output else ConsoleFormatter()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def log_verdict(logger: ContextAdapter, verdict: "ProbeVerdict") -> None:
    """Log a probe verdict with standard context."""
    if verdict.healthy:
        logger.debug(
            f"Healthy: {verdict.address}",
            extra={
                "context": {
                    "address": verdict.address,
                    "kind": verdict.kind.value,
                    "latest_block_time": verdict.latest_block_time,
                    "latency_ms": verdict.latency_ms,
                }
            },
        )
        return

    logger.info(
        f"Unhealthy: {verdict.address} [{verdict.error.value if verdict.error else '?'}]",
        extra={
            "context": {
                "address": verdict.address,
                "kind": verdict.kind.value,
                "error": verdict.error.value if verdict.error else None,
                "detail": verdict.detail,
                "latency_ms": verdict.latency_ms,
            }
        },
    )


def log_selection(
    logger: ContextAdapter,
    chain: str,
    kind: str,
    address: str,
    probes: int,
    **extra: Any,
) -> None:
    """Log the outcome of an endpoint selection."""
    logger.info(
        f"Selected {kind} for {chain}: {address}",
        extra={
            "context": {
                "chain": chain,
                "kind": kind,
                "address": address,
                "probes": probes,
                **extra,
            }
        },
    )
