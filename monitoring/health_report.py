"""
monitoring/health_report.py - Probe metrics and health reports.

ProbeMetrics is fed by the selector. build_health_report() assembles a
JSON-serialisable snapshot for the CLI and for log shipping.

Key invariant: probes_total == healthy_count + unhealthy_count
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from core.models import ChainHealthEntry, Endpoint, ProbeVerdict
from core.time import now_iso

REPORT_SCHEMA_VERSION = "1.0.0"


@dataclass
class ProbeMetrics:
    """Counters for probes and selections."""
    probes_total: int = 0
    healthy_count: int = 0
    unhealthy_count: int = 0
    skipped_suppressed: int = 0
    selections_total: int = 0
    selections_unknown: int = 0
    total_latency_ms: int = 0
    failures_by_code: Dict[str, int] = field(default_factory=dict)

    @property
    def healthy_rate(self) -> float:
        if self.probes_total == 0:
            return 0.0
        return self.healthy_count / self.probes_total

    @property
    def avg_latency_ms(self) -> int:
        if self.probes_total == 0:
            return 0
        return self.total_latency_ms // self.probes_total

    def record_verdict(self, verdict: ProbeVerdict) -> None:
        self.probes_total += 1
        self.total_latency_ms += verdict.latency_ms
        if verdict.healthy:
            self.healthy_count += 1
            return
        self.unhealthy_count += 1
        code = verdict.error.value if verdict.error else "UNKNOWN"
        self.failures_by_code[code] = self.failures_by_code.get(code, 0) + 1

    def record_skip(self) -> None:
        """Candidate skipped because it is suppressed."""
        self.skipped_suppressed += 1

    def record_selection(self, found: bool) -> None:
        self.selections_total += 1
        if not found:
            self.selections_unknown += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "probes_total": self.probes_total,
            "healthy_count": self.healthy_count,
            "unhealthy_count": self.unhealthy_count,
            "healthy_rate": round(self.healthy_rate, 3),
            "avg_latency_ms": self.avg_latency_ms,
            "skipped_suppressed": self.skipped_suppressed,
            "selections_total": self.selections_total,
            "selections_unknown": self.selections_unknown,
            "failures_by_code": dict(self.failures_by_code),
        }


def build_health_report(
    entries: Iterable[ChainHealthEntry] = (),
    probes: Optional[Iterable[tuple[Endpoint, Optional[ProbeVerdict]]]] = None,
    metrics: Optional[ProbeMetrics] = None,
    unhealthy: Optional[Dict[str, Any]] = None,
    endpoint_stats: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build a health report.

    Args:
        entries: Chain health entries to include
        probes: (endpoint, verdict) pairs; verdict None means the
            endpoint was skipped as suppressed
        metrics: Probe metrics
        unhealthy: Unhealthy cache stats
        endpoint_stats: HTTP client per-endpoint stats

    Returns:
        Report dict
    """
    report: Dict[str, Any] = {
        "schema_version": REPORT_SCHEMA_VERSION,
        "timestamp": now_iso(),
        "chains": [entry.to_dict() for entry in entries],
    }

    if probes is not None:
        report["probes"] = [
            {
                "endpoint": endpoint.to_dict(),
                "verdict": verdict.to_dict() if verdict else None,
                "skipped": verdict is None,
            }
            for endpoint, verdict in probes
        ]

    if metrics is not None:
        report["metrics"] = metrics.to_dict()

    if unhealthy is not None:
        report["unhealthy"] = unhealthy

    if endpoint_stats is not None:
        report["endpoint_stats"] = endpoint_stats

    return report
