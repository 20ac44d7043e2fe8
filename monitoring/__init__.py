"""
monitoring/ - Probe metrics and health reports.
"""

from monitoring.health_report import (
    REPORT_SCHEMA_VERSION,
    ProbeMetrics,
    build_health_report,
)

__all__ = [
    "REPORT_SCHEMA_VERSION",
    "ProbeMetrics",
    "build_health_report",
]
