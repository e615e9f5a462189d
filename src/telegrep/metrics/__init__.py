"""Prometheus metrics for telegrep.

Usage:
    from telegrep.metrics import start_metrics_server, LINES_READ

    start_metrics_server(port=9108)
    LINES_READ.inc()
"""

from telegrep.metrics.server import HealthCheck, make_metrics_app, start_metrics_server
from telegrep.metrics.telegrep import (
    DELIVERIES,
    FLUSHES,
    LINES_MATCHED,
    LINES_READ,
    SERVICE_INFO,
)

__all__ = [
    "HealthCheck",
    "make_metrics_app",
    "start_metrics_server",
    "SERVICE_INFO",
    "LINES_READ",
    "LINES_MATCHED",
    "FLUSHES",
    "DELIVERIES",
]
