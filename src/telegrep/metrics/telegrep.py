"""Prometheus metrics for the log pipeline.

All metrics use the 'telegrep_' prefix.
"""

from prometheus_client import Counter, Info

SERVICE_INFO = Info(
    "telegrep_service",
    "Service metadata",
)

LINES_READ = Counter(
    "telegrep_lines_read_total",
    "Total lines read from the monitored file",
)

LINES_MATCHED = Counter(
    "telegrep_lines_matched_total",
    "Total lines that matched the pattern",
    ["category"],  # classifier rule name
)

FLUSHES = Counter(
    "telegrep_flushes_total",
    "Total flush decisions",
    ["action"],  # empty, digest, mass_warning, suppressed
)

DELIVERIES = Counter(
    "telegrep_deliveries_total",
    "Telegram send attempts, plus messages dropped before sending",
    ["status"],  # success, http_error, request_error, dropped
)
