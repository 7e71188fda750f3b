"""
Observability module: Metrics and structured logging.
"""

from visitlog.observability.metrics import (
    MetricsCollector,
    Counter,
    Histogram,
    HistoryMetrics,
)
from visitlog.observability.logging import (
    StructuredLogger,
    LogLevel,
    JsonFormatter,
    setup_logging,
)

__all__ = [
    "MetricsCollector",
    "Counter",
    "Histogram",
    "HistoryMetrics",
    "StructuredLogger",
    "LogLevel",
    "JsonFormatter",
    "setup_logging",
]
