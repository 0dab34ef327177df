from __future__ import annotations

import logging
from typing import Optional

from prometheus_client import Counter, Gauge, Histogram, start_http_server

from .models import AlertCategory

__all__ = [
    "start_metrics_server",
    "record_cycle",
    "record_decision",
    "record_snapshot",
]

_logger = logging.getLogger(__name__)

_STATE_CODES = {category: index for index, category in enumerate(AlertCategory)}

_cycles_total = Counter(
    "leverage_alerts_cycles_total",
    "Evaluation cycles by outcome",
    ["outcome"],
)
_alerts_total = Counter(
    "leverage_alerts_notifications_total",
    "Notifications composed by category and transition",
    ["category", "transition"],
)
_latest_diff = Gauge("leverage_alerts_short_long_diff", "Latest short minus long volume (USD)")
_latest_ratio = Gauge("leverage_alerts_short_long_ratio", "Latest short/long volume ratio")
_diff_stddev = Gauge("leverage_alerts_short_long_diff_stddev", "Sample std deviation of the short/long difference")
_state_code = Gauge("leverage_alerts_state", "Current notification state (AlertCategory index)")
_cycle_latency_ms = Histogram(
    "leverage_alerts_cycle_latency_ms",
    "Evaluation cycle latency in milliseconds",
    buckets=(50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000),
)

_server_started = False


def start_metrics_server(port: int) -> bool:
    global _server_started
    if _server_started or port <= 0:
        return False
    start_http_server(port)
    _server_started = True
    _logger.info("Prometheus metrics exposed on :%d", port)
    return True


def record_cycle(outcome: str, latency_ms: Optional[float] = None) -> None:
    _cycles_total.labels(outcome=outcome).inc()
    if latency_ms is not None:
        _cycle_latency_ms.observe(latency_ms)


def record_snapshot(short_long_diff: int, ratio: float, stddev: float) -> None:
    _latest_diff.set(short_long_diff)
    _latest_ratio.set(ratio)
    _diff_stddev.set(stddev)


def record_decision(state: AlertCategory, category: Optional[AlertCategory], transition: str) -> None:
    _state_code.set(_STATE_CODES[state])
    if transition != "none":
        label = category.name if category is not None else AlertCategory.NO_ALERT.name
        _alerts_total.labels(category=label, transition=transition).inc()
