from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from fractions import Fraction
from statistics import stdev
from typing import Dict, Optional, Sequence

from .errors import DivisionByZeroError, InsufficientWindowError
from .models import PositionRecord

__all__ = [
    "HOUR_SEC",
    "DAY_SEC",
    "MetricsBundle",
    "derive_metrics",
    "format_percent",
    "lookback_reference",
    "percent_change",
]

logger = logging.getLogger(__name__)

HOUR_SEC = 3600
DAY_SEC = 86400

WINDOW_1H = "1h"
WINDOW_24H = "24h"


@dataclass(frozen=True)
class MetricsBundle:
    latest: PositionRecord
    change_1h: Optional[int]
    diff_delta_1h: Optional[int]
    change_24h: Optional[int]
    total_volume: int
    total_volume_24h: Optional[int]
    volume_change_24h: Optional[int]
    ratio: float
    diff_stddev: float
    window_errors: Dict[str, InsufficientWindowError] = field(default_factory=dict)

    def has_window(self, name: str) -> bool:
        return name not in self.window_errors


def percent_change(latest: int, reference: int) -> int:
    """ceil((latest - reference) / reference * 100), computed exactly."""
    if reference == 0:
        raise DivisionByZeroError(f"percent change against a zero reference (latest={latest})")
    return math.ceil(Fraction((latest - reference) * 100, reference))


def format_percent(percent: int) -> str:
    sign = "+" if percent >= 0 else ""
    return f"{sign}{percent}%"


def lookback_reference(series: Sequence[PositionRecord], window_sec: int) -> PositionRecord:
    """Walk back from the newest record to the first one older than ``window_sec``."""
    if not series:
        raise InsufficientWindowError("empty series", window_sec=window_sec)
    latest_ts = series[-1].timestamp
    for record in reversed(series):
        if latest_ts - record.timestamp > window_sec:
            return record
    raise InsufficientWindowError(
        f"no record older than {window_sec}s (series spans {latest_ts - series[0].timestamp}s)",
        window_sec=window_sec,
    )


def derive_metrics(series: Sequence[PositionRecord]) -> MetricsBundle:
    if len(series) < 2:
        raise InsufficientWindowError(f"need at least 2 records, got {len(series)}")

    latest = series[-1]
    if latest.long_volume == 0:
        raise DivisionByZeroError(f"zero long volume at {latest.timestamp}")
    ratio = round(latest.short_volume / latest.long_volume, 2)

    window_errors: Dict[str, InsufficientWindowError] = {}

    change_1h: Optional[int] = None
    diff_delta_1h: Optional[int] = None
    try:
        hour_ref = lookback_reference(series, HOUR_SEC)
    except InsufficientWindowError as exc:
        window_errors[WINDOW_1H] = exc
    else:
        change_1h = percent_change(latest.short_long_diff, hour_ref.short_long_diff)
        diff_delta_1h = latest.short_long_diff - hour_ref.short_long_diff

    change_24h: Optional[int] = None
    total_volume_24h: Optional[int] = None
    volume_change_24h: Optional[int] = None
    try:
        day_ref = lookback_reference(series, DAY_SEC)
    except InsufficientWindowError as exc:
        window_errors[WINDOW_24H] = exc
    else:
        change_24h = percent_change(latest.short_long_diff, day_ref.short_long_diff)
        total_volume_24h = day_ref.total_volume
        volume_change_24h = percent_change(latest.total_volume, total_volume_24h)

    for name, exc in window_errors.items():
        logger.warning("Lookback window %s unavailable: %s", name, exc)

    return MetricsBundle(
        latest=latest,
        change_1h=change_1h,
        diff_delta_1h=diff_delta_1h,
        change_24h=change_24h,
        total_volume=latest.total_volume,
        total_volume_24h=total_volume_24h,
        volume_change_24h=volume_change_24h,
        ratio=ratio,
        diff_stddev=stdev(record.short_long_diff for record in series),
        window_errors=window_errors,
    )
