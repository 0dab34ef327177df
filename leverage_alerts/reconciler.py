"""Merge the historical CSV export with the authoritative content-store tail.

The content store only keeps a recent window of snapshots, so the CSV supplies
everything older than the first store record. Wherever the two overlap the
store wins.
"""

from __future__ import annotations

import logging
import math
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .errors import FetchError, ParseError
from .models import PositionRecord

__all__ = [
    "DEFAULT_LOCALE",
    "normalize_timestamp",
    "parse_historical_rows",
    "parse_store_entries",
    "reconcile",
]

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en-US"
# Anything above this is an epoch in milliseconds (year 5138 in seconds).
_MILLIS_CUTOFF = 100_000_000_000

_FIELDS = {
    "timestamp": "timestamp",
    "short_long_diff": "shortLongDiff",
    "short_volume": "shortVolume",
    "long_volume": "longVolume",
}


def _to_int(value: Any, field: str) -> int:
    if value is None or isinstance(value, bool):
        raise ParseError(f"{field}: expected a number, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ParseError(f"{field}: expected a finite number, got {value!r}")
        return int(value)
    try:
        num = Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ParseError(f"{field}: expected a number, got {value!r}") from exc
    if not num.is_finite():
        raise ParseError(f"{field}: expected a finite number, got {value!r}")
    return int(num)


def _to_optional_int(value: Any, field: str) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return _to_int(value, field)


def normalize_timestamp(value: int) -> int:
    """Return epoch seconds for an epoch given in seconds or milliseconds."""
    if abs(value) >= _MILLIS_CUTOFF:
        return value // 1000
    return value


def _build_record(values: Mapping[str, Any]) -> PositionRecord:
    parsed: Dict[str, int] = {}
    for attr, key in _FIELDS.items():
        if key not in values:
            raise ParseError(f"missing required field {key!r}")
        parsed[attr] = _to_int(values[key], key)
    if parsed["short_volume"] < 0 or parsed["long_volume"] < 0:
        raise ParseError(f"negative volume in record at {parsed['timestamp']}")
    return PositionRecord(
        timestamp=normalize_timestamp(parsed["timestamp"]),
        short_volume=parsed["short_volume"],
        long_volume=parsed["long_volume"],
        short_long_diff=parsed["short_long_diff"],
        eth_price=_to_optional_int(values.get("ethPrice"), "ethPrice"),
    )


def _ordered_unique(records: Iterable[PositionRecord]) -> List[PositionRecord]:
    by_ts: Dict[int, PositionRecord] = {}
    for record in records:
        # last occurrence of a timestamp wins
        by_ts[record.timestamp] = record
    return [by_ts[ts] for ts in sorted(by_ts)]


def parse_historical_rows(rows: Iterable[Mapping[str, Any]]) -> List[PositionRecord]:
    """Parse CSV-style rows (string or numeric fields) into an ordered series."""
    return _ordered_unique(_build_record(row) for row in rows)


def _unwrap_locale(fields: Mapping[str, Any], locale: str) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key, wrapped in fields.items():
        if isinstance(wrapped, Mapping):
            values[key] = wrapped.get(locale)
        else:
            values[key] = wrapped
    return values


def parse_store_entries(entries: Iterable[Mapping[str, Any]], *, locale: str = DEFAULT_LOCALE) -> List[PositionRecord]:
    """Parse content-store entries whose fields are wrapped as ``{locale: value}``."""
    records: List[PositionRecord] = []
    for entry in entries:
        fields = entry.get("fields") if isinstance(entry, Mapping) else None
        if not isinstance(fields, Mapping):
            raise FetchError(f"content-store entry without fields: {entry!r}")
        records.append(_build_record(_unwrap_locale(fields, locale)))
    return _ordered_unique(records)


def reconcile(
    historical: Iterable[Mapping[str, Any]],
    live: Iterable[Mapping[str, Any]],
    *,
    locale: str = DEFAULT_LOCALE,
) -> List[PositionRecord]:
    """Return one ascending, de-duplicated series preferring ``live`` on overlap.

    ``historical`` holds CSV rows, ``live`` holds content-store entries. Raises
    ``FetchError`` when ``live`` is empty since no boundary can be placed.
    """
    live_records = parse_store_entries(live, locale=locale)
    if not live_records:
        raise FetchError("content store returned no position records")
    historical_records = parse_historical_rows(historical)

    boundary = live_records[0].timestamp
    prefix = [record for record in historical_records if record.timestamp < boundary]
    logger.debug(
        "Reconciled %d historical + %d live records at boundary %d",
        len(prefix),
        len(live_records),
        boundary,
    )
    return prefix + live_records
