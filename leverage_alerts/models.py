from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AlertCategory(str, Enum):
    NO_ALERT = "NO ALERT"
    SL_DIFF_SIGN_FLIP = "SL DIFF SIGN FLIP"
    SL_1H_EXTREME_CHANGE = "SL 1H EXTREME CHANGE"
    HEAVY_LONGS = "SUSTAINED HEAVY LONGS"
    HEAVY_SHORTS = "SUSTAINED HEAVY SHORTS"
    EXTREME_LONGS = "SUSTAINED EXTREME LONGS"
    EXTREME_SHORTS = "SUSTAINED EXTREME SHORTS"


ELEVATED_CATEGORIES = frozenset(
    {
        AlertCategory.HEAVY_LONGS,
        AlertCategory.HEAVY_SHORTS,
        AlertCategory.EXTREME_LONGS,
        AlertCategory.EXTREME_SHORTS,
    }
)


class DebugFlag(str, Enum):
    EXTREME_LONGS = "EXTREME_LONGS"
    HOURLY = "HOURLY"
    EXTREME_SHORTS = "EXTREME_SHORTS"
    LOW_TF_LEVERAGE = "LOW_TF_LEVERAGE"


@dataclass(frozen=True)
class PositionRecord:
    timestamp: int
    short_volume: int
    long_volume: int
    short_long_diff: int
    eth_price: Optional[int] = None

    @property
    def total_volume(self) -> int:
        return self.short_volume + self.long_volume
