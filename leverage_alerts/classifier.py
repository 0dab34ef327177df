"""Debounced alert classification.

``classify`` is a pure state transition: it takes the current notification
state and returns the next one together with what, if anything, should be
announced. Persisting the state between cycles is the caller's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from .deriver import WINDOW_1H, MetricsBundle
from .models import ELEVATED_CATEGORIES, AlertCategory, DebugFlag, PositionRecord

__all__ = [
    "Thresholds",
    "Transition",
    "Decision",
    "classify",
    "has_sign_flip",
    "count_beyond",
]

MILLION = 1_000_000


@dataclass(frozen=True)
class Thresholds:
    leverage: int = 50 * MILLION
    extreme_leverage: int = 70 * MILLION
    heavy_count: int = 5
    extreme_count: int = 2
    position_window: int = 10
    sign_flip_window: int = 49
    volatility_pct: int = 50
    debug_volatility_pct: int = 1
    volatility_min_imbalance: int = 0
    low_tf_threshold_scale: float = 0.1

    def for_flags(self, flags: FrozenSet[DebugFlag]) -> "Thresholds":
        if DebugFlag.LOW_TF_LEVERAGE not in flags:
            return self
        scale = self.low_tf_threshold_scale
        return Thresholds(
            leverage=int(self.leverage * scale),
            extreme_leverage=int(self.extreme_leverage * scale),
            heavy_count=self.heavy_count,
            extreme_count=self.extreme_count,
            position_window=self.position_window,
            sign_flip_window=self.sign_flip_window,
            volatility_pct=self.volatility_pct,
            debug_volatility_pct=self.debug_volatility_pct,
            volatility_min_imbalance=int(self.volatility_min_imbalance * scale),
            low_tf_threshold_scale=scale,
        )


class Transition(str, Enum):
    NONE = "none"
    ALERT = "alert"
    RECOVERY = "recovery"


@dataclass(frozen=True)
class Decision:
    previous: AlertCategory
    state: AlertCategory
    transition: Transition
    category: Optional[AlertCategory] = None
    qualified: Tuple[AlertCategory, ...] = field(default_factory=tuple)
    extreme_longs: bool = False
    extreme_shorts: bool = False

    @property
    def should_notify(self) -> bool:
        return self.transition is not Transition.NONE


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def has_sign_flip(records: Sequence[PositionRecord]) -> bool:
    signs = [_sign(record.short_long_diff) for record in records]
    return any(prev != cur for prev, cur in zip(signs, signs[1:]))


def count_beyond(records: Iterable[PositionRecord], threshold: int, *, longs: bool) -> int:
    """Count records past ``threshold`` on the long (negative) or short side."""
    if longs:
        return sum(1 for record in records if record.short_long_diff < -threshold)
    return sum(1 for record in records if record.short_long_diff > threshold)


def _volatility_qualifies(bundle: MetricsBundle, thresholds: Thresholds, flags: FrozenSet[DebugFlag]) -> bool:
    if not bundle.has_window(WINDOW_1H) or bundle.change_1h is None:
        return False
    limit = thresholds.debug_volatility_pct if DebugFlag.HOURLY in flags else thresholds.volatility_pct
    if abs(bundle.change_1h) <= limit:
        return False
    gate = thresholds.volatility_min_imbalance
    return gate <= 0 or abs(bundle.latest.short_long_diff) > gate


def classify(
    series: Sequence[PositionRecord],
    bundle: MetricsBundle,
    state: AlertCategory,
    thresholds: Optional[Thresholds] = None,
    flags: Iterable[DebugFlag] = (),
) -> Decision:
    flag_set = frozenset(flags)
    limits = (thresholds or Thresholds()).for_flags(flag_set)

    recent = series[-limits.position_window:]
    extreme_longs = DebugFlag.EXTREME_LONGS in flag_set or (
        count_beyond(recent, limits.extreme_leverage, longs=True) >= limits.extreme_count
    )
    extreme_shorts = DebugFlag.EXTREME_SHORTS in flag_set or (
        count_beyond(recent, limits.extreme_leverage, longs=False) >= limits.extreme_count
    )
    heavy_longs = count_beyond(recent, limits.leverage, longs=True) >= limits.heavy_count
    heavy_shorts = count_beyond(recent, limits.leverage, longs=False) >= limits.heavy_count

    # highest priority first; extreme subsumes heavy on the same side
    rules: List[Tuple[AlertCategory, Callable[[], bool]]] = [
        (AlertCategory.SL_DIFF_SIGN_FLIP, lambda: has_sign_flip(series[-limits.sign_flip_window:])),
        (AlertCategory.SL_1H_EXTREME_CHANGE, lambda: _volatility_qualifies(bundle, limits, flag_set)),
        (AlertCategory.EXTREME_LONGS, lambda: extreme_longs),
        (AlertCategory.EXTREME_SHORTS, lambda: extreme_shorts),
        (AlertCategory.HEAVY_LONGS, lambda: heavy_longs and not extreme_longs),
        (AlertCategory.HEAVY_SHORTS, lambda: heavy_shorts and not extreme_shorts),
    ]
    qualified = tuple(category for category, predicate in rules if predicate())

    common = dict(qualified=qualified, extreme_longs=extreme_longs, extreme_shorts=extreme_shorts)

    if qualified:
        # the already-active condition never repeats; a lower one may still fire
        fresh = [category for category in qualified if category != state]
        if not fresh:
            return Decision(previous=state, state=state, transition=Transition.NONE, **common)
        top = fresh[0]
        return Decision(previous=state, state=top, transition=Transition.ALERT, category=top, **common)

    if state in ELEVATED_CATEGORIES:
        return Decision(previous=state, state=AlertCategory.NO_ALERT, transition=Transition.RECOVERY, **common)
    return Decision(previous=state, state=AlertCategory.NO_ALERT, transition=Transition.NONE, **common)
