from __future__ import annotations

from typing import Callable, Dict, List

from .classifier import Decision, Transition
from .deriver import MetricsBundle
from .models import AlertCategory
from .msg_fmt import (
    ALERT_EMOJI,
    BEAR_EMOJI,
    BULL_EMOJI,
    RED_EMOJI,
    SURPRISED_EMOJI,
    bold_italic,
    emphasis,
    fmt_signed_percent,
    fmt_usd,
)

__all__ = ["RECOVERY_TEXT", "DEBUG_SUFFIX", "compose", "build_title", "build_stats"]

RECOVERY_TEXT = "UPDATE: LEVERAGED SHORTS/LONGS ARE NO LONGER AT AN ELEVATED LEVEL"
DEBUG_SUFFIX = " (this is a test please ignore)"
_HIGH_ALERT = frozenset({AlertCategory.EXTREME_LONGS, AlertCategory.EXTREME_SHORTS})


def build_title(category: AlertCategory, *, debug: bool = False) -> str:
    high_alert = category in _HIGH_ALERT
    name = "HIGH ALERT" if high_alert else "ALERT"
    emoji = ALERT_EMOJI if high_alert else RED_EMOJI
    suffix = DEBUG_SUFFIX if debug else ""
    return f"{emoji} {emphasis(f'{name}{suffix}')} {emoji}\n"


def build_stats(bundle: MetricsBundle, *, surprised: bool = False) -> str:
    latest = bundle.latest
    marker = f" {SURPRISED_EMOJI}" if surprised else ""
    lines = [
        f"Short Volume   {fmt_usd(latest.short_volume)}",
        f"Long Volume    {fmt_usd(latest.long_volume)}",
        f"S/L Difference {fmt_usd(latest.short_long_diff)} ({fmt_signed_percent(bundle.change_24h)}){marker}",
        f"Total Volume   {fmt_usd(bundle.total_volume)} ({fmt_signed_percent(bundle.volume_change_24h)})",
    ]
    return "\n\n<pre>" + "\n".join(lines) + "\n</pre>"


def _volatility_body(bundle: MetricsBundle, hints: bool) -> str:
    # a falling difference means longs grew faster than shorts
    longs_growing = (bundle.diff_delta_1h or 0) < 0
    bigger, smaller = ("long", "short") if longs_growing else ("short", "long")
    feeling = "bull" if longs_growing else "bear"
    emoji = BULL_EMOJI if longs_growing else BEAR_EMOJI
    return (
        f"\n{emphasis('S/L DIFFERENCE VOLATILITY')}:  {fmt_signed_percent(bundle.change_1h)} in the past hour. "
        f"Traders are {bold_italic(f'{bigger}ing')} more than {bold_italic(f'{smaller}ing')}, "
        f"meaning they are getting {bold_italic(f'{feeling}ish')}\n\n{emoji}{emoji}   -   -   - "
    )


def _sign_flip_body(bundle: MetricsBundle, hints: bool) -> str:
    latest = bundle.latest
    if latest.short_volume > latest.long_volume:
        side = "Shorts are now outnumbering Longs"
    else:
        side = "Longs are now outnumbering Shorts"
    return f"\n{emphasis('RATIO FLIPPED')}:  {side}"


def _hint(text: str, hints: bool) -> str:
    return f"\n\n{emphasis('HINT')}: {text}" if hints else ""


def _heavy_longs_body(bundle: MetricsBundle, hints: bool) -> str:
    return (
        "\nLeveraged Long positions on GMX are at high levels relative to Shorts"
        f"\n\nTraders are feeling {bold_italic('bullish')} {BULL_EMOJI * 3}   -      -   "
        + _hint(f"If this keeps up, prepare to {bold_italic('SHORT')}", hints)
    )


def _heavy_shorts_body(bundle: MetricsBundle, hints: bool) -> str:
    return (
        "\nLeveraged Short positions on GMX are at high levels relative to Longs"
        f"\n\nTraders are feeling {bold_italic('bearish')} {BEAR_EMOJI * 3}   -      -   "
        + _hint(f"If this keeps up, prepare to {bold_italic('LONG')}", hints)
    )


def _extreme_longs_body(bundle: MetricsBundle, hints: bool) -> str:
    return (
        "\nLeveraged Long Positions on GMX have hit an extreme level relative to shorts in the past hour"
        f"\n\nTraders are feeling {bold_italic('very bullish')} {BULL_EMOJI * 5}"
        + _hint(f"Take a {bold_italic('SHORT POSITION')} soon", hints)
    )


def _extreme_shorts_body(bundle: MetricsBundle, hints: bool) -> str:
    return (
        "\nLeveraged Short Positions on GMX have hit an extreme level relative to longs in the past hour"
        f"\n\nTraders are feeling {bold_italic('very bearish')} {BEAR_EMOJI * 5}"
        + _hint(f"Take a {bold_italic('LONG POSITION')} soon", hints)
    )


_BODIES: Dict[AlertCategory, Callable[[MetricsBundle, bool], str]] = {
    AlertCategory.SL_1H_EXTREME_CHANGE: _volatility_body,
    AlertCategory.SL_DIFF_SIGN_FLIP: _sign_flip_body,
    AlertCategory.HEAVY_LONGS: _heavy_longs_body,
    AlertCategory.HEAVY_SHORTS: _heavy_shorts_body,
    AlertCategory.EXTREME_LONGS: _extreme_longs_body,
    AlertCategory.EXTREME_SHORTS: _extreme_shorts_body,
}


def compose(decision: Decision, bundle: MetricsBundle, *, debug: bool = False, hints: bool = True) -> str:
    """Render the message for a classifier decision; ``""`` means do not deliver."""
    if decision.transition is Transition.RECOVERY:
        return RECOVERY_TEXT
    if decision.transition is not Transition.ALERT or decision.category is None:
        return ""
    body = _BODIES.get(decision.category)
    if body is None:
        return ""
    parts: List[str] = [
        build_title(decision.category, debug=debug),
        body(bundle, hints),
        build_stats(bundle, surprised=decision.extreme_longs),
    ]
    return "".join(parts)
