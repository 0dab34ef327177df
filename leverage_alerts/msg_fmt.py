from __future__ import annotations

from typing import Callable, Optional

from .deriver import format_percent

NA = "NA"

ALERT_EMOJI = "⚠️"
RED_EMOJI = "\U0001F534"
SURPRISED_EMOJI = "\U0001F632"
BEAR_EMOJI = "\U0001F43B"
BULL_EMOJI = "\U0001F402"


def fmt_optional(value, formatter: Callable) -> str:
    return NA if value is None else formatter(value)


def prettify_num(num: int) -> str:
    return f"{int(num):,}"


def fmt_usd(amount: int) -> str:
    return f"${prettify_num(amount)}"


def fmt_signed_percent(percent: Optional[int]) -> str:
    return fmt_optional(percent, format_percent)


def emphasis(text: str) -> str:
    return f"<b><u><i>{text}</i></u></b>"


def bold_italic(text: str) -> str:
    return f"<b><i>{text}</i></b>"
