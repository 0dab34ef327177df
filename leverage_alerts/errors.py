from __future__ import annotations

__all__ = [
    "LeverageAlertError",
    "FetchError",
    "ParseError",
    "InsufficientWindowError",
    "DivisionByZeroError",
]


class LeverageAlertError(Exception):
    """Base class for errors that abort an evaluation cycle."""


class FetchError(LeverageAlertError):
    """Raised when a source is unreachable or returns a malformed shape."""


class ParseError(LeverageAlertError):
    """Raised when a required field is missing or not numeric."""


class InsufficientWindowError(LeverageAlertError):
    """Raised when a lookback window has no qualifying record."""

    def __init__(self, message: str, *, window_sec: int = 0) -> None:
        super().__init__(message)
        self.window_sec = window_sec


class DivisionByZeroError(LeverageAlertError, ZeroDivisionError):
    """Raised for a zero denominator (reference value or long volume)."""
