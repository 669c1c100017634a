from datetime import timedelta
from typing import List, Optional
import re

_DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h|d|w|y)?\s*$", re.IGNORECASE)

_DURATION_UNITS = {
    "ms": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
    "y": timedelta(days=365.25),
}


def parse_duration(value: str) -> timedelta:
    """
    Parses token lifetimes written as '<amount><unit>' (e.g. '15m', '7d', '30d').
    A bare number is read as milliseconds.
    """
    match = _DURATION_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"invalid duration '{value}', expected a number followed by ms, s, m, h, d, w or y")

    amount = float(match.group(1))
    unit = (match.group(2) or "ms").lower()
    try:
        return _DURATION_UNITS[unit] * amount
    except OverflowError:
        raise ValueError(f"duration '{value}' is out of range") from None


def split_csv(value: str) -> List[str]:
    """Splits a comma-separated list, trimming entries and keeping their order."""
    return [item.strip() for item in value.split(",") if item.strip()]


def mask_sensitive_data(secret: Optional[str], visible_chars: int = 4) -> str:
    """Masks a configuration secret for the startup summary. Unset secrets render as an empty string."""
    if not secret:
        return ""
    if len(secret) <= visible_chars:
        return "*" * len(secret)
    return "*" * (len(secret) - visible_chars) + secret[-visible_chars:]
