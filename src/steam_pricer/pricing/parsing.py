"""Amount extraction from currency-formatted market text."""

from __future__ import annotations

import math
import re

_AMOUNT_RE = re.compile(r"[\d.,]+")


def parse_numeric(text: str | None) -> float | None:
    """Extract a decimal amount from text such as ``"$13.40"`` or ``"1.234,56 TL"``.

    The first run of digits, dots and commas is taken. When both separators
    appear the European convention is assumed (``.`` groups, ``,`` is the
    decimal point); a lone comma is treated as the decimal point; anything
    else is parsed as-is.

    Returns:
        The parsed amount, or None when the text holds no number. None means
        "price unknown" and must never be read as zero.
    """
    if not text:
        return None

    match = _AMOUNT_RE.search(text)
    if match is None:
        return None

    num_str = match.group(0)
    if "," in num_str and "." in num_str:
        num_str = num_str.replace(".", "").replace(",", ".", 1)
    elif "," in num_str:
        num_str = num_str.replace(",", ".", 1)

    try:
        value = float(num_str)
    except ValueError:
        # Multiple decimal points, lone separators, etc.
        value = _leading_float(num_str)

    if value is None or not math.isfinite(value):
        return None
    return value


def _leading_float(num_str: str) -> float | None:
    """Parse the longest numeric prefix, like a lenient float parse."""
    match = re.match(r"\d*\.?\d+|\d+\.?", num_str)
    if match is None:
        return None
    return float(match.group(0))
