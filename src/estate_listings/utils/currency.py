"""Rupee amount formatting and parsing."""

import re
from typing import Final

RUPEE: Final = "₹"

_RANGE_PATTERN: Final = re.compile(r"^\s*([\d,.]+)\s*-\s*([\d,.]+)\s*$")
_OPEN_RANGE_PATTERN: Final = re.compile(r"^\s*([\d,.]+)\s*\+\s*$")


def group_indian(amount: float) -> str:
    """Format a number with Indian digit grouping.

    E.g. 5000000 -> "50,00,000", 1250.5 -> "1,250.5"
    """
    negative = amount < 0
    rounded = round(abs(amount), 2)
    whole = int(rounded)
    fraction = f"{rounded - whole:.2f}"[1:].rstrip("0").rstrip(".")

    digits = str(whole)
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups: list[str] = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join([*groups, tail])

    return f"{'-' if negative else ''}{digits}{fraction}"


def format_inr(amount: float) -> str:
    """Format an amount as rupees, e.g. "₹50,00,000"."""
    return f"{RUPEE}{group_indian(amount)}"


def _parse_amount(text: str) -> float | None:
    cleaned = text.replace(",", "")
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_price_range(text: str | None) -> tuple[float, float | None] | None:
    """Parse a landing-page price bucket label into bounds.

    Accepts ``"₹0 - ₹1,00,000"`` and the open-ended ``"₹50,00,000+"``.

    Returns:
        (min, max) with max None for open-ended ranges, or None if unparseable.
    """
    if not text:
        return None
    plain = text.replace(RUPEE, "")

    match = _RANGE_PATTERN.match(plain)
    if match:
        low, high = _parse_amount(match.group(1)), _parse_amount(match.group(2))
        if low is None or high is None:
            return None
        return (min(low, high), max(low, high))

    match = _OPEN_RANGE_PATTERN.match(plain)
    if match:
        low = _parse_amount(match.group(1))
        return (low, None) if low is not None else None

    return None
