"""
Normalizes heterogeneous amount representations to integer minor units.

Merchants send amounts as plain numbers (rupees), as display strings copied
from a storefront ("₹1,299.99", "Rs 599", "$50") or as free-text prices.
This module maps all of them to a single canonical form: an integer number
of paise. Every code path that accepts an amount goes through
normalize_amount(), so storage only ever holds normalized integers.

No currency conversion happens here; currency symbols are treated as noise.
"""
import math
import re
from decimal import Decimal
from typing import Optional, Union


MINOR_UNITS_PER_MAJOR = 100

# Accepted range, inclusive, in minor units (₹1 to ₹1,00,000).
# Enforced by callers, not by normalize_amount() itself.
MIN_AMOUNT = 1 * MINOR_UNITS_PER_MAJOR
MAX_AMOUNT = 100_000 * MINOR_UNITS_PER_MAJOR

_SYMBOLS_AND_SEPARATORS = re.compile(r"[₹$€£¥,\s]")
_RS_PREFIX = re.compile(r"^Rs\.?", re.IGNORECASE)
# A dot followed by three or more digits is a thousands separator ("1.299"), not a fraction
_THOUSANDS_DOT = re.compile(r"\.(\d{3,})")

AmountInput = Union[int, float, Decimal, str]


def _clean(text: str) -> str:
    cleaned = _SYMBOLS_AND_SEPARATORS.sub("", text)
    cleaned = _RS_PREFIX.sub("", cleaned)
    return _THOUSANDS_DOT.sub(r"\1", cleaned)


def _to_minor_units(major: float) -> Optional[int]:
    scaled = major * MINOR_UNITS_PER_MAJOR
    if not math.isfinite(scaled):
        return None
    # Half-up rounding; plain round() would round half to even
    return int(math.floor(scaled + 0.5))


def normalize_amount(value: Optional[AmountInput]) -> Optional[int]:
    """
    Parse an amount in major units into integer minor units.

    Args:
        value: a number (rupees) or a string such as "₹1,299.99" or "Rs 599"

    Returns:
        The amount in paise, or None when the input is not a finite,
        strictly positive amount.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float, Decimal)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        cleaned = _clean(value)
        # float() would read "1_000" as a Python digit group
        if not cleaned or "_" in cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(number) or number <= 0:
        return None
    return _to_minor_units(number)


def in_range(minor_units: int) -> bool:
    return MIN_AMOUNT <= minor_units <= MAX_AMOUNT


def to_major_units(minor_units: int) -> float:
    return minor_units / MINOR_UNITS_PER_MAJOR
