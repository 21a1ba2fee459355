"""Exact conversion between human-readable amounts and integer base units."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from .errors import AmountParseError

# Plain decimal numerals only: no sign, exponent, grouping or whitespace inside.
_AMOUNT_RE = re.compile(r"^(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)$")

# 10**78 > 2**256, so no transferable amount has more whole digits
MAX_WHOLE_DIGITS = 78


def parse_amount(amount_text: str) -> Decimal:
    """Parse a non-negative decimal numeral without going through ``float``."""

    text = (amount_text or "").strip()
    if not _AMOUNT_RE.match(text):
        raise AmountParseError(amount_text)
    try:
        return Decimal(text)
    except InvalidOperation as exc:  # pragma: no cover - regex already filters
        raise AmountParseError(amount_text) from exc


def scale_amount(amount_text: str, decimals: int) -> int:
    """Convert ``amount_text`` into an integer count of base units.

    Works on the digits of the numeral, so no rounding ever happens. Amounts
    carrying non-zero digits below the asset's precision are rejected rather
    than truncated.

    >>> scale_amount("0.1", 18)
    100000000000000000
    >>> scale_amount("0.00000001", 18)
    10000000000
    """

    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    whole, frac = _split(amount_text)
    if len(frac) > decimals:
        raise AmountParseError(
            amount_text,
            reason=f"more than {decimals} decimal places",
        )
    return int(whole) * 10 ** decimals + int(frac.ljust(decimals, "0") or "0")


def unscale_amount(base_units: int, decimals: int) -> str:
    """Render integer base units as a normalized decimal string.

    >>> unscale_amount(100000000000000000, 18)
    '0.1'
    """

    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    if base_units < 0:
        raise ValueError("base units must be non-negative")
    whole, frac = divmod(base_units, 10 ** decimals)
    if not frac:
        return str(whole)
    frac_text = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{frac_text}"


def normalize_amount(amount_text: str) -> str:
    """Canonical form of an amount: no leading or trailing zeros."""

    whole, frac = _split(amount_text)
    return f"{whole}.{frac}" if frac else whole


def _split(amount_text: str) -> tuple[str, str]:
    """Whole and fractional digits; trailing fractional zeros dropped."""

    parse_amount(amount_text)
    whole, _, frac = amount_text.strip().partition(".")
    whole = whole.lstrip("0") or "0"
    if len(whole) > MAX_WHOLE_DIGITS:
        raise AmountParseError(amount_text, reason=f"more than {MAX_WHOLE_DIGITS} whole digits")
    return whole, frac.rstrip("0")
