"""Money parsing shared by the CSV and PDF parsers."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

_ZERO = Decimal("0")
_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")


def to_decimal(raw: str | None) -> Decimal:
    """Parse a money string strictly; raise ``ValueError`` when it is not one.

    Handles ``+``/``-`` signs, a ``$`` symbol, thousands separators and
    parenthesized negatives in any combination (e.g. ``-($1,234.56)``).
    """

    if raw is None:
        raise ValueError("amount is required")
    s = raw.strip()
    if not s:
        raise ValueError("amount is empty")
    negative = False

    # Iteratively strip leading sign, currency symbol, and surrounding
    # parentheses until stable. This supports any ordering of these markers.
    while True:
        changed = False
        if s.startswith("+"):
            s = s[1:].lstrip()
            changed = True
        elif s.startswith("-"):
            negative = True
            s = s[1:].lstrip()
            changed = True
        if s.startswith("$"):
            s = s[1:].lstrip()
            changed = True
        # Surrounding parentheses indicate negativity regardless of sign.
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negative = True
            s = s[1:-1].strip()
            changed = True
        if not changed:
            break

    s = s.replace(",", "").strip()
    try:
        d = Decimal(s)
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {raw!r}") from exc
    if not d.is_finite():
        raise ValueError(f"invalid amount: {raw!r}")
    return -abs(d) if negative else d


def lenient_decimal(raw: str | None) -> Decimal:
    """Parse loosely for CSV cells: fall back to dropping stray characters, then 0.

    Bank exports carry values like ``"USD 12.50"`` or ``"12.50 CR"``; the
    lenient path keeps only digits, dots and minus signs.
    """

    if raw is None or not raw.strip():
        return _ZERO
    try:
        return to_decimal(raw)
    except ValueError:
        pass
    cleaned = _NON_NUMERIC_RE.sub("", raw)
    try:
        d = Decimal(cleaned)
    except InvalidOperation:
        return _ZERO
    return d if d.is_finite() else _ZERO


__all__ = ["lenient_decimal", "to_decimal"]
