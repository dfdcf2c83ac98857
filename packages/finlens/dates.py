"""Date resolution for heterogeneous statement date strings.

Transaction dates are stored exactly as the bank wrote them. These helpers
parse them on demand into a year or a ``(year, month)`` pair. They never raise:
anything unparseable resolves to ``None``.

Precedence: ISO ``YYYY-MM-DD``; US slash with 4-digit year; US slash with
2-digit year (``< 50`` pivots to the 2000s); dash ``MM-DD-YYYY``; textual
month names (``Jan 5, 2024`` / ``5 Jan 2024``); finally a bare 4-digit year
anywhere in the string.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import NamedTuple

from .models import Transaction

_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-\d{1,2}")
_SLASH4_RE = re.compile(r"\d{1,2}/\d{1,2}/(\d{4})")
_SLASH2_RE = re.compile(r"\d{1,2}/\d{1,2}/(\d{2})(?!\d)")
_SLASH_MDY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})")
_DASH_MDY_RE = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{2,4})")
_YEAR_ANY_RE = re.compile(r"(20\d{2}|19\d{2})")

_MONTHS: tuple[str, ...] = (
    "jan", "feb", "mar", "apr", "may", "jun",
    "jul", "aug", "sep", "oct", "nov", "dec",
)  # fmt: skip
_MONTH_RE = re.compile(r"\b(" + "|".join(_MONTHS) + r")[a-z]*\.?", re.IGNORECASE)


class YearMonth(NamedTuple):
    year: int
    month: int


def _pivot_two_digit(year: int) -> int:
    return 2000 + year if year < 50 else 1900 + year


def _expand_year(raw: str) -> int:
    year = int(raw)
    return _pivot_two_digit(year) if len(raw) == 2 else year


def parse_year(date_str: str | None) -> int | None:
    """Return the 4-digit year of ``date_str`` or ``None`` when unparseable."""

    if not date_str or not isinstance(date_str, str):
        return None
    s = date_str.strip()

    m = _ISO_RE.match(s)
    if m:
        return int(m.group(1))
    m = _SLASH4_RE.search(s)
    if m:
        return int(m.group(1))
    m = _SLASH2_RE.search(s)
    if m:
        return _pivot_two_digit(int(m.group(1)))
    m = _DASH_MDY_RE.match(s)
    if m and len(m.group(3)) in (2, 4):
        return _expand_year(m.group(3))
    m = _YEAR_ANY_RE.search(s)
    if m:
        return int(m.group(1))
    return None


def parse_year_month(date_str: str | None) -> YearMonth | None:
    """Return ``(year, month)`` with ``month`` in 1..12, or ``None``.

    A string that only yields a year (no month information) resolves to
    January of that year.
    """

    if not date_str or not isinstance(date_str, str):
        return None
    s = date_str.strip()

    m = _ISO_RE.match(s)
    if m and 1 <= int(m.group(2)) <= 12:
        return YearMonth(int(m.group(1)), int(m.group(2)))

    # US slash then dash, both month-first.
    for pattern in (_SLASH_MDY_RE, _DASH_MDY_RE):
        m = pattern.match(s)
        if m and len(m.group(3)) in (2, 4):
            month = int(m.group(1))
            year = _expand_year(m.group(3))
            if 1 <= month <= 12 and year:
                return YearMonth(year, month)

    m = _MONTH_RE.search(s)
    if m:
        year = parse_year(s)
        if year is not None:
            return YearMonth(year, _MONTHS.index(m.group(1).lower()) + 1)

    year = parse_year(s)
    if year is not None:
        return YearMonth(year, 1)
    return None


def unique_years(transactions: Iterable[Transaction]) -> list[int]:
    """Distinct years present in ``transactions``, newest first."""

    years = {y for t in transactions if (y := parse_year(t.date)) is not None}
    return sorted(years, reverse=True)


__all__ = ["YearMonth", "parse_year", "parse_year_month", "unique_years"]
