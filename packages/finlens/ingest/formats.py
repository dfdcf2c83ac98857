"""CSV statement layout detection from header rows.

``detect_format`` maps an ordered header list to one :class:`StatementFormat`.
Checks run from most to least specific; a check that does not match falls
through to the next one, with :attr:`StatementFormat.GENERIC` as the final
fallback.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from enum import StrEnum

from ..models import UNKNOWN_INSTITUTION


class StatementFormat(StrEnum):
    CHASE_CREDIT_CARD = "chase_credit_card"
    CHASE_CHECKING = "chase_checking"
    CAPITAL_ONE = "capital_one"
    BANK_OF_AMERICA = "bank_of_america"
    WELLS_FARGO_POSITIONAL = "wells_fargo_positional"
    GENERIC = "generic"


FORMAT_INSTITUTIONS: dict[StatementFormat, str] = {
    StatementFormat.CHASE_CREDIT_CARD: "Chase",
    StatementFormat.CHASE_CHECKING: "Chase",
    StatementFormat.CAPITAL_ONE: "Capital One",
    StatementFormat.BANK_OF_AMERICA: "Bank of America",
    StatementFormat.WELLS_FARGO_POSITIONAL: "Wells Fargo",
    StatementFormat.GENERIC: UNKNOWN_INSTITUTION,
}

_PLACEHOLDERS = frozenset({"*", ""})
_DATE_CELL_RE = re.compile(r"^\d{1,2}/\d{1,2}/\d{2,4}$|^\d{4}-\d{2}-\d{2}$")


def normalize_headers(headers: Sequence[str]) -> list[str]:
    return [(h or "").strip().lower() for h in headers]


def looks_like_date_cell(value: str) -> bool:
    return bool(_DATE_CELL_RE.match((value or "").strip()))


def is_headerless(headers: Sequence[str]) -> bool:
    """True when the first CSV line is already a data row (positional exports)."""

    h = normalize_headers(headers)
    return bool(h) and looks_like_date_cell(h[0])


def detect_format(headers: Sequence[str]) -> StatementFormat:
    """Classify a CSV by its header row.

    Parameters
    ----------
    headers:
        Column headers in file order. Normalized (trimmed, lowercased) here,
        so raw header strings are accepted.
    """

    h = normalize_headers(headers)
    present = set(h)

    if {"posting date", "details", "description"} <= present:
        return StatementFormat.CHASE_CHECKING

    card_like = "transaction date" in present or (
        {"date", "description", "amount"} <= present and "debit" not in present
    )
    if card_like and {"type", "balance"} <= present:
        return StatementFormat.CHASE_CREDIT_CARD

    if {"debit", "credit", "description"} <= present:
        return StatementFormat.CAPITAL_ONE

    if {"payee", "posted date"} <= present:
        return StatementFormat.BANK_OF_AMERICA

    if (
        len(h) >= 5
        and (h[0] in {"date", ""} or looks_like_date_cell(h[0]))
        and any(c in _PLACEHOLDERS for c in h)
    ):
        return StatementFormat.WELLS_FARGO_POSITIONAL

    return StatementFormat.GENERIC


__all__ = [
    "FORMAT_INSTITUTIONS",
    "StatementFormat",
    "detect_format",
    "is_headerless",
    "looks_like_date_cell",
    "normalize_headers",
]
