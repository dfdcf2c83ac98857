"""Best-effort institution and account identification.

Three sources, tried by callers in this order: the detected CSV format, the
statement body text (PDFs), and finally substrings of the uploaded file name.
Patterns are ordered so more specific issuer names are checked before the
generic ones ("jpmorgan chase" before "chase").
"""

from __future__ import annotations

import re

from ..models import UNKNOWN_INSTITUTION

# (institution, body-text patterns)
TEXT_PATTERNS: tuple[tuple[str, tuple[re.Pattern[str], ...]], ...] = (
    ("Chase", (re.compile(r"jpmorgan chase", re.I), re.compile(r"\bchase\b", re.I))),
    ("Bank of America", (re.compile(r"bank of america", re.I), re.compile(r"\bbofa\b", re.I))),
    ("Wells Fargo", (re.compile(r"wells fargo", re.I),)),
    ("Capital One", (re.compile(r"capital one", re.I),)),
    ("Citi", (re.compile(r"\bciti\s*bank", re.I), re.compile(r"\bciti\b", re.I))),
    ("American Express", (re.compile(r"american express", re.I), re.compile(r"\bamex\b", re.I))),
    ("Discover", (re.compile(r"discover bank", re.I), re.compile(r"\bdiscover\b", re.I))),
)

# (institution, file-name substrings)
FILENAME_HINTS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Chase", ("chase",)),
    ("Bank of America", ("bofa", "bankofamerica", "bank_of_america")),
    ("Wells Fargo", ("wells",)),
    ("Capital One", ("capitalone", "capone")),
    ("Citi", ("citi",)),
    ("American Express", ("amex", "americanexpress")),
    ("Discover", ("discover",)),
)

# Statement-level account identifiers, most specific first. Group 1 holds the
# digits (possibly with separators); only its last 4 digits are kept.
_ACCOUNT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?:account|card)\s+ending(?:\s+in)?\s*[:#]?\s*([\d\-\s]{4,})", re.I),
    re.compile(r"primary\s+account\s*(?:#|number|no\.?)\s*:?\s*([\dXx*\-\s]{4,})", re.I),
    re.compile(r"account\s*(?:#|number|no\.?)\s*:?\s*([\dXx*\-\s]{4,})", re.I),
    re.compile(r"acct\.?\s*(?:#|number|no\.?)?\s*:?\s*([\dXx*\-\s]{4,})", re.I),
)


def from_file_name(file_name: str | None) -> str:
    lower = (file_name or "").lower()
    for name, hints in FILENAME_HINTS:
        if any(h in lower for h in hints):
            return name
    return UNKNOWN_INSTITUTION


def from_text(text: str | None, file_name: str | None = None) -> str:
    """Identify the issuer from statement body text, else from the file name."""

    body = text or ""
    for name, patterns in TEXT_PATTERNS:
        if any(p.search(body) for p in patterns):
            return name
    return from_file_name(file_name)


def last4(value: str | None) -> str | None:
    """Keep only digits and return the final four, or ``None`` when fewer exist."""

    digits = "".join(ch for ch in (value or "") if ch.isdigit())
    return digits[-4:] if len(digits) >= 4 else None


def account_last4_from_text(text: str | None) -> str | None:
    for pattern in _ACCOUNT_PATTERNS:
        for m in pattern.finditer(text or ""):
            found = last4(m.group(1))
            if found:
                return found
    return None


__all__ = [
    "FILENAME_HINTS",
    "TEXT_PATTERNS",
    "account_last4_from_text",
    "from_file_name",
    "from_text",
    "last4",
]
