"""Recognize statement boilerplate that must never become a transaction.

PDF statements interleave transaction rows with disclaimers, payment-due
notices and balance summaries that often carry a date and an amount of
their own. Two checks are exposed:

- :func:`is_non_transaction`: the row contains a known boilerplate phrase.
- :func:`looks_like_disclaimer`: the text has the *shape* of a sentence
  fragment or instruction rather than a merchant/payee name.
"""

from __future__ import annotations

import math
import re

# Matched as substrings of the lowercased row text.
NON_TRANSACTION_PHRASES: tuple[str, ...] = (
    "concerning this debit should be made before",
    "this date may not be the same date your bank",
    "available pay over time limit",
    "payment due date of",
    "you may have to pay a late fee",
    "payments/credits",
    "you may have to pay",
    "late fee of",
    "minimum payment due",
    "statement closing date",
    "see your agreement for",
    "if you have questions",
    "new balance available",
    "available and pending",
    "pending as of",
    " and payments/credits",
    "payment due date of ,",
    "same date your bank",
    "as of .",
    "beginning balance",
    "ending balance",
    "opening balance",
    "closing balance",
    "daily ending balance",
)

# Words far more common in instructions than in merchant names.
DISCLAIMER_WORDS: frozenset[str] = frozenset({
    "payment", "due", "date", "balance", "available", "pending", "fee", "late",
    "your", "bank", "same", "may", "have", "this", "that", "and", "the", "of",
    "if", "you", "see", "agreement", "for", "minimum", "statement", "closing",
    "pay", "over", "time", "limit", "concerning", "debit", "should", "made",
    "before", "not", "be", "payments", "credits",
})  # fmt: skip

_FRAGMENT_START_RES = (
    re.compile(r"^and\s"),
    re.compile(r"^of\s"),
    re.compile(r"^[a-z]\s*\.\s"),
    re.compile(r"^\.\s*this\s+date"),
    re.compile(r"\s+\.\s*this\s+date"),
)
_FRAGMENT_END_RES = (
    re.compile(r"\s+as\s+of\s*\.?\s*$"),
    re.compile(r"\s+pending\s+as\s+of\s*\.?\s*$"),
    re.compile(r"your\s+bank\s*\.?\s*$"),
)
_BROKEN_COMMA_RES = (
    re.compile(r",\s*you\s+may\s"),
    re.compile(r"\s+of\s*,\s*"),
)
_SUMMARY_HEADER_RES = (
    re.compile(r"^(new\s+)?balance\s+available\s+and\s+pending"),
    re.compile(r"payment\s+due\s+date\s+of\s*,"),
)
_NON_ALPHA_RE = re.compile(r"[^a-z]")

_MIN_SHAPE_LEN = 15


def is_non_transaction(text: str | None) -> bool:
    """True when ``text`` contains a known boilerplate phrase."""

    if not text:
        return False
    lower = text.lower()
    return any(p in lower for p in NON_TRANSACTION_PHRASES)


def looks_like_disclaimer(text: str | None) -> bool:
    """Heuristic: is ``text`` sentence-like boilerplate rather than a payee?

    Short strings are never flagged. Longer ones are rejected when they start
    or end like a fragment of a wrapped sentence, show the comma pattern left
    behind when dates/amounts are stripped from a disclaimer, consist mostly of
    :data:`DISCLAIMER_WORDS`, or read like a balance-summary header.
    """

    if not text or len(text) < _MIN_SHAPE_LEN:
        return False
    lower = text.lower().strip()

    if any(rx.search(lower) for rx in _FRAGMENT_START_RES):
        return True
    if any(rx.search(lower) for rx in _FRAGMENT_END_RES):
        return True
    if any(rx.search(lower) for rx in _BROKEN_COMMA_RES):
        return True

    words = lower.split()
    hits = sum(1 for w in words if _NON_ALPHA_RE.sub("", w) in DISCLAIMER_WORDS)
    if len(words) >= 4 and hits >= min(4, math.ceil(len(words) * 0.6)):
        return True

    return any(rx.search(lower) for rx in _SUMMARY_HEADER_RES)


def is_boilerplate(text: str | None) -> bool:
    return is_non_transaction(text) or looks_like_disclaimer(text)


__all__ = [
    "DISCLAIMER_WORDS",
    "NON_TRANSACTION_PHRASES",
    "is_boilerplate",
    "is_non_transaction",
    "looks_like_disclaimer",
]
