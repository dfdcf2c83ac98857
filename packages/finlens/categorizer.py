"""Deterministic keyword categorizer.

Public API:
    - :func:`normalize_description`
    - :func:`categorize`
    - :func:`categorize_all`

Matching walks :data:`finlens.category_rules.RULES` in priority order and
returns the first category whose keywords match. When the amount is known to
be negative (an expense) the Income rule is deferred to a last resort so fee
descriptions such as "interest payment" are not read as income.

The result is a best-effort heuristic; it is only required to be
deterministic for a given rule table and input.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import replace
from decimal import Decimal

from .category_rules import INCOME_CATEGORY, RULES, CategoryRule, rule_for, rules_without
from .models import UNCATEGORIZED, Transaction

# Bank/card boilerplate stripped from the start of a description so that
# "SQ *STARBUCKS" and "POS PURCHASE STARBUCKS" both normalize to "starbucks".
_PREFIXES: tuple[str, ...] = (
    "pos purchase", "pos debit", "pos credit", "pos transaction",
    "checkcard", "check card", "debit card purchase", "debit purchase",
    "credit card purchase", r"purchase authorized on \S+",
    "ach payment", "ach debit", "ach credit", "ach deposit", "ach transfer",
    "electronic payment", "electronic transfer", "e-payment",
    "online purchase", "online payment", "online banking transfer",
    "recurring payment", "automatic payment", "autopay", "auto pay",
    "preauth", "pre-auth", "pre auth", "preauthorized",
    "web payment", "web pmnt", "mobile payment", "contactless",
    "bill payment", "bill pay", "billpay",
    r"sq \*", r"sq\*", r"tst\*", r"tst \*", r"bt\*", r"bt \*",
    r"pp \*", r"paypal \*",
    "aplpay ", "apl pay ",
)  # fmt: skip

_PREFIX_RE = re.compile(r"^(" + "|".join(_PREFIXES) + r")\s*[-–—#*:;,.]?\s*", re.IGNORECASE)
_TRAILING_REF_RE = re.compile(r"\s+#?\d{4,}\s*$")
_MULTISPACE_RE = re.compile(r"\s{2,}")
_ALNUM_RE = re.compile(r"[a-z0-9]")


def normalize_description(raw: str | None) -> str:
    """Lowercase, strip one boilerplate prefix and a trailing reference number."""

    if not raw:
        return ""
    s = raw.lower()
    s = _PREFIX_RE.sub("", s, count=1)
    s = _TRAILING_REF_RE.sub("", s)
    s = _MULTISPACE_RE.sub(" ", s)
    return s.strip()


def _word_bounded(lower: str, term: str) -> bool:
    """Match ``term`` at its first occurrence only when not glued to alphanumerics."""

    idx = lower.find(term)
    if idx == -1:
        return False
    end = idx + len(term)
    pre_ok = idx == 0 or not _ALNUM_RE.match(lower[idx - 1])
    post_ok = end >= len(lower) or not _ALNUM_RE.match(lower[end])
    return pre_ok and post_ok


def _matches(lower: str, rule: CategoryRule) -> bool:
    if any(kw in lower for kw in rule.keywords):
        return True
    return any(_word_bounded(lower, kw) for kw in rule.bounded)


_EXPENSE_ORDER: tuple[CategoryRule, ...] = rules_without(INCOME_CATEGORY)
_INCOME_RULE: CategoryRule | None = rule_for(INCOME_CATEGORY)


def categorize(description: str | None, amount: Decimal | float | None = None) -> str:
    """Return the category for ``description``; ``"Uncategorized"`` when nothing matches.

    ``amount`` is optional. A negative amount evaluates every rule except Income
    first and only then tries Income; a positive or unknown amount evaluates all
    rules in their fixed priority order.
    """

    lower = normalize_description(description)
    if not lower:
        return UNCATEGORIZED

    if amount is not None and amount < 0:
        for rule in _EXPENSE_ORDER:
            if _matches(lower, rule):
                return rule.category
        if _INCOME_RULE is not None and _matches(lower, _INCOME_RULE):
            return _INCOME_RULE.category
        return UNCATEGORIZED

    for rule in RULES:
        if _matches(lower, rule):
            return rule.category
    return UNCATEGORIZED


def categorize_all(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Categorize every transaction lacking a category; keep existing ones.

    Idempotent: running it on its own output changes nothing.
    """

    return [
        t if t.category else replace(t, category=categorize(t.description, t.amount))
        for t in transactions
    ]


__all__ = ["categorize", "categorize_all", "normalize_description"]
