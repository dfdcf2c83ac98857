"""User rule overlay applied after automatic categorization.

A rule says "descriptions containing ``text`` belong to ``category``". Rules
are ordered; the first match wins per transaction. The overlay is not
incremental: each call takes the complete current transaction list and is
re-run whenever the rules or the transactions change.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import replace

from .models import UNCATEGORIZED, Rule, Transaction


def _normalized(rules: Sequence[Rule]) -> list[tuple[str, str]]:
    out: list[tuple[str, str]] = []
    for r in rules:
        text = (r.text or "").lower().strip()
        if text and r.category:
            out.append((text, r.category))
    return out


def apply_user_rules(
    transactions: Sequence[Transaction], rules: Sequence[Rule]
) -> Sequence[Transaction]:
    """Apply ``rules`` to ``transactions`` and return the resulting sequence.

    Returns the input object itself when there is nothing to apply (no
    transactions, no rules, or only rules with empty text/category).
    Transactions that match no rule are passed through unchanged.
    """

    if not transactions or not rules:
        return transactions
    normalized = _normalized(rules)
    if not normalized:
        return transactions

    out: list[Transaction] = []
    for t in transactions:
        desc = (t.description or "").lower()
        for text, category in normalized:
            if text in desc:
                t = replace(t, category=category)
                break
        out.append(t)
    return out


def new_rule(text: str, category: str) -> Rule:
    return Rule(id=uuid.uuid4().hex, text=text.strip(), category=category)


def draft_rule_from_transaction(
    tx: Transaction, *, fallback_category: str = UNCATEGORIZED
) -> Rule:
    """Pre-fill a rule from a transaction: its description and current category.

    Uncategorized transactions default to ``fallback_category`` (callers pass
    the first category of the profile's list).
    """

    category = (
        tx.category if tx.category and tx.category != UNCATEGORIZED else fallback_category
    )
    return new_rule(tx.description or "", category)


__all__ = ["apply_user_rules", "draft_rule_from_transaction", "new_rule"]
