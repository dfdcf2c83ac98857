"""Statement-wide sign correction.

Some exports (most card statements) list purchases as positive figures. After
row-level extraction, :func:`needs_sign_flip` looks at the rows whose
description the categorizer places in an expense category, ignoring the
amount; when there are at least three and more than 60% of them are
positive, the statement is taken to use the inverted convention and every
amount is negated once by :func:`correct_statement`.

Statements whose parser already knows the signs are right carry
``sign_correction_exempt`` and are returned unchanged.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from decimal import Decimal

from .categories import EXPENSE_CATEGORIES
from .categorizer import categorize
from .logging_setup import get_logger
from .models import ParsedStatement, Transaction

MIN_EXPENSE_ROWS = 3
POSITIVE_SHARE_THRESHOLD = Decimal("0.6")

_logger = get_logger("finlens.sign_convention")


def needs_sign_flip(transactions: Sequence[Transaction]) -> bool:
    expenses = [t for t in transactions if categorize(t.description) in EXPENSE_CATEGORIES]
    if len(expenses) < MIN_EXPENSE_ROWS:
        return False
    positive = sum(1 for t in expenses if t.amount > 0)
    return Decimal(positive) / Decimal(len(expenses)) > POSITIVE_SHARE_THRESHOLD


def flip_signs(transactions: Sequence[Transaction]) -> list[Transaction]:
    return [replace(t, amount=-t.amount) for t in transactions]


def correct_statement(statement: ParsedStatement) -> ParsedStatement:
    """Return ``statement`` with amounts negated when the heuristic fires.

    Exempt statements are never flipped. The returned object is a new
    :class:`ParsedStatement` only when a flip happened.
    """

    if statement.sign_correction_exempt:
        _logger.debug(
            "sign_convention:exempt file=%s reason=%s",
            statement.file_name,
            statement.exempt_reason,
        )
        return statement
    if not needs_sign_flip(statement.transactions):
        return statement
    _logger.info(
        "sign_convention:flipped file=%s rows=%d",
        statement.file_name,
        len(statement.transactions),
    )
    return replace(
        statement,
        transactions=flip_signs(statement.transactions),
        notes=[*statement.notes, "statement-wide sign flip applied"],
    )


__all__ = [
    "MIN_EXPENSE_ROWS",
    "POSITIVE_SHARE_THRESHOLD",
    "correct_statement",
    "flip_signs",
    "needs_sign_flip",
]
