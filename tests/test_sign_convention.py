from __future__ import annotations

from decimal import Decimal

from finlens.models import ParsedStatement, Transaction
from finlens.sign_convention import correct_statement, needs_sign_flip


def _txs(*rows: tuple[str, str]) -> list[Transaction]:
    return [
        Transaction(id=i, date="01/05/2024", description=d, amount=Decimal(a))
        for i, (d, a) in enumerate(rows)
    ]


CARD_LIKE = _txs(
    ("STARBUCKS", "5.00"),
    ("SHELL OIL", "40.00"),
    ("NETFLIX.COM", "15.49"),
    ("KROGER", "60.00"),
    ("ACME PAYROLL", "-2000.00"),
)


def test_mostly_positive_expenses_flip_every_row_once() -> None:
    stmt = ParsedStatement(file_name="a.csv", kind="csv", transactions=CARD_LIKE)
    out = correct_statement(stmt)

    assert [t.amount for t in out.transactions] == [
        Decimal("-5.00"),
        Decimal("-40.00"),
        Decimal("-15.49"),
        Decimal("-60.00"),
        Decimal("2000.00"),
    ]
    assert not needs_sign_flip(out.transactions)
    assert stmt.transactions[0].amount == Decimal("5.00")


def test_exempt_statement_is_never_flipped() -> None:
    stmt = ParsedStatement(
        file_name="checking.pdf",
        kind="pdf",
        transactions=CARD_LIKE,
        sign_correction_exempt=True,
        exempt_reason="bank-account section headers",
    )
    assert correct_statement(stmt) is stmt


def test_needs_at_least_three_expense_rows() -> None:
    assert not needs_sign_flip(_txs(("STARBUCKS", "5.00"), ("KROGER", "60.00")))


def test_threshold_is_strictly_more_than_sixty_percent() -> None:
    rows = _txs(
        ("STARBUCKS", "5.00"),
        ("SHELL OIL", "40.00"),
        ("KROGER", "60.00"),
        ("NETFLIX.COM", "-15.49"),
        ("CVS PHARMACY", "-8.00"),
    )
    assert not needs_sign_flip(rows)
