from __future__ import annotations

from decimal import Decimal

import pytest

from finlens.ingest.pdf_layout import (
    ColumnLayout,
    LayoutRow,
    TextFragment,
    detect_columns,
    extract_amounts,
    extract_date,
    extract_page,
    group_into_rows,
    parse_row,
    resolve_amount,
)


def _row(y: float, *cells: tuple[float, str]) -> list[TextFragment]:
    return [TextFragment(text=t, x=x, y=y) for x, t in cells]


HEADER = _row(50, (10, "Date"), (80, "Description"), (300, "Withdrawals"), (400, "Deposits"), (500, "Balance"))


def test_group_into_rows_uses_tolerance_and_sorts_by_x() -> None:
    frags = [
        TextFragment("b", 50, 102),
        TextFragment("a", 10, 100),
        TextFragment("c", 10, 103.9),
        TextFragment("next", 10, 105),
        TextFragment("   ", 10, 200),
    ]
    rows = group_into_rows(frags, y_tolerance=4)
    assert [r.text for r in rows] == ["a c b", "next"]


def test_detect_columns_from_header_row() -> None:
    rows = group_into_rows([*_row(10, (10, "Statement of Account")), *HEADER])
    cols = detect_columns(rows)
    assert cols == ColumnLayout(debit_x=300, credit_x=400, amount_x=None, balance_x=500)
    assert cols.has_debit_credit


def test_detect_columns_accepts_plural_labels() -> None:
    header = _row(50, (10, "Transactions"), (300, "Debits"), (400, "Credits"))
    cols = detect_columns(group_into_rows(header))
    assert cols == ColumnLayout(debit_x=300, credit_x=400, amount_x=None, balance_x=None)


def test_credit_line_alone_is_not_a_header_row() -> None:
    rows = group_into_rows(_row(10, (10, "Credit Limit"), (300, "$5,000.00")))
    assert detect_columns(rows) is None


def test_detect_columns_needs_a_header_row() -> None:
    rows = group_into_rows(_row(10, (10, "01/05"), (80, "COFFEE"), (300, "4.50")))
    assert detect_columns(rows) is None


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("1000.00", [Decimal("1000.00")]),
        ("(45.20)", [Decimal("-45.20")]),
        ("$1,234.56", [Decimal("1234.56")]),
        ("-12.00", [Decimal("-12.00")]),
        ("($7.00)", [Decimal("-7.00")]),
        ("12/31", []),
        ("1234", []),
    ],
)
def test_extract_amounts(text: str, expected: list[Decimal]) -> None:
    assert [t.value for t in extract_amounts([TextFragment(text, 0, 0)])] == expected


def test_extract_date_precedence() -> None:
    assert extract_date("01/15/2024 COFFEE") == "01/15/2024"
    assert extract_date("2024-01-15 COFFEE") == "2024-01-15"
    assert extract_date("01/15 COFFEE") == "01/15"
    assert extract_date("Jan 15, 2024 COFFEE") == "Jan 15, 2024"
    assert extract_date("COFFEE") is None


def test_resolve_amount_without_columns_drops_trailing_balance() -> None:
    tokens = extract_amounts(_row(0, (300, "4.50"), (500, "100.00")))
    assert resolve_amount(tokens, None) == Decimal("4.50")


def test_resolve_amount_prefers_a_negative_candidate() -> None:
    tokens = extract_amounts(_row(0, (200, "4.50"), (300, "-2.00"), (500, "100.00")))
    assert resolve_amount(tokens, None) == Decimal("-2.00")


def test_debit_and_credit_columns_decide_the_sign() -> None:
    page = extract_page(
        [
            *HEADER,
            *_row(70, (10, "01/15"), (80, "COFFEE SHOP"), (305, "4.50"), (505, "995.50")),
            *_row(90, (10, "01/16"), (80, "PAYROLL ACME"), (402, "1,200.00"), (502, "2,195.50")),
        ]
    )
    assert [(t.date, t.description, t.amount) for t in page.transactions] == [
        ("01/15", "COFFEE SHOP", Decimal("-4.50")),
        ("01/16", "PAYROLL ACME", Decimal("1200.00")),
    ]


def test_single_amount_column_is_taken_as_is() -> None:
    page = extract_page(
        [
            *_row(50, (10, "Date"), (80, "Description"), (400, "Amount")),
            *_row(70, (10, "01/15"), (80, "REFUND STORE"), (402, "-20.00")),
        ]
    )
    assert [t.amount for t in page.transactions] == [Decimal("-20.00")]


def test_disclaimer_row_never_becomes_a_transaction() -> None:
    text = (
        "This date may not be the same date your bank posts the debit concerning this "
        "debit should be made before"
    )
    frags = [
        *_row(70, (10, "01/15"), (80, "COFFEE SHOP"), (305, "4.50")),
        *_row(90, (10, text), (400, "01/20/2024"), (450, "25.00")),
    ]
    page = extract_page(frags)
    assert [t.description for t in page.transactions] == ["COFFEE SHOP"]


def test_balance_summary_rows_are_skipped() -> None:
    page = extract_page(
        [
            *_row(70, (10, "01/01/2024"), (80, "Beginning Balance"), (300, "1,000.00")),
            *_row(90, (10, "01/31/2024"), (80, "Ending Balance"), (300, "900.00")),
            *_row(110, (10, "01/15"), (80, "COFFEE SHOP"), (300, "4.50")),
        ]
    )
    assert [t.description for t in page.transactions] == ["COFFEE SHOP"]


def test_payment_row_override_makes_unsigned_payment_negative() -> None:
    row = LayoutRow(
        y=0, fragments=_row(0, (10, "01/17"), (80, "ELECTRONIC PMT-WEB COMCAST"), (300, "89.99"))
    )
    tx = parse_row(row, None)
    assert tx is not None
    assert tx.amount == Decimal("-89.99")
    assert tx.description == "ELECTRONIC PMT-WEB COMCAST"


def test_row_without_date_or_amount_is_ignored() -> None:
    no_date = LayoutRow(y=0, fragments=_row(0, (80, "COFFEE SHOP"), (300, "4.50")))
    no_amount = LayoutRow(y=0, fragments=_row(0, (10, "01/15"), (80, "COFFEE SHOP")))
    assert parse_row(no_date, None) is None
    assert parse_row(no_amount, None) is None
