from __future__ import annotations

from decimal import Decimal

import pytest

from finlens.dates import YearMonth, parse_year, parse_year_month, unique_years
from finlens.models import Transaction


@pytest.mark.parametrize(
    ("raw", "year", "month"),
    [
        ("2024-03-15", 2024, 3),
        ("03/15/2024", 2024, 3),
        ("3/5/2024", 2024, 3),
        ("03/15/24", 2024, 3),
        ("12/31/99", 1999, 12),
        ("03-15-2024", 2024, 3),
        ("Jan 5, 2024", 2024, 1),
        ("5 Mar 2023", 2023, 3),
        ("September 30, 2022", 2022, 9),
    ],
)
def test_parses_supported_formats(raw: str, year: int, month: int) -> None:
    assert parse_year(raw) == year
    assert parse_year_month(raw) == YearMonth(year, month)


def test_two_digit_year_pivot() -> None:
    assert parse_year("01/02/49") == 2049
    assert parse_year("01/02/50") == 1950


def test_bare_year_resolves_to_january() -> None:
    assert parse_year("FY 2022 summary") == 2022
    assert parse_year_month("FY 2022 summary") == YearMonth(2022, 1)


@pytest.mark.parametrize("raw", ["", "   ", "garbage", "not a date", None])
def test_unparseable_input_returns_none(raw: str | None) -> None:
    assert parse_year(raw) is None
    assert parse_year_month(raw) is None


def test_unique_years_newest_first() -> None:
    txs = [
        Transaction(id=i, date=d, description="x", amount=Decimal("1"))
        for i, d in enumerate(["01/05/2023", "2024-02-01", "12/31/2023", "n/a"])
    ]
    assert unique_years(txs) == [2024, 2023]
