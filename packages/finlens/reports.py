"""Summaries and dashboard filters over a transaction set.

``summarize`` aggregates income, expenses and net plus totals per category
and per calendar month; ``render_report`` prints those aggregates as
``rich`` tables for the CLI. ``filter_transactions`` narrows a set by year
and/or category and returns it re-indexed.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from rich.console import Console
from rich.table import Table

from .dates import YearMonth, parse_year, parse_year_month
from .models import UNCATEGORIZED, Transaction
from .store import reindex

_ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class MonthTotals:
    income: Decimal = _ZERO
    expenses: Decimal = _ZERO

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses


@dataclass(frozen=True, slots=True)
class Summary:
    """Aggregates for one transaction set.

    Attributes
    ----------
    income / expenses:
        Sum of positive amounts and sum of the magnitudes of negative amounts.
    by_category:
        Category -> signed total, ordered by largest spend first.
    by_month:
        ``(year, month)`` -> income/expenses, oldest first. Rows whose date
        cannot be parsed are left out of this view only.
    """

    count: int = 0
    income: Decimal = _ZERO
    expenses: Decimal = _ZERO
    by_category: dict[str, Decimal] = field(default_factory=dict)
    by_month: dict[YearMonth, MonthTotals] = field(default_factory=dict)

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses


def summarize(transactions: Iterable[Transaction]) -> Summary:
    count = 0
    income = _ZERO
    expenses = _ZERO
    by_category: dict[str, Decimal] = defaultdict(lambda: _ZERO)
    months: dict[YearMonth, tuple[Decimal, Decimal]] = defaultdict(lambda: (_ZERO, _ZERO))

    for t in transactions:
        count += 1
        by_category[t.category or UNCATEGORIZED] += t.amount
        ym = parse_year_month(t.date)
        month_in, month_out = months[ym] if ym is not None else (_ZERO, _ZERO)
        if t.amount > 0:
            income += t.amount
            month_in += t.amount
        else:
            expenses += -t.amount
            month_out += -t.amount
        if ym is not None:
            months[ym] = (month_in, month_out)

    return Summary(
        count=count,
        income=income,
        expenses=expenses,
        by_category=dict(sorted(by_category.items(), key=lambda kv: (kv[1], kv[0]))),
        by_month={ym: MonthTotals(i, o) for ym, (i, o) in sorted(months.items())},
    )


def filter_transactions(
    transactions: Sequence[Transaction],
    *,
    year: int | None = None,
    category: str | None = None,
) -> tuple[Transaction, ...]:
    """Keep rows matching ``year`` and ``category`` (either may be ``None``).

    Category matching ignores case. The result is re-indexed ``0..n-1``.
    """

    wanted = category.strip().lower() if category else None
    kept = (
        t
        for t in transactions
        if (year is None or parse_year(t.date) == year)
        and (wanted is None or (t.category or UNCATEGORIZED).lower() == wanted)
    )
    return reindex(kept)


def _money(value: Decimal) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def render_report(summary: Summary, console: Console | None = None) -> None:
    """Print ``summary`` as three tables: totals, categories, months."""

    console = console or Console()

    totals = Table(title="Totals")
    totals.add_column("Transactions", justify="right")
    totals.add_column("Income", justify="right", style="green")
    totals.add_column("Expenses", justify="right", style="red")
    totals.add_column("Net", justify="right")
    totals.add_row(
        str(summary.count), _money(summary.income), _money(summary.expenses), _money(summary.net)
    )
    console.print(totals)

    if summary.by_category:
        cats = Table(title="By category")
        cats.add_column("Category")
        cats.add_column("Total", justify="right")
        for name, total in summary.by_category.items():
            cats.add_row(name, _money(total))
        console.print(cats)

    if summary.by_month:
        months = Table(title="By month")
        months.add_column("Month")
        months.add_column("Income", justify="right", style="green")
        months.add_column("Expenses", justify="right", style="red")
        months.add_column("Net", justify="right")
        for ym, m in summary.by_month.items():
            months.add_row(
                f"{ym.year:04d}-{ym.month:02d}", _money(m.income), _money(m.expenses), _money(m.net)
            )
        console.print(months)


__all__ = ["MonthTotals", "Summary", "filter_transactions", "render_report", "summarize"]
