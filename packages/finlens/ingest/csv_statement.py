"""CSV statement parsing into normalized :class:`~finlens.models.Transaction` rows.

Parsing follows RFC 4180 via the stdlib :mod:`csv` module. Rows are kept as
lists rather than dicts: positional exports repeat placeholder headers
(``*``, empty) that a ``DictReader`` would collapse.

Sign handling per layout (negative = money out):

- Chase credit card: the ``Type`` column decides when it names a debit or a
  credit; otherwise the raw amount is purchase-positive and is negated.
- Chase checking: ``Details`` CREDIT/DSLIP is positive, anything else
  negative, applied to the absolute raw amount.
- Capital One and generic debit/credit columns: ``credit`` when positive,
  else ``-debit``.
- Bank of America, Wells Fargo positional, generic amount column: as-is.
"""

from __future__ import annotations

import csv
from collections.abc import Callable, Sequence
from decimal import Decimal
from io import StringIO

from ..errors import ParseError
from ..logging_setup import get_logger
from ..models import UNKNOWN_INSTITUTION, ParsedStatement, Transaction
from . import institutions
from .amounts import lenient_decimal
from .formats import (
    FORMAT_INSTITUTIONS,
    StatementFormat,
    detect_format,
    is_headerless,
    normalize_headers,
)

_logger = get_logger("finlens.ingest.csv")

# Institutions whose CSV exports are known to be signed correctly already; the
# statement-wide sign heuristic must not touch them (rent-like income there
# tends to be keyword-matched as an expense and would trigger a double flip).
CORRECTLY_SIGNED_CSV_INSTITUTIONS: frozenset[str] = frozenset({"Chase"})

_CHASE_CREDIT_DETAILS = frozenset({"credit", "dslip"})
_CARD_CREDIT_TYPES = frozenset({"credit", "payment", "return", "refund"})
_CARD_DEBIT_TYPES = frozenset({"debit", "sale", "purchase", "fee"})
_ACCOUNT_HEADER_HINTS = ("card no", "account number", "acct")

_ZERO = Decimal("0")

type _Extracted = tuple[str, str, Decimal]


# ---------------------------------------------------------------------------
# Helpers (CSV loading, column lookup)
# ---------------------------------------------------------------------------


def _read_csv_table(csv_text: str) -> tuple[list[str], list[list[str]]]:
    with StringIO(csv_text) as f:
        reader = csv.reader(f)
        rows = [row for row in reader if any((c or "").strip() for c in row)]
    if not rows:
        return [], []
    return rows[0], rows[1:]


def _cell(row: Sequence[str], idx: int) -> str:
    return (row[idx] or "").strip() if 0 <= idx < len(row) else ""


class _Row:
    """One data row with lookup by exact normalized header name."""

    __slots__ = ("_columns", "values")

    def __init__(self, values: Sequence[str], columns: dict[str, int]) -> None:
        self.values = values
        self._columns = columns

    def get(self, key: str) -> str:
        return _cell(self.values, self._columns.get(key, -1))

    def at(self, idx: int) -> str:
        return _cell(self.values, idx)


def _find_column(headers: Sequence[str], *needles: str, exact: Sequence[str] = ()) -> int:
    for i, h in enumerate(headers):
        if h in exact or any(n in h for n in needles):
            return i
    return -1


def _debit_credit(debit: str, credit: str) -> Decimal:
    d = lenient_decimal(debit)
    c = lenient_decimal(credit)
    return c if c > 0 else -d


# ---------------------------------------------------------------------------
# Per-format extraction
# ---------------------------------------------------------------------------


def _chase_credit_card(r: _Row) -> _Extracted:
    raw = lenient_decimal(r.get("amount"))
    kind = r.get("type").lower()
    if kind in _CARD_CREDIT_TYPES:
        amount = abs(raw)
    elif kind in _CARD_DEBIT_TYPES:
        amount = -abs(raw)
    else:
        amount = -raw
    return r.get("date") or r.get("transaction date"), r.get("description"), amount


def _chase_checking(r: _Row) -> _Extracted:
    raw = abs(lenient_decimal(r.get("amount")))
    amount = raw if r.get("details").lower() in _CHASE_CREDIT_DETAILS else -raw
    return r.get("posting date"), r.get("description"), amount


def _capital_one(r: _Row) -> _Extracted:
    date = r.get("transaction date") or r.get("posted date") or r.get("date")
    return date, r.get("description"), _debit_credit(r.get("debit"), r.get("credit"))


def _bank_of_america(r: _Row) -> _Extracted:
    return r.get("posted date"), r.get("payee"), lenient_decimal(r.get("amount"))


def _wells_fargo(r: _Row) -> _Extracted:
    description = r.at(4) or r.at(3) or r.at(2)
    return r.at(0), description, lenient_decimal(r.at(1))


def _generic_extractor(headers: Sequence[str]) -> Callable[[_Row], _Extracted]:
    date_idx = _find_column(headers, "date")
    desc_idx = _find_column(
        headers, "desc", "payee", "memo", "narration", "details", "particular"
    )
    amount_idx = _find_column(headers, "amount", "amt")
    debit_idx = _find_column(headers, "debit", "withdrawal", exact=("dr",))
    credit_idx = _find_column(headers, "credit", "deposit", exact=("cr",))

    def extract(r: _Row) -> _Extracted:
        if amount_idx >= 0:
            amount = lenient_decimal(r.at(amount_idx))
        elif debit_idx >= 0 or credit_idx >= 0:
            amount = _debit_credit(r.at(debit_idx), r.at(credit_idx))
        else:
            amount = _ZERO
        return r.at(date_idx), r.at(desc_idx), amount

    return extract


_EXTRACTORS: dict[StatementFormat, Callable[[_Row], _Extracted]] = {
    StatementFormat.CHASE_CREDIT_CARD: _chase_credit_card,
    StatementFormat.CHASE_CHECKING: _chase_checking,
    StatementFormat.CAPITAL_ONE: _capital_one,
    StatementFormat.BANK_OF_AMERICA: _bank_of_america,
    StatementFormat.WELLS_FARGO_POSITIONAL: _wells_fargo,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_csv_text(file_name: str, csv_text: str) -> ParsedStatement:
    """Parse one CSV export.

    Raises
    ------
    ParseError
        When the file has no data rows, or no row survives extraction.
    """

    raw_headers, data_rows = _read_csv_table(csv_text)
    if is_headerless(raw_headers):
        # Positional export without a header line: the first line is data.
        data_rows = [raw_headers, *data_rows]
    if not data_rows:
        raise ParseError(file_name, "No data found in CSV file.")

    headers = normalize_headers(raw_headers)
    fmt = detect_format(headers)
    extract = _EXTRACTORS.get(fmt) or _generic_extractor(headers)

    institution = FORMAT_INSTITUTIONS[fmt]
    if institution == UNKNOWN_INSTITUTION:
        institution = institutions.from_file_name(file_name)

    account_idx = _find_column(headers, *_ACCOUNT_HEADER_HINTS)
    columns: dict[str, int] = {}
    for i, h in enumerate(headers):
        columns.setdefault(h, i)

    transactions: list[Transaction] = []
    for values in data_rows:
        row = _Row(values, columns)
        date, description, amount = extract(row)
        # Rows without a description (including fully blank ones) are dropped.
        if not description:
            continue
        transactions.append(
            Transaction(
                id=len(transactions),
                date=date,
                description=description,
                amount=amount,
                source=file_name,
                institution=institution,
                account_last4=institutions.last4(row.at(account_idx)),
            )
        )

    if not transactions:
        raise ParseError(file_name, "No transactions found in CSV file.")

    account = next((t.account_last4 for t in transactions if t.account_last4), None)
    exempt = institution in CORRECTLY_SIGNED_CSV_INSTITUTIONS
    _logger.info(
        "ingest:csv_parsed file=%s format=%s rows=%d institution=%s",
        file_name,
        fmt.value,
        len(transactions),
        institution,
    )
    return ParsedStatement(
        file_name=file_name,
        kind="csv",
        transactions=transactions,
        institution=institution,
        account_last4=account,
        sign_correction_exempt=exempt,
        exempt_reason=f"{institution} CSV export" if exempt else None,
        notes=[f"format={fmt.value}"],
    )


def parse_csv(file_name: str, content: bytes) -> ParsedStatement:
    """Decode raw bytes (UTF-8, optional BOM) and parse them as CSV."""

    return parse_csv_text(file_name, content.decode("utf-8-sig", errors="replace"))


__all__ = ["CORRECTLY_SIGNED_CSV_INSTITUTIONS", "parse_csv", "parse_csv_text"]
