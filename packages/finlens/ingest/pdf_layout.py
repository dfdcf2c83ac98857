"""Positional layout extraction for text-layer PDF statements.

Statement PDFs carry no table structure, only text fragments with page
coordinates. This module rebuilds rows and columns from those positions:

1. :func:`group_into_rows` clusters fragments whose ``y`` values fall within a
   tolerance (a sorted sweep, so each fragment is compared with the open row
   only).
2. :func:`detect_columns` looks for a header row near the top of the page and
   records the ``x`` of debit, credit, amount and balance labels.
3. :func:`parse_row` pulls a date and money tokens from a row and resolves
   the signed amount from column positions, falling back to heuristics.

Coordinates are top-down (``y`` grows down the page), matching
``pdfplumber``'s ``top``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from .disclaimers import is_boilerplate

DEFAULT_Y_TOLERANCE = 4.0
COLUMN_X_TOLERANCE = 90.0
HEADER_SCAN_ROWS = 30

# Tried in order; the first match is the row's date.
DATE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(\d{1,2}/\d{1,2}/\d{2,4})\b"),
    re.compile(r"\b(\d{4}-\d{2}-\d{2})\b"),
    re.compile(r"\b(\d{1,2}-\d{1,2}-\d{2,4})\b"),
    re.compile(r"\b(\d{1,2}/\d{1,2})\b"),
    re.compile(
        r"\b((?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?\s+\d{1,2},?\s*\d{4})\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b(\d{1,2}\s+(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?\s+\d{4})\b",
        re.IGNORECASE,
    ),
)

# Group 1: parenthesized negative; group 3: optionally signed plain amount.
_MONEY = r"(?:\d{1,3}(?:,\d{3})+|\d+)\.\d{2}"
AMOUNT_TOKEN_RE = re.compile(
    rf"(\(\$?({_MONEY})\))|((?<![\d.,])-?\$?({_MONEY}))(?![\d])"
)

HEADER_WORDS: tuple[str, ...] = (
    "date", "description", "amount", "debit", "credit",
    "withdrawal", "withdrawals", "deposit", "deposits",
    "balance", "transaction", "charges", "payments", "dr", "cr",
)  # fmt: skip
# Whole words, plural allowed ("Transactions", "Debits"); "cr" must not hit "credit".
_HEADER_WORD_RES = tuple(re.compile(rf"\b{w}s?\b") for w in HEADER_WORDS)

_DEBIT_LABEL_RE = re.compile(r"(withdrawal|withdrawals|debit|charge|charges|\bdr\b)")
_CREDIT_LABEL_RE = re.compile(r"(deposit|deposits|credit|\bcr\b|payments)")
_AMOUNT_LABEL_RE = re.compile(r"^amount$")
_BALANCE_LABEL_RE = re.compile(r"balance")

# Rows that name an outgoing payment even when the figure is printed unsigned
# under a payments section.
PAYMENT_ROW_RE = re.compile(
    r"electronic\s+pmt|pmt-web|web\s+pmt|ach\s+debit|ach\s+pmt|billpay|bill\s+pay\b"
    r"|withdrawal|payment\s+to\b|debit\s+card\s+purchase",
    re.IGNORECASE,
)

_WS_RE = re.compile(r"\s+")
_EDGE_PUNCT_RE = re.compile(r"^[\W_]+|[\W_]+$")


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TextFragment:
    """A run of text and its top-left position on the page."""

    text: str
    x: float
    y: float


@dataclass(slots=True)
class LayoutRow:
    y: float
    fragments: list[TextFragment] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(f.text for f in self.fragments)


@dataclass(frozen=True, slots=True)
class ColumnLayout:
    debit_x: float | None = None
    credit_x: float | None = None
    amount_x: float | None = None
    balance_x: float | None = None

    @property
    def has_debit_credit(self) -> bool:
        return self.debit_x is not None or self.credit_x is not None


@dataclass(frozen=True, slots=True)
class AmountToken:
    value: Decimal
    x: float
    raw: str


@dataclass(frozen=True, slots=True)
class RowTransaction:
    date: str
    description: str
    amount: Decimal


@dataclass(frozen=True, slots=True)
class PageLayout:
    """Everything extracted from one page."""

    rows: list[LayoutRow]
    columns: ColumnLayout | None
    transactions: list[RowTransaction]

    @property
    def text(self) -> str:
        return " ".join(r.text for r in self.rows)


# ---------------------------------------------------------------------------
# Row clustering and column detection
# ---------------------------------------------------------------------------


def group_into_rows(
    fragments: Iterable[TextFragment], y_tolerance: float = DEFAULT_Y_TOLERANCE
) -> list[LayoutRow]:
    """Cluster fragments into visual rows by ``y`` proximity.

    Fragments are swept in ``(y, x)`` order; a fragment joins the open row
    when its ``y`` is within ``y_tolerance`` of that row's anchor ``y``.
    Blank fragments are ignored. Each row's fragments end up sorted by ``x``.
    """

    rows: list[LayoutRow] = []
    for frag in sorted(fragments, key=lambda f: (f.y, f.x)):
        if not frag.text.strip():
            continue
        if rows and abs(frag.y - rows[-1].y) <= y_tolerance:
            rows[-1].fragments.append(frag)
        else:
            rows.append(LayoutRow(y=frag.y, fragments=[frag]))
    for row in rows:
        row.fragments.sort(key=lambda f: f.x)
    return rows


def _header_hits(lower: str) -> int:
    return sum(1 for rx in _HEADER_WORD_RES if rx.search(lower))


def detect_columns(
    rows: Sequence[LayoutRow], scan_limit: int = HEADER_SCAN_ROWS
) -> ColumnLayout | None:
    """Find the first header row within ``scan_limit`` rows and map its columns.

    A header row mentions at least two of :data:`HEADER_WORDS` and labels at
    least one debit, credit or amount column. Returns ``None`` when no such
    row exists.
    """

    for row in rows[:scan_limit]:
        if _header_hits(row.text.lower()) < 2:
            continue
        found: dict[str, float] = {}
        for frag in row.fragments:
            t = frag.text.lower().strip()
            if _DEBIT_LABEL_RE.search(t):
                found["debit_x"] = frag.x
            elif _CREDIT_LABEL_RE.search(t):
                found["credit_x"] = frag.x
            elif _AMOUNT_LABEL_RE.search(t):
                found["amount_x"] = frag.x
            elif _BALANCE_LABEL_RE.search(t):
                found["balance_x"] = frag.x
        if found.keys() & {"debit_x", "credit_x", "amount_x"}:
            return ColumnLayout(**found)
    return None


# ---------------------------------------------------------------------------
# Row parsing
# ---------------------------------------------------------------------------


def extract_date(text: str) -> str | None:
    for rx in DATE_PATTERNS:
        m = rx.search(text)
        if m:
            return m.group(1)
    return None


def extract_amounts(fragments: Iterable[TextFragment]) -> list[AmountToken]:
    """Money-shaped tokens with the ``x`` of their fragment, left to right."""

    tokens: list[AmountToken] = []
    for frag in fragments:
        for m in AMOUNT_TOKEN_RE.finditer(frag.text):
            if m.group(1):
                value = -Decimal(m.group(2).replace(",", ""))
                tokens.append(AmountToken(value=value, x=frag.x, raw=m.group(1)))
            elif m.group(3):
                value = Decimal(m.group(4).replace(",", ""))
                raw = m.group(3)
                if raw.startswith("-"):
                    value = -value
                tokens.append(AmountToken(value=value, x=frag.x, raw=raw))
    tokens.sort(key=lambda t: t.x)
    return tokens


def _near(token: AmountToken, x: float | None, tol: float) -> bool:
    return x is not None and abs(token.x - x) < tol


def resolve_amount(
    tokens: Sequence[AmountToken],
    columns: ColumnLayout | None,
    x_tolerance: float = COLUMN_X_TOLERANCE,
) -> Decimal | None:
    """Pick the row's signed amount from its money tokens.

    With debit/credit columns the token under the debit column is negative
    and the one under the credit column positive. With a single amount column
    the token under it is taken as-is. A known balance column is excluded.
    Otherwise a lone token is used; with several, the rightmost is treated as
    a running balance and dropped, and the first negative of the rest wins,
    else the leftmost.
    """

    if not tokens:
        return None
    amount: Decimal | None = None

    if columns is not None:
        if columns.has_debit_credit:
            debit = next((t for t in tokens if _near(t, columns.debit_x, x_tolerance)), None)
            credit = next((t for t in tokens if _near(t, columns.credit_x, x_tolerance)), None)
            if debit is not None:
                amount = -abs(debit.value)
            elif credit is not None:
                amount = abs(credit.value)
        elif columns.amount_x is not None:
            found = next((t for t in tokens if _near(t, columns.amount_x, x_tolerance)), None)
            if found is not None:
                amount = found.value

        if amount is None and columns.balance_x is not None:
            non_balance = [t for t in tokens if abs(t.x - columns.balance_x) > x_tolerance]
            if non_balance:
                amount = non_balance[0].value

    if amount is None:
        if len(tokens) == 1:
            amount = tokens[0].value
        else:
            candidates = tokens[:-1]
            negative = next((t for t in candidates if t.value < 0), None)
            amount = negative.value if negative is not None else candidates[0].value
    return amount


def build_description(text: str, tokens: Iterable[AmountToken]) -> str:
    """Strip every date and money token from ``text`` and tidy the remainder."""

    desc = text
    for rx in DATE_PATTERNS:
        desc = rx.sub(" ", desc)
    for token in tokens:
        desc = desc.replace(token.raw, " ")
    desc = _WS_RE.sub(" ", desc)
    return _EDGE_PUNCT_RE.sub("", desc).strip()


def parse_row(
    row: LayoutRow,
    columns: ColumnLayout | None,
    x_tolerance: float = COLUMN_X_TOLERANCE,
) -> RowTransaction | None:
    """Turn one visual row into a transaction, or ``None`` when it is not one."""

    text = row.text
    if is_boilerplate(text):
        return None
    date = extract_date(text)
    if date is None:
        return None
    tokens = extract_amounts(row.fragments)
    amount = resolve_amount(tokens, columns, x_tolerance)
    if amount is None:
        return None

    description = build_description(text, tokens)
    if len(description) < 2 or is_boilerplate(description):
        return None

    if amount > 0 and PAYMENT_ROW_RE.search(text):
        amount = -amount
    return RowTransaction(date=date, description=description, amount=amount)


def extract_page(
    fragments: Iterable[TextFragment],
    y_tolerance: float = DEFAULT_Y_TOLERANCE,
    x_tolerance: float = COLUMN_X_TOLERANCE,
) -> PageLayout:
    rows = group_into_rows(fragments, y_tolerance)
    columns = detect_columns(rows)
    transactions = [
        tx for tx in (parse_row(r, columns, x_tolerance) for r in rows) if tx is not None
    ]
    return PageLayout(rows=rows, columns=columns, transactions=transactions)


__all__ = [
    "AMOUNT_TOKEN_RE",
    "COLUMN_X_TOLERANCE",
    "DATE_PATTERNS",
    "DEFAULT_Y_TOLERANCE",
    "HEADER_WORDS",
    "PAYMENT_ROW_RE",
    "AmountToken",
    "ColumnLayout",
    "LayoutRow",
    "PageLayout",
    "RowTransaction",
    "TextFragment",
    "build_description",
    "detect_columns",
    "extract_amounts",
    "extract_date",
    "extract_page",
    "group_into_rows",
    "parse_row",
    "resolve_amount",
]
