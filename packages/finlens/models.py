"""Data models and type aliases for ``finlens``.

The normalized :class:`Transaction` is the single record shape every parser
emits and every later stage consumes. Records are immutable; stages that
"change" a transaction return a copy built with :func:`dataclasses.replace`
so an ingestion run never mutates the caller's collection.

Sign convention (after the full pipeline): negative ``amount`` is money out
(expense), positive is money in (income/credit).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

UNCATEGORIZED = "Uncategorized"
UNKNOWN_INSTITUTION = "Unknown"

# ---------------------------------------------------------------------------
# Core record and collections
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single normalized transaction.

    Attributes
    ----------
    id:
        Dense integer position within the owning transaction set. Reassigned
        whenever the set is filtered or files are removed/re-read.
    date:
        Date string as found in the source (not normalized); parsed on demand
        by :mod:`finlens.dates`.
    description:
        Merchant/payee text. CSV parsers keep the raw value; the PDF parser
        stores the cleaned text left after stripping dates and amounts.
    amount:
        Signed decimal amount.
    category:
        Taxonomy category, a custom category name, or ``"Uncategorized"``.
        Empty until categorization runs.
    subcategory:
        Free text entered by the user; never auto-assigned.
    source:
        Originating file name.
    institution / account_last4:
        Best-effort issuer name and account identifier suffix.
    """

    id: int
    date: str
    description: str
    amount: Decimal
    category: str = ""
    subcategory: str | None = None
    source: str = ""
    institution: str = UNKNOWN_INSTITUTION
    account_last4: str | None = None


type Transactions = Sequence[Transaction]
"""An ordered collection of transactions (usually a ``list``)."""


@dataclass(frozen=True, slots=True)
class Rule:
    """A user-authored override: descriptions containing ``text`` get ``category``."""

    id: str
    text: str
    category: str


@dataclass(frozen=True, slots=True)
class CategoryDefinition:
    name: str
    color: str


@dataclass(frozen=True, slots=True)
class StatementFile:
    """One uploaded file: its name plus the raw bytes kept for re-reading."""

    name: str
    content: bytes

    @property
    def kind(self) -> Literal["pdf", "csv"]:
        return "pdf" if self.name.lower().endswith(".pdf") else "csv"


@dataclass(frozen=True, slots=True)
class ParsedStatement:
    """The row-level result of parsing one statement file.

    ``sign_correction_exempt`` is set by parsers that already know the amounts
    are signed correctly (explicit debit/credit columns, bank-account section
    headers, or an export known to be signed correctly); the statement-wide
    sign heuristic then leaves the rows alone. ``exempt_reason`` is a short
    label kept for logging. ``notes`` are diagnostic only; ``warnings`` are
    shown to the user (e.g. an AI read that fell back to layout extraction).
    """

    file_name: str
    kind: Literal["pdf", "csv"]
    transactions: list[Transaction]
    institution: str = UNKNOWN_INSTITUTION
    account_last4: str | None = None
    sign_correction_exempt: bool = False
    exempt_reason: str | None = None
    notes: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# DTOs for validated AI responses
# ---------------------------------------------------------------------------


class AiStatementTransaction(BaseModel):
    """A single transaction as returned by the AI statement reader.

    Lenient on input types (models often emit amounts as strings); missing or
    blank descriptions become ``"Unknown"``.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    date: str = ""
    description: str = "Unknown"
    amount: Decimal = Decimal("0")

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, v: object) -> str:
        return "" if v is None else str(v)

    @field_validator("description", mode="before")
    @classmethod
    def _default_description(cls, v: object) -> str:
        s = "" if v is None else str(v).strip()
        return s or "Unknown"

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, v: object) -> Decimal:
        if v is None or v == "":
            return Decimal("0")
        try:
            return Decimal(str(v).replace(",", "").replace("$", "").strip())
        except ArithmeticError:
            return Decimal("0")


class AiStatement(BaseModel):
    """Top-level schema of an AI statement read."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    institution: str = ""
    account_last4: str = Field(
        default="", validation_alias=AliasChoices("accountLast4", "account_last4")
    )
    transactions: list[AiStatementTransaction] = []

    @field_validator("institution", mode="before")
    @classmethod
    def _coerce_institution(cls, v: object) -> str:
        return v if isinstance(v, str) else ""

    @field_validator("account_last4", mode="before")
    @classmethod
    def _digits_only(cls, v: object) -> str:
        if not isinstance(v, str):
            return ""
        return "".join(ch for ch in v if ch.isdigit())[-4:]

    @field_validator("transactions", mode="before")
    @classmethod
    def _drop_empty(cls, v: object) -> list[object]:
        if not isinstance(v, list):
            return []
        return [
            t
            for t in v
            if isinstance(t, dict)
            and (t.get("date") or t.get("description") or t.get("amount") is not None)
        ]


__all__ = [
    "UNCATEGORIZED",
    "UNKNOWN_INSTITUTION",
    "AiStatement",
    "AiStatementTransaction",
    "CategoryDefinition",
    "ParsedStatement",
    "Rule",
    "StatementFile",
    "Transaction",
    "Transactions",
]
