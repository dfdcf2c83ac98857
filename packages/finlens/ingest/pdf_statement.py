"""PDF statement parsing: pdfplumber word positions through the layout extractor.

Per page, words from :meth:`pdfplumber.page.Page.extract_words` become
:class:`~finlens.ingest.pdf_layout.TextFragment` objects (``x0``/``top`` in
points, rounded) and are handed to :func:`~finlens.ingest.pdf_layout.extract_page`.
Statement-level passes then run over the collected rows:

- a safety-net boilerplate filter over the final descriptions,
- credit-card convention detection and sign flip,
- removal of exact duplicate rows.

When an AI capability is supplied, the accumulated page text is also sent to
it; a reply with at least one transaction replaces the layout result. Any AI
failure is recorded as a warning and the layout result is kept.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from io import BytesIO

import pdfplumber

from ..ai.protocol import StatementAI
from ..errors import ClassificationError, ParseError
from ..logging_setup import get_logger
from ..models import UNKNOWN_INSTITUTION, ParsedStatement, Transaction
from . import institutions
from .disclaimers import is_boilerplate
from .pdf_layout import DEFAULT_Y_TOLERANCE, RowTransaction, TextFragment, extract_page

_logger = get_logger("finlens.ingest.pdf")

NO_TRANSACTIONS_REASON = (
    "No transactions were found in this PDF. The layout may be unusual or the file may be "
    "password-protected."
)
EMPTY_PDF_REASON = "The PDF appears to be empty."

# Phrases that appear on card statements but not on bank statements. Two or
# more mark the statement as purchase-positive.
CC_INDICATORS: tuple[str, ...] = (
    "credit card", "statement balance", "minimum payment", "payment due",
    "credit limit", "available credit", "new balance", "previous balance",
    "minimum due", "annual percentage rate", "cash advance", "purchases",
    "balance transfer", "finance charge",
)  # fmt: skip

# Bank-account section headers; statements that have them are signed
# correctly by the row-level logic.
BANK_SECTION_HEADERS: tuple[str, ...] = (
    "electronic deposits",
    "electronic payments",
    "deposits and credits",
    "withdrawals and debits",
)


def is_credit_card_statement(text: str) -> bool:
    lower = text.lower()
    return sum(1 for kw in CC_INDICATORS if kw in lower) >= 2


def has_bank_section_headers(text: str) -> bool:
    lower = text.lower()
    return any(h in lower for h in BANK_SECTION_HEADERS)


@dataclass(slots=True)
class PdfPages:
    """Positioned fragments per page, as read from the file."""

    pages: list[list[TextFragment]] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)


def read_pdf_fragments(file_name: str, content: bytes) -> PdfPages:
    """Open ``content`` with pdfplumber and collect word fragments per page.

    Raises
    ------
    ParseError
        When the bytes cannot be opened as a PDF (corrupt or encrypted).
    """

    out = PdfPages()
    try:
        with pdfplumber.open(BytesIO(content)) as pdf:
            for page in pdf.pages:
                words = page.extract_words() or []
                out.pages.append(
                    [
                        TextFragment(
                            text=str(w["text"]).strip(),
                            x=round(float(w["x0"])),
                            y=round(float(w["top"])),
                        )
                        for w in words
                        if str(w.get("text", "")).strip()
                    ]
                )
    except Exception as exc:  # noqa: BLE001 - pdfminer raises many unrelated types
        raise ParseError(file_name, f"Could not read PDF ({exc.__class__.__name__}).") from exc
    return out


def _safety_net(rows: list[RowTransaction]) -> list[RowTransaction]:
    return [r for r in rows if not is_boilerplate(r.description)]


def _dedupe(rows: list[RowTransaction]) -> list[RowTransaction]:
    seen: set[tuple[str, str, Decimal]] = set()
    out: list[RowTransaction] = []
    for r in rows:
        key = (r.date, r.description, r.amount)
        if key in seen:
            continue
        seen.add(key)
        out.append(r)
    return out


def _to_transactions(
    rows: Sequence[RowTransaction], file_name: str, institution: str, account: str | None
) -> list[Transaction]:
    return [
        Transaction(
            id=i,
            date=r.date,
            description=r.description,
            amount=r.amount,
            source=file_name,
            institution=institution,
            account_last4=account,
        )
        for i, r in enumerate(rows)
    ]


def _account_from_rows(row_texts: Sequence[str]) -> str | None:
    # One row at a time so the digits never run into the next row's date.
    for text in row_texts:
        found = institutions.account_last4_from_text(text)
        if found:
            return found
    return None


def _try_ai(
    ai: StatementAI,
    file_name: str,
    text: str,
    row_account: str | None,
    warnings: list[str],
) -> ParsedStatement | None:
    try:
        statement = ai.extract_from_raw_text(text)
    except ClassificationError as exc:
        _logger.warning("ingest:pdf_ai_failed file=%s error=%s", file_name, exc)
        warnings.append(f"AI statement read failed, used layout extraction: {exc}")
        return None
    if not statement.transactions:
        warnings.append("AI statement read returned no transactions, used layout extraction")
        return None

    institution = statement.institution or institutions.from_text(text, file_name)
    account = statement.account_last4 or row_account
    txs = [
        Transaction(
            id=i,
            date=t.date,
            description=t.description,
            amount=t.amount,
            source=file_name,
            institution=institution,
            account_last4=account,
        )
        for i, t in enumerate(statement.transactions)
    ]
    _logger.info("ingest:pdf_ai_parsed file=%s rows=%d", file_name, len(txs))
    return ParsedStatement(
        file_name=file_name,
        kind="pdf",
        transactions=txs,
        institution=institution,
        account_last4=account,
        sign_correction_exempt=True,
        exempt_reason="AI statement read",
        warnings=warnings,
    )


def parse_pdf_pages(
    file_name: str,
    pages: PdfPages,
    *,
    ai: StatementAI | None = None,
    y_tolerance: float = DEFAULT_Y_TOLERANCE,
) -> ParsedStatement:
    """Extract transactions from already-read pages.

    Raises
    ------
    ParseError
        For a PDF with no pages, or when nothing survives filtering and the AI
        path (if any) yields nothing either.
    """

    if pages.page_count == 0:
        raise ParseError(file_name, EMPTY_PDF_REASON)

    rows: list[RowTransaction] = []
    texts: list[str] = []
    row_texts: list[str] = []
    had_debit_credit = False
    for fragments in pages.pages:
        if not fragments:
            continue
        layout = extract_page(fragments, y_tolerance=y_tolerance)
        texts.append(layout.text)
        row_texts.extend(r.text for r in layout.rows)
        if layout.columns is not None and layout.columns.has_debit_credit:
            had_debit_credit = True
        rows.extend(layout.transactions)
    full_text = " ".join(texts)
    account = _account_from_rows(row_texts)

    notes: list[str] = []
    warnings: list[str] = []
    if ai is not None and full_text.strip():
        via_ai = _try_ai(ai, file_name, full_text, account, warnings)
        if via_ai is not None:
            return via_ai

    rows = _safety_net(rows)
    if not rows:
        raise ParseError(file_name, NO_TRANSACTIONS_REASON)

    bank_sections = has_bank_section_headers(full_text)
    if is_credit_card_statement(full_text) and not had_debit_credit and not bank_sections:
        rows = [RowTransaction(r.date, r.description, -r.amount) for r in rows]
        notes.append("credit card statement: signs flipped")
    rows = _dedupe(rows)

    institution = institutions.from_text(full_text, file_name)

    exempt_reason: str | None = None
    if had_debit_credit:
        exempt_reason = "debit/credit columns"
    elif bank_sections:
        exempt_reason = "bank-account section headers"

    _logger.info(
        "ingest:pdf_parsed file=%s pages=%d rows=%d institution=%s exempt=%s",
        file_name,
        pages.page_count,
        len(rows),
        institution,
        exempt_reason is not None,
    )
    return ParsedStatement(
        file_name=file_name,
        kind="pdf",
        transactions=_to_transactions(rows, file_name, institution or UNKNOWN_INSTITUTION, account),
        institution=institution,
        account_last4=account,
        sign_correction_exempt=exempt_reason is not None,
        exempt_reason=exempt_reason,
        notes=notes,
        warnings=warnings,
    )


def parse_pdf(
    file_name: str,
    content: bytes,
    *,
    ai: StatementAI | None = None,
    y_tolerance: float = DEFAULT_Y_TOLERANCE,
) -> ParsedStatement:
    return parse_pdf_pages(
        file_name, read_pdf_fragments(file_name, content), ai=ai, y_tolerance=y_tolerance
    )


__all__ = [
    "BANK_SECTION_HEADERS",
    "CC_INDICATORS",
    "EMPTY_PDF_REASON",
    "NO_TRANSACTIONS_REASON",
    "PdfPages",
    "has_bank_section_headers",
    "is_credit_card_statement",
    "parse_pdf",
    "parse_pdf_pages",
    "read_pdf_fragments",
]
