"""Statement parsers (CSV and text-layer PDF).

Public API:
    - :func:`parse_statement` routes one :class:`~finlens.models.StatementFile`
      to the CSV or PDF parser by file extension.
    - :func:`detect_format` / :class:`StatementFormat` for CSV layouts.
"""

from __future__ import annotations

from ..ai.protocol import StatementAI
from ..models import ParsedStatement, StatementFile
from .csv_statement import parse_csv, parse_csv_text
from .formats import StatementFormat, detect_format
from .pdf_layout import DEFAULT_Y_TOLERANCE
from .pdf_statement import parse_pdf


def parse_statement(
    file: StatementFile,
    *,
    ai: StatementAI | None = None,
    y_tolerance: float = DEFAULT_Y_TOLERANCE,
) -> ParsedStatement:
    """Parse one uploaded file; raises :class:`~finlens.errors.ParseError` on failure."""

    if file.kind == "pdf":
        return parse_pdf(file.name, file.content, ai=ai, y_tolerance=y_tolerance)
    return parse_csv(file.name, file.content)


__all__ = [
    "StatementFormat",
    "detect_format",
    "parse_csv",
    "parse_csv_text",
    "parse_pdf",
    "parse_statement",
]
