"""CSV re-export of a transaction set (``Date,Description,Amount,Category``)."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from pathlib import Path

from .models import UNCATEGORIZED, Transaction

EXPORT_COLUMNS: tuple[str, ...] = ("Date", "Description", "Amount", "Category")


def export_csv(transactions: Iterable[Transaction]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for t in transactions:
        writer.writerow([t.date, t.description, f"{t.amount:.2f}", t.category or UNCATEGORIZED])
    return buf.getvalue()


def write_csv(path: Path, transactions: Iterable[Transaction]) -> None:
    path.write_text(export_csv(transactions), encoding="utf-8", newline="")


__all__ = ["EXPORT_COLUMNS", "export_csv", "write_csv"]
