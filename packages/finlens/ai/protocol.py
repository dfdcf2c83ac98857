"""The optional AI capability as seen by the ingestion pipeline.

Any object with these three methods can be handed to
:func:`finlens.pipeline.ingest`. Implementations must raise
:class:`finlens.errors.ClassificationError` on failure; the pipeline treats
that as non-fatal and falls back to the deterministic path.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol, runtime_checkable

from ..models import AiStatement, Transaction

type ProgressCallback = Callable[[str], None]


@runtime_checkable
class StatementAI(Protocol):
    def classify_deposits_vs_payments(
        self,
        transactions: Sequence[Transaction],
        on_progress: ProgressCallback | None = None,
    ) -> list[Transaction]:
        """Return copies whose amount signs follow the deposit/payment labels."""
        ...

    def categorize_with_model(
        self,
        transactions: Sequence[Transaction],
        categories: Sequence[str],
        on_progress: ProgressCallback | None = None,
    ) -> list[Transaction]:
        """Return copies with ``category`` chosen from ``categories`` only."""
        ...

    def extract_from_raw_text(self, page_text: str) -> AiStatement:
        """Read a whole statement from its raw page text."""
        ...


__all__ = ["ProgressCallback", "StatementAI"]
