"""Prompt construction and reply parsing for the AI capability.

This module builds:
- the deposit/payment prompt (one ``D``/``P`` letter per transaction),
- the categorization prompt (one category name per line),
- the full-statement extraction prompt (a single JSON object),

and parses the corresponding replies. Parsing is pure and provider-agnostic;
:mod:`finlens.ai.llm` only moves text to and from the SDKs.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..errors import ClassificationError
from ..models import UNCATEGORIZED, AiStatement, Transaction

MAX_STATEMENT_CHARS = 80_000

_SIGN_DESC_CHARS = 120
_CATEGORY_DESC_CHARS = 100
_NUMBERING_RE = re.compile(r"^\d+\.\s*")
_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_WS_RE = re.compile(r"\s")


def _numbered_lines(batch: Sequence[Transaction], width: int) -> str:
    return "\n".join(
        f'{i}. "{(t.description or "").strip()[:width]}" Amount: {t.amount}'
        for i, t in enumerate(batch, start=1)
    )


# ---------------------------------------------------------------------------
# Deposit / payment labels
# ---------------------------------------------------------------------------


def build_sign_prompt(batch: Sequence[Transaction]) -> str:
    return (
        "You are a bank transaction classifier. For each transaction below, decide if it is "
        "a DEPOSIT (money in: salary, refund, transfer in, interest, etc.) or PAYMENT (money "
        "out: purchase, bill, fee, transfer out, etc.). Use the description and amount to "
        "decide.\n\n"
        f"Transactions:\n{_numbered_lines(batch, _SIGN_DESC_CHARS)}\n\n"
        "Reply with exactly one letter per transaction in order, on a single line with no "
        "spaces: D for DEPOSIT, P for PAYMENT. Example: DPPDP"
    )


class SignLabels(BaseModel):
    """Validated ``D``/``P`` reply; whitespace is ignored, case folded."""

    model_config = ConfigDict(frozen=True)

    letters: str

    @field_validator("letters", mode="before")
    @classmethod
    def _normalize(cls, v: object) -> str:
        s = _WS_RE.sub("", str(v or "")).upper()
        if not s:
            raise ValueError("empty reply")
        if set(s) - {"D", "P"}:
            raise ValueError(f"unexpected labels in reply: {s[:40]!r}")
        return s

    def is_deposit(self, idx: int) -> bool:
        # Missing trailing letters count as payments.
        return idx < len(self.letters) and self.letters[idx] == "D"


def parse_sign_reply(text: str) -> SignLabels:
    try:
        return SignLabels(letters=text)
    except ValidationError as exc:
        raise ClassificationError(f"Malformed deposit/payment reply: {exc.errors()[0]['msg']}") from exc


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


def build_category_prompt(batch: Sequence[Transaction], categories: Sequence[str]) -> str:
    return (
        "Assign exactly one category to each transaction. Use ONLY these categories (copy "
        f"the name exactly): {', '.join(categories)}\n\n"
        f"Transactions:\n{_numbered_lines(batch, _CATEGORY_DESC_CHARS)}\n\n"
        "Reply with exactly one category per line, in order (line 1 = transaction 1, etc.). "
        'Use only category names from the list above. If unsure, use "Uncategorized".'
    )


def parse_category_reply(text: str, expected: int, categories: Sequence[str]) -> list[str]:
    """Map reply lines to names from ``categories`` (case-insensitive).

    Leading ``N.`` numbering is stripped. Unknown or missing lines become
    ``"Uncategorized"`` when it is in the list, else the list's first entry.
    """

    if not categories:
        return [UNCATEGORIZED] * expected
    default = UNCATEGORIZED if UNCATEGORIZED in categories else categories[0]
    by_lower = {c.strip().lower(): c for c in reversed(categories)}
    lines = [s for s in (_NUMBERING_RE.sub("", ln).strip() for ln in text.splitlines()) if s]
    out: list[str] = []
    for i in range(expected):
        raw = lines[i] if i < len(lines) else ""
        out.append(by_lower.get(raw.lower(), default))
    return out


# ---------------------------------------------------------------------------
# Full statement read
# ---------------------------------------------------------------------------


def build_statement_prompt(page_text: str) -> str:
    text = page_text.strip()[:MAX_STATEMENT_CHARS]
    return (
        "Below is raw text from a bank or credit card statement PDF.\n\n"
        "1) From the statement header or account summary, identify:\n"
        "- institution: the bank or card issuer that produced this statement (exact issuer "
        "name, not a merchant from the transactions).\n"
        "- accountLast4: the last 4 digits of the statement's own account/card number. If "
        'unclear, use "".\n\n'
        "2) Extract every individual transaction. For each transaction:\n"
        "- date: YYYY-MM-DD or MM/DD/YYYY\n"
        "- description: merchant or payee name (short)\n"
        "- amount: number. Deposits/credits (money in) are positive; payments, debits and "
        "withdrawals (money out) are negative.\n\n"
        "Do NOT include beginning/ending/opening/closing balances, summary totals, running "
        "balances, column headers or section headers.\n\n"
        "Reply with a single JSON object only, no other text:\n"
        '{"institution":"TD Bank","accountLast4":"1742","transactions":'
        '[{"date":"2025-12-01","description":"AMAZON","amount":-15.54}]}\n\n'
        f"Statement text:\n---\n{text}\n---"
    )


def _decode_json_object(raw: str) -> Any:
    cleaned = _FENCE_RE.sub("", raw).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        m = _OBJECT_RE.search(cleaned)
        if m is None:
            raise
        return json.loads(m.group(0))


def parse_statement_reply(raw: str) -> AiStatement:
    """Decode and validate a statement-extraction reply.

    Code fences are stripped; when the remainder is not valid JSON the first
    ``{...}`` span is tried. Anything that is not a JSON object raises
    :class:`ClassificationError`.
    """

    try:
        obj = _decode_json_object(raw)
    except json.JSONDecodeError as exc:
        raise ClassificationError("Statement reply is not valid JSON") from exc
    if not isinstance(obj, dict):
        raise ClassificationError("Statement reply is not a JSON object")
    try:
        return AiStatement.model_validate(obj)
    except ValidationError as exc:
        raise ClassificationError(f"Statement reply failed validation: {exc}") from exc


__all__ = [
    "MAX_STATEMENT_CHARS",
    "SignLabels",
    "build_category_prompt",
    "build_sign_prompt",
    "build_statement_prompt",
    "parse_category_reply",
    "parse_sign_reply",
    "parse_statement_reply",
]
