"""LLM-backed implementation of :class:`~finlens.ai.protocol.StatementAI`.

The provider is chosen from the API key: keys starting with ``sk-ant-`` use
the Anthropic Messages API, anything else the OpenAI Chat Completions API
(optionally against an OpenAI-compatible ``base_url``). Requests are retried
on HTTP 429 and 5xx only; every other failure, including a malformed reply,
surfaces as :class:`~finlens.errors.ClassificationError`.

No client is created at import time; tests inject a stub via ``client=``.
"""

from __future__ import annotations

import random
import time
from collections.abc import Sequence
from dataclasses import replace
from typing import Any, Literal

from anthropic import Anthropic
from openai import OpenAI

from ..errors import ClassificationError
from ..logging_setup import get_logger
from ..models import UNCATEGORIZED, AiStatement, Transaction
from . import prompting
from .protocol import ProgressCallback

# ---- Tunables (private) ------------------------------------------------------

SIGN_BATCH_SIZE = 25
CATEGORY_BATCH_SIZE = 20

_OPENAI_DEFAULT_MODEL = "gpt-4o-mini"
_ANTHROPIC_DEFAULT_MODEL = "claude-3-5-haiku-latest"
_SIGN_MAX_TOKENS = 200
_CATEGORY_MAX_TOKENS = 500
_STATEMENT_MAX_TOKENS = 16_000

_MAX_ATTEMPTS = 3
_BACKOFF_SCHEDULE_SEC: tuple[float, ...] = (0.5, 2.0)
_JITTER_PCT = 0.20

type Provider = Literal["openai", "anthropic"]

_logger = get_logger("finlens.ai")


def detect_provider(api_key: str) -> Provider:
    return "anthropic" if api_key.strip().lower().startswith("sk-ant-") else "openai"


def _is_retryable(exc: BaseException) -> bool:
    """Return True only for HTTP 429 and 5xx errors."""

    sc = getattr(exc, "status_code", None)
    return isinstance(sc, int) and (sc == 429 or 500 <= sc < 600)


def _sleep_backoff(attempt_no: int) -> None:
    idx = min(attempt_no - 1, len(_BACKOFF_SCHEDULE_SEC) - 1)
    base = _BACKOFF_SCHEDULE_SEC[idx]
    jitter = base * _JITTER_PCT
    time.sleep(max(0.0, base + random.uniform(-jitter, jitter)))


def _batches[T](items: Sequence[T], size: int) -> list[Sequence[T]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class LlmStatementAI:
    """Statement classification, categorization and extraction over an LLM.

    Parameters
    ----------
    api_key:
        OpenAI or Anthropic key. Required; an empty key raises
        :class:`ClassificationError` immediately.
    model:
        Overrides the provider default (``gpt-4o-mini`` or Claude Haiku).
    base_url:
        OpenAI-compatible endpoint; ignored for Anthropic keys.
    client:
        Pre-built SDK client (tests pass a stub with the same call shape).
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str | None = None,
        base_url: str | None = None,
        client: Any | None = None,
    ) -> None:
        key = (api_key or "").strip()
        if not key:
            raise ClassificationError("API key is required for AI features")
        self._api_key = key
        self.provider: Provider = detect_provider(key)
        self.model = model or (
            _ANTHROPIC_DEFAULT_MODEL if self.provider == "anthropic" else _OPENAI_DEFAULT_MODEL
        )
        self._base_url = base_url
        self._client = client

    # ---- transport ---------------------------------------------------------

    def _get_client(self) -> Any:
        if self._client is None:
            if self.provider == "anthropic":
                self._client = Anthropic(api_key=self._api_key)
            else:
                self._client = OpenAI(api_key=self._api_key, base_url=self._base_url)
        return self._client

    def _send(self, prompt: str, max_tokens: int) -> str:
        client = self._get_client()
        messages = [{"role": "user", "content": prompt}]
        if self.provider == "anthropic":
            msg = client.messages.create(model=self.model, max_tokens=max_tokens, messages=messages)
            parts = [
                getattr(block, "text", "")
                for block in (msg.content or [])
                if getattr(block, "type", "text") == "text"
            ]
            return "".join(parts).strip()
        resp = client.chat.completions.create(
            model=self.model, messages=messages, max_tokens=max_tokens, temperature=0
        )
        choices = resp.choices or []
        content = choices[0].message.content if choices else None
        return (content or "").strip()

    def _complete(self, prompt: str, *, max_tokens: int, op: str) -> str:
        attempt = 1
        while True:
            t0 = time.perf_counter()
            try:
                text = self._send(prompt, max_tokens)
            except Exception as e:  # noqa: BLE001
                dt_ms = (time.perf_counter() - t0) * 1000.0
                if attempt >= _MAX_ATTEMPTS or not _is_retryable(e):
                    _logger.error(
                        "ai:%s_failed provider=%s latency_ms=%.2f error=%s",
                        op,
                        self.provider,
                        dt_ms,
                        e.__class__.__name__,
                    )
                    raise ClassificationError(f"{self.provider} request failed: {e}") from e
                _logger.warning(
                    "ai:%s_retry provider=%s latency_ms=%.2f error=%s attempt=%d",
                    op,
                    self.provider,
                    dt_ms,
                    e.__class__.__name__,
                    attempt,
                )
                _sleep_backoff(attempt)
                attempt += 1
                continue
            _logger.debug(
                "ai:%s_done provider=%s latency_ms=%.2f chars=%d",
                op,
                self.provider,
                (time.perf_counter() - t0) * 1000.0,
                len(text),
            )
            return text

    # ---- StatementAI -------------------------------------------------------

    def classify_deposits_vs_payments(
        self,
        transactions: Sequence[Transaction],
        on_progress: ProgressCallback | None = None,
    ) -> list[Transaction]:
        """Relabel signs: deposits positive, payments negative; zero stays zero."""

        if not transactions:
            return list(transactions)
        total = len(transactions)
        out: list[Transaction] = []
        for b, batch in enumerate(_batches(transactions, SIGN_BATCH_SIZE)):
            start = b * SIGN_BATCH_SIZE
            if on_progress is not None:
                on_progress(
                    f"Analyzing transactions {start + 1}-{min(start + SIGN_BATCH_SIZE, total)} "
                    f"of {total}..."
                )
            reply = self._complete(
                prompting.build_sign_prompt(batch), max_tokens=_SIGN_MAX_TOKENS, op="classify"
            )
            labels = prompting.parse_sign_reply(reply)
            for i, t in enumerate(batch):
                amount = t.amount
                if amount != 0:
                    amount = abs(amount) if labels.is_deposit(i) else -abs(amount)
                out.append(t if amount == t.amount else replace(t, amount=amount))
        return out

    def categorize_with_model(
        self,
        transactions: Sequence[Transaction],
        categories: Sequence[str],
        on_progress: ProgressCallback | None = None,
    ) -> list[Transaction]:
        if not transactions or not categories:
            return list(transactions)
        total = len(transactions)
        out: list[Transaction] = []
        for b, batch in enumerate(_batches(transactions, CATEGORY_BATCH_SIZE)):
            start = b * CATEGORY_BATCH_SIZE
            if on_progress is not None:
                on_progress(
                    f"AI categorizing {start + 1}-{min(start + CATEGORY_BATCH_SIZE, total)} "
                    f"of {total}..."
                )
            reply = self._complete(
                prompting.build_category_prompt(batch, categories),
                max_tokens=_CATEGORY_MAX_TOKENS,
                op="categorize",
            )
            names = prompting.parse_category_reply(reply, len(batch), categories)
            out.extend(
                replace(t, category=name or UNCATEGORIZED) for t, name in zip(batch, names)
            )
        return out

    def extract_from_raw_text(self, page_text: str) -> AiStatement:
        if not page_text or not page_text.strip():
            return AiStatement()
        reply = self._complete(
            prompting.build_statement_prompt(page_text),
            max_tokens=_STATEMENT_MAX_TOKENS,
            op="extract",
        )
        return prompting.parse_statement_reply(reply)


__all__ = [
    "CATEGORY_BATCH_SIZE",
    "SIGN_BATCH_SIZE",
    "LlmStatementAI",
    "detect_provider",
]
