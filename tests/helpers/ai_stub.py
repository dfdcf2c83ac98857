"""Test doubles for the AI capability and the provider SDK clients.

``FakeOpenAI`` and ``FakeAnthropic`` mimic the call shapes used by
``finlens.ai.llm`` (``chat.completions.create`` and ``messages.create``).
Each is fed a script of replies; an item that is an exception instance is
raised instead of returned. Every call's kwargs are recorded in ``calls``.

``FakeStatementAI`` implements the ``StatementAI`` protocol directly for
pipeline tests that should not go through prompt building at all.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace
from types import SimpleNamespace
from typing import Any

from finlens.errors import ClassificationError
from finlens.models import AiStatement, Transaction

type Reply = str | BaseException
type Script = Iterable[Reply] | Callable[[str], Reply]


class StatusError(Exception):
    """SDK-like error carrying an HTTP status code."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class _Scripted:
    def __init__(self, script: Script) -> None:
        self._fn = script if callable(script) else None
        self._queue = [] if callable(script) else list(script)
        self.calls: list[dict[str, Any]] = []

    def _next(self, kwargs: dict[str, Any]) -> str:
        self.calls.append(kwargs)
        prompt = kwargs["messages"][-1]["content"]
        if self._fn is not None:
            reply = self._fn(prompt)
        else:
            if not self._queue:
                raise AssertionError("stub: no scripted reply left")
            reply = self._queue.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


class FakeOpenAI(_Scripted):
    def __init__(self, script: Script) -> None:
        super().__init__(script)
        outer = self

        class _Completions:
            def create(self, **kwargs: Any) -> SimpleNamespace:
                text = outer._next(kwargs)
                return SimpleNamespace(
                    choices=[SimpleNamespace(message=SimpleNamespace(content=text))]
                )

        self.chat = SimpleNamespace(completions=_Completions())


class FakeAnthropic(_Scripted):
    def __init__(self, script: Script) -> None:
        super().__init__(script)
        outer = self

        class _Messages:
            def create(self, **kwargs: Any) -> SimpleNamespace:
                text = outer._next(kwargs)
                return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])

        self.messages = _Messages()


class FakeStatementAI:
    """Deterministic ``StatementAI``.

    Parameters
    ----------
    deposits:
        Descriptions (case-insensitive substrings) labelled as deposits; all
        other non-zero rows become payments.
    categories:
        Description substring -> category name. Unmatched rows keep an empty
        category so the keyword pass still runs for them.
    statement:
        Returned by ``extract_from_raw_text``.
    fail:
        Names of methods that raise :class:`ClassificationError`.
    """

    def __init__(
        self,
        *,
        deposits: Sequence[str] = (),
        categories: dict[str, str] | None = None,
        statement: AiStatement | None = None,
        fail: Sequence[str] = (),
    ) -> None:
        self.deposits = [d.lower() for d in deposits]
        self.categories = {k.lower(): v for k, v in (categories or {}).items()}
        self.statement = statement or AiStatement()
        self.fail = set(fail)
        self.calls: list[str] = []

    def _maybe_fail(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail:
            raise ClassificationError(f"{name} unavailable")

    def classify_deposits_vs_payments(
        self, transactions: Sequence[Transaction], on_progress=None
    ) -> list[Transaction]:
        self._maybe_fail("classify_deposits_vs_payments")
        out = []
        for t in transactions:
            deposit = any(d in t.description.lower() for d in self.deposits)
            out.append(replace(t, amount=abs(t.amount) if deposit else -abs(t.amount)))
        return out

    def categorize_with_model(
        self, transactions: Sequence[Transaction], categories: Sequence[str], on_progress=None
    ) -> list[Transaction]:
        self._maybe_fail("categorize_with_model")
        out = []
        for t in transactions:
            name = next(
                (c for k, c in self.categories.items() if k in t.description.lower()), ""
            )
            out.append(replace(t, category=name) if name else t)
        return out

    def extract_from_raw_text(self, page_text: str) -> AiStatement:
        self._maybe_fail("extract_from_raw_text")
        return self.statement
