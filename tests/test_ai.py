from __future__ import annotations

from decimal import Decimal

import pytest

import finlens.ai.llm as llm_mod
from finlens.ai import build_statement_ai
from finlens.ai.llm import LlmStatementAI, detect_provider
from finlens.ai.prompting import (
    MAX_STATEMENT_CHARS,
    build_statement_prompt,
    parse_category_reply,
    parse_sign_reply,
    parse_statement_reply,
)
from finlens.ai.protocol import StatementAI
from finlens.config import Settings
from finlens.errors import ClassificationError
from finlens.models import Transaction
from tests.helpers.ai_stub import FakeAnthropic, FakeOpenAI, StatusError

CATEGORIES = ["Food & Dining", "Groceries", "Income", "Uncategorized"]


def _txs(n: int) -> list[Transaction]:
    return [
        Transaction(id=i, date="01/01/2024", description=f"ROW {i}", amount=Decimal("10.00"))
        for i in range(n)
    ]


@pytest.fixture(autouse=True)
def _no_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(llm_mod, "_sleep_backoff", lambda attempt_no: None)


# ---- prompting ---------------------------------------------------------------


def test_sign_reply_is_normalized_and_padded_with_payments() -> None:
    labels = parse_sign_reply(" dp\nD ")
    assert labels.letters == "DPD"
    assert labels.is_deposit(0) and not labels.is_deposit(1)
    assert not labels.is_deposit(10)


@pytest.mark.parametrize("reply", ["", "DPX", "deposit"])
def test_malformed_sign_reply_raises(reply: str) -> None:
    with pytest.raises(ClassificationError):
        parse_sign_reply(reply)


def test_category_reply_strips_numbering_and_matches_case_insensitively() -> None:
    reply = "1. food & dining\n2. Groceries\n3. Pet Supplies\n"
    assert parse_category_reply(reply, 4, CATEGORIES) == [
        "Food & Dining",
        "Groceries",
        "Uncategorized",
        "Uncategorized",
    ]
    assert parse_category_reply("nope", 1, ["Travel", "Income"]) == ["Travel"]


def test_statement_reply_tolerates_fences_and_chatter() -> None:
    fenced = '```json\n{"institution": "Chase", "transactions": []}\n```'
    assert parse_statement_reply(fenced).institution == "Chase"
    chatty = 'Here you go: {"institution": "Citi", "accountLast4": "12345", "transactions": []} Thanks'
    stmt = parse_statement_reply(chatty)
    assert (stmt.institution, stmt.account_last4) == ("Citi", "2345")


@pytest.mark.parametrize("reply", ["not json", "[1, 2]", '{"transactions": "x"'])
def test_statement_reply_rejects_non_objects(reply: str) -> None:
    with pytest.raises(ClassificationError):
        parse_statement_reply(reply)


def test_statement_prompt_truncates_text() -> None:
    prompt = build_statement_prompt("A" * (MAX_STATEMENT_CHARS + 500))
    assert "A" * MAX_STATEMENT_CHARS in prompt
    assert "A" * (MAX_STATEMENT_CHARS + 1) not in prompt


# ---- LlmStatementAI --------------------------------------------------------------


def test_provider_is_chosen_by_key_prefix() -> None:
    assert detect_provider("sk-ant-abc") == "anthropic"
    assert detect_provider("sk-proj-abc") == "openai"
    assert LlmStatementAI("sk-ant-abc", client=object()).model.startswith("claude")
    assert LlmStatementAI("sk-abc", client=object()).model == "gpt-4o-mini"


def test_missing_key_raises() -> None:
    with pytest.raises(ClassificationError):
        LlmStatementAI("  ")


def test_implements_protocol() -> None:
    assert isinstance(LlmStatementAI("sk-abc", client=object()), StatementAI)


def test_classify_batches_of_25_and_relabels_signs() -> None:
    client = FakeOpenAI(["D" + "P" * 24, "PD"])
    ai = LlmStatementAI("sk-abc", client=client)
    txs = _txs(27)
    txs[3] = Transaction(id=3, date="01/01/2024", description="ZERO", amount=Decimal("0"))
    progress: list[str] = []

    out = ai.classify_deposits_vs_payments(txs, progress.append)

    assert len(client.calls) == 2
    assert client.calls[0]["temperature"] == 0
    assert out[0].amount == Decimal("10.00")
    assert out[1].amount == Decimal("-10.00")
    assert out[3].amount == Decimal("0")
    assert [t.amount for t in out[25:]] == [Decimal("-10.00"), Decimal("10.00")]
    assert progress == ["Analyzing transactions 1-25 of 27...", "Analyzing transactions 26-27 of 27..."]


def test_categorize_with_anthropic_client() -> None:
    client = FakeAnthropic(["1. Groceries\n2. income\n"])
    ai = LlmStatementAI("sk-ant-abc", client=client)

    out = ai.categorize_with_model(_txs(3), CATEGORIES)

    assert [t.category for t in out] == ["Groceries", "Income", "Uncategorized"]
    assert "Food & Dining, Groceries" in client.calls[0]["messages"][0]["content"]


def test_extract_from_raw_text_returns_validated_statement() -> None:
    client = FakeOpenAI(['{"institution":"TD Bank","accountLast4":"1742","transactions":[{"date":"2025-12-01","description":"AMAZON","amount":-15.54}]}'])
    stmt = LlmStatementAI("sk-abc", client=client).extract_from_raw_text("statement text")
    assert stmt.transactions[0].amount == Decimal("-15.54")
    assert LlmStatementAI("sk-abc", client=FakeOpenAI([])).extract_from_raw_text("  ").transactions == []


def test_retries_on_rate_limit_then_succeeds() -> None:
    client = FakeOpenAI([StatusError(429), StatusError(503), "D"])
    out = LlmStatementAI("sk-abc", client=client).classify_deposits_vs_payments(_txs(1))
    assert out[0].amount == Decimal("10.00")
    assert len(client.calls) == 3


def test_gives_up_after_three_attempts() -> None:
    client = FakeOpenAI([StatusError(500), StatusError(500), StatusError(500), "D"])
    with pytest.raises(ClassificationError):
        LlmStatementAI("sk-abc", client=client).classify_deposits_vs_payments(_txs(1))
    assert len(client.calls) == 3


def test_client_errors_are_not_retried() -> None:
    client = FakeOpenAI([StatusError(401), "D"])
    with pytest.raises(ClassificationError):
        LlmStatementAI("sk-abc", client=client).classify_deposits_vs_payments(_txs(1))
    assert len(client.calls) == 1


def test_build_statement_ai_respects_settings() -> None:
    assert build_statement_ai(Settings()) is None
    with pytest.raises(ClassificationError):
        build_statement_ai(Settings(ai_enabled=True))
    ai = build_statement_ai(Settings(ai_enabled=True, ai_api_key="sk-ant-x", ai_model="m"))
    assert isinstance(ai, LlmStatementAI)
    assert (ai.provider, ai.model) == ("anthropic", "m")
