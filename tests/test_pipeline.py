from __future__ import annotations

from decimal import Decimal

import pytest

from finlens.config import Settings
from finlens.errors import DuplicateFileError
from finlens.ingest.pdf_statement import NO_TRANSACTIONS_REASON
from finlens.models import Rule, StatementFile
from finlens.pipeline import ingest, reread_files
from finlens.store import ProfileState
from tests.helpers.ai_stub import FakeStatementAI
from tests.helpers.pdf_bytes import blank_pdf

STARBUCKS_CSV = StatementFile(
    name="activity.csv",
    content=b"Date,Description,Amount,Type,Balance\n"
    b"01/05/2024,STARBUCKS STORE #123,-5.75,DEBIT,1000.00\n",
)


def _generic(name: str, *rows: str) -> StatementFile:
    body = "Date,Memo,Amt\n" + "".join(f"{r}\n" for r in rows)
    return StatementFile(name=name, content=body.encode())


def test_single_chase_row_end_to_end() -> None:
    result = ingest([STARBUCKS_CSV])

    assert len(result.transactions) == 1
    tx = result.transactions[0]
    assert "starbucks" in tx.description.lower()
    assert tx.amount == Decimal("-5.75")
    assert tx.category == "Food & Dining"
    assert tx.id == 0
    assert result.report.ok
    assert result.report.parsed_files == ["activity.csv"]
    assert result.state.files["activity.csv"] == STARBUCKS_CSV.content


def test_statement_wide_flip_applies_per_file() -> None:
    card = _generic("card.csv", "01/02/2024,STARBUCKS,5.00", "01/03/2024,SHELL OIL,40.00", "01/04/2024,KROGER,60.00")
    bank = _generic("bank.csv", "01/02/2024,ACME PAYROLL,2000.00", "01/03/2024,KROGER,-30.00")

    result = ingest([card, bank])

    assert [t.amount for t in result.transactions] == [
        Decimal("-5.00"),
        Decimal("-40.00"),
        Decimal("-60.00"),
        Decimal("2000.00"),
        Decimal("-30.00"),
    ]
    assert [t.id for t in result.transactions] == [0, 1, 2, 3, 4]


def test_add_mode_continues_ids_and_keeps_existing_rows() -> None:
    first = ingest([_generic("a.csv", "01/02/2024,STARBUCKS,-5.00", "01/03/2024,KROGER,-60.00")])
    second = ingest([_generic("b.csv", "02/01/2024,ACME PAYROLL,1500.00")], first.state, mode="add")

    assert [(t.id, t.source) for t in second.transactions] == [(0, "a.csv"), (1, "a.csv"), (2, "b.csv")]
    assert second.state.file_names == ["a.csv", "b.csv"]
    assert len(first.transactions) == 2


def test_replace_mode_keeps_rules_and_drops_old_files() -> None:
    state = ProfileState().with_rules([Rule(id="r", text="netflix", category="Entertainment")])
    first = ingest([_generic("a.csv", "01/02/2024,STARBUCKS,-5.00")], state)
    bofa = StatementFile(
        name="bofa.csv",
        content=b"Posted Date,Reference Number,Payee,Address,Amount\n01/15/2024,1,NETFLIX.COM,CA,-15.49\n",
    )
    second = ingest([bofa], first.state, mode="replace")

    assert second.state.file_names == ["bofa.csv"]
    assert [(t.id, t.category) for t in second.transactions] == [(0, "Entertainment")]
    assert len(second.state.rules) == 1


def test_duplicate_overwrite_replaces_rows() -> None:
    first = ingest([_generic("a.csv", "01/02/2024,STARBUCKS,-5.00"), _generic("b.csv", "01/03/2024,KROGER,-9.00")])
    again = ingest(
        [_generic("a.csv", "03/01/2024,SHELL OIL,-40.00")], first.state, mode="add", duplicates="overwrite"
    )
    assert [(t.id, t.description) for t in again.transactions] == [(0, "KROGER"), (1, "SHELL OIL")]
    assert b"SHELL OIL" in again.state.files["a.csv"]


def test_duplicate_skip_drops_old_and_ignores_new() -> None:
    first = ingest([_generic("a.csv", "01/02/2024,STARBUCKS,-5.00"), _generic("b.csv", "01/03/2024,KROGER,-9.00")])
    again = ingest(
        [_generic("a.csv", "03/01/2024,SHELL OIL,-40.00")], first.state, mode="add", duplicates="skip"
    )
    assert [t.description for t in again.transactions] == ["KROGER"]
    assert again.state.file_names == ["b.csv"]


def test_duplicate_reject_raises_before_parsing() -> None:
    first = ingest([_generic("a.csv", "01/02/2024,STARBUCKS,-5.00")])
    with pytest.raises(DuplicateFileError) as ei:
        ingest([_generic("a.csv", "bad")], first.state, mode="add", duplicates="reject")
    assert ei.value.file_names == ["a.csv"]


def test_parse_errors_are_collected_without_aborting() -> None:
    result = ingest(
        [
            StatementFile(name="empty.csv", content=b""),
            _generic("good.csv", "01/02/2024,STARBUCKS,-5.00"),
            StatementFile(name="blank.csv", content=b"Date,Memo,Amt\n01/02/2024,,1.00\n"),
        ],
        settings=Settings(max_workers=2),
    )

    assert [t.source for t in result.transactions] == ["good.csv"]
    assert [e.file_name for e in result.report.errors] == ["empty.csv", "blank.csv"]
    assert not result.report.ok
    assert "empty.csv: No data found in CSV file." in result.report.combined_message()
    assert result.state.file_names == ["good.csv"]


def test_text_less_pdf_is_reported_alongside_good_csv() -> None:
    result = ingest(
        [
            StatementFile(name="scan.pdf", content=blank_pdf()),
            _generic("good.csv", "01/02/2024,STARBUCKS,-5.00"),
        ]
    )

    assert [t.source for t in result.transactions] == ["good.csv"]
    assert [(e.file_name, e.reason) for e in result.report.errors] == [
        ("scan.pdf", NO_TRANSACTIONS_REASON)
    ]
    assert result.state.file_names == ["good.csv"]


def test_ai_capability_relabels_and_categorizes() -> None:
    ai = FakeStatementAI(deposits=["payroll"], categories={"starbucks": "Travel"})
    result = ingest(
        [_generic("a.csv", "01/02/2024,STARBUCKS,5.00", "01/03/2024,ACME PAYROLL,-100.00", "01/04/2024,KROGER,9.00")],
        ai=ai,
        use_ai_signs=True,
        use_ai_categories=True,
    )

    assert [(t.amount, t.category) for t in result.transactions] == [
        (Decimal("-5.00"), "Travel"),
        (Decimal("100.00"), "Income"),
        (Decimal("-9.00"), "Groceries"),
    ]
    assert ai.calls == ["classify_deposits_vs_payments", "categorize_with_model"]
    assert result.report.warnings == []


def test_ai_failures_fall_back_with_warnings() -> None:
    ai = FakeStatementAI(fail=["classify_deposits_vs_payments", "categorize_with_model"])
    result = ingest([STARBUCKS_CSV], ai=ai, use_ai_signs=True, use_ai_categories=True)

    assert result.transactions[0].amount == Decimal("-5.75")
    assert result.transactions[0].category == "Food & Dining"
    assert len(result.report.warnings) == 2
    assert result.report.ok


def test_ai_is_not_used_unless_enabled_per_stage() -> None:
    ai = FakeStatementAI()
    ingest([STARBUCKS_CSV], ai=ai)
    assert ai.calls == []


def test_progress_messages() -> None:
    seen: list[str] = []
    ingest([STARBUCKS_CSV], on_progress=seen.append)
    assert seen == ["Processing activity.csv"]


def test_reread_files_restores_derived_rows() -> None:
    first = ingest([STARBUCKS_CSV, _generic("b.csv", "01/03/2024,KROGER,-9.00")])
    edited = first.state.set_category(0, "Travel").remove_transaction(1)

    again = reread_files(edited)

    assert [(t.id, t.category) for t in again.transactions] == [(0, "Food & Dining"), (1, "Groceries")]


@pytest.mark.parametrize("kwargs", [{"mode": "merge"}, {"duplicates": "ask"}])
def test_invalid_options_raise(kwargs: dict[str, str]) -> None:
    with pytest.raises(ValueError):
        ingest([STARBUCKS_CSV], **kwargs)
