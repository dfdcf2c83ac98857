from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from finlens.cli import app, cmd_categorize, load_rules
from finlens.store import ProfileState

runner = CliRunner()

CHASE = "Date,Description,Amount,Type,Balance\n01/05/2024,STARBUCKS STORE #123,-5.75,DEBIT,1000.00\n"
BOFA = (
    "Posted Date,Reference Number,Payee,Address,Amount\n"
    "02/15/2024,1,NETFLIX.COM,CA,-15.49\n"
    "03/01/2023,2,ACME PAYROLL,,2000.00\n"
)


def _write(tmp_path: Path, name: str, text: str) -> Path:
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    return p


def test_ingest_prints_report(tmp_path: Path) -> None:
    f = _write(tmp_path, "activity.csv", CHASE)
    result = runner.invoke(app, ["ingest", str(f)])

    assert result.exit_code == 0, result.output
    assert "Food & Dining" in result.output
    assert "-$5.75" in result.output


def test_ingest_exports_filtered_rows_and_saves_state(tmp_path: Path) -> None:
    chase = _write(tmp_path, "activity.csv", CHASE)
    bofa = _write(tmp_path, "bofa.csv", BOFA)
    rules = _write(tmp_path, "rules.json", json.dumps([{"text": "netflix", "category": "Entertainment"}]))
    out = tmp_path / "out.csv"
    state_path = tmp_path / "state.json"

    result = runner.invoke(
        app,
        [
            "ingest", str(chase), str(bofa),
            "--rules", str(rules),
            "--state", str(state_path),
            "--export", str(out),
            "--year", "2024",
        ],
    )  # fmt: skip

    assert result.exit_code == 0, result.output
    lines = out.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "Date,Description,Amount,Category"
    assert "02/15/2024,NETFLIX.COM,-15.49,Entertainment" in lines
    assert len(lines) == 3

    state = ProfileState.from_json(state_path.read_bytes())
    assert state.file_names == ["activity.csv", "bofa.csv"]
    assert len(state.transactions) == 3
    assert state.rules[0].category == "Entertainment"


def test_ingest_add_mode_reuses_saved_state(tmp_path: Path) -> None:
    state_path = tmp_path / "state.json"
    chase = _write(tmp_path, "activity.csv", CHASE)
    bofa = _write(tmp_path, "bofa.csv", BOFA)

    assert runner.invoke(app, ["ingest", str(chase), "--state", str(state_path)]).exit_code == 0
    result = runner.invoke(app, ["ingest", str(bofa), "--state", str(state_path), "--add"])
    assert result.exit_code == 0, result.output
    assert len(ProfileState.from_json(state_path.read_bytes()).transactions) == 3

    rejected = runner.invoke(
        app, ["ingest", str(bofa), "--state", str(state_path), "--add", "--duplicates", "reject"]
    )
    assert rejected.exit_code == 1
    assert "Already uploaded: bofa.csv" in rejected.output


def test_partial_failure_reports_errors_but_succeeds(tmp_path: Path) -> None:
    good = _write(tmp_path, "activity.csv", CHASE)
    bad = _write(tmp_path, "empty.csv", "")
    result = runner.invoke(app, ["ingest", str(good), str(bad)])

    assert result.exit_code == 0
    assert "empty.csv: No data found in CSV file." in result.output


def test_exit_code_one_when_every_file_fails(tmp_path: Path) -> None:
    bad = _write(tmp_path, "empty.csv", "")
    missing = tmp_path / "missing.csv"
    result = runner.invoke(app, ["ingest", str(bad), str(missing)])

    assert result.exit_code == 1
    assert "missing.csv" in result.output


def test_unwritable_export_path_fails_cleanly(tmp_path: Path) -> None:
    f = _write(tmp_path, "activity.csv", CHASE)
    result = runner.invoke(app, ["ingest", str(f), "--export", str(tmp_path)])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Could not write" in result.output


def test_unwritable_state_path_fails_cleanly(tmp_path: Path) -> None:
    f = _write(tmp_path, "activity.csv", CHASE)
    state_path = tmp_path / "no-such-dir" / "state.json"
    result = runner.invoke(app, ["ingest", str(f), "--state", str(state_path)])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Could not write" in result.output
    assert not state_path.exists()


def test_ai_flag_without_key_fails_cleanly(tmp_path: Path) -> None:
    f = _write(tmp_path, "activity.csv", CHASE)
    result = runner.invoke(app, ["ingest", str(f), "--ai"])
    assert result.exit_code == 1
    assert "API key is required" in result.output


def test_unknown_duplicate_strategy(tmp_path: Path) -> None:
    f = _write(tmp_path, "activity.csv", CHASE)
    result = runner.invoke(app, ["ingest", str(f), "--duplicates", "ask"])
    assert result.exit_code == 1


def test_categorize_command() -> None:
    result = runner.invoke(app, ["categorize", "STARBUCKS STORE #123", "--amount=-5.75"])
    assert result.exit_code == 0
    assert result.output.strip() == "Food & Dining"

    bad = runner.invoke(app, ["categorize", "STARBUCKS", "--amount", "abc"])
    assert bad.exit_code == 1


def test_cmd_categorize_returns_exit_code(capsys) -> None:
    assert cmd_categorize("NETFLIX.COM") == 0
    assert capsys.readouterr().out.strip() == "Entertainment"


def test_load_rules_rejects_bad_shape(tmp_path: Path) -> None:
    good = _write(tmp_path, "ok.json", '[{"text": " kroger ", "category": "Shopping", "id": "r1"}]')
    rules = load_rules(good)
    assert [(r.id, r.text, r.category) for r in rules] == [("r1", "kroger", "Shopping")]

    bad = _write(tmp_path, "bad.json", '{"text": "x"}')
    result = runner.invoke(app, ["ingest", str(good), "--rules", str(bad)])
    assert result.exit_code == 1
    assert "Could not load rules" in result.output
