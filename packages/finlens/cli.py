"""CLI for the ``finlens`` package.

This module exposes callable command handlers (``cmd_ingest``,
``cmd_categorize``) and a Typer-based console interface. Environment
variables are loaded from a local ``.env`` using ``python-dotenv`` before
settings are resolved. Business logic lives in :mod:`finlens.pipeline` and
related modules; handlers only read files, print, and return exit codes.
"""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError
from rich.console import Console

from .ai import build_statement_ai
from .categorizer import categorize
from .config import Settings
from .errors import DuplicateFileError, FinlensError
from .export import write_csv
from .ingest.amounts import to_decimal
from .logging_setup import configure_logging, get_logger
from .models import Rule, StatementFile
from .pipeline import DuplicateStrategy, ingest
from .reports import filter_transactions, render_report, summarize
from .rules import new_rule
from .store import ProfileState

_logger = get_logger("finlens.cli")

console = Console()
err_console = Console(stderr=True)


# ---- Small module-level helpers used by CLI commands -------------------------


class _RuleIn(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    text: str
    category: str
    id: str | None = None


_RULES_ADAPTER = TypeAdapter(list[_RuleIn])


def load_rules(path: Path) -> list[Rule]:
    """Read a JSON array of ``{"text": ..., "category": ...}`` objects.

    Raises
    ------
    FinlensError
        When the file cannot be read or does not match the expected shape.
    """

    try:
        raw = path.read_text(encoding="utf-8")
        items = _RULES_ADAPTER.validate_python(json.loads(raw))
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        raise FinlensError(f"Could not load rules from {path}: {exc}") from exc
    rules: list[Rule] = []
    for item in items:
        rule = new_rule(item.text, item.category)
        rules.append(replace(rule, id=item.id) if item.id else rule)
    return rules


def load_state(path: Path | None) -> ProfileState:
    if path is None or not path.exists():
        return ProfileState()
    try:
        return ProfileState.from_json(path.read_bytes())
    except (OSError, ValidationError) as exc:
        raise FinlensError(f"Could not load state from {path}: {exc}") from exc


def _read_files(paths: list[Path]) -> tuple[list[StatementFile], list[str]]:
    files: list[StatementFile] = []
    problems: list[str] = []
    for p in paths:
        try:
            files.append(StatementFile(name=p.name, content=p.read_bytes()))
        except OSError as exc:
            problems.append(f"{p.name}: Could not read file ({exc.strerror or exc}).")
    return files, problems


# ---- Command handlers ----------------------------------------------------------


def cmd_ingest(
    paths: list[Path],
    *,
    rules_path: Path | None = None,
    state_path: Path | None = None,
    add: bool = False,
    duplicates: DuplicateStrategy = "overwrite",
    use_ai: bool = False,
    export_path: Path | None = None,
    year: int | None = None,
    category: str | None = None,
    settings: Settings | None = None,
) -> int:
    """CLI handler for ``ingest FILES...``.

    Parses the files into the profile state (loaded from and written back to
    ``state_path`` when given), prints the report tables for the optionally
    filtered set, then prints aggregated per-file errors and warnings.

    Returns
    -------
    int
        ``1`` when every file failed, setup failed, or an output file could not
        be written; otherwise ``0``.
    """

    settings = settings or Settings.from_env()
    if use_ai:
        settings = replace(settings, ai_enabled=True)

    try:
        state = load_state(state_path)
        if rules_path is not None:
            state = state.with_rules(load_rules(rules_path))
        ai = build_statement_ai(settings)
    except FinlensError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        return 1

    files, problems = _read_files(paths)
    if not files:
        for line in problems:
            err_console.print(f"[red]Error:[/red] {line}")
        return 1

    try:
        result = ingest(
            files,
            state,
            mode="add" if add else "replace",
            duplicates=duplicates,
            ai=ai,
            use_ai_signs=ai is not None,
            use_ai_categories=ai is not None,
            use_ai_pdf=ai is not None,
            settings=settings,
            on_progress=lambda msg: _logger.debug("cli:progress %s", msg),
        )
    except DuplicateFileError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        return 1

    view = filter_transactions(result.transactions, year=year, category=category)
    render_report(summarize(view), console)

    try:
        if export_path is not None:
            write_csv(export_path, view)
            console.print(f"Exported {len(view)} transactions to {export_path}")
        if state_path is not None:
            state_path.write_text(result.state.to_json(indent=2), encoding="utf-8")
    except OSError as exc:
        reason = exc.strerror or exc
        err_console.print(f"[red]Error:[/red] Could not write {exc.filename}: {reason}")
        return 1

    message = "\n".join([*problems, result.report.combined_message()]).strip()
    if message:
        err_console.print("[yellow]Some files had problems:[/yellow]")
        err_console.print(message, markup=False, highlight=False)

    # Files skipped by the duplicate strategy never reach the parser.
    attempted = len(files) + len(problems)
    failed = len(problems) + len(result.report.errors)
    if attempted and failed == attempted:
        return 1
    return 0


def cmd_categorize(description: str, *, amount: str | None = None) -> int:
    """CLI handler for ``categorize DESCRIPTION``; prints the category name."""

    value = None
    if amount is not None:
        try:
            value = to_decimal(amount)
        except ValueError:
            err_console.print(f"[red]Error:[/red] invalid amount: {amount!r}")
            return 1
    typer.echo(categorize(description, value))
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Ingest bank and card statements (CSV or PDF), categorize the "
        "transactions, and print a summary. Loads settings from a local .env."
    ),
)


@app.callback()
def _root() -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(Settings.from_env().log_level)


@app.command("ingest")
def ingest_cmd(
    files: Annotated[list[Path], typer.Argument(help="Statement files (.csv or .pdf).")],
    rules: Annotated[
        Path | None, typer.Option("--rules", help="JSON file with user category rules.")
    ] = None,
    state: Annotated[
        Path | None,
        typer.Option("--state", help="Profile state JSON; read if present, written after."),
    ] = None,
    add: Annotated[
        bool, typer.Option("--add", help="Merge with the saved state instead of replacing it.")
    ] = False,
    duplicates: Annotated[
        str,
        typer.Option("--duplicates", help="With --add: overwrite, skip or reject duplicates."),
    ] = "overwrite",
    ai: Annotated[bool, typer.Option("--ai", help="Use the AI capability when configured.")] = False,
    export: Annotated[
        Path | None, typer.Option("--export", help="Write the (filtered) rows to a CSV file.")
    ] = None,
    year: Annotated[int | None, typer.Option("--year", help="Only report this year.")] = None,
    category: Annotated[
        str | None, typer.Option("--category", help="Only report this category.")
    ] = None,
) -> None:
    """Parse statements and print a summary report."""

    if duplicates not in ("overwrite", "skip", "reject"):
        err_console.print(f"[red]Error:[/red] unknown --duplicates value: {duplicates}")
        raise typer.Exit(1)
    code = cmd_ingest(
        files,
        rules_path=rules,
        state_path=state,
        add=add,
        duplicates=duplicates,  # type: ignore[arg-type]
        use_ai=ai,
        export_path=export,
        year=year,
        category=category,
    )
    if code:
        raise typer.Exit(code)


@app.command("categorize")
def categorize_cmd(
    description: Annotated[str, typer.Argument(help="Transaction description.")],
    amount: Annotated[
        str | None, typer.Option("--amount", help="Signed amount, e.g. -12.50.")
    ] = None,
) -> None:
    """Print the keyword category for one description."""

    code = cmd_categorize(description, amount=amount)
    if code:
        raise typer.Exit(code)


if __name__ == "__main__":  # pragma: no cover
    app()
