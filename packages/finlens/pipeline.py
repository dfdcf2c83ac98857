"""Ingestion pipeline: uploaded files + current profile state -> new state.

Public API:
    - :func:`ingest`
    - :func:`reread_files`

Per batch the pipeline

1. resolves duplicate file names (``add`` mode only),
2. parses every file concurrently with :func:`finlens.pmap.p_map`, collecting
   per-file :class:`~finlens.errors.ParseError` into the report,
3. corrects signs per statement (or asks the AI capability to relabel them),
4. assigns ids continuing from the current maximum,
5. categorizes (AI first when enabled, keyword rules for everything left),
6. merges with the existing rows and re-runs the user rule overlay.

The input state is never mutated; a new :class:`~finlens.store.ProfileState`
is returned together with an :class:`~finlens.errors.IngestionReport`. AI
failures are never fatal: they fall back to the deterministic path and add a
warning to the report.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Literal

from .ai.protocol import ProgressCallback, StatementAI
from .categorizer import categorize_all
from .config import Settings
from .errors import ClassificationError, DuplicateFileError, IngestionReport, ParseError
from .ingest import parse_statement
from .logging_setup import get_logger
from .models import ParsedStatement, StatementFile, Transaction
from .pmap import p_map
from .rules import apply_user_rules
from .sign_convention import correct_statement
from .store import ProfileState

type IngestMode = Literal["replace", "add"]
type DuplicateStrategy = Literal["overwrite", "skip", "reject"]

_MODES: frozenset[str] = frozenset({"replace", "add"})
_DUPLICATE_STRATEGIES: frozenset[str] = frozenset({"overwrite", "skip", "reject"})

_logger = get_logger("finlens.pipeline")


@dataclass(frozen=True, slots=True)
class IngestionResult:
    state: ProfileState
    report: IngestionReport

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self.state.transactions


@dataclass(frozen=True, slots=True)
class _Parsed:
    file: StatementFile
    statement: ParsedStatement


@dataclass(frozen=True, slots=True)
class _Failed:
    file: StatementFile
    error: ParseError


type _FileOutcome = _Parsed | _Failed


def _notify(on_progress: ProgressCallback | None, message: str) -> None:
    if on_progress is not None:
        on_progress(message)


def _resolve_duplicates(
    state: ProfileState,
    files: Sequence[StatementFile],
    strategy: DuplicateStrategy,
) -> tuple[ProfileState, list[StatementFile]]:
    """Apply the duplicate-file strategy for ``add`` mode.

    ``overwrite`` drops the existing file's rows and ingests the new copy;
    ``skip`` drops the existing file's rows and does not ingest the new copy;
    ``reject`` raises :class:`DuplicateFileError` before anything is parsed.
    """

    dupes = [f.name for f in files if f.name in state.files]
    if not dupes:
        return state, list(files)
    if strategy == "reject":
        raise DuplicateFileError(dupes)
    for name in dupes:
        state = state.remove_file(name)
    _logger.info("ingest:duplicates strategy=%s files=%s", strategy, ",".join(dupes))
    if strategy == "skip":
        return state, [f for f in files if f.name not in dupes]
    return state, list(files)


def _parse_all(
    files: Sequence[StatementFile],
    *,
    ai: StatementAI | None,
    settings: Settings,
    on_progress: ProgressCallback | None,
) -> list[_FileOutcome]:
    def _one(file: StatementFile) -> _FileOutcome:
        _notify(on_progress, f"Processing {file.name}")
        try:
            statement = parse_statement(file, ai=ai, y_tolerance=settings.pdf_y_tolerance)
        except ParseError as exc:
            _logger.warning("ingest:file_failed file=%s reason=%s", file.name, exc.reason)
            return _Failed(file=file, error=exc)
        _logger.info(
            "ingest:file_parsed file=%s kind=%s rows=%d",
            file.name,
            statement.kind,
            len(statement.transactions),
        )
        return _Parsed(file=file, statement=statement)

    return p_map(files, _one, concurrency=settings.max_workers)


def _signed_rows(
    statements: Sequence[ParsedStatement],
    *,
    ai: StatementAI | None,
    use_ai_signs: bool,
    report: IngestionReport,
    on_progress: ProgressCallback | None,
) -> list[Transaction]:
    if ai is not None and use_ai_signs:
        raw = [t for s in statements for t in s.transactions]
        try:
            _notify(on_progress, "AI: classifying deposits and payments...")
            return list(ai.classify_deposits_vs_payments(raw, on_progress))
        except ClassificationError as exc:
            _logger.warning("ingest:ai_signs_failed error=%s", exc)
            report.warnings.append(f"AI sign classification failed, used rules instead: {exc}")
    return [t for s in statements for t in correct_statement(s).transactions]


def _categorized(
    rows: list[Transaction],
    *,
    ai: StatementAI | None,
    use_ai_categories: bool,
    categories: Sequence[str],
    report: IngestionReport,
    on_progress: ProgressCallback | None,
) -> list[Transaction]:
    if rows and ai is not None and use_ai_categories:
        try:
            _notify(on_progress, "AI: categorizing transactions...")
            rows = list(ai.categorize_with_model(rows, categories, on_progress))
        except ClassificationError as exc:
            _logger.warning("ingest:ai_categories_failed error=%s", exc)
            report.warnings.append(f"AI categorization failed, used keyword rules instead: {exc}")
    return categorize_all(rows)


def ingest(
    files: Sequence[StatementFile],
    state: ProfileState | None = None,
    *,
    mode: IngestMode = "replace",
    duplicates: DuplicateStrategy = "overwrite",
    ai: StatementAI | None = None,
    use_ai_signs: bool = False,
    use_ai_categories: bool = False,
    use_ai_pdf: bool = False,
    settings: Settings | None = None,
    on_progress: ProgressCallback | None = None,
) -> IngestionResult:
    """Ingest a batch of statement files into ``state``.

    Parameters
    ----------
    files:
        Uploaded files in upload order.
    state:
        Current profile state; a fresh one is used when omitted.
    mode:
        ``"replace"`` swaps out all transactions and files (rules, custom
        categories and folders are kept); ``"add"`` merges with what is there.
    duplicates:
        Strategy for file names already present in ``add`` mode; see
        :func:`_resolve_duplicates`.
    ai, use_ai_signs, use_ai_categories, use_ai_pdf:
        Optional AI capability and which stages may use it.
    settings:
        Worker count and PDF tolerance; defaults to :class:`Settings` defaults.
    on_progress:
        Side-channel progress messages. May be called from worker threads.

    Raises
    ------
    DuplicateFileError
        Only with ``duplicates="reject"`` when a file name is already present.
    ValueError
        For an unknown ``mode`` or ``duplicates`` value.
    """

    if mode not in _MODES:
        raise ValueError(f"unknown mode: {mode!r}")
    if duplicates not in _DUPLICATE_STRATEGIES:
        raise ValueError(f"unknown duplicate strategy: {duplicates!r}")
    settings = settings or Settings()
    current = state if state is not None else ProfileState()
    report = IngestionReport()

    if mode == "add":
        base, to_parse = _resolve_duplicates(current, files, duplicates)
    else:
        base = current.model_copy(update={"transactions": (), "files": {}})
        to_parse = list(files)

    _logger.info("ingest:batch_start files=%d mode=%s", len(to_parse), mode)
    outcomes = _parse_all(
        to_parse, ai=ai if use_ai_pdf else None, settings=settings, on_progress=on_progress
    )

    statements: list[ParsedStatement] = []
    parsed_files: dict[str, bytes] = {}
    for outcome in outcomes:
        if isinstance(outcome, _Failed):
            report.errors.append(outcome.error)
            continue
        statements.append(outcome.statement)
        parsed_files[outcome.file.name] = outcome.file.content
        report.parsed_files.append(outcome.file.name)
        report.warnings.extend(f"{outcome.file.name}: {w}" for w in outcome.statement.warnings)

    rows = _signed_rows(
        statements, ai=ai, use_ai_signs=use_ai_signs, report=report, on_progress=on_progress
    )
    start = base.max_id() + 1
    rows = [replace(t, id=start + i) for i, t in enumerate(rows)]
    rows = _categorized(
        rows,
        ai=ai,
        use_ai_categories=use_ai_categories,
        categories=base.category_names,
        report=report,
        on_progress=on_progress,
    )

    merged = apply_user_rules([*base.transactions, *rows], base.rules)
    files_after = {**base.files, **parsed_files}
    folders_after = {k: v for k, v in base.file_folders.items() if k in files_after}
    new_state = base.model_copy(
        update={
            "transactions": tuple(merged),
            "files": files_after,
            "file_folders": folders_after,
        }
    )
    _logger.info(
        "ingest:batch_done added=%d total=%d errors=%d warnings=%d",
        len(rows),
        len(new_state.transactions),
        len(report.errors),
        len(report.warnings),
    )
    return IngestionResult(state=new_state, report=report)


def reread_files(
    state: ProfileState,
    *,
    ai: StatementAI | None = None,
    use_ai_signs: bool = False,
    use_ai_categories: bool = False,
    use_ai_pdf: bool = False,
    settings: Settings | None = None,
    on_progress: ProgressCallback | None = None,
) -> IngestionResult:
    """Re-derive every transaction from the raw bytes stored in ``state``.

    Manual category and subcategory edits are lost; rules are re-applied.
    """

    files = [StatementFile(name=n, content=c) for n, c in state.files.items()]
    return ingest(
        files,
        state,
        mode="replace",
        ai=ai,
        use_ai_signs=use_ai_signs,
        use_ai_categories=use_ai_categories,
        use_ai_pdf=use_ai_pdf,
        settings=settings,
        on_progress=on_progress,
    )


__all__ = [
    "DuplicateStrategy",
    "IngestMode",
    "IngestionResult",
    "ingest",
    "reread_files",
]
