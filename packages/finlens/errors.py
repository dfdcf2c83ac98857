"""Exception taxonomy and the per-batch error report.

Only file-level and capability-level failures are exceptions. Rows missing a
date or description are dropped silently by the parsers; "no category
matched" is the ``"Uncategorized"`` value, never an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field


class FinlensError(Exception):
    """Base class for all errors raised by ``finlens``."""


class ParseError(FinlensError):
    """A statement file produced no usable transactions.

    ``str(err)`` renders as ``"<file_name>: <reason>"`` so a batch of failures
    can be joined line by line.
    """

    def __init__(self, file_name: str, reason: str) -> None:
        super().__init__(f"{file_name}: {reason}")
        self.file_name = file_name
        self.reason = reason


class ClassificationError(FinlensError):
    """The external AI capability failed or returned something unusable."""


class DuplicateFileError(FinlensError):
    """Raised by the ``reject`` duplicate strategy before parsing starts."""

    def __init__(self, file_names: list[str]) -> None:
        super().__init__("Already uploaded: " + ", ".join(file_names))
        self.file_names = list(file_names)


@dataclass(slots=True)
class IngestionReport:
    """Errors and warnings collected while ingesting one batch of files.

    ``errors`` are files that failed to parse; ``warnings`` are non-fatal
    notices such as an AI fallback.
    """

    errors: list[ParseError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    parsed_files: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def combined_message(self) -> str:
        lines = [str(e) for e in self.errors]
        lines.extend(self.warnings)
        return "\n".join(lines)


__all__ = [
    "ClassificationError",
    "DuplicateFileError",
    "FinlensError",
    "IngestionReport",
    "ParseError",
]
