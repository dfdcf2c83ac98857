"""Public interface for the ``finlens`` package.

This module exposes the ingestion pipeline, the categorizer, the profile
state and the public models as the stable import surface. There is no
runtime logic here, only symbol re-exports.
"""

from .categorizer import categorize, categorize_all
from .config import Settings
from .errors import (
    ClassificationError,
    DuplicateFileError,
    FinlensError,
    IngestionReport,
    ParseError,
)
from .export import export_csv
from .ingest import parse_statement
from .models import (
    CategoryDefinition,
    ParsedStatement,
    Rule,
    StatementFile,
    Transaction,
    Transactions,
)
from .pipeline import IngestionResult, ingest, reread_files
from .reports import filter_transactions, summarize
from .rules import apply_user_rules
from .store import ProfileState

__all__ = [
    # Pipeline
    "ingest",
    "reread_files",
    "parse_statement",
    "categorize",
    "categorize_all",
    "apply_user_rules",
    "summarize",
    "filter_transactions",
    "export_csv",
    # State / config
    "ProfileState",
    "Settings",
    "IngestionResult",
    # Models / types
    "Transaction",
    "Transactions",
    "Rule",
    "CategoryDefinition",
    "StatementFile",
    "ParsedStatement",
    # Errors
    "FinlensError",
    "ParseError",
    "ClassificationError",
    "DuplicateFileError",
    "IngestionReport",
]
