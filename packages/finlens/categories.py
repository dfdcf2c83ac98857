"""Category taxonomy, colors, and custom-category helpers.

Exports
-------
- ``CATEGORIES`` / ``CATEGORY_COLORS``: the fixed, ordered built-in taxonomy
  and its display colors.
- ``EXPENSE_CATEGORIES``: built-ins that represent money going out; used by
  the statement-wide sign heuristic.
- ``normalize_name(...)`` and ``validate_name(...)``: shared name checks.
- ``add_custom_category(...)``: append a user category with a rotating color,
  rejecting case-insensitive duplicates of built-ins and existing customs.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .models import UNCATEGORIZED, CategoryDefinition

CATEGORIES: tuple[str, ...] = (
    "Food & Dining",
    "Groceries",
    "Transportation",
    "Entertainment",
    "Shopping",
    "Healthcare",
    "Utilities",
    "Housing",
    "Mortgage",
    "Repairs",
    "Travel",
    "Education",
    "Personal Care",
    "Subscriptions",
    "Software",
    "Legal",
    "Income",
    "Transfers",
    "Fees & Charges",
    UNCATEGORIZED,
)

CATEGORY_COLORS: dict[str, str] = {
    "Food & Dining": "#f97316",
    "Groceries": "#84cc16",
    "Transportation": "#3b82f6",
    "Entertainment": "#a855f7",
    "Shopping": "#ec4899",
    "Healthcare": "#ef4444",
    "Utilities": "#06b6d4",
    "Housing": "#8b5cf6",
    "Mortgage": "#7c3aed",
    "Repairs": "#b45309",
    "Travel": "#14b8a6",
    "Education": "#f59e0b",
    "Personal Care": "#e879f9",
    "Subscriptions": "#6366f1",
    "Software": "#8b5cf6",
    "Legal": "#1e40af",
    "Income": "#22c55e",
    "Transfers": "#64748b",
    "Fees & Charges": "#dc2626",
    UNCATEGORIZED: "#9ca3af",
}

# Money-out categories. Income, Transfers and Uncategorized are excluded.
EXPENSE_CATEGORIES: frozenset[str] = frozenset(
    c for c in CATEGORIES if c not in {"Income", "Transfers", UNCATEGORIZED}
)

_FALLBACK_COLOR = "#6366f1"


# ---------------------------
# Name normalization/validation
# ---------------------------


def normalize_name(name: str) -> str:
    """Return a trimmed, single-spaced representation of ``name``.

    Does not change case; consumers may choose preferred casing conventions.
    """

    return " ".join(name.strip().split())


@dataclass(frozen=True, slots=True)
class NameValidation:
    ok: bool
    reason: str | None = None


def validate_name(name: str, *, min_len: int = 1, max_len: int = 64) -> NameValidation:
    """Check a category name's length after normalization (1..64 characters)."""

    n = normalize_name(name)
    if len(n) < min_len:
        return NameValidation(False, "Name cannot be empty")
    if len(n) > max_len:
        return NameValidation(False, f"Name must be at most {max_len} characters")
    return NameValidation(True, None)


# ---------------------------
# Custom categories
# ---------------------------


def is_known_category(name: str, custom: Sequence[CategoryDefinition] = ()) -> bool:
    """Case-insensitive membership test against built-ins and customs."""

    lowered = normalize_name(name).lower()
    return any(c.lower() == lowered for c in CATEGORIES) or any(
        c.name.lower() == lowered for c in custom
    )


def add_custom_category(
    existing: Sequence[CategoryDefinition], raw_name: str | None
) -> list[CategoryDefinition]:
    """Return ``existing`` plus a new custom category, or ``existing`` unchanged.

    The new entry's color rotates through the built-in palette by the number of
    customs already defined. Empty/invalid names and case-insensitive
    duplicates leave the list unchanged.
    """

    name = normalize_name(raw_name or "")
    if not validate_name(name).ok or is_known_category(name, existing):
        return list(existing)
    palette = list(CATEGORY_COLORS.values())
    color = palette[len(existing) % len(palette)] if palette else _FALLBACK_COLOR
    return [*existing, CategoryDefinition(name=name, color=color)]


def all_category_names(custom: Sequence[CategoryDefinition] = ()) -> list[str]:
    """Built-in names in taxonomy order followed by custom names."""

    return [*CATEGORIES, *(c.name for c in custom)]


def color_for(name: str, custom: Sequence[CategoryDefinition] = ()) -> str:
    if name in CATEGORY_COLORS:
        return CATEGORY_COLORS[name]
    for c in custom:
        if c.name == name:
            return c.color
    return CATEGORY_COLORS[UNCATEGORIZED]


__all__ = [
    "CATEGORIES",
    "CATEGORY_COLORS",
    "EXPENSE_CATEGORIES",
    "NameValidation",
    "add_custom_category",
    "all_category_names",
    "color_for",
    "is_known_category",
    "normalize_name",
    "validate_name",
]
