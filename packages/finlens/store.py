"""Immutable per-profile state and the edits the surrounding app performs on it.

:class:`ProfileState` is the context object the ingestion pipeline consumes
and produces (``(files, state) -> new state``). Every operation returns a new
snapshot built with ``model_copy``; nothing is mutated in place. Snapshots
round-trip through JSON (``to_json`` / ``from_json``); raw file bytes are
base64-encoded so PDFs survive the trip.

Transaction ``id`` values stay dense (``0..n-1``) after every operation that
removes rows.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from dataclasses import replace

from pydantic import BaseModel, ConfigDict, Field

from . import categories as cats
from .models import UNCATEGORIZED, CategoryDefinition, Rule, Transaction
from .rules import apply_user_rules, draft_rule_from_transaction

_AUTO_FOLDER_PREFIX = "Folder "


def reindex(transactions: Iterable[Transaction]) -> tuple[Transaction, ...]:
    """Return ``transactions`` with ids reassigned as ``0..n-1`` in order."""

    return tuple(t if t.id == i else replace(t, id=i) for i, t in enumerate(transactions))


def _unique_name(name: str, taken: set[str]) -> str:
    if name not in taken:
        return name
    suffix = 2
    while f"{name} ({suffix})" in taken:
        suffix += 1
    return f"{name} ({suffix})"


class ProfileState(BaseModel):
    """One profile's transactions, rules, custom categories and uploaded files.

    Attributes
    ----------
    files:
        File name -> raw bytes as uploaded, in upload order. Kept so the whole
        set can be re-derived (see :func:`finlens.pipeline.reread_files`).
    file_folders:
        File name -> folder name for files the user has filed away.
    folders:
        Folder names in creation order.
    """

    model_config = ConfigDict(frozen=True, ser_json_bytes="base64", val_json_bytes="base64")

    profile_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str = "Default"
    transactions: tuple[Transaction, ...] = ()
    rules: tuple[Rule, ...] = ()
    custom_categories: tuple[CategoryDefinition, ...] = ()
    files: dict[str, bytes] = Field(default_factory=dict)
    file_folders: dict[str, str] = Field(default_factory=dict)
    folders: tuple[str, ...] = ()

    # ---- derived -----------------------------------------------------------

    @property
    def file_names(self) -> list[str]:
        return list(self.files)

    @property
    def has_pdf(self) -> bool:
        return any(n.lower().endswith(".pdf") for n in self.files)

    @property
    def category_names(self) -> list[str]:
        return cats.all_category_names(self.custom_categories)

    def max_id(self) -> int:
        return max((t.id for t in self.transactions), default=-1)

    # ---- rules -------------------------------------------------------------

    def with_rules(self, rules: Sequence[Rule]) -> ProfileState:
        """Replace the rule list and re-run the overlay over every transaction."""

        return self.model_copy(
            update={
                "rules": tuple(rules),
                "transactions": tuple(apply_user_rules(self.transactions, rules)),
            }
        )

    def add_rule(self, rule: Rule) -> ProfileState:
        if not rule.text.strip() or not rule.category:
            return self
        return self.with_rules([*self.rules, rule])

    def add_rule_from_transaction(
        self, transaction_id: int, *, text: str | None = None, category: str | None = None
    ) -> ProfileState:
        """Append a rule pre-filled from a transaction, optionally overriding its fields."""

        tx = self._find(transaction_id)
        if tx is None:
            return self
        first = self.category_names[0] if self.category_names else UNCATEGORIZED
        draft = draft_rule_from_transaction(tx, fallback_category=first)
        if text is not None:
            draft = replace(draft, text=text.strip())
        if category is not None:
            draft = replace(draft, category=category)
        return self.add_rule(draft)

    # ---- transaction edits -------------------------------------------------

    def _find(self, transaction_id: int) -> Transaction | None:
        return next((t for t in self.transactions if t.id == transaction_id), None)

    def _edit(self, transaction_id: int, **changes: object) -> ProfileState:
        txs = tuple(
            replace(t, **changes) if t.id == transaction_id else t for t in self.transactions
        )
        return self.model_copy(update={"transactions": txs})

    def set_category(self, transaction_id: int, category: str) -> ProfileState:
        return self._edit(transaction_id, category=category)

    def set_subcategory(self, transaction_id: int, subcategory: str | None) -> ProfileState:
        sub = (subcategory or "").strip() or None
        return self._edit(transaction_id, subcategory=sub)

    def remove_transaction(self, transaction_id: int) -> ProfileState:
        txs = reindex(t for t in self.transactions if t.id != transaction_id)
        return self.model_copy(update={"transactions": txs})

    # ---- files -------------------------------------------------------------

    def remove_file(self, file_name: str) -> ProfileState:
        """Drop a file, its rows (re-indexed) and its folder assignment."""

        txs = reindex(t for t in self.transactions if t.source != file_name)
        files = {k: v for k, v in self.files.items() if k != file_name}
        folders = {k: v for k, v in self.file_folders.items() if k != file_name}
        return self.model_copy(
            update={"transactions": txs, "files": files, "file_folders": folders}
        )

    def reset(self) -> ProfileState:
        """Clear transactions, files and folders; rules and custom categories stay."""

        return self.model_copy(
            update={"transactions": (), "files": {}, "file_folders": {}, "folders": ()}
        )

    # ---- categories --------------------------------------------------------

    def add_custom_category(self, raw_name: str | None) -> ProfileState:
        updated = cats.add_custom_category(self.custom_categories, raw_name)
        if len(updated) == len(self.custom_categories):
            return self
        return self.model_copy(update={"custom_categories": tuple(updated)})

    # ---- folders -----------------------------------------------------------

    def create_folder(self, raw_name: str | None = None) -> ProfileState:
        """Add a folder; blank names become ``"Folder N"``, clashes get ``" (2)"``."""

        taken = set(self.folders)
        name = (raw_name or "").strip()
        if not name:
            idx = len(self.folders) + 1
            while f"{_AUTO_FOLDER_PREFIX}{idx}" in taken:
                idx += 1
            name = f"{_AUTO_FOLDER_PREFIX}{idx}"
        else:
            name = _unique_name(name, taken)
        return self.model_copy(update={"folders": (*self.folders, name)})

    def assign_folder(self, file_name: str, folder: str | None) -> ProfileState:
        """File ``file_name`` under ``folder`` (created if new); blank unassigns."""

        clean = (folder or "").strip()
        mapping = dict(self.file_folders)
        folders = self.folders
        if not clean:
            mapping.pop(file_name, None)
        else:
            mapping[file_name] = clean
            if clean not in folders:
                folders = (*folders, clean)
        return self.model_copy(update={"file_folders": mapping, "folders": folders})

    def rename_folder(self, old_name: str, new_name: str | None) -> ProfileState:
        clean = (new_name or "").strip()
        if not clean or clean == old_name or old_name not in self.folders:
            return self
        final = _unique_name(clean, set(self.folders))
        folders = tuple(final if f == old_name else f for f in self.folders)
        mapping = {k: (final if v == old_name else v) for k, v in self.file_folders.items()}
        return self.model_copy(update={"folders": folders, "file_folders": mapping})

    def delete_folder(self, name: str) -> ProfileState:
        """Remove a folder and unassign its files (the files themselves stay)."""

        folders = tuple(f for f in self.folders if f != name)
        mapping = {k: v for k, v in self.file_folders.items() if v != name}
        return self.model_copy(update={"folders": folders, "file_folders": mapping})

    # ---- persistence -------------------------------------------------------

    def to_json(self, *, indent: int | None = None) -> str:
        return self.model_dump_json(indent=indent)

    @classmethod
    def from_json(cls, data: str | bytes) -> ProfileState:
        return cls.model_validate_json(data)


__all__ = ["ProfileState", "reindex"]
