"""Pytest configuration for test isolation.

Puts the workspace ``packages/`` directory on ``sys.path`` so ``finlens`` is
importable without installation, and keeps every test hermetic with respect
to the environment: settings are resolved from environment variables (and
the CLI loads a ``.env`` from the working directory), so each test runs in
its own temporary directory with all ``FINLENS_*`` and provider key
variables removed.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
# Ensure `packages/` precedes the repo root on sys.path so local packages resolve first.
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

_PROVIDER_KEYS = ("OPENAI_API_KEY", "ANTHROPIC_API_KEY")


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop configuration variables and run from a per-test directory."""

    for name in list(os.environ):
        if name.startswith("FINLENS_") or name in _PROVIDER_KEYS:
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
