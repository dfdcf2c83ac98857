from __future__ import annotations

import logging

import pytest

from finlens.config import Settings
from finlens.logging_setup import _parse_level, get_logger


def test_defaults_without_environment() -> None:
    s = Settings.from_env({})
    assert s == Settings()
    assert s.max_workers == 4 and s.pdf_y_tolerance == 4.0 and not s.ai_enabled


def test_values_are_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FINLENS_AI_ENABLED", "yes")
    monkeypatch.setenv("ANTHROPIC_API_KEY", " sk-ant-123 ")
    monkeypatch.setenv("FINLENS_MAX_WORKERS", "2")
    monkeypatch.setenv("FINLENS_PDF_Y_TOLERANCE", "2.5")
    monkeypatch.setenv("FINLENS_LOG_LEVEL", "debug")

    s = Settings.from_env()

    assert s.ai_enabled
    assert s.ai_api_key == "sk-ant-123"
    assert (s.max_workers, s.pdf_y_tolerance, s.log_level) == (2, 2.5, "debug")


def test_explicit_key_wins_and_bad_numbers_fall_back() -> None:
    s = Settings.from_env(
        {
            "FINLENS_AI_API_KEY": "sk-own",
            "OPENAI_API_KEY": "sk-other",
            "FINLENS_MAX_WORKERS": "zero",
            "FINLENS_PDF_Y_TOLERANCE": "-1",
        }
    )
    assert s.ai_api_key == "sk-own"
    assert s.max_workers == 4
    assert s.pdf_y_tolerance == 4.0


def test_library_loggers_are_silent_until_configured() -> None:
    logger = get_logger("finlens.test")
    assert logger.name == "finlens.test"
    assert logging.getLogger("finlens").handlers


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("debug", logging.DEBUG),
        (" Warning ", logging.WARNING),
        ("15", 15),
        (30, 30),
        ("loud", logging.INFO),
        (None, logging.INFO),
    ],
)
def test_log_level_names_resolve(raw: int | str | None, expected: int) -> None:
    assert _parse_level(raw) == expected
