"""Runtime settings resolved from the environment.

Entrypoints load a local ``.env`` (via ``python-dotenv``) and then call
:meth:`Settings.from_env`. Library modules receive settings as arguments and
never read the environment on their own.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    try:
        value = int(raw) if raw else default
    except ValueError:
        value = default
    return value if value > 0 else default


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    try:
        value = float(raw) if raw else default
    except ValueError:
        value = default
    return value if value > 0 else default


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved configuration for one process.

    Attributes
    ----------
    log_level:
        Level name handed to :func:`finlens.logging_setup.configure_logging`.
    ai_enabled:
        Whether the optional AI capability should be constructed at all.
    ai_api_key:
        Credential for the AI capability. The provider is inferred from the key
        (``sk-ant-`` prefix selects Anthropic, anything else OpenAI).
    ai_model / ai_base_url:
        Optional overrides for the provider's default model and the
        OpenAI-compatible endpoint.
    max_workers:
        Upper bound on files parsed concurrently within one batch.
    pdf_y_tolerance:
        Vertical distance within which PDF text fragments share a row.
    """

    log_level: str = "INFO"
    ai_enabled: bool = False
    ai_api_key: str | None = None
    ai_model: str | None = None
    ai_base_url: str | None = None
    max_workers: int = 4
    pdf_y_tolerance: float = 4.0

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        e = os.environ if env is None else env
        api_key = (
            e.get("FINLENS_AI_API_KEY")
            or e.get("OPENAI_API_KEY")
            or e.get("ANTHROPIC_API_KEY")
            or None
        )
        return cls(
            log_level=(e.get("FINLENS_LOG_LEVEL") or "INFO").strip(),
            ai_enabled=(e.get("FINLENS_AI_ENABLED") or "").strip().lower() in _TRUTHY,
            ai_api_key=api_key.strip() if api_key else None,
            ai_model=(e.get("FINLENS_AI_MODEL") or "").strip() or None,
            ai_base_url=(e.get("FINLENS_AI_BASE_URL") or "").strip() or None,
            max_workers=_int_env(e, "FINLENS_MAX_WORKERS", 4),
            pdf_y_tolerance=_float_env(e, "FINLENS_PDF_Y_TOLERANCE", 4.0),
        )


__all__ = ["Settings"]
