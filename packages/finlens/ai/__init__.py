"""Optional AI capability: protocol, LLM implementation, and factory."""

from __future__ import annotations

from ..config import Settings
from .llm import LlmStatementAI
from .protocol import ProgressCallback, StatementAI


def build_statement_ai(settings: Settings) -> StatementAI | None:
    """Construct the AI capability from settings, or ``None`` when disabled.

    Raises :class:`~finlens.errors.ClassificationError` when AI is enabled
    without a key.
    """

    if not settings.ai_enabled:
        return None
    return LlmStatementAI(
        settings.ai_api_key, model=settings.ai_model, base_url=settings.ai_base_url
    )


__all__ = ["LlmStatementAI", "ProgressCallback", "StatementAI", "build_statement_ai"]
