# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Compaction settings.

Per-call configuration for the compaction subsystem.  Defaults mirror the
application settings in ``compactor.config``; use
:meth:`CompactionSettings.from_settings` to build an instance from the
environment.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from compactor.config import Settings, settings

DEFAULT_OVERFLOW_PATTERNS: Tuple[str, ...] = (
    r"context.*(length|limit|window|exceeded)",
    r"token.*(limit|exceeded|maximum)",
    r"maximum.*context",
    r"input.*too.*long",
    r"prompt.*too.*long",
    # Anthropic
    r"max_tokens_exceeded",
    # OpenAI
    r"context_length_exceeded",
    r"maximum.*tokens",
)


@dataclass(frozen=True)
class CompactionSettings:
    """All compaction-related configuration in one place.

    Attributes:
        enabled (bool): Whether history is reduced and the compaction tool is
            offered to the model.
        max_consecutive_attempts (int): Loop guard ceiling. A trailing run of
            this many compaction attempts aborts the turn.
        context_window_tokens (int): Context budget used for the usage
            annotation on the compaction request.
        overflow_patterns (Tuple[str, ...]): Case-insensitive regular
            expressions identifying context-window overflow errors.
        tokenizer_model (Optional[str]): tiktoken model name for token
            estimation, or ``None`` for the character heuristic.
    """

    enabled: bool = True
    max_consecutive_attempts: int = 5
    context_window_tokens: int = 200_000
    overflow_patterns: Tuple[str, ...] = DEFAULT_OVERFLOW_PATTERNS
    tokenizer_model: Optional[str] = None

    @classmethod
    def from_settings(cls, app_settings: Optional[Settings] = None) -> "CompactionSettings":
        """Build compaction settings from application settings.

        Args:
            app_settings (Optional[Settings]): Settings to read. Defaults to
                the module-level ``compactor.config.settings``.

        Returns:
            CompactionSettings: Settings with extra overflow patterns appended
                to the defaults.
        """
        app_settings = app_settings or settings
        return cls(
            enabled=app_settings.COMPACTION_ENABLED,
            max_consecutive_attempts=app_settings.MAX_CONSECUTIVE_COMPACTION_ATTEMPTS,
            context_window_tokens=app_settings.CONTEXT_WINDOW_TOKENS,
            overflow_patterns=DEFAULT_OVERFLOW_PATTERNS
            + tuple(app_settings.get_extra_overflow_patterns()),
            tokenizer_model=app_settings.TOKENIZER_MODEL or None,
        )
