# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Application configuration using pydantic-settings.
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Attributes:
        APP_NAME (str): Display name of the library, used in log output.
        COMPACTION_ENABLED (bool): Whether the compaction tool is offered to
            the model and history is reduced before each call.
        MAX_CONSECUTIVE_COMPACTION_ATTEMPTS (int): Number of back-to-back
            compaction attempts after which the loop guard aborts the turn.
        CONTEXT_WINDOW_TOKENS (int): Context window size used when
            annotating the compaction request with budget usage.
        CONTEXT_OVERFLOW_EXTRA_PATTERNS (str): Comma-separated regular
            expressions appended to the built-in overflow patterns.
        TOKENIZER_MODEL (str): tiktoken model name used for token
            estimation. Empty selects the character heuristic.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Context Compactor"

    # Compaction
    COMPACTION_ENABLED: bool = True
    MAX_CONSECUTIVE_COMPACTION_ATTEMPTS: int = 5
    CONTEXT_WINDOW_TOKENS: int = 200_000

    # Overflow detection
    CONTEXT_OVERFLOW_EXTRA_PATTERNS: str = ""

    # Token estimation
    TOKENIZER_MODEL: str = ""

    def get_extra_overflow_patterns(self) -> List[str]:
        """Parse extra overflow patterns as list.

        Returns:
            List[str]: Non-empty patterns split from the comma-separated
                CONTEXT_OVERFLOW_EXTRA_PATTERNS setting.
        """
        return [p.strip() for p in self.CONTEXT_OVERFLOW_EXTRA_PATTERNS.split(",") if p.strip()]


settings = Settings()
