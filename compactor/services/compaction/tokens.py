# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Token estimation utilities.

Only used to annotate the compaction request with budget usage, so a rough
figure is enough.  The chars/4 heuristic is the default; pass a tiktoken
model name (``TOKENIZER_MODEL``) to count with a real encoder.  Encoders are
loaded lazily because tiktoken may need to download its BPE files.

Tool parts contribute their serialized input and output, matching how the
provider sees them as tool-call arguments and tool results.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any, Optional, Sequence

import tiktoken

from compactor.models import Message, TextPart, ToolPart

TOOL_PART_FALLBACK_CHARS = 128
CHARS_PER_TOKEN_FALLBACK = 4

logger = logging.getLogger(__name__)


@lru_cache(maxsize=8)
def _get_encoding(model: str) -> Optional["tiktoken.Encoding"]:
    try:
        return tiktoken.encoding_for_model(model)
    except KeyError:
        logger.info("tiktoken has no encoding for %s, using chars/%d heuristic", model, CHARS_PER_TOKEN_FALLBACK)
    except Exception as e:
        logger.info(
            "tiktoken encoding for %s unavailable (%s), using chars/%d heuristic",
            model,
            e,
            CHARS_PER_TOKEN_FALLBACK,
        )
    return None


def estimate_tokens(text: str, model: Optional[str] = None) -> int:
    """Estimate token count for a piece of text.

    Args:
        text (str): Text to estimate tokens for.
        model (Optional[str]): tiktoken model name. ``None`` selects the
            character heuristic.

    Returns:
        int: Token count from the encoder, or ``len(text) //
            CHARS_PER_TOKEN_FALLBACK`` (at least 1) for the heuristic.
    """
    if model:
        encoding = _get_encoding(model)
        if encoding is not None:
            return len(encoding.encode(text))
    return max(1, len(text) // CHARS_PER_TOKEN_FALLBACK)


def _json_chars(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, str):
        return len(value)
    try:
        return len(json.dumps(value, ensure_ascii=False))
    except (TypeError, ValueError):
        return TOOL_PART_FALLBACK_CHARS


def _message_text(msg: Message) -> str:
    chunks = []
    for part in msg.parts:
        if isinstance(part, TextPart):
            chunks.append(part.text)
        elif isinstance(part, ToolPart):
            # Padding stands in for the serialized call; only its length matters.
            chunks.append(" " * (_json_chars(part.input) + _json_chars(part.output)))
            if part.error_text:
                chunks.append(part.error_text)
    return "".join(chunks)


def estimate_message_tokens(msg: Message, model: Optional[str] = None) -> int:
    """Estimate token count for a single message.

    Args:
        msg (Message): Message to estimate tokens for.
        model (Optional[str]): tiktoken model name.

    Returns:
        int: Estimated tokens of its text and tool parts.
    """
    return estimate_tokens(_message_text(msg), model)


def estimate_messages_tokens(messages: Sequence[Message], model: Optional[str] = None) -> int:
    """Sum of :func:`estimate_message_tokens` across *messages*."""
    return sum(estimate_message_tokens(m, model) for m in messages)
