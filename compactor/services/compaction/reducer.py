# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
History reduction.

Runs before every model call and turns the persisted history into the list
the model is allowed to see:

    1. loop guard: abort when compaction keeps failing
    2. apply the latest summary and restore the turns hidden while it was written
    3. truncate for a compaction retry when the last call overflowed
    4. strip every marker

The reducer is pure and synchronous.  Input messages are never modified;
retained messages are the same objects that were passed in.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from compactor.models import Message
from compactor.services.compaction.markers import (
    build_compaction_request_message,
    build_compaction_summary_messages,
    count_compaction_markers,
    count_consecutive_compaction_attempts,
    find_compaction_summary,
    find_turn_start_index,
    is_compaction_marker_message,
    strip_compaction_markers,
)
from compactor.services.compaction.settings import CompactionSettings

logger = logging.getLogger(__name__)


class CompactionError(Exception):
    """Compaction cannot make progress; the turn must be aborted.

    Attributes:
        message (str): Human-readable reason.
        retry_count (int): Number of compaction attempts already made.
    """

    def __init__(self, message: str, retry_count: int):
        super().__init__(message)
        self.message = message
        self.retry_count = retry_count


def check_compaction_loop(messages: Sequence[Message], max_attempts: int) -> None:
    """Raise when the trailing run of compaction attempts reached *max_attempts*.

    Raises:
        CompactionError: If the history ends with at least *max_attempts*
            consecutive assistant messages engaging compaction.
    """
    attempts = count_consecutive_compaction_attempts(messages)
    if attempts >= max_attempts:
        logger.warning("Compaction loop detected after %d attempts", attempts)
        raise CompactionError(f"Compaction loop detected after {attempts} attempts", attempts)


def apply_summary_to_messages(messages: Sequence[Message]) -> List[Message]:
    """Replace history before the latest summary with the summary itself.

    Turns that were cut away by a retry request while the summary was being
    written are restored after the summary.  With ``N`` markers before the
    summary, those are the last ``N`` turns before it.  When the restore
    point is the very first message nothing is restored, since a retry
    request never leaves an empty prefix.

    Args:
        messages (Sequence[Message]): Conversation history.

    Returns:
        List[Message]: ``[summary, ack, *restored, *after_summary]``, or a
            copy of *messages* when no summary exists.
    """
    summary = find_compaction_summary(messages)
    if summary is None:
        return list(messages)

    index = summary.index
    marker_count = count_compaction_markers(messages, before_index=index)
    cut = find_turn_start_index(messages[:index], marker_count)
    restored = [] if cut == 0 else [m for m in messages[cut:index] if not is_compaction_marker_message(m)]

    logger.info(
        "Applying compaction summary at index %d (markers=%d, restored=%d)",
        index,
        marker_count,
        len(restored),
    )
    return [
        *build_compaction_summary_messages(summary.summary, summary.compacted_at),
        *restored,
        *messages[index + 1 :],
    ]


def transform_messages_for_compaction(
    messages: Sequence[Message],
    token_count: Optional[int] = None,
    settings: Optional[CompactionSettings] = None,
) -> List[Message]:
    """Cut the turns that overflowed and ask the model to compact.

    Each trailing marker is one failed attempt, so one more turn is dropped
    per marker.

    Args:
        messages (Sequence[Message]): History after summary application.
        token_count (Optional[int]): Estimated token count for the usage
            annotation on the request.
        settings (Optional[CompactionSettings]): Provides the context budget.

    Returns:
        List[Message]: ``[*kept, compaction_request]``, or a copy of
            *messages* when there are no trailing markers.

    Raises:
        CompactionError: If dropping the overflowed turns leaves nothing.
    """
    settings = settings or CompactionSettings()
    marker_count = count_compaction_markers(messages)
    if marker_count == 0:
        return list(messages)

    cut = find_turn_start_index(messages, marker_count)
    if cut == 0:
        logger.warning(
            "Cannot compact: would leave only the compaction request (markers=%d)", marker_count
        )
        raise CompactionError(
            "Cannot compact: would leave only the compaction request", marker_count - 1
        )

    threshold = settings.context_window_tokens if settings.context_window_tokens > 0 else None
    request = build_compaction_request_message(
        token_count=token_count if threshold else None,
        threshold=threshold,
    )
    logger.info("Truncating history for compaction retry (markers=%d, cut=%d)", marker_count, cut)
    return [*messages[:cut], request]


def reduce_history(
    messages: Sequence[Message],
    settings: Optional[CompactionSettings] = None,
    *,
    token_count: Optional[int] = None,
) -> List[Message]:
    """Produce the history to send to the model.

    Args:
        messages (Sequence[Message]): Persisted conversation history.
        settings (Optional[CompactionSettings]): Compaction configuration.
        token_count (Optional[int]): Estimated token count, used only for
            the retry request annotation.

    Returns:
        List[Message]: Reduced history without any marker messages.

    Raises:
        CompactionError: On a compaction loop or when a retry would leave
            only the compaction request.
    """
    settings = settings or CompactionSettings()
    check_compaction_loop(messages, settings.max_consecutive_attempts)

    result = apply_summary_to_messages(messages)
    result = transform_messages_for_compaction(result, token_count=token_count, settings=settings)
    result = strip_compaction_markers(result)
    logger.debug("Reduced history from %d to %d messages", len(messages), len(result))
    return result
