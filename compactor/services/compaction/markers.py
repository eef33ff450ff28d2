# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Compaction markers, summaries and turn-boundary counting.

Two reserved tool names drive compaction:

* ``__compaction_marker``: a synthetic, already-completed tool part written
  into history when a model call overflowed.  It is bookkeeping only and is
  never sent to the model.
* ``compact_conversation``: the tool the model calls to summarize the
  conversation.  A completed call carries ``{summary, compacted_at}``.

Every helper here is a free function over a message sequence so the history
reducer can compose them without hidden state.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import List, Optional, Sequence

from compactor.models import Message, MessageRole, Part, TextPart, ToolPart, ToolState
from compactor.schemas.tool_schema import COMPACT_CONVERSATION_TOOL_NAME
from compactor.services.prompts.base import (
    COMPACTION_MARKER_INTENT,
    COMPACTION_MARKER_OUTPUT,
    COMPACTION_SUMMARY_ACK,
    build_compaction_request_text,
    build_compaction_summary_text,
)

COMPACTION_MARKER_TOOL_NAME = "__compaction_marker"

COMPACTION_SUMMARY_MESSAGE_ID = "compaction-summary"
COMPACTION_SUMMARY_RESPONSE_MESSAGE_ID = "compaction-summary-response"
COMPACTION_REQUEST_ID_PREFIX = "compaction-request-"


@dataclass(frozen=True)
class CompactionSummary:
    """A completed compact_conversation result found in history.

    Attributes:
        summary (str): The model-authored summary text.
        compacted_at (Optional[str]): ISO timestamp recorded by the tool.
        index (int): Index of the assistant message holding the result.
    """

    summary: str
    compacted_at: Optional[str]
    index: int


# ---------------------------------------------------------------------------
# Recognizers
# ---------------------------------------------------------------------------


def is_compaction_marker_part(part: Part) -> bool:
    return isinstance(part, ToolPart) and part.tool_name == COMPACTION_MARKER_TOOL_NAME


def is_compaction_marker_message(message: Message) -> bool:
    """A message with any marker part counts as a marker as a whole."""
    return any(is_compaction_marker_part(p) for p in message.parts)


def is_compact_conversation_part(part: Part) -> bool:
    """Any compact_conversation call, whatever its state."""
    return isinstance(part, ToolPart) and part.tool_name == COMPACT_CONVERSATION_TOOL_NAME


def is_compaction_summary_part(part: Part) -> bool:
    """A compact_conversation call that completed with an output."""
    return (
        is_compact_conversation_part(part)
        and part.state == ToolState.OUTPUT_AVAILABLE
        and part.output is not None
    )


def is_compaction_summary_message(message: Message) -> bool:
    return any(is_compaction_summary_part(p) for p in message.parts)


def _summary_text(part: ToolPart) -> Optional[str]:
    output = part.output
    if isinstance(output, dict):
        summary = output.get("summary")
        if isinstance(summary, str) and summary:
            return summary
    return None


def find_compaction_summary(messages: Sequence[Message]) -> Optional[CompactionSummary]:
    """Find the most recent successful compaction summary.

    Args:
        messages (Sequence[Message]): Conversation history.

    Returns:
        Optional[CompactionSummary]: The latest assistant summary with a
            non-empty ``summary`` text, or ``None``.
    """
    for i in range(len(messages) - 1, -1, -1):
        message = messages[i]
        if message.role != MessageRole.ASSISTANT:
            continue
        for part in message.parts:
            if not is_compaction_summary_part(part):
                continue
            summary = _summary_text(part)
            if summary:
                compacted_at = part.output.get("compacted_at")
                return CompactionSummary(
                    summary=summary,
                    compacted_at=compacted_at if isinstance(compacted_at, str) else None,
                    index=i,
                )
    return None


# ---------------------------------------------------------------------------
# Counting
# ---------------------------------------------------------------------------


def count_compaction_markers(
    messages: Sequence[Message],
    before_index: Optional[int] = None,
) -> int:
    """Count marker messages back from the end (or *before_index*).

    Each marker is one overflowed attempt since the last summary.  The scan
    stops at the first summary message so markers that belong to an older,
    already applied summary are never counted again.

    Args:
        messages (Sequence[Message]): Conversation history.
        before_index (Optional[int]): Exclusive upper bound of the scan.
            Defaults to ``len(messages)``.

    Returns:
        int: Number of marker messages found.
    """
    end = len(messages) if before_index is None else before_index
    count = 0
    for i in range(end - 1, -1, -1):
        message = messages[i]
        if is_compaction_summary_message(message):
            return count
        if is_compaction_marker_message(message):
            count += 1
    return count


def find_turn_start_index(messages: Sequence[Message], turns: int) -> int:
    """Index of the user message that starts the *turns*-th turn from the end.

    A turn is a user message plus the non-user messages after it.  Marker
    messages are ignored.

    Args:
        messages (Sequence[Message]): Conversation history.
        turns (int): Number of trailing turns to count back.

    Returns:
        int: Inclusive start index of the last *turns* turns.
            ``len(messages)`` when *turns* is not positive, ``0`` when
            there are fewer user messages than *turns*.
    """
    if turns <= 0:
        return len(messages)
    found = 0
    for i in range(len(messages) - 1, -1, -1):
        message = messages[i]
        if is_compaction_marker_message(message):
            continue
        if message.role == MessageRole.USER:
            found += 1
            if found == turns:
                return i
    return 0


def count_consecutive_compaction_attempts(messages: Sequence[Message]) -> int:
    """Length of the trailing run of assistant messages engaging compaction.

    A message engages compaction when it holds a compact_conversation part
    (in any state) or a marker part.  The run ends at the first message,
    of any role, that does neither.

    Args:
        messages (Sequence[Message]): Conversation history.

    Returns:
        int: Number of consecutive compaction attempts at the end of history.
    """
    attempts = 0
    for i in range(len(messages) - 1, -1, -1):
        message = messages[i]
        if message.role != MessageRole.ASSISTANT:
            break
        if not any(
            is_compact_conversation_part(p) or is_compaction_marker_part(p) for p in message.parts
        ):
            break
        attempts += 1
    return attempts


def strip_compaction_markers(messages: Sequence[Message]) -> List[Message]:
    """Drop every message that carries a marker part."""
    return [m for m in messages if not is_compaction_marker_message(m)]


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def create_compaction_marker_part() -> ToolPart:
    """Create the synthetic tool part recorded when a call overflows."""
    return ToolPart(
        tool_name=COMPACTION_MARKER_TOOL_NAME,
        tool_call_id=f"compaction-marker-{int(time.time() * 1000)}-{uuid.uuid4().hex[:7]}",
        state=ToolState.OUTPUT_AVAILABLE,
        input={"model_intent": COMPACTION_MARKER_INTENT},
        output=COMPACTION_MARKER_OUTPUT,
        dynamic=True,
    )


def create_compaction_marker_message(message_id: Optional[str] = None) -> Message:
    """Create an assistant message holding a single marker part."""
    return Message(
        id=message_id or f"msg_{uuid.uuid4().hex[:16]}",
        role=MessageRole.ASSISTANT,
        parts=[create_compaction_marker_part()],
    )


def build_compaction_request_message(
    token_count: Optional[int] = None,
    threshold: Optional[int] = None,
) -> Message:
    """Build the user message instructing the model to compact now.

    Args:
        token_count (Optional[int]): Estimated tokens in the conversation.
        threshold (Optional[int]): Context budget for the usage annotation.

    Returns:
        Message: A user message whose id starts with ``compaction-request-``.
    """
    return Message(
        id=f"{COMPACTION_REQUEST_ID_PREFIX}{int(time.time() * 1000)}",
        role=MessageRole.USER,
        parts=[
            TextPart(
                text=build_compaction_request_text(
                    COMPACT_CONVERSATION_TOOL_NAME,
                    token_count=token_count,
                    threshold=threshold,
                )
            )
        ],
    )


def build_compaction_summary_messages(summary: str, compacted_at: Optional[str]) -> List[Message]:
    """Build the pair of messages that replaces compacted history.

    The assistant acknowledgment keeps roles alternating; some providers
    reject two consecutive user messages.
    """
    return [
        Message(
            id=COMPACTION_SUMMARY_MESSAGE_ID,
            role=MessageRole.USER,
            parts=[TextPart(text=build_compaction_summary_text(summary, compacted_at))],
        ),
        Message(
            id=COMPACTION_SUMMARY_RESPONSE_MESSAGE_ID,
            role=MessageRole.ASSISTANT,
            parts=[TextPart(text=COMPACTION_SUMMARY_ACK)],
        ),
    ]
