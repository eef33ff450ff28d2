# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Context compaction module.

Keeps an unbounded conversation inside a bounded context window by letting
the model summarize its own history:

  Detection  (overflow.py)
      Classify a model call failure as a context-window overflow by
      walking the cause chain to the provider API error.

  Injection  (injector.py)
      On overflow, end the turn with a synthetic ``__compaction_marker``
      tool call instead of failing.  Works on the token-level chunk stream
      and on the UI event stream.

  Reduction  (reducer.py, markers.py)
      Before each call: guard against compaction loops, apply the latest
      ``compact_conversation`` summary, truncate for a retry when markers
      are pending, and strip every marker.

  Tool  (tool.py)
      ``compact_conversation`` echoes the model's summary with a
      timestamp; the reducer picks it up on the next turn.

Usage:

    settings = CompactionSettings.from_settings()

    history = reduce_history(persisted, settings, token_count=n)
    tools = create_compaction_tools(settings.enabled)

    async for chunk in intercept_context_overflow(model_stream, on_compaction):
        ...

The loop terminates: each retry drops one more turn, the reducer raises
``CompactionError`` once nothing is left to drop, and the loop guard raises
after ``max_consecutive_attempts`` back-to-back attempts.
"""

from compactor.services.compaction.injector import (
    CompactingStreamResult,
    build_marker_stream_chunks,
    build_marker_ui_events,
    create_compaction_transform,
    intercept_context_overflow,
    notify_compaction,
    process_stream_output,
)
from compactor.services.compaction.markers import (
    COMPACT_CONVERSATION_TOOL_NAME,
    COMPACTION_MARKER_TOOL_NAME,
    CompactionSummary,
    build_compaction_request_message,
    build_compaction_summary_messages,
    count_compaction_markers,
    count_consecutive_compaction_attempts,
    create_compaction_marker_message,
    create_compaction_marker_part,
    find_compaction_summary,
    find_turn_start_index,
    is_compact_conversation_part,
    is_compaction_marker_message,
    is_compaction_marker_part,
    is_compaction_summary_part,
    strip_compaction_markers,
)
from compactor.services.compaction.overflow import (
    find_api_call_error,
    is_context_overflow_error,
    matches_context_overflow,
)
from compactor.services.compaction.reducer import (
    CompactionError,
    apply_summary_to_messages,
    check_compaction_loop,
    reduce_history,
    transform_messages_for_compaction,
)
from compactor.services.compaction.settings import (
    DEFAULT_OVERFLOW_PATTERNS,
    CompactionSettings,
)
from compactor.services.compaction.tokens import (
    estimate_message_tokens,
    estimate_messages_tokens,
    estimate_tokens,
)
from compactor.services.compaction.tool import (
    CompactConversationInput,
    CompactionTool,
    create_compaction_tools,
    execute_compact_conversation,
)

__all__ = [
    "CompactionSettings",
    "DEFAULT_OVERFLOW_PATTERNS",
    "CompactionError",
    "COMPACTION_MARKER_TOOL_NAME",
    "COMPACT_CONVERSATION_TOOL_NAME",
    "CompactionSummary",
    "find_api_call_error",
    "is_context_overflow_error",
    "matches_context_overflow",
    "is_compaction_marker_part",
    "is_compaction_marker_message",
    "is_compact_conversation_part",
    "is_compaction_summary_part",
    "find_compaction_summary",
    "count_compaction_markers",
    "count_consecutive_compaction_attempts",
    "find_turn_start_index",
    "strip_compaction_markers",
    "create_compaction_marker_part",
    "create_compaction_marker_message",
    "build_compaction_request_message",
    "build_compaction_summary_messages",
    "check_compaction_loop",
    "apply_summary_to_messages",
    "transform_messages_for_compaction",
    "reduce_history",
    "notify_compaction",
    "build_marker_stream_chunks",
    "build_marker_ui_events",
    "intercept_context_overflow",
    "create_compaction_transform",
    "CompactingStreamResult",
    "process_stream_output",
    "estimate_tokens",
    "estimate_message_tokens",
    "estimate_messages_tokens",
    "CompactConversationInput",
    "CompactionTool",
    "create_compaction_tools",
    "execute_compact_conversation",
]
