# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Schemas for model stream items and tool definitions."""
from .stream import (
    ErrorChunk,
    FinishChunk,
    StreamChunk,
    TextDeltaChunk,
    TokenUsage,
    ToolCallChunk,
    ToolResultChunk,
    UIErrorEvent,
    UIFinishEvent,
    UIMessageEvent,
    UITextDeltaEvent,
    UIToolInputAvailableEvent,
    UIToolInputStartEvent,
    UIToolOutputAvailableEvent,
)
from .tool_schema import (
    COMPACT_CONVERSATION_TOOL_NAME,
    COMPACT_CONVERSATION_TOOL_SCHEMA,
    TOOL_SCHEMA_MAP,
)

__all__ = [
    "ErrorChunk",
    "FinishChunk",
    "StreamChunk",
    "TextDeltaChunk",
    "TokenUsage",
    "ToolCallChunk",
    "ToolResultChunk",
    "UIErrorEvent",
    "UIFinishEvent",
    "UIMessageEvent",
    "UITextDeltaEvent",
    "UIToolInputAvailableEvent",
    "UIToolInputStartEvent",
    "UIToolOutputAvailableEvent",
    "COMPACT_CONVERSATION_TOOL_NAME",
    "COMPACT_CONVERSATION_TOOL_SCHEMA",
    "TOOL_SCHEMA_MAP",
]
