# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Tool schemas in OpenAI function calling format.

Each schema defines a tool the LLM can invoke. TOOL_SCHEMA_MAP maps
tool names to their schemas for lookup when building a model request.
"""

from compactor.services.prompts.base import (
    COMPACT_CONVERSATION_SUMMARY_DESCRIPTION,
    COMPACT_CONVERSATION_TOOL_DESCRIPTION,
)

COMPACT_CONVERSATION_TOOL_NAME = "compact_conversation"

COMPACT_CONVERSATION_TOOL_SCHEMA = {
    "type": "function",
    "function": {
        "name": COMPACT_CONVERSATION_TOOL_NAME,
        "description": COMPACT_CONVERSATION_TOOL_DESCRIPTION,
        "parameters": {
            "type": "object",
            "properties": {
                "summary": {
                    "type": "string",
                    "description": COMPACT_CONVERSATION_SUMMARY_DESCRIPTION,
                }
            },
            "required": ["summary"],
        },
    },
}

TOOL_SCHEMA_MAP = {
    COMPACT_CONVERSATION_TOOL_NAME: COMPACT_CONVERSATION_TOOL_SCHEMA,
}
