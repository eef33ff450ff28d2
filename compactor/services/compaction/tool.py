# Copyright (c) 2026 Heureum AI. All rights reserved.

"""The ``compact_conversation`` tool.

The model calls this tool to hand over a summary of the conversation.
Execution only echoes the summary back with a timestamp; the history
reducer reads the stored result on a later turn and does the actual
compaction.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict

from pydantic import BaseModel, Field

from compactor.schemas.tool_schema import (
    COMPACT_CONVERSATION_TOOL_NAME,
    COMPACT_CONVERSATION_TOOL_SCHEMA,
)
from compactor.services.prompts.base import (
    COMPACT_CONVERSATION_SUMMARY_DESCRIPTION,
    COMPACTION_TOOL_ACK,
)

logger = logging.getLogger(__name__)


class CompactConversationInput(BaseModel):
    """Arguments of a compact_conversation call.

    Attributes:
        summary (str): The model-authored conversation summary.
    """

    summary: str = Field(description=COMPACT_CONVERSATION_SUMMARY_DESCRIPTION)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def execute_compact_conversation(arguments: Dict[str, Any]) -> Dict[str, Any]:
    """Execute a compact_conversation call.

    Args:
        arguments (Dict[str, Any]): Raw tool arguments from the model.

    Returns:
        Dict[str, Any]: ``summary``, ``compacted_at`` (ISO-8601 UTC) and an
            acknowledgment ``message`` for the model.

    Raises:
        pydantic.ValidationError: If ``summary`` is missing or not a string.
    """
    args = CompactConversationInput.model_validate(arguments)
    compacted_at = _utc_now_iso()
    logger.info("Conversation summary received (%d chars)", len(args.summary))
    return {
        "summary": args.summary,
        "compacted_at": compacted_at,
        "message": COMPACTION_TOOL_ACK,
    }


@dataclass(frozen=True)
class CompactionTool:
    """A tool definition the collaborator can register with its agent.

    Attributes:
        name: Tool name exposed to the model.
        schema: OpenAI function-calling schema.
        execute: Synchronous executor taking the raw arguments dict.
    """

    name: str
    schema: Dict[str, Any]
    execute: Callable[[Dict[str, Any]], Dict[str, Any]]


def create_compaction_tools(enabled: bool = True) -> Dict[str, CompactionTool]:
    """Return the compaction tool keyed by name, or nothing when disabled."""
    if not enabled:
        return {}
    return {
        COMPACT_CONVERSATION_TOOL_NAME: CompactionTool(
            name=COMPACT_CONVERSATION_TOOL_NAME,
            schema=COMPACT_CONVERSATION_TOOL_SCHEMA,
            execute=execute_compact_conversation,
        )
    }
