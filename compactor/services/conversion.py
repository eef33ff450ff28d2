# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Model request preparation.

Turns persisted UI messages into the LangChain message list and tool schemas
for one model call.  History is reduced first when compaction is enabled, so
markers never reach the model and summaries replace compacted history.
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from compactor.models import Message, MessageRole, ToolPart, ToolState
from compactor.schemas.tool_schema import COMPACT_CONVERSATION_TOOL_NAME, TOOL_SCHEMA_MAP
from compactor.services.compaction.markers import strip_compaction_markers
from compactor.services.compaction.reducer import apply_summary_to_messages, reduce_history
from compactor.services.compaction.settings import CompactionSettings
from compactor.services.compaction.tokens import estimate_messages_tokens

logger = logging.getLogger(__name__)

_COMPLETED_STATES = (ToolState.OUTPUT_AVAILABLE, ToolState.OUTPUT_ERROR)


@dataclass
class ModelRequest:
    """Everything needed to call the model for one turn.

    Attributes:
        messages: LangChain messages in conversation order.
        tools: OpenAI function-calling schemas to bind.
    """

    messages: List[BaseMessage] = field(default_factory=list)
    tools: List[Dict[str, Any]] = field(default_factory=list)


def _gen_call_id() -> str:
    return f"call_{uuid.uuid4().hex[:16]}"


def _tool_output_text(part: ToolPart) -> str:
    if part.state == ToolState.OUTPUT_ERROR:
        return part.error_text or "Tool execution failed"
    if isinstance(part.output, str):
        return part.output
    return json.dumps(part.output, ensure_ascii=False, default=str)


def _assistant_messages(msg: Message) -> List[BaseMessage]:
    """Convert an assistant message into an AIMessage plus its tool results.

    Tool parts still waiting for a result are dropped; providers reject a
    tool call without a matching result.
    """
    completed = [p for p in msg.tool_parts if p.state in _COMPLETED_STATES]
    call_ids = [p.tool_call_id or _gen_call_id() for p in completed]
    text = msg.text
    if not text and not completed:
        return []

    tool_calls = [
        {
            "name": part.tool_name,
            "args": part.input if isinstance(part.input, dict) else {},
            "id": call_id,
            "type": "tool_call",
        }
        for part, call_id in zip(completed, call_ids)
    ]
    result: List[BaseMessage] = [AIMessage(content=text, tool_calls=tool_calls, id=msg.id)]
    for part, call_id in zip(completed, call_ids):
        result.append(
            ToolMessage(
                content=_tool_output_text(part),
                tool_call_id=call_id,
                name=part.tool_name,
                status="error" if part.state == ToolState.OUTPUT_ERROR else "success",
            )
        )
    return result


def to_langchain_messages(messages: Sequence[Message]) -> List[BaseMessage]:
    """Convert UI messages to LangChain messages.

    Args:
        messages (Sequence[Message]): Messages to convert.

    Returns:
        List[BaseMessage]: Converted messages.  Assistant tool calls are
            followed by one ToolMessage per completed call.  Messages that
            carry nothing the model can read are skipped.
    """
    lc_messages: List[BaseMessage] = []
    for msg in messages:
        if msg.role == MessageRole.USER:
            lc_messages.append(HumanMessage(content=msg.text, id=msg.id))
        elif msg.role == MessageRole.SYSTEM:
            lc_messages.append(SystemMessage(content=msg.text, id=msg.id))
        else:
            lc_messages.extend(_assistant_messages(msg))
    return lc_messages


def estimate_visible_tokens(
    messages: Sequence[Message],
    settings: Optional[CompactionSettings] = None,
) -> int:
    """Estimate tokens of the history as the model will see it.

    Turns already replaced by a summary and marker messages are not
    counted.
    """
    settings = settings or CompactionSettings()
    visible = strip_compaction_markers(apply_summary_to_messages(messages))
    return estimate_messages_tokens(visible, settings.tokenizer_model)


def build_model_request(
    messages: Sequence[Message],
    tools: Optional[List[Dict[str, Any]]] = None,
    settings: Optional[CompactionSettings] = None,
    token_count: Optional[int] = None,
) -> ModelRequest:
    """Prepare a model call from persisted history.

    When compaction is enabled the history is reduced and the
    compact_conversation schema is always offered, so the tool list stays
    stable across turns.

    Args:
        messages (Sequence[Message]): Persisted conversation history.
        tools (Optional[List[Dict[str, Any]]]): Collaborator tool schemas.
        settings (Optional[CompactionSettings]): Compaction configuration.
        token_count (Optional[int]): Token count of the history the model
            sees.  Estimated with :func:`estimate_visible_tokens` when
            omitted.

    Returns:
        ModelRequest: Converted messages and the tool schemas to bind.

    Raises:
        CompactionError: If history reduction cannot make progress.
    """
    settings = settings or CompactionSettings()
    tool_schemas = list(tools or [])

    if settings.enabled:
        if token_count is None:
            token_count = estimate_visible_tokens(messages, settings)
        reduced = reduce_history(messages, settings, token_count=token_count)
        names = {t.get("function", {}).get("name") for t in tool_schemas}
        if COMPACT_CONVERSATION_TOOL_NAME not in names:
            tool_schemas.append(TOOL_SCHEMA_MAP[COMPACT_CONVERSATION_TOOL_NAME])
    else:
        reduced = strip_compaction_markers(messages)

    logger.debug(
        "Built model request: %d history messages -> %d, %d tools",
        len(messages),
        len(reduced),
        len(tool_schemas),
    )
    return ModelRequest(messages=to_langchain_messages(reduced), tools=tool_schemas)
