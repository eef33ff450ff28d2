# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Stream adapters.

``stream_parts_from_langchain`` turns a LangChain ``AIMessageChunk`` stream
into the chunk stream the overflow interceptor works on.  Provider errors
raised while streaming are surfaced in-band as ``error`` chunks so they can
be classified instead of escaping the turn.

``collect_ui_message`` goes the other way at the end of a turn: it folds a
UI event stream back into the assistant :class:`Message` the collaborator
persists, so an injected compaction marker ends up in history.
"""

import logging
from typing import Any, AsyncIterable, AsyncIterator, Dict, List, Optional

from langchain_core.messages import AIMessageChunk

from compactor.models import Message, MessageRole, Part, TextPart, ToolPart, ToolState
from compactor.schemas.stream import (
    ErrorChunk,
    FinishChunk,
    StreamChunk,
    TextDeltaChunk,
    TokenUsage,
    ToolCallChunk,
    UIErrorEvent,
    UIMessageEvent,
    UITextDeltaEvent,
    UIToolInputAvailableEvent,
    UIToolInputStartEvent,
    UIToolOutputAvailableEvent,
)

logger = logging.getLogger(__name__)


def _extract_text(content: Any) -> str:
    """Extract plain text from LLM response content.

    Args:
        content (Any): Raw content from an LLM response (str, list, or
            other type).

    Returns:
        str: The concatenated text representation.
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            item if isinstance(item, str) else item.get("text", "")
            for item in content
            if isinstance(item, (str, dict))
        )
    return str(content)


def _extract_usage(message: Optional[AIMessageChunk]) -> TokenUsage:
    meta = getattr(message, "usage_metadata", None) or {}
    return TokenUsage(
        input_tokens=meta.get("input_tokens", 0),
        output_tokens=meta.get("output_tokens", 0),
        total_tokens=meta.get("total_tokens", 0),
    )


async def stream_parts_from_langchain(
    chunks: AsyncIterable[AIMessageChunk],
) -> AsyncIterator[StreamChunk]:
    """Convert a LangChain chunk stream into stream chunks.

    Text is forwarded as it arrives.  Tool calls are emitted once the
    stream completes, when their arguments are fully assembled.

    Args:
        chunks (AsyncIterable[AIMessageChunk]): Output of ``llm.astream``.

    Yields:
        StreamChunk: ``text-delta`` chunks, then one ``tool-call`` per call
            and a ``finish``; or an ``error`` chunk if the source raised.
    """
    accumulated: Optional[AIMessageChunk] = None
    try:
        async for chunk in chunks:
            delta = _extract_text(chunk.content) if chunk.content else ""
            if delta:
                yield TextDeltaChunk(text=delta)
            accumulated = chunk if accumulated is None else accumulated + chunk
    except Exception as e:
        logger.debug("Model stream raised %s, forwarding as error chunk", type(e).__name__)
        yield ErrorChunk(error=e)
        return

    tool_calls = getattr(accumulated, "tool_calls", None) or []
    for tc in tool_calls:
        yield ToolCallChunk(
            tool_call_id=tc.get("id") or "",
            tool_name=tc["name"],
            input=tc.get("args") or {},
        )
    yield FinishChunk(
        finish_reason="tool-calls" if tool_calls else "stop",
        total_usage=_extract_usage(accumulated),
    )


async def collect_ui_message(
    events: AsyncIterable[UIMessageEvent],
    message_id: str,
) -> Message:
    """Fold a UI event stream into an assistant message.

    Consecutive text deltas become one text part.  Tool events are merged
    per call id into a single tool part whose state follows the last event.
    Error events are recorded in ``metadata["errors"]``.

    Args:
        events (AsyncIterable[UIMessageEvent]): UI events of one turn.
        message_id (str): ID for the resulting message.

    Returns:
        Message: The assistant message as it should be persisted.
    """
    parts: List[Any] = []
    tools: Dict[str, Dict[str, Any]] = {}
    errors: List[str] = []

    async for event in events:
        if isinstance(event, UITextDeltaEvent):
            if parts and isinstance(parts[-1], list):
                parts[-1].append(event.delta)
            else:
                parts.append([event.delta])
        elif isinstance(event, (UIToolInputStartEvent, UIToolInputAvailableEvent)):
            tool = tools.get(event.tool_call_id)
            if tool is None:
                tool = {
                    "tool_name": event.tool_name,
                    "tool_call_id": event.tool_call_id,
                    "state": ToolState.INPUT_AVAILABLE,
                    "dynamic": bool(event.dynamic),
                }
                tools[event.tool_call_id] = tool
                parts.append(tool)
            if isinstance(event, UIToolInputAvailableEvent):
                tool["input"] = event.input
        elif isinstance(event, UIToolOutputAvailableEvent):
            tool = tools.get(event.tool_call_id)
            if tool is None:
                logger.warning("Tool output for unknown call %s dropped", event.tool_call_id)
                continue
            tool["output"] = event.output
            tool["state"] = ToolState.OUTPUT_AVAILABLE
        elif isinstance(event, UIErrorEvent):
            errors.append(event.error_text)

    built: List[Part] = []
    for part in parts:
        if isinstance(part, list):
            built.append(TextPart(text="".join(part)))
        else:
            built.append(ToolPart(**part))

    return Message(
        id=message_id,
        role=MessageRole.ASSISTANT,
        parts=built,
        metadata={"errors": errors} if errors else None,
    )
