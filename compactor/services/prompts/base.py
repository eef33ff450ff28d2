# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Texts the compaction subsystem shows to the model.

These are the only strings that reach the model on behalf of the library:
the compaction tool description, the retry request that asks the model to
call the tool, and the summary banner that replaces compacted history.
Keep them plain and direct; the model follows instructions literally.
"""

from typing import Optional

COMPACT_CONVERSATION_TOOL_DESCRIPTION = """Compact the conversation history to save context space. Call this tool when instructed that the conversation is approaching context limits. Provide a detailed and thorough summary that captures:
- The main topics discussed
- Key decisions made
- Important code changes or file modifications (include file paths and what was changed)
- Any ongoing tasks or action items
- Critical context needed to continue the conversation
- Relevant technical details, configurations, or environment information
- Any errors encountered and how they were resolved

Be thorough and detailed. This summary will replace the earlier conversation history, so include all information needed to continue effectively."""

COMPACT_CONVERSATION_SUMMARY_DESCRIPTION = (
    "A detailed and thorough summary of the conversation so far, including "
    "all important context needed to continue effectively."
)

COMPACTION_TOOL_ACK = (
    "Conversation history has been compacted. The summary will be used to "
    "maintain context in future messages."
)

COMPACTION_MARKER_INTENT = "Out of context, compaction in progress..."
COMPACTION_MARKER_OUTPUT = (
    "Compaction marker - this will trigger compaction on the next iteration"
)

COMPACTION_SUMMARY_ACK = "Acknowledged."

_COMPACTION_REQUEST_TEMPLATE = """[SYSTEM NOTICE - CONTEXT LIMIT]
{usage_line}

To prevent context overflow errors, please call the `{tool_name}` tool NOW to summarize the conversation history.

Provide a detailed and thorough summary that captures all important context, decisions, code changes, file paths, and ongoing tasks. Do not leave out important details."""

_COMPACTION_SUMMARY_TEMPLATE = """[Previous conversation summary - compacted at {compacted_at}]

{summary}

---
The conversation continues from this point."""


def build_compaction_request_text(
    tool_name: str,
    token_count: Optional[int] = None,
    threshold: Optional[int] = None,
) -> str:
    """Render the notice asking the model to compact the conversation.

    Args:
        tool_name (str): Name of the compaction tool to call.
        token_count (Optional[int]): Estimated tokens in the conversation.
        threshold (Optional[int]): Context budget the count is measured
            against.

    Returns:
        str: The notice text. When both numbers are known it states the
            usage as a percentage, e.g. ``"80% (80,000 / 100,000 tokens)"``.
    """
    if token_count is not None and threshold:
        pct = round(token_count / threshold * 100)
        usage_line = (
            f"Your conversation is using {pct}% of the context window "
            f"({token_count:,} / {threshold:,} tokens)."
        )
    else:
        usage_line = "Your conversation has exceeded the context window."
    return _COMPACTION_REQUEST_TEMPLATE.format(usage_line=usage_line, tool_name=tool_name)


def build_compaction_summary_text(summary: str, compacted_at: Optional[str]) -> str:
    """Render a model-authored summary under the previous-conversation banner."""
    return _COMPACTION_SUMMARY_TEMPLATE.format(
        compacted_at=compacted_at or "an earlier turn",
        summary=summary,
    )
