# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Stream item schemas.

Two levels of streaming are modelled:

* **Stream chunks**: the token-level output of a single model call
  (``text-delta``, ``tool-call``, ``tool-result``, ``finish``, ``error``).
* **UI events**: the higher-level event stream handed to the chat
  collaborator after a model call (``text-delta``, ``tool-input-start``,
  ``tool-input-available``, ``tool-output-available``, ``finish``,
  ``error``).

UI events serialize with camelCase aliases (``toolCallId``, ``errorText``)
to match the chat client's wire format.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Token-level stream chunks
# ---------------------------------------------------------------------------


class TokenUsage(BaseModel):
    """Token usage reported with a ``finish`` chunk.

    Attributes:
        input_tokens (int): Number of input tokens.
        output_tokens (int): Number of output tokens.
        total_tokens (int): Sum of input and output tokens.
    """

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def zero(cls) -> "TokenUsage":
        """Return a Usage instance with all counters set to zero."""
        return cls(input_tokens=0, output_tokens=0, total_tokens=0)


class TextDeltaChunk(BaseModel):
    """Incremental assistant text."""

    type: Literal["text-delta"] = "text-delta"
    text: str


class ToolCallChunk(BaseModel):
    """A complete tool call issued by the model.

    Attributes:
        tool_call_id (str): Correlation ID of the call.
        tool_name (str): Name of the tool.
        input (Any): Parsed tool arguments.
        dynamic (bool): Whether the tool is not part of the static tool set.
    """

    type: Literal["tool-call"] = "tool-call"
    tool_call_id: str
    tool_name: str
    input: Any = None
    dynamic: bool = False


class ToolResultChunk(BaseModel):
    """Result of a tool call.

    Attributes:
        tool_call_id (str): Correlation ID of the call.
        tool_name (str): Name of the tool.
        input (Any): Arguments the tool was called with.
        output (Any): The tool result.
        provider_executed (bool): Whether the provider ran the tool.
        dynamic (bool): Whether the tool is not part of the static tool set.
    """

    type: Literal["tool-result"] = "tool-result"
    tool_call_id: str
    tool_name: str
    input: Any = None
    output: Any = None
    provider_executed: bool = False
    dynamic: bool = False


class FinishChunk(BaseModel):
    """End of a model call.

    Attributes:
        finish_reason (str): Why generation stopped (``stop``,
            ``tool-calls``, ``length``, ...).
        total_usage (TokenUsage): Token usage of the call.
    """

    type: Literal["finish"] = "finish"
    finish_reason: str = "stop"
    total_usage: TokenUsage = Field(default_factory=TokenUsage.zero)


class ErrorChunk(BaseModel):
    """A failure surfaced in-band by the model stream.

    Attributes:
        error (Any): The original error value, usually an exception.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: Literal["error"] = "error"
    error: Any = None


StreamChunk = Annotated[
    Union[TextDeltaChunk, ToolCallChunk, ToolResultChunk, FinishChunk, ErrorChunk],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# UI events
# ---------------------------------------------------------------------------


class UIEvent(BaseModel):
    """Base for UI events; serializes with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UITextDeltaEvent(UIEvent):
    """Incremental text for the assistant message being rendered."""

    type: Literal["text-delta"] = "text-delta"
    id: str = "text"
    delta: str


class UIToolInputStartEvent(UIEvent):
    """A tool call has started streaming its input."""

    type: Literal["tool-input-start"] = "tool-input-start"
    tool_call_id: str
    tool_name: str
    dynamic: Optional[bool] = None


class UIToolInputAvailableEvent(UIEvent):
    """The complete tool input is available."""

    type: Literal["tool-input-available"] = "tool-input-available"
    tool_call_id: str
    tool_name: str
    input: Any = None
    dynamic: Optional[bool] = None


class UIToolOutputAvailableEvent(UIEvent):
    """The tool produced its output.

    Attributes:
        tool_call_id (str): Correlation ID of the call.
        output (Any): The tool result.
        preliminary (bool): Whether more output for this call will follow.
    """

    type: Literal["tool-output-available"] = "tool-output-available"
    tool_call_id: str
    output: Any = None
    preliminary: bool = False


class UIFinishEvent(UIEvent):
    """End of the UI message stream."""

    type: Literal["finish"] = "finish"


class UIErrorEvent(UIEvent):
    """An error reported as text to the UI.

    Attributes:
        error_text (str): Human-readable error description.
    """

    type: Literal["error"] = "error"
    error_text: str


UIMessageEvent = Annotated[
    Union[
        UITextDeltaEvent,
        UIToolInputStartEvent,
        UIToolInputAvailableEvent,
        UIToolOutputAvailableEvent,
        UIFinishEvent,
        UIErrorEvent,
    ],
    Field(discriminator="type"),
]
