# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Shared models for the application.

Messages follow the UI message shape persisted by the chat collaborator:
an id, a role and an ordered tuple of parts.  Tool parts arrive in two wire
encodings, ``{"type": "dynamic-tool", "toolName": ...}`` and
``{"type": "tool-<name>", ...}``; both validate into the single
:class:`ToolPart` type so the rest of the library only ever compares
``tool_name``.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, computed_field, model_validator

DYNAMIC_TOOL_TYPE = "dynamic-tool"
STATIC_TOOL_PREFIX = "tool-"


class MessageRole(str, Enum):
    """Message role enumeration.

    Attributes:
        USER (str): User role.
        ASSISTANT (str): Assistant role.
        SYSTEM (str): System role.
    """

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ToolState(str, Enum):
    """Lifecycle state of a tool invocation part.

    Attributes:
        INPUT_AVAILABLE (str): The call was issued but has no result yet.
        OUTPUT_AVAILABLE (str): The call completed with an output.
        OUTPUT_ERROR (str): The call completed with an error.
    """

    INPUT_AVAILABLE = "input-available"
    OUTPUT_AVAILABLE = "output-available"
    OUTPUT_ERROR = "output-error"


class TextPart(BaseModel):
    """Plain text content.

    Attributes:
        type (Literal["text"]): Part type discriminator.
        text (str): The text value.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ToolPart(BaseModel):
    """A tool invocation and, once complete, its result.

    Attributes:
        tool_name (str): Name of the invoked tool.
        tool_call_id (str): Correlation ID of the call.
        state (ToolState): Lifecycle state of the invocation.
        input (Any): Arguments the model passed to the tool.
        output (Any): Tool result when ``state`` is output-available.
        error_text (Optional[str]): Error description when ``state`` is
            output-error.
        dynamic (bool): ``True`` for the generic ``dynamic-tool`` encoding,
            ``False`` for the statically named ``tool-<name>`` encoding.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    tool_name: str = Field(alias="toolName")
    tool_call_id: str = Field(default="", alias="toolCallId")
    state: ToolState
    input: Any = None
    output: Any = None
    error_text: Optional[str] = Field(default=None, alias="errorText")
    dynamic: bool = True

    @model_validator(mode="before")
    @classmethod
    def _normalize_encoding(cls, values: Any) -> Any:
        """Collapse both tool part encodings into ``tool_name`` + ``dynamic``."""
        if not isinstance(values, dict) or "type" not in values:
            return values
        values = dict(values)
        part_type = values.pop("type")
        if part_type == DYNAMIC_TOOL_TYPE:
            values.setdefault("dynamic", True)
        elif isinstance(part_type, str) and part_type.startswith(STATIC_TOOL_PREFIX):
            if "toolName" not in values and "tool_name" not in values:
                values["tool_name"] = part_type[len(STATIC_TOOL_PREFIX) :]
            values.setdefault("dynamic", False)
        else:
            raise ValueError(f"Not a tool part type: {part_type!r}")
        return values

    @computed_field  # type: ignore[prop-decorator]
    @property
    def type(self) -> str:
        """Wire type tag for the encoding this part arrived in."""
        if self.dynamic:
            return DYNAMIC_TOOL_TYPE
        return f"{STATIC_TOOL_PREFIX}{self.tool_name}"


class OtherPart(BaseModel):
    """Any part kind the compaction logic does not inspect (reasoning, files, step markers)."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: str


def _part_kind(value: Any) -> str:
    part_type = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    if part_type == "text":
        return "text"
    if part_type == DYNAMIC_TOOL_TYPE or (
        isinstance(part_type, str) and part_type.startswith(STATIC_TOOL_PREFIX)
    ):
        return "tool"
    return "other"


Part = Annotated[
    Union[
        Annotated[TextPart, Tag("text")],
        Annotated[ToolPart, Tag("tool")],
        Annotated[OtherPart, Tag("other")],
    ],
    Discriminator(_part_kind),
]


class Message(BaseModel):
    """Message model.

    Messages are immutable once created.  Compaction never edits a stored
    message; it only builds new lists that reuse the original objects.

    Attributes:
        id (str): Unique message identifier.
        role (MessageRole): The role of the message author.
        parts (Tuple[Part, ...]): Ordered content parts. Lists are accepted
            on input and stored as a tuple.
        metadata (Optional[Dict[str, Any]]): Collaborator-defined metadata,
            carried through untouched.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    role: MessageRole
    parts: Tuple[Part, ...] = Field(default_factory=tuple)
    metadata: Optional[Dict[str, Any]] = None

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def tool_parts(self) -> List[ToolPart]:
        """All tool parts in order."""
        return [p for p in self.parts if isinstance(p, ToolPart)]
