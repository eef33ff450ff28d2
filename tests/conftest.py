# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Shared test fixtures for the context-compactor test suite."""

from typing import Any, Dict, List, Optional

import httpx
import openai
import pytest
from compactor.models import Message, MessageRole, TextPart, ToolPart, ToolState
from compactor.services.compaction.markers import (
    COMPACT_CONVERSATION_TOOL_NAME,
    create_compaction_marker_message,
)

OPENAI_URL = "https://api.openai.com/v1/chat/completions"
OVERFLOW_BODY = (
    '{"error": {"message": "This model\'s maximum context length is 128000 tokens. '
    'However, your messages resulted in 130512 tokens.", '
    '"type": "invalid_request_error", "code": "context_length_exceeded"}}'
)


# ---------------------------------------------------------------------------
# Message factories
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_message():
    """Factory fixture for creating text Message instances."""

    def _factory(
        role: MessageRole = MessageRole.USER,
        text: str = "hello",
        message_id: Optional[str] = None,
    ) -> Message:
        return Message(
            id=message_id or f"{role.value}-{text}",
            role=role,
            parts=[TextPart(text=text)],
        )

    return _factory


@pytest.fixture
def marker_message():
    """Factory fixture for assistant messages holding a compaction marker."""

    def _factory(message_id: Optional[str] = None) -> Message:
        return create_compaction_marker_message(message_id)

    return _factory


@pytest.fixture
def summary_message():
    """Factory fixture for assistant messages with a completed summary."""

    def _factory(
        summary: str = "S",
        compacted_at: str = "2026-01-01T00:00:00.000Z",
        message_id: Optional[str] = None,
    ) -> Message:
        return Message(
            id=message_id or f"summary-{summary}",
            role=MessageRole.ASSISTANT,
            parts=[
                ToolPart(
                    tool_name=COMPACT_CONVERSATION_TOOL_NAME,
                    tool_call_id=f"call-{summary}",
                    state=ToolState.OUTPUT_AVAILABLE,
                    input={"summary": summary},
                    output={"summary": summary, "compacted_at": compacted_at, "message": "ok"},
                    dynamic=False,
                )
            ],
        )

    return _factory


# ---------------------------------------------------------------------------
# Provider error factories
# ---------------------------------------------------------------------------


@pytest.fixture
def bad_request_error():
    """Factory fixture for openai.BadRequestError with a raw response body."""

    def _factory(
        body_text: str = OVERFLOW_BODY,
        message: str = "Error code: 400",
        body: Optional[Dict[str, Any]] = None,
    ) -> openai.BadRequestError:
        response = httpx.Response(
            400,
            request=httpx.Request("POST", OPENAI_URL),
            text=body_text,
        )
        return openai.BadRequestError(message, response=response, body=body)

    return _factory


@pytest.fixture
def overflow_error(bad_request_error):
    """A provider error reporting a context-length overflow."""
    return bad_request_error()


@pytest.fixture
def other_api_error(bad_request_error):
    """A provider error unrelated to context size."""
    return bad_request_error(
        body_text='{"error": {"message": "Invalid API key provided", "code": "invalid_api_key"}}'
    )


# ---------------------------------------------------------------------------
# Stream helpers
# ---------------------------------------------------------------------------


class FakeStream:
    """Async iterator over fixed items that can raise at the end and records closing."""

    def __init__(self, items: List[Any], raise_at_end: Optional[BaseException] = None) -> None:
        self._items = list(items)
        self._raise_at_end = raise_at_end
        self.closed = False
        self.consumed = 0

    def __aiter__(self) -> "FakeStream":
        return self

    async def __anext__(self) -> Any:
        if self.closed:
            raise StopAsyncIteration
        if self._items:
            self.consumed += 1
            return self._items.pop(0)
        if self._raise_at_end is not None:
            error, self._raise_at_end = self._raise_at_end, None
            raise error
        raise StopAsyncIteration

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_stream():
    """Factory fixture for FakeStream instances."""

    def _factory(items: List[Any], raise_at_end: Optional[BaseException] = None) -> FakeStream:
        return FakeStream(items, raise_at_end)

    return _factory
