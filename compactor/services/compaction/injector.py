# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Compaction marker injection.

When a model call fails because the input no longer fits the context window,
the turn is not failed.  Instead a single synthetic ``__compaction_marker``
tool call is written into the output and the turn ends normally; the
collaborator persists it like any other tool call and the history reducer
acts on it before the next call.

Two interception points cover the two ways a failure can surface:

* **Mid-stream** (:func:`intercept_context_overflow`): over the token-level
  chunk stream of one model call.  An overflow ``error`` chunk (or raised
  exception) becomes ``tool-call`` → ``tool-result`` → ``finish``.
* **Post-hoc** (:class:`CompactingStreamResult`): over the UI event stream
  built from a finished call.  An overflow ``error`` event (or raised
  exception) becomes ``tool-input-start`` → ``tool-input-available`` →
  ``tool-output-available``.

In both cases the source stream is closed after the marker and nothing else
is emitted.  Failures that are not overflows pass through untouched.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Callable,
    List,
    Optional,
    Set,
)

from compactor.schemas.stream import (
    ErrorChunk,
    FinishChunk,
    StreamChunk,
    TokenUsage,
    ToolCallChunk,
    ToolResultChunk,
    UIErrorEvent,
    UIMessageEvent,
    UIToolInputAvailableEvent,
    UIToolInputStartEvent,
    UIToolOutputAvailableEvent,
)
from compactor.services.compaction.markers import create_compaction_marker_part
from compactor.services.compaction.overflow import (
    is_context_overflow_error,
    matches_context_overflow,
)
from compactor.services.compaction.settings import CompactionSettings

logger = logging.getLogger(__name__)

CompactionCallback = Callable[[], Any]

# Strong references to scheduled callback coroutines until they finish.
_callback_tasks: Set["asyncio.Task[Any]"] = set()


def _log_callback_result(task: "asyncio.Task[Any]") -> None:
    _callback_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Compaction callback failed: %s", exc)


def notify_compaction(on_compaction: Optional[CompactionCallback]) -> None:
    """Invoke the compaction callback without waiting on it.

    Coroutine results are scheduled on the running loop.  Errors are logged
    and never interrupt marker injection.
    """
    if on_compaction is None:
        return
    try:
        result = on_compaction()
    except Exception as e:
        logger.warning("Compaction callback failed: %s", e)
        return
    if inspect.isawaitable(result):
        task = asyncio.ensure_future(result)
        _callback_tasks.add(task)
        task.add_done_callback(_log_callback_result)


def build_marker_stream_chunks() -> List[StreamChunk]:
    """Chunks that record a fresh marker and end the model call."""
    marker = create_compaction_marker_part()
    return [
        ToolCallChunk(
            tool_call_id=marker.tool_call_id,
            tool_name=marker.tool_name,
            input=marker.input,
            dynamic=True,
        ),
        ToolResultChunk(
            tool_call_id=marker.tool_call_id,
            tool_name=marker.tool_name,
            input=marker.input,
            output=marker.output,
            provider_executed=False,
            dynamic=True,
        ),
        FinishChunk(finish_reason="tool-calls", total_usage=TokenUsage.zero()),
    ]


def build_marker_ui_events() -> List[UIMessageEvent]:
    """UI events that render a fresh marker as a completed tool call."""
    marker = create_compaction_marker_part()
    return [
        UIToolInputStartEvent(
            tool_call_id=marker.tool_call_id,
            tool_name=marker.tool_name,
            dynamic=True,
        ),
        UIToolInputAvailableEvent(
            tool_call_id=marker.tool_call_id,
            tool_name=marker.tool_name,
            input=marker.input,
            dynamic=True,
        ),
        UIToolOutputAvailableEvent(
            tool_call_id=marker.tool_call_id,
            output=marker.output,
            preliminary=False,
        ),
    ]


async def _aclose(stream: Any) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()


# ---------------------------------------------------------------------------
# Mid-stream
# ---------------------------------------------------------------------------


async def intercept_context_overflow(
    chunks: AsyncIterable[StreamChunk],
    on_compaction: Optional[CompactionCallback] = None,
    settings: Optional[CompactionSettings] = None,
) -> AsyncIterator[StreamChunk]:
    """Forward model stream chunks, replacing an overflow with a marker.

    Args:
        chunks (AsyncIterable[StreamChunk]): Chunk stream of one model call.
        on_compaction (Optional[CompactionCallback]): Called once when a
            marker is injected.
        settings (Optional[CompactionSettings]): Supplies overflow patterns.

    Yields:
        StreamChunk: The source chunks, or the marker chunks followed by
            nothing once an overflow is seen.

    Raises:
        Exception: Any non-overflow exception raised by the source.
    """
    settings = settings or CompactionSettings()
    iterator = chunks.__aiter__()
    try:
        while True:
            try:
                chunk = await iterator.__anext__()
            except StopAsyncIteration:
                return
            except Exception as e:
                if not is_context_overflow_error(e, settings.overflow_patterns):
                    raise
                logger.info("Context overflow raised by model stream, injecting compaction marker")
                break
            if isinstance(chunk, ErrorChunk) and is_context_overflow_error(
                chunk.error, settings.overflow_patterns
            ):
                logger.info("Context overflow in model stream, injecting compaction marker")
                break
            yield chunk

        notify_compaction(on_compaction)
        for marker_chunk in build_marker_stream_chunks():
            yield marker_chunk
    finally:
        await _aclose(iterator)


def create_compaction_transform(
    on_compaction: Optional[CompactionCallback] = None,
    settings: Optional[CompactionSettings] = None,
) -> Callable[[AsyncIterable[StreamChunk]], AsyncIterator[StreamChunk]]:
    """Return a reusable stream transform bound to a callback and settings."""

    def transform(chunks: AsyncIterable[StreamChunk]) -> AsyncIterator[StreamChunk]:
        return intercept_context_overflow(chunks, on_compaction=on_compaction, settings=settings)

    return transform


# ---------------------------------------------------------------------------
# Post-hoc
# ---------------------------------------------------------------------------


class CompactingStreamResult:
    """Wraps a model stream result so its UI stream recovers from overflow.

    Only ``to_ui_message_stream`` is intercepted.  Every other attribute is
    read from the wrapped result.

    Args:
        stream: Object exposing ``to_ui_message_stream(*args, **kwargs)``
            which returns an async iterable of UI events.
        on_compaction: Called once per injected marker.
        settings: Supplies overflow patterns.
    """

    def __init__(
        self,
        stream: Any,
        on_compaction: Optional[CompactionCallback] = None,
        settings: Optional[CompactionSettings] = None,
    ) -> None:
        self._stream = stream
        self._on_compaction = on_compaction
        self._settings = settings or CompactionSettings()

    @property
    def wrapped(self) -> Any:
        """The underlying stream result."""
        return self._stream

    def __getattr__(self, name: str) -> Any:
        # Only reached for attributes not defined on the wrapper.
        return getattr(self._stream, name)

    def to_ui_message_stream(self, *args: Any, **kwargs: Any) -> AsyncIterator[UIMessageEvent]:
        """Build the wrapped UI stream with overflow interception."""
        return self._intercept(self._stream.to_ui_message_stream(*args, **kwargs))

    def _is_overflow_event(self, event: Any) -> bool:
        return isinstance(event, UIErrorEvent) and matches_context_overflow(
            event.error_text, self._settings.overflow_patterns
        )

    async def _intercept(self, events: AsyncIterable[UIMessageEvent]) -> AsyncIterator[UIMessageEvent]:
        iterator = events.__aiter__()
        try:
            while True:
                try:
                    event = await iterator.__anext__()
                except StopAsyncIteration:
                    return
                except Exception as e:
                    if not is_context_overflow_error(e, self._settings.overflow_patterns):
                        raise
                    logger.info("Context overflow raised by UI stream, injecting compaction marker")
                    break
                if self._is_overflow_event(event):
                    logger.info("Context overflow error event in UI stream, injecting compaction marker")
                    break
                yield event

            notify_compaction(self._on_compaction)
            for marker_event in build_marker_ui_events():
                yield marker_event
        finally:
            await _aclose(iterator)


def process_stream_output(
    stream: Any,
    on_compaction: Optional[CompactionCallback] = None,
    settings: Optional[CompactionSettings] = None,
) -> CompactingStreamResult:
    """Wrap *stream* so its ``to_ui_message_stream`` injects markers on overflow."""
    return CompactingStreamResult(stream, on_compaction=on_compaction, settings=settings)
