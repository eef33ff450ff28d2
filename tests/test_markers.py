# Copyright (c) 2026 Heureum AI. All rights reserved.

"""Tests for compaction markers, summaries and turn counting."""

from compactor.models import Message, MessageRole, TextPart, ToolPart, ToolState
from compactor.services.compaction.markers import (
    COMPACT_CONVERSATION_TOOL_NAME,
    COMPACTION_MARKER_TOOL_NAME,
    build_compaction_request_message,
    build_compaction_summary_messages,
    count_compaction_markers,
    count_consecutive_compaction_attempts,
    create_compaction_marker_message,
    create_compaction_marker_part,
    find_compaction_summary,
    find_turn_start_index,
    is_compact_conversation_part,
    is_compaction_marker_message,
    is_compaction_marker_part,
    is_compaction_summary_part,
    strip_compaction_markers,
)

U = MessageRole.USER
A = MessageRole.ASSISTANT


def _compact_call(state: ToolState = ToolState.INPUT_AVAILABLE, output=None) -> Message:
    """Create an assistant message with a compact_conversation call."""
    return Message(
        id=f"compact-{state.value}",
        role=A,
        parts=[
            ToolPart(
                tool_name=COMPACT_CONVERSATION_TOOL_NAME,
                tool_call_id="call-1",
                state=state,
                input={"summary": "s"},
                output=output,
            )
        ],
    )


# ---------------------------------------------------------------------------
# Recognizers
# ---------------------------------------------------------------------------


class TestRecognizers:
    """Tests for marker and summary recognition."""

    def test_marker_part(self):
        """Verify a created marker part is recognized."""
        part = create_compaction_marker_part()
        assert is_compaction_marker_part(part)
        assert part.tool_name == COMPACTION_MARKER_TOOL_NAME
        assert part.state == ToolState.OUTPUT_AVAILABLE
        assert part.input == {"model_intent": "Out of context, compaction in progress..."}
        assert part.tool_call_id.startswith("compaction-marker-")
        assert part.type == "dynamic-tool"

    def test_marker_ids_unique(self):
        """Verify each marker gets a fresh call id."""
        assert create_compaction_marker_part().tool_call_id != create_compaction_marker_part().tool_call_id

    def test_text_part_is_not_marker(self):
        """Verify text parts are never markers."""
        assert not is_compaction_marker_part(TextPart(text=COMPACTION_MARKER_TOOL_NAME))

    def test_static_encoding_marker(self):
        """Verify a marker in the ``tool-<name>`` encoding is recognized."""
        msg = Message.model_validate(
            {
                "id": "m",
                "role": "assistant",
                "parts": [
                    {
                        "type": f"tool-{COMPACTION_MARKER_TOOL_NAME}",
                        "toolCallId": "x",
                        "state": "output-available",
                        "input": {},
                        "output": "done",
                    }
                ],
            }
        )
        assert is_compaction_marker_message(msg)

    def test_marker_message_with_extra_parts(self, sample_message):
        """Verify any marker part makes the whole message a marker."""
        msg = Message(
            id="mixed",
            role=A,
            parts=[TextPart(text="partial answer"), create_compaction_marker_part()],
        )
        assert is_compaction_marker_message(msg)
        assert not is_compaction_marker_message(sample_message(A, "plain"))

    def test_compact_conversation_any_state(self):
        """Verify compact_conversation calls are recognized in every state."""
        for state in ToolState:
            assert is_compact_conversation_part(_compact_call(state).parts[0])

    def test_summary_requires_output(self):
        """Verify only completed calls with output count as summaries."""
        assert not is_compaction_summary_part(_compact_call(ToolState.INPUT_AVAILABLE).parts[0])
        assert not is_compaction_summary_part(_compact_call(ToolState.OUTPUT_ERROR).parts[0])
        done = _compact_call(ToolState.OUTPUT_AVAILABLE, output={"summary": "s"})
        assert is_compaction_summary_part(done.parts[0])


# ---------------------------------------------------------------------------
# find_compaction_summary
# ---------------------------------------------------------------------------


class TestFindCompactionSummary:
    """Tests for locating the latest summary."""

    def test_none_without_summary(self, sample_message):
        """Verify None is returned when history has no summary."""
        assert find_compaction_summary([sample_message(U, "1"), sample_message(A, "a")]) is None

    def test_latest_summary_wins(self, sample_message, summary_message):
        """Verify the most recent summary is returned with its index."""
        history = [
            summary_message("old"),
            sample_message(U, "1"),
            summary_message("new", compacted_at="2026-02-02T00:00:00.000Z"),
            sample_message(U, "2"),
        ]
        found = find_compaction_summary(history)
        assert found.summary == "new"
        assert found.compacted_at == "2026-02-02T00:00:00.000Z"
        assert found.index == 2

    def test_empty_summary_ignored(self, summary_message):
        """Verify a summary with empty text is skipped."""
        history = [summary_message("real"), summary_message("")]
        assert find_compaction_summary(history).summary == "real"

    def test_user_role_ignored(self, summary_message):
        """Verify summaries on user messages are not used."""
        msg = summary_message("S")
        user_copy = Message(id="u", role=U, parts=msg.parts)
        assert find_compaction_summary([user_copy]) is None


# ---------------------------------------------------------------------------
# Counting
# ---------------------------------------------------------------------------


class TestCountCompactionMarkers:
    """Tests for count_compaction_markers."""

    def test_counts_all_markers(self, sample_message, marker_message):
        """Verify markers are counted across the whole history."""
        history = [sample_message(U, "1"), marker_message(), sample_message(U, "2"), marker_message()]
        assert count_compaction_markers(history) == 2

    def test_stops_at_summary(self, sample_message, marker_message, summary_message):
        """Verify markers before a summary are not counted."""
        history = [marker_message(), summary_message(), sample_message(U, "1"), marker_message()]
        assert count_compaction_markers(history) == 1

    def test_before_index(self, sample_message, marker_message):
        """Verify the scan starts before the given index."""
        history = [sample_message(U, "1"), marker_message(), sample_message(U, "2"), marker_message()]
        assert count_compaction_markers(history, before_index=2) == 1
        assert count_compaction_markers(history, before_index=0) == 0

    def test_empty(self):
        """Verify an empty history has no markers."""
        assert count_compaction_markers([]) == 0


class TestFindTurnStartIndex:
    """Tests for find_turn_start_index."""

    def test_counts_user_messages_backward(self, sample_message, marker_message):
        """Verify the N-th user message from the end is found, skipping markers."""
        history = [
            sample_message(U, "1"),
            sample_message(U, "2"),
            sample_message(A, "2a"),
            sample_message(A, "2b"),
            sample_message(U, "3"),
            marker_message(),
        ]
        assert find_turn_start_index(history, 1) == 4
        assert find_turn_start_index(history, 2) == 1
        assert find_turn_start_index(history, 3) == 0

    def test_not_enough_turns(self, sample_message):
        """Verify 0 is returned when fewer user messages exist."""
        assert find_turn_start_index([sample_message(U, "1")], 5) == 0

    def test_zero_turns(self, sample_message):
        """Verify zero turns maps to the end of the history."""
        history = [sample_message(U, "1"), sample_message(A, "a")]
        assert find_turn_start_index(history, 0) == 2


class TestCountConsecutiveCompactionAttempts:
    """Tests for the loop guard counter."""

    def test_trailing_run(self, sample_message, marker_message):
        """Verify only the trailing run of attempts is counted."""
        history = [
            _compact_call(),
            sample_message(U, "1"),
            _compact_call(),
            marker_message(),
            _compact_call(ToolState.OUTPUT_ERROR),
        ]
        assert count_consecutive_compaction_attempts(history) == 3

    def test_plain_assistant_breaks_run(self, sample_message):
        """Verify a non-compaction assistant message ends the run."""
        history = [_compact_call(), sample_message(A, "answer")]
        assert count_consecutive_compaction_attempts(history) == 0

    def test_empty(self):
        """Verify an empty history has no attempts."""
        assert count_consecutive_compaction_attempts([]) == 0


class TestStripCompactionMarkers:
    """Tests for strip_compaction_markers."""

    def test_removes_markers_only(self, sample_message, marker_message):
        """Verify marker messages are removed and others kept by identity."""
        u1, a1 = sample_message(U, "1"), sample_message(A, "a")
        result = strip_compaction_markers([u1, marker_message(), a1, marker_message()])
        assert result == [u1, a1]
        assert result[0] is u1

    def test_idempotent(self, sample_message, marker_message):
        """Verify stripping twice equals stripping once."""
        history = [sample_message(U, "1"), marker_message()]
        once = strip_compaction_markers(history)
        assert strip_compaction_markers(once) == once


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


class TestBuilders:
    """Tests for synthetic message builders."""

    def test_marker_message(self):
        """Verify marker messages are assistant messages with one marker part."""
        msg = create_compaction_marker_message("mk-1")
        assert msg.id == "mk-1"
        assert msg.role == A
        assert len(msg.parts) == 1
        assert is_compaction_marker_part(msg.parts[0])

    def test_request_without_usage(self):
        """Verify the request names the tool and reports overflow."""
        msg = build_compaction_request_message()
        assert msg.role == U
        assert msg.id.startswith("compaction-request-")
        assert "compact_conversation" in msg.text
        assert "exceeded the context window" in msg.text

    def test_request_with_usage(self):
        """Verify the request is annotated with percentage and token counts."""
        msg = build_compaction_request_message(token_count=150_000, threshold=200_000)
        assert "75%" in msg.text
        assert "150,000 / 200,000 tokens" in msg.text

    def test_summary_messages(self):
        """Verify the summary pair alternates roles and embeds the summary."""
        user, ack = build_compaction_summary_messages("the summary", "2026-01-01T00:00:00.000Z")
        assert (user.id, user.role) == ("compaction-summary", U)
        assert (ack.id, ack.role) == ("compaction-summary-response", A)
        assert "the summary" in user.text
        assert "compacted at 2026-01-01T00:00:00.000Z" in user.text
        assert ack.text == "Acknowledged."
