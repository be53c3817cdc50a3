"""Tests for the unified message and tool types."""

import pytest

from agent_bridge.types.chat import ChatResponse, Message, StreamChunk
from agent_bridge.types.tool import ToolCall, ToolDefinition, ToolResult


class TestMessage:
    """Message construction and invariants."""

    def test_tool_message_requires_a_reference(self):
        """A tool message without id or results is rejected."""
        with pytest.raises(ValueError):
            Message(role="tool", content="orphan")

    def test_batched_results_message(self):
        """Batched results satisfy the invariant without a legacy id."""
        results = [
            ToolResult(tool_call_id="a", tool_name="read_file", content="x"),
            ToolResult(tool_call_id="b", tool_name="list_dir", content="y"),
        ]
        msg = Message.batched_results(results)

        assert msg.role == "tool"
        assert msg.tool_call_id is None
        assert msg.iter_results() == tuple(results)

    def test_legacy_result_iterates_as_single_result(self):
        """The legacy form comes back as one result with an empty tool name."""
        msg = Message.tool_result("call_1", "done")

        (result,) = msg.iter_results()
        assert result.tool_call_id == "call_1"
        assert result.tool_name == ""
        assert result.content == "done"

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            Message(role="narrator", content="hi")

    def test_lists_are_stored_as_tuples(self):
        """Callers may pass lists; the message stays immutable."""
        call = ToolCall.create("read_file", {"file_path": "a.txt"}, id="1")
        msg = Message(role="assistant", tool_calls=[call])

        assert msg.tool_calls == (call,)
        assert msg.has_tool_calls
        with pytest.raises(AttributeError):
            msg.content = "changed"

    def test_assistant_without_calls(self):
        msg = Message.assistant("hello")
        assert msg.tool_calls == ()
        assert not msg.has_tool_calls


class TestToolTypes:
    """ToolCall and ToolDefinition helpers."""

    def test_tool_call_accessors(self):
        call = ToolCall.create("get_weather", {"city": "Paris"})

        assert call.name == "get_weather"
        assert call.arguments == {"city": "Paris"}
        assert call.id is None

    def test_function_schema(self):
        """Definitions render as OpenAI-style function schemas."""
        definition = ToolDefinition(
            name="t1",
            description="first",
            parameters={"type": "object", "properties": {"x": {"type": "string"}}},
        )

        assert definition.to_function_schema() == {
            "type": "function",
            "function": {
                "name": "t1",
                "description": "first",
                "parameters": {"type": "object", "properties": {"x": {"type": "string"}}},
            },
        }

    def test_default_parameters(self):
        assert ToolDefinition("t", "d").parameters == {"type": "object", "properties": {}}


class TestChunksAndResponses:
    def test_terminal_chunk(self):
        assert not StreamChunk(delta="hi").is_terminal
        assert StreamChunk(tool_calls=[ToolCall.create("t")]).is_terminal

    def test_response_shortcuts(self):
        call = ToolCall.create("t", id="1")
        response = ChatResponse(Message.assistant("text", [call]), stop_reason="tool_use")

        assert response.content == "text"
        assert response.tool_calls == (call,)
