"""Tests for the Ollama adapter."""

from types import SimpleNamespace

import httpx
import pytest
from ollama import AsyncClient, ResponseError

from agent_bridge._exceptions import (
    AuthenticationError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
)
from agent_bridge.providers.ollama import (
    DEFAULT_OLLAMA_HOST,
    OllamaLLM,
    OllamaRequestAdapter,
    classify_ollama_error,
)
from agent_bridge.types.chat import ChatRequest, Message
from agent_bridge.types.tool import ToolCall, ToolDefinition, ToolResult


def _chunk(content="", tool_calls=None, done_reason=None):
    return SimpleNamespace(
        message=SimpleNamespace(content=content, tool_calls=tool_calls),
        done_reason=done_reason,
    )


def _raw_call(name, arguments):
    return SimpleNamespace(function=SimpleNamespace(name=name, arguments=arguments))


@pytest.fixture
def fake_chat(monkeypatch):
    """Patch AsyncClient.chat to replay the given chunks and record the call."""
    calls = []

    def install(llm, chunks=(), error=None):
        async def chat(**kwargs):
            calls.append(kwargs)
            if error is not None:
                raise error

            async def stream():
                for chunk in chunks:
                    yield chunk

            return stream()

        monkeypatch.setattr(llm._client, "chat", chat)
        return calls

    return install


class TestOllamaRequestAdapter:
    """Outbound translation."""

    def test_batched_results_are_exploded(self):
        """Each result becomes its own tool message, identified by name."""
        adapter = OllamaRequestAdapter()
        messages = [
            Message.user("hi"),
            Message.assistant("", [ToolCall.create("a", {"x": 1}), ToolCall.create("b")]),
            Message.batched_results([
                ToolResult("", "a", "ra"),
                ToolResult("", "b", "rb"),
            ]),
        ]

        out = adapter.build_messages(messages)

        assert out[1] == {
            "role": "assistant",
            "content": "",
            "tool_calls": [
                {"function": {"name": "a", "arguments": {"x": 1}}},
                {"function": {"name": "b", "arguments": {}}},
            ],
        }
        assert out[2:] == [
            {"role": "tool", "content": "ra", "tool_name": "a"},
            {"role": "tool", "content": "rb", "tool_name": "b"},
        ]

    def test_to_provider_includes_tools_only_when_present(self):
        adapter = OllamaRequestAdapter()
        request = ChatRequest(messages=[Message.user("hi")], model="")

        assert "tools" not in adapter.to_provider(request, "llama3.2")
        assert adapter.to_provider(request, "llama3.2")["model"] == "llama3.2"

        request.tools = [ToolDefinition("t1", "first")]
        assert adapter.to_provider(request, "llama3.2")["tools"][0]["function"]["name"] == "t1"

    def test_data_url_images_are_stripped(self):
        out = OllamaRequestAdapter().build_messages(
            [Message.user("look", images=["data:image/png;base64,QUJD"])]
        )
        assert out[0]["images"] == ["QUJD"]


class TestOllamaLLM:
    """Streaming against a patched client."""

    def test_host_resolution(self, monkeypatch):
        assert OllamaLLM("llama3.2").host == DEFAULT_OLLAMA_HOST
        monkeypatch.setenv("OLLAMA_HOST", "http://gpu-box:11434")
        assert OllamaLLM("llama3.2").host == "http://gpu-box:11434"
        assert OllamaLLM("llama3.2", host="http://other:1").host == "http://other:1"

    def test_from_client_type_check(self):
        with pytest.raises(TypeError):
            OllamaLLM.from_client("llama3.2", object())

    @pytest.mark.asyncio
    async def test_text_then_terminal_tool_chunk(self, fake_chat):
        llm = OllamaLLM.from_client("llama3.2", AsyncClient(), name="local")
        calls = fake_chat(llm, [
            _chunk("Let me "),
            _chunk("check."),
            _chunk(tool_calls=[_raw_call("read_file", {"file_path": "a.txt"})]),
            _chunk(done_reason="stop"),
        ])

        chunks = [c async for c in llm.stream_chat(
            ChatRequest(messages=[Message.user("read a.txt")], model="")
        )]

        assert [c.delta for c in chunks[:-1]] == ["Let me ", "check."]
        (call,) = chunks[-1].tool_calls
        assert call.name == "read_file"
        assert call.arguments == {"file_path": "a.txt"}
        assert call.id is None
        assert calls[0]["stream"] is True
        assert calls[0]["model"] == "llama3.2"

    @pytest.mark.asyncio
    async def test_chat_reports_max_tokens(self, fake_chat):
        llm = OllamaLLM.from_client("llama3.2", AsyncClient())
        fake_chat(llm, [_chunk("partial"), _chunk(done_reason="length")])

        response = await llm.chat(ChatRequest(messages=[Message.user("hi")], model=""))

        assert response.content == "partial"
        assert response.stop_reason == "max_tokens"

    @pytest.mark.asyncio
    async def test_errors_are_translated_and_tagged(self, fake_chat):
        llm = OllamaLLM.from_client("llama3.2", AsyncClient(), name="local")
        fake_chat(llm, error=ResponseError("model 'llama3.2' not found", 404))

        with pytest.raises(ModelNotFoundError) as excinfo:
            await llm.chat(ChatRequest(messages=[Message.user("hi")], model=""))

        assert excinfo.value.provider == "local"
        assert excinfo.value.model == "llama3.2"
        assert isinstance(excinfo.value.original_exc, ResponseError)


class TestClassifyOllamaError:
    @pytest.mark.parametrize(
        "exc, expected",
        [
            (ResponseError("try pulling it first", 500), ModelNotFoundError),
            (ResponseError("unauthorized", 401), AuthenticationError),
            (ResponseError("slow down", 429), RateLimitError),
            (ResponseError("boom", 500), ProviderError),
            (ConnectionError("refused"), AuthenticationError),
            (httpx.ConnectError("refused"), AuthenticationError),
        ],
    )
    def test_mapping(self, exc, expected):
        error = classify_ollama_error(exc, "llama3.2")
        assert type(error) is expected
        assert error.original_exc is exc

    def test_connection_message(self):
        error = classify_ollama_error(ConnectionError("refused"), "m")
        assert error.message.startswith("Failed to connect to Ollama")
