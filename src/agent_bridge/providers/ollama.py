from __future__ import annotations

import logging
import os
from typing import Any, AsyncGenerator, Optional, Self, Sequence

import httpx
from ollama import AsyncClient, ResponseError

from agent_bridge._exceptions import (
    AuthenticationError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
)
from agent_bridge.providers.base import BaseAsyncLLM, RequestAdapter
from agent_bridge.stream_utils import StreamStatus
from agent_bridge.types.chat import ChatRequest, Message, StreamChunk
from agent_bridge.types.tool import ToolCall, ToolDefinition

__all__ = [
    "DEFAULT_OLLAMA_HOST",
    "OllamaRequestAdapter",
    "OllamaLLM",
    "classify_ollama_error",
]

DEFAULT_OLLAMA_HOST = "http://localhost:11434"


def _image_for_ollama(image: bytes | str) -> bytes | str:
    # Ollama takes raw bytes or bare base64; strip a data-URL header if present.
    if isinstance(image, str) and image.startswith("data:") and "," in image:
        return image.split(",", 1)[1]
    return image


class OllamaRequestAdapter:
    """Adapter for converting unified requests to Ollama's chat format."""

    def build_messages(self, messages: Sequence[Message]) -> list[dict[str, Any]]:
        """
        Convert unified messages to Ollama messages.

        Ollama has no call ids; a tool reply is identified by ``tool_name``,
        so a batched tool message is exploded into one message per result.
        """
        ollama_messages: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role == "tool":
                for result in msg.iter_results():
                    tool_msg: dict[str, Any] = {"role": "tool", "content": result.content}
                    if result.tool_name:
                        tool_msg["tool_name"] = result.tool_name
                    ollama_messages.append(tool_msg)
                continue

            ollama_msg: dict[str, Any] = {"role": msg.role, "content": msg.content}

            if msg.tool_calls:
                ollama_msg["tool_calls"] = [
                    {"function": {"name": call.name, "arguments": dict(call.arguments)}}
                    for call in msg.tool_calls
                ]

            if msg.images:
                ollama_msg["images"] = [_image_for_ollama(img) for img in msg.images]

            ollama_messages.append(ollama_msg)

        return ollama_messages

    def build_tools(self, tools: Sequence[ToolDefinition]) -> list[dict[str, Any]]:
        return [tool.to_function_schema() for tool in tools]

    def to_provider(self, request: ChatRequest, model: str) -> dict[str, Any]:
        args: dict[str, Any] = {
            "model": request.model or model,
            "messages": self.build_messages(request.messages),
        }
        if request.tools:
            args["tools"] = self.build_tools(request.tools)
        return args

    def tool_call_from(self, raw_call: Any) -> Optional[ToolCall]:
        """Convert an Ollama tool call (already fully formed) to a ToolCall."""
        fn = getattr(raw_call, "function", None)
        if fn is None:
            return None
        arguments = getattr(fn, "arguments", None)
        return ToolCall.create(
            getattr(fn, "name", "") or "",
            dict(arguments) if arguments else {},
        )


def classify_ollama_error(exc: Exception, model: str) -> ProviderError:
    """Map an Ollama client failure into the shared taxonomy."""
    if isinstance(exc, ResponseError):
        status = getattr(exc, "status_code", -1)
        detail = getattr(exc, "error", None) or str(exc)
        lowered = detail.lower()
        if status == 404 or "not found" in lowered or "pull" in lowered:
            return ModelNotFoundError(
                model, f"Model {model} not found: {detail}", original_exc=exc
            )
        if status in (401, 403):
            return AuthenticationError(
                f"Ollama rejected the request: {detail}", original_exc=exc
            )
        if status == 429:
            return RateLimitError(f"Ollama rate limited: {detail}", original_exc=exc)
        return ProviderError(f"Ollama error ({status}): {detail}", original_exc=exc)

    if isinstance(exc, (ConnectionError, httpx.ConnectError, httpx.TimeoutException)):
        return AuthenticationError(f"Failed to connect to Ollama: {exc}", original_exc=exc)

    return ProviderError(str(exc) or exc.__class__.__name__, original_exc=exc)


class OllamaLLM(BaseAsyncLLM):
    """
    Ollama adapter (local streaming RPC).

    Use ``OllamaLLM.from_client`` when you already have an ``AsyncClient``.
    """

    provider_type = "ollama"

    def __init__(
        self,
        model: str,
        *,
        host: Optional[str] = None,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(model=model, logger=logger, name=name)
        self.host = host or os.environ.get("OLLAMA_HOST") or DEFAULT_OLLAMA_HOST
        self._client = AsyncClient(host=self.host, timeout=timeout)
        self._adapter = OllamaRequestAdapter()

    @classmethod
    def from_client(
        cls,
        model: str,
        client: AsyncClient,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Build an ``OllamaLLM`` around an already‑configured ``AsyncClient``.
        """
        if not isinstance(client, AsyncClient):
            raise TypeError(
                f"OllamaLLM.from_client expects ollama.AsyncClient; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseAsyncLLM.__init__(self, model=model, logger=logger, name=name)
        self.host = None
        self._client = client
        self._adapter = OllamaRequestAdapter()
        return self

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    def classify_error(self, exc: Exception) -> ProviderError:
        return classify_ollama_error(exc, self.model)

    async def _stream_impl(
        self, request: ChatRequest, status: StreamStatus
    ) -> AsyncGenerator[StreamChunk, None]:
        args = self._adapter.to_provider(request, self.model)
        self._log(f"Sending request to Ollama model {args['model']} (Stream: True)")

        stream = await self._client.chat(**args, stream=True)
        tool_calls: list[ToolCall] = []

        async for chunk in stream:
            message = getattr(chunk, "message", None)
            if message is not None:
                delta = getattr(message, "content", None) or ""
                if delta:
                    yield StreamChunk(delta=delta)
                for raw_call in getattr(message, "tool_calls", None) or ():
                    call = self._adapter.tool_call_from(raw_call)
                    if call is not None:
                        tool_calls.append(call)
            if getattr(chunk, "done_reason", None) == "length":
                status.stop_reason = "max_tokens"

        if tool_calls:
            status.stop_reason = "tool_use"
            yield StreamChunk(tool_calls=tool_calls)
