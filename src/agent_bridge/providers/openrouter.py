from __future__ import annotations

import base64
import json
import logging
import os
from typing import Any, AsyncGenerator, Optional, Self, Sequence

import httpx

from agent_bridge._exceptions import (
    AuthenticationError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
)
from agent_bridge.providers.base import BaseAsyncLLM, CallIdLedger, RequestAdapter
from agent_bridge.stream_utils import SSEDecoder, StreamStatus, ToolCallAccumulator
from agent_bridge.types.chat import ChatRequest, Message, StopReason, StreamChunk
from agent_bridge.types.tool import ToolCall, ToolDefinition

__all__ = [
    "DEFAULT_OPENROUTER_BASE_URL",
    "OpenRouterRequestAdapter",
    "ChatCompletionStreamState",
    "OpenRouterLLM",
    "classify_openrouter_status",
    "classify_openrouter_error",
]

logger = logging.getLogger(__name__)

DEFAULT_OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_TIMEOUT = httpx.Timeout(120.0, connect=10.0)

_FINISH_REASONS: dict[str, StopReason] = {
    "tool_calls": "tool_use",
    "length": "max_tokens",
    "stop": "end_turn",
}


def _image_url(image: bytes | str) -> str:
    if isinstance(image, bytes):
        return "data:image/png;base64," + base64.b64encode(image).decode("ascii")
    return image


class OpenRouterRequestAdapter:
    """Adapter for converting unified requests to the chat-completions format."""

    def build_messages(self, messages: Sequence[Message]) -> list[dict[str, Any]]:
        """
        Convert unified messages to OpenAI-compatible messages.

        Every assistant tool call carries an id (synthesized when the history
        came from a backend without ids), and every tool result becomes its
        own ``tool`` message referencing that id.
        """
        ledger = CallIdLedger(prefix="call")
        out: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role == "tool":
                for result in msg.iter_results():
                    out.append({
                        "role": "tool",
                        "tool_call_id": ledger.result_id(result),
                        "content": result.content,
                    })
                continue

            if msg.images:
                content: Any = [{"type": "text", "text": msg.content}] if msg.content else []
                content.extend(
                    {"type": "image_url", "image_url": {"url": _image_url(img)}}
                    for img in msg.images
                )
            else:
                content = msg.content

            entry: dict[str, Any] = {"role": msg.role, "content": content}
            if msg.tool_calls:
                entry["tool_calls"] = [
                    {
                        "id": ledger.call_id(call),
                        "type": "function",
                        "function": {
                            "name": call.name,
                            "arguments": json.dumps(dict(call.arguments)),
                        },
                    }
                    for call in msg.tool_calls
                ]
            out.append(entry)

        return out

    def build_tools(self, tools: Sequence[ToolDefinition]) -> list[dict[str, Any]]:
        return [tool.to_function_schema() for tool in tools]

    def to_provider(self, request: ChatRequest, model: str) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": request.model or model,
            "messages": self.build_messages(request.messages),
            "stream": True,
        }
        if request.tools:
            body["tools"] = self.build_tools(request.tools)
        return body


class ChatCompletionStreamState:
    """
    Turns ``data:`` payloads of a chat-completions SSE stream into chunks.

    Tool-call fragments are accumulated per ``index`` and released as one
    terminal chunk once ``finish_reason == "tool_calls"`` arrives.
    """

    def __init__(self, model: str) -> None:
        self.model = model
        self.done = False
        self.stop_reason: Optional[StopReason] = None
        self._calls = ToolCallAccumulator()

    def feed(self, data: str) -> list[StreamChunk]:
        """Consume one ``data:`` payload."""
        if self.done:
            return []
        if data == "[DONE]":
            self.done = True
            return []

        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed SSE payload: %r", data[:200])
            return []
        if not isinstance(payload, dict):
            return []

        if payload.get("error"):
            raise _stream_error(payload["error"], self.model)

        choices = payload.get("choices") or []
        if not choices:
            return []
        choice = choices[0]
        chunks: list[StreamChunk] = []

        delta = choice.get("delta") or {}
        if delta.get("content"):
            chunks.append(StreamChunk(delta=delta["content"]))

        for raw in delta.get("tool_calls") or ():
            fn = raw.get("function") or {}
            self._calls.add(
                raw.get("index", 0),
                call_id=raw.get("id"),
                name=fn.get("name"),
                arguments=fn.get("arguments"),
            )

        finish_reason = choice.get("finish_reason")
        if finish_reason:
            self.stop_reason = _FINISH_REASONS.get(finish_reason, "end_turn")
        if finish_reason == "tool_calls":
            tool_calls = self._calls.finish_all()
            if tool_calls:
                chunks.append(StreamChunk(tool_calls=tool_calls))

        return chunks


def _retry_after_seconds(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def classify_openrouter_status(
    status: int,
    model: str,
    *,
    detail: str = "",
    retry_after: Optional[float] = None,
    original_exc: Optional[BaseException] = None,
) -> ProviderError:
    """Map an HTTP status (or in-stream error code) into the shared taxonomy."""
    if status == 401:
        return AuthenticationError("Invalid OpenRouter API key", original_exc=original_exc)
    if status == 429:
        return RateLimitError(
            "OpenRouter rate limit exceeded",
            retry_after=retry_after,
            original_exc=original_exc,
        )
    if status == 404:
        return ModelNotFoundError(
            model, f"Model not found: {model}", original_exc=original_exc
        )
    if status == 402:
        return ProviderError("Insufficient OpenRouter credits", original_exc=original_exc)
    if 500 <= status < 600:
        return ProviderError("OpenRouter service error", original_exc=original_exc)
    message = f"OpenRouter request failed ({status})"
    if detail:
        message += f": {detail}"
    return ProviderError(message, original_exc=original_exc)


def classify_openrouter_error(exc: Exception, model: str) -> ProviderError:
    """Map an httpx failure into the shared taxonomy."""
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        try:
            detail = response.text
        except httpx.ResponseNotRead:
            detail = ""
        return classify_openrouter_status(
            response.status_code,
            model,
            detail=detail[:500],
            retry_after=_retry_after_seconds(response.headers.get("retry-after")),
            original_exc=exc,
        )
    if isinstance(exc, httpx.TransportError):
        return ProviderError("Failed to connect to OpenRouter API", original_exc=exc)
    return ProviderError(str(exc) or "OpenRouter request failed", original_exc=exc)


def _stream_error(error: Any, model: str) -> ProviderError:
    if not isinstance(error, dict):
        return ProviderError(f"OpenRouter stream error: {error}")
    message = str(error.get("message") or "unknown error")
    try:
        code = int(error.get("code"))
    except (TypeError, ValueError):
        return ProviderError(f"OpenRouter stream error: {message}")
    return classify_openrouter_status(code, model, detail=message)


class OpenRouterLLM(BaseAsyncLLM):
    """
    OpenRouter adapter (OpenAI-compatible chat completions over SSE).

    Use ``OpenRouterLLM.from_client`` to supply a preconfigured
    ``httpx.AsyncClient`` (custom transport, proxies, ...).
    """

    provider_type = "openrouter"

    def __init__(
        self,
        model: str,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        http_referer: Optional[str] = None,
        x_title: Optional[str] = None,
        timeout: Optional[httpx.Timeout | float] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(model=model, logger=logger, name=name)
        self._configure(api_key, base_url, http_referer, x_title)
        self._client = httpx.AsyncClient(timeout=timeout or DEFAULT_TIMEOUT)
        self._adapter = OpenRouterRequestAdapter()

    @classmethod
    def from_client(
        cls,
        model: str,
        client: httpx.AsyncClient,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        http_referer: Optional[str] = None,
        x_title: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Build an ``OpenRouterLLM`` around an existing ``httpx.AsyncClient``.
        """
        if not isinstance(client, httpx.AsyncClient):
            raise TypeError(
                f"OpenRouterLLM.from_client expects httpx.AsyncClient; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseAsyncLLM.__init__(self, model=model, logger=logger, name=name)
        self._configure(api_key, base_url, http_referer, x_title)
        self._client = client
        self._adapter = OpenRouterRequestAdapter()
        return self

    def _configure(
        self,
        api_key: Optional[str],
        base_url: Optional[str],
        http_referer: Optional[str],
        x_title: Optional[str],
    ) -> None:
        api_key = api_key or os.environ.get("OPENROUTER_API_KEY", "")
        if not api_key.strip():
            raise AuthenticationError(
                "OpenRouter API key is required. Set OPENROUTER_API_KEY or pass api_key.",
                provider=self.name,
            )
        self.api_key = api_key
        self.base_url = (base_url or DEFAULT_OPENROUTER_BASE_URL).rstrip("/")
        self.http_referer = http_referer
        self.x_title = x_title

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        if self.http_referer:
            headers["HTTP-Referer"] = self.http_referer
        if self.x_title:
            headers["X-Title"] = self.x_title
        return headers

    def classify_error(self, exc: Exception) -> ProviderError:
        return classify_openrouter_error(exc, self.model)

    async def _stream_impl(
        self, request: ChatRequest, status: StreamStatus
    ) -> AsyncGenerator[StreamChunk, None]:
        body = self._adapter.to_provider(request, self.model)
        self._log(f"Sending request to OpenRouter model {body['model']} (Stream: True)")

        state = ChatCompletionStreamState(body["model"])
        decoder = SSEDecoder()

        async with self._client.stream(
            "POST", self.endpoint, json=body, headers=self._headers()
        ) as response:
            if response.is_error:
                await response.aread()
                response.raise_for_status()

            async for data in response.aiter_bytes():
                for line in decoder.feed(data):
                    payload = SSEDecoder.data_of(line)
                    if payload is None:
                        continue
                    for chunk in state.feed(payload):
                        yield chunk
                if state.done:
                    break
            else:
                for line in decoder.flush():
                    payload = SSEDecoder.data_of(line)
                    if payload is not None:
                        for chunk in state.feed(payload):
                            yield chunk

        status.stop_reason = state.stop_reason
