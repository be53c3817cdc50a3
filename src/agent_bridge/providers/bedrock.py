from __future__ import annotations

import asyncio
import base64
import logging
import os
import re
from typing import Any, AsyncGenerator, Optional, Self, Sequence

import boto3
from botocore.config import Config
from botocore.exceptions import (
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    PartialCredentialsError,
    ReadTimeoutError,
)

from agent_bridge._exceptions import (
    AuthenticationError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
)
from agent_bridge.providers.base import BaseAsyncLLM, CallIdLedger, RequestAdapter
from agent_bridge.stream_utils import StreamStatus, ToolCallAccumulator
from agent_bridge.types.chat import ChatRequest, Message, StopReason, StreamChunk
from agent_bridge.types.tool import ToolCall, ToolDefinition

__all__ = [
    "DEFAULT_BEDROCK_REGION",
    "EMPTY_TOOL_RESULT",
    "BedrockRequestAdapter",
    "ConverseStreamState",
    "BedrockLLM",
    "classify_bedrock_error",
]

DEFAULT_BEDROCK_REGION = "us-east-1"
# Converse rejects blank text blocks
EMPTY_TOOL_RESULT = "(empty)"

_AUTH_CODES = frozenset({
    "AccessDeniedException",
    "UnrecognizedClientException",
    "ExpiredTokenException",
    "InvalidSignatureException",
})
_SERVICE_CODES = frozenset({
    "ServiceUnavailableException",
    "InternalServerException",
    "ModelStreamErrorException",
    "ModelTimeoutException",
    "ModelErrorException",
})
_DATA_URL = re.compile(r"^data:image/(?P<fmt>[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)
_STOP_REASONS: dict[str, StopReason] = {
    "tool_use": "tool_use",
    "max_tokens": "max_tokens",
    "stop_sequence": "stop_sequence",
}
_END = object()


def _image_block(image: bytes | str) -> Optional[dict[str, Any]]:
    if isinstance(image, bytes):
        return {"image": {"format": "png", "source": {"bytes": image}}}
    match = _DATA_URL.match(image)
    if match is None:
        return None
    fmt = match.group("fmt").lower()
    return {
        "image": {
            "format": "jpeg" if fmt == "jpg" else fmt,
            "source": {"bytes": base64.b64decode(match.group("data"))},
        }
    }


class BedrockRequestAdapter:
    """Adapter for converting unified requests to the Converse API format."""

    def build_system(self, messages: Sequence[Message]) -> list[dict[str, Any]]:
        """System messages are lifted out of the conversation."""
        return [{"text": m.content} for m in messages if m.role == "system" and m.content]

    def build_messages(self, messages: Sequence[Message]) -> list[dict[str, Any]]:
        """
        Convert unified messages to Converse messages.

        Tool results are batched: every result of one model turn becomes a
        ``toolResult`` block of a single ``user`` message, tagged with the
        ``toolUseId`` of the call that produced it. Consecutive messages with
        the same role are merged, as the API requires alternating roles.
        """
        ledger = CallIdLedger(prefix="tooluse")
        bedrock_messages: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role == "system":
                continue

            blocks: list[dict[str, Any]] = []

            if msg.role == "tool":
                for result in msg.iter_results():
                    text = result.content if result.content.strip() else EMPTY_TOOL_RESULT
                    blocks.append({
                        "toolResult": {
                            "toolUseId": ledger.result_id(result),
                            "content": [{"text": text}],
                            "status": "success",
                        }
                    })
            else:
                if msg.content:
                    blocks.append({"text": msg.content})
                for call in msg.tool_calls:
                    blocks.append({
                        "toolUse": {
                            "toolUseId": ledger.call_id(call),
                            "name": call.name,
                            "input": dict(call.arguments),
                        }
                    })
                for image in msg.images:
                    block = _image_block(image)
                    if block is not None:
                        blocks.append(block)

            if not blocks:
                continue

            role = "user" if msg.role == "tool" else msg.role
            if bedrock_messages and bedrock_messages[-1]["role"] == role:
                bedrock_messages[-1]["content"].extend(blocks)
            else:
                bedrock_messages.append({"role": role, "content": blocks})

        return bedrock_messages

    def build_tools(self, tools: Sequence[ToolDefinition]) -> dict[str, Any]:
        return {
            "tools": [
                {
                    "toolSpec": {
                        "name": tool.name,
                        "description": tool.description,
                        "inputSchema": {"json": tool.parameters},
                    }
                }
                for tool in tools
            ]
        }

    def to_provider(self, request: ChatRequest, model: str) -> dict[str, Any]:
        args: dict[str, Any] = {
            "modelId": request.model or model,
            "messages": self.build_messages(request.messages),
        }
        system = self.build_system(request.messages)
        if system:
            args["system"] = system
        if request.tools:
            args["toolConfig"] = self.build_tools(request.tools)
        return args


class ConverseStreamState:
    """
    Reassembles a ConverseStream event sequence.

    Text deltas are handed back immediately. Tool-use blocks are keyed by
    ``contentBlockIndex``; a block's argument string is only parsed once its
    ``contentBlockStop`` arrives.
    """

    def __init__(self) -> None:
        self._calls = ToolCallAccumulator()
        self.stop_reason: Optional[StopReason] = None

    def feed(self, event: dict[str, Any]) -> Optional[str]:
        """Consume one event; return its text delta, if any."""
        if "contentBlockStart" in event:
            start = event["contentBlockStart"]
            tool_use = (start.get("start") or {}).get("toolUse")
            if tool_use:
                self._calls.start(
                    start.get("contentBlockIndex", 0),
                    call_id=tool_use.get("toolUseId"),
                    name=tool_use.get("name", ""),
                )
            return None

        if "contentBlockDelta" in event:
            block = event["contentBlockDelta"]
            delta = block.get("delta") or {}
            if "toolUse" in delta:
                self._calls.add(
                    block.get("contentBlockIndex", 0),
                    arguments=delta["toolUse"].get("input", ""),
                )
                return None
            return delta.get("text") or None

        if "contentBlockStop" in event:
            self._calls.finish(event["contentBlockStop"].get("contentBlockIndex", 0))
            return None

        if "messageStop" in event:
            reason = event["messageStop"].get("stopReason", "")
            self.stop_reason = _STOP_REASONS.get(reason, "end_turn")
            return None

        for key, payload in event.items():
            if key.endswith("Exception"):
                code = key[0].upper() + key[1:]
                message = (payload or {}).get("message", code)
                raise ClientError({"Error": {"Code": code, "Message": message}}, "ConverseStream")

        return None

    def tool_calls(self) -> list[ToolCall]:
        return self._calls.completed()


def classify_bedrock_error(exc: Exception, model: str) -> ProviderError:
    """Map a boto3 / botocore failure into the shared taxonomy."""
    if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        return AuthenticationError(f"Bedrock authentication failed: {exc}", original_exc=exc)

    if isinstance(exc, (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)):
        return ProviderError(f"Failed to connect to Bedrock: {exc}", original_exc=exc)

    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = error.get("Code", "")
        message = error.get("Message", "") or str(exc)

        if code in _AUTH_CODES or "credentials" in message.lower():
            return AuthenticationError(
                f"Bedrock authentication failed: {message}", original_exc=exc
            )
        if code == "ResourceNotFoundException" or (
            code == "ValidationException" and "model" in message.lower()
            and ("identifier" in message.lower() or "not found" in message.lower())
        ):
            return ModelNotFoundError(
                model, f"Model {model} not found in Bedrock: {message}", original_exc=exc
            )
        if code == "ThrottlingException" or "throttl" in message.lower():
            return RateLimitError(f"Bedrock rate limited: {message}", original_exc=exc)
        if code in _SERVICE_CODES:
            return ProviderError(f"Bedrock service error: {message}", original_exc=exc)
        return ProviderError(f"Bedrock error ({code or 'unknown'}): {message}", original_exc=exc)

    return ProviderError(str(exc) or exc.__class__.__name__, original_exc=exc)


class BedrockLLM(BaseAsyncLLM):
    """
    AWS Bedrock adapter (Converse streaming API).

    boto3 is blocking, so the call and every read of the event stream run in
    a worker thread; the event loop is never blocked.
    """

    provider_type = "bedrock"

    def __init__(
        self,
        model: str,
        *,
        region: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(model=model, logger=logger, name=name)
        self.region = (
            region
            or os.environ.get("AWS_REGION")
            or os.environ.get("AWS_DEFAULT_REGION")
            or DEFAULT_BEDROCK_REGION
        )
        self._client = boto3.client(
            "bedrock-runtime",
            region_name=self.region,
            config=Config(retries={"max_attempts": 1, "mode": "standard"}),
        )
        self._adapter = BedrockRequestAdapter()

    @classmethod
    def from_client(
        cls,
        model: str,
        client: Any,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Wrap an existing ``bedrock-runtime`` client.
        """
        if not callable(getattr(client, "converse_stream", None)):
            raise TypeError(
                f"BedrockLLM.from_client expects a bedrock-runtime client; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseAsyncLLM.__init__(self, model=model, logger=logger, name=name)
        meta = getattr(client, "meta", None)
        self.region = getattr(meta, "region_name", None)
        self._client = client
        self._adapter = BedrockRequestAdapter()
        return self

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    def classify_error(self, exc: Exception) -> ProviderError:
        return classify_bedrock_error(exc, self.model)

    async def _stream_impl(
        self, request: ChatRequest, status: StreamStatus
    ) -> AsyncGenerator[StreamChunk, None]:
        args = self._adapter.to_provider(request, self.model)
        self._log(f"Sending request to Bedrock model {args['modelId']} (Stream: True)")

        response = await asyncio.to_thread(self._client.converse_stream, **args)
        event_stream = response.get("stream")
        if event_stream is None:
            raise ProviderError("Bedrock returned no event stream")

        state = ConverseStreamState()
        events = iter(event_stream)
        try:
            while True:
                event = await asyncio.to_thread(next, events, _END)
                if event is _END:
                    break
                text = state.feed(event)
                if text:
                    yield StreamChunk(delta=text)
        finally:
            close = getattr(event_stream, "close", None)
            if close is not None:
                close()

        status.stop_reason = state.stop_reason
        tool_calls = state.tool_calls()
        if tool_calls:
            status.stop_reason = "tool_use"
            yield StreamChunk(tool_calls=tool_calls)
