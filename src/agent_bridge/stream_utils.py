"""Shared streaming utilities for backend adapters."""
from __future__ import annotations

import codecs
import json
from dataclasses import dataclass
from typing import Any, AsyncIterator, Hashable, Optional

from agent_bridge.types.chat import ChatResponse, Message, StopReason, StreamChunk
from agent_bridge.types.tool import ToolCall

__all__ = [
    "parse_tool_arguments",
    "ToolCallAccumulator",
    "SSEDecoder",
    "StreamStatus",
    "aggregate_stream",
]


def parse_tool_arguments(raw: str) -> dict[str, Any]:
    """
    Parse a fully accumulated JSON argument string.

    Empty input means "no arguments". Anything that is not a JSON object is
    kept verbatim under ``raw`` so the tool still sees what the model sent.
    """
    if not raw or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {"raw": raw}
    if not isinstance(parsed, dict):
        return {"raw": raw}
    return parsed


@dataclass(slots=True)
class _PartialCall:
    id: Optional[str] = None
    name: str = ""
    arguments: str = ""


class ToolCallAccumulator:
    """
    Reassemble tool calls whose name and arguments arrive in fragments.

    Partial calls are keyed by whatever the backend uses to tell parallel
    calls apart (a stream ``index`` or a content-block index). A call is only
    turned into a :class:`ToolCall` when the backend signals it is complete,
    never based on how many fragments were seen.
    """

    def __init__(self) -> None:
        self._partial: dict[Hashable, _PartialCall] = {}
        self._finished: list[tuple[Hashable, ToolCall]] = []

    def __bool__(self) -> bool:
        return bool(self._partial) or bool(self._finished)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._partial

    def start(self, key: Hashable, *, call_id: Optional[str] = None, name: str = "") -> None:
        self._partial[key] = _PartialCall(id=call_id or None, name=name or "")

    def add(
        self,
        key: Hashable,
        *,
        call_id: Optional[str] = None,
        name: Optional[str] = None,
        arguments: Optional[str] = None,
    ) -> None:
        partial = self._partial.setdefault(key, _PartialCall())
        if call_id and not partial.id:
            partial.id = call_id
        if name:
            partial.name += name
        if arguments:
            partial.arguments += arguments

    def finish(self, key: Hashable) -> Optional[ToolCall]:
        """Close one call; unknown keys (e.g. text blocks) are ignored."""
        partial = self._partial.pop(key, None)
        if partial is None:
            return None
        call = ToolCall.create(
            partial.name, parse_tool_arguments(partial.arguments), id=partial.id
        )
        self._finished.append((key, call))
        return call

    def finish_all(self) -> list[ToolCall]:
        for key in list(self._partial):
            self.finish(key)
        return self.completed()

    def completed(self) -> list[ToolCall]:
        """Finished calls ordered by key."""
        try:
            ordered = sorted(self._finished, key=lambda item: item[0])
        except TypeError:
            ordered = list(self._finished)
        return [call for _, call in ordered]


class SSEDecoder:
    """
    Incremental Server-Sent-Events line splitter.

    Bytes are decoded with an incremental UTF-8 decoder so multi-byte
    characters split across network reads survive; a trailing partial line is
    buffered until the next feed.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    def feed(self, data: bytes) -> list[str]:
        self._buffer += self._decoder.decode(data)
        *lines, self._buffer = self._buffer.split("\n")
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> list[str]:
        self._buffer += self._decoder.decode(b"", final=True)
        rest, self._buffer = self._buffer, ""
        return [rest.rstrip("\r")] if rest else []

    @staticmethod
    def data_of(line: str) -> Optional[str]:
        """Payload of a ``data: `` line, ``None`` for any other line."""
        if not line.startswith("data: "):
            return None
        return line[len("data: "):].strip()


@dataclass(slots=True)
class StreamStatus:
    """Side channel a stream fills in while it is consumed."""
    stop_reason: Optional[StopReason] = None


async def aggregate_stream(
    chunks: AsyncIterator[StreamChunk],
    status: Optional[StreamStatus] = None,
) -> ChatResponse:
    """
    Drain a stream of :class:`StreamChunk` into a single :class:`ChatResponse`.

    Args:
        chunks: Async iterator of chunks produced by ``stream_chat``.
        status: Filled in by the producing stream; read once it is drained.

    Returns:
        A response whose message content is the concatenated deltas.
    """
    parts: list[str] = []
    tool_calls: list[ToolCall] = []
    seen: list[StreamChunk] = []

    async for chunk in chunks:
        seen.append(chunk)
        if chunk.delta:
            parts.append(chunk.delta)
        if chunk.tool_calls:
            tool_calls = list(chunk.tool_calls)

    reported = status.stop_reason if status is not None else None
    if tool_calls:
        reason: StopReason = "tool_use"
    else:
        reason = reported if reported and reported != "tool_use" else "end_turn"

    return ChatResponse(
        message=Message.assistant("".join(parts), tool_calls),
        stop_reason=reason,
        chunks=seen,
    )
