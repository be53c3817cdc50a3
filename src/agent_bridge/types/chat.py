"""Unified chat types shared by every backend adapter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, Sequence, Union

from agent_bridge.types.tool import ToolCall, ToolDefinition, ToolResult

__all__ = [
    "Role",
    "StopReason",
    "ImageData",
    "Message",
    "ChatRequest",
    "ChatResponse",
    "StreamChunk",
]

Role = Literal["user", "assistant", "system", "tool"]
StopReason = Literal["end_turn", "tool_use", "max_tokens", "stop_sequence"]
ImageData = Union[bytes, str]

_ROLES: frozenset[str] = frozenset({"user", "assistant", "system", "tool"})


@dataclass(frozen=True, slots=True)
class Message:
    """
    One entry of the conversation history.

    A ``tool`` message carries either a single legacy ``tool_call_id`` or a
    non-empty batch of ``tool_results``; content alone is not enough to tie a
    result back to the call that produced it.
    """

    role: Role
    content: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    tool_results: tuple[ToolResult, ...] = ()
    tool_call_id: Optional[str] = None
    images: tuple[ImageData, ...] = ()

    def __post_init__(self) -> None:
        if self.role not in _ROLES:
            raise ValueError(f"Unknown message role: {self.role!r}")
        # Accept lists from callers but store tuples so the message stays immutable.
        for attr in ("tool_calls", "tool_results", "images"):
            value = getattr(self, attr)
            if not isinstance(value, tuple):
                object.__setattr__(self, attr, tuple(value or ()))
        if self.role == "tool" and self.tool_call_id is None and not self.tool_results:
            raise ValueError(
                "A tool message needs either tool_call_id or a non-empty tool_results"
            )

    @classmethod
    def user(cls, content: str, *, images: Sequence[ImageData] = ()) -> Message:
        return cls(role="user", content=content, images=tuple(images))

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role="system", content=content)

    @classmethod
    def assistant(
        cls, content: str = "", tool_calls: Optional[Sequence[ToolCall]] = None
    ) -> Message:
        return cls(role="assistant", content=content, tool_calls=tuple(tool_calls or ()))

    @classmethod
    def tool_result(cls, tool_call_id: str, content: str) -> Message:
        """Legacy single-result tool message."""
        return cls(role="tool", content=content, tool_call_id=tool_call_id)

    @classmethod
    def batched_results(cls, results: Sequence[ToolResult]) -> Message:
        """One tool message grouping every result of a model turn."""
        return cls(role="tool", tool_results=tuple(results))

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def iter_results(self) -> tuple[ToolResult, ...]:
        """
        Results carried by a tool message, legacy form included.

        The legacy form has no tool name, so it comes back with an empty one.
        """
        if self.tool_results:
            return self.tool_results
        if self.role == "tool" and self.tool_call_id is not None:
            return (ToolResult(tool_call_id=self.tool_call_id, tool_name="", content=self.content),)
        return ()


@dataclass(slots=True)
class ChatRequest:
    """Everything a backend needs for one round trip."""

    messages: list[Message]
    model: str
    tools: Optional[list[ToolDefinition]] = None


@dataclass(slots=True)
class StreamChunk:
    """
    One unit of a streamed reply.

    Text chunks only carry ``delta``; the single terminal chunk of a turn that
    requested tools carries the fully reconstructed ``tool_calls``.
    """

    delta: str = ""
    tool_calls: Optional[list[ToolCall]] = None

    @property
    def is_terminal(self) -> bool:
        return bool(self.tool_calls)


@dataclass(slots=True)
class ChatResponse:
    """Non-streaming reply assembled from a drained stream."""

    message: Message
    stop_reason: StopReason = "end_turn"
    chunks: list[StreamChunk] = field(default_factory=list, repr=False)

    @property
    def content(self) -> str:
        return self.message.content

    @property
    def tool_calls(self) -> tuple[ToolCall, ...]:
        return self.message.tool_calls
