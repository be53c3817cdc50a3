"""
Provider‑neutral dataclasses for client‑side tool use.

They are intentionally minimal: everything provider‑specific lives in the
backend adapters.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

__all__ = ["ToolFunction", "ToolCall", "ToolResult", "ToolDefinition"]


@dataclass(frozen=True, slots=True)
class ToolFunction:
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ToolCall:
    """A model‑agnostic request emitted by the LLM to call a local tool.

    ``id`` is the backend's correlation token (Bedrock ``toolUseId``,
    OpenAI-style ``call_...``); backends without one leave it ``None``.
    """
    function: ToolFunction
    id: str | None = None

    @classmethod
    def create(
        cls, name: str, arguments: dict[str, Any] | None = None, id: str | None = None
    ) -> ToolCall:
        return cls(function=ToolFunction(name=name, arguments=dict(arguments or {})), id=id)

    @property
    def name(self) -> str:
        return self.function.name

    @property
    def arguments(self) -> dict[str, Any]:
        return self.function.arguments


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Payload sent back to the LLM after the tool finished running."""
    tool_call_id: str            # must match the call id ("" when the backend had none)
    tool_name: str
    content: str


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """Backend-agnostic function schema produced by ``get_schema()``."""
    name: str
    description: str
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    def to_function_schema(self) -> dict[str, Any]:
        """Render the OpenAI-style ``{"type": "function", ...}`` dict."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }
