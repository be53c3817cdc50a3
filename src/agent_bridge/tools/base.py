"""Tool contract shared by the registry and every concrete tool."""
from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Awaitable, ClassVar, Optional, Protocol, Sequence, runtime_checkable

from agent_bridge.types.chat import Message
from agent_bridge.types.tool import ToolDefinition

__all__ = ["ExecutableTool", "BaseTool", "ToolContext", "PathGuard"]


@runtime_checkable
class ExecutableTool(Protocol):
    """Anything the registry can hold: a name, a schema and an executor."""

    name: str

    def get_schema(self) -> ToolDefinition:
        ...

    def execute(self, args: dict[str, Any]) -> str | Awaitable[str]:
        ...


class ToolContext(Protocol):
    """Read-only view of agent state that some tools need."""

    @property
    def system_prompt(self) -> str: ...

    @property
    def session_context(self) -> Sequence[Message]: ...

    @property
    def session_context_file_path(self) -> Path: ...


class BaseTool(ABC):
    """
    Convenience base class: the schema is derived from class attributes.

    Subclasses set ``name``, ``description`` and ``parameters`` and implement
    :meth:`execute`. Raising from ``execute`` is fine; the registry turns the
    exception into an error string for the model.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    parameters: ClassVar[dict[str, Any]] = {"type": "object", "properties": {}}

    def get_schema(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name, description=self.description, parameters=self.parameters
        )

    @abstractmethod
    def execute(self, args: dict[str, Any]) -> str | Awaitable[str]:
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class PathGuard:
    """Confines tool paths to one base directory (the cwd by default)."""

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else None

    @property
    def base_dir(self) -> Path:
        return (self._base_dir or Path.cwd()).resolve()

    def check(self, raw: str) -> Path:
        """Resolve *raw* against the base directory or raise PermissionError."""
        if not isinstance(raw, str) or not raw:
            raise ValueError("A non-empty path is required")
        base = self.base_dir
        resolved = (base / raw).resolve()
        if not resolved.is_relative_to(base):
            raise PermissionError(f"Access denied: Path '{raw}' is outside the allowed directory")
        return resolved
