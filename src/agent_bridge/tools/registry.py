from __future__ import annotations

import inspect
import logging
from typing import Any

from agent_bridge.tools.base import ExecutableTool
from agent_bridge.types.tool import ToolDefinition

__all__ = ["ToolRegistry"]

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Name-keyed collection of tools with an enabled subset.

    Registration order is preserved and is the order schemas are offered to
    the model. :meth:`execute` never raises: every failure comes back as a
    string so it can go into the conversation as a tool result.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ExecutableTool] = {}
        self._enabled: set[str] = set()

    def register(self, tool: ExecutableTool, *, enabled: bool = True) -> None:
        """Add (or replace) *tool*; re-registering keeps its original position."""
        self._tools[tool.name] = tool
        if enabled:
            self._enabled.add(tool.name)
        else:
            self._enabled.discard(tool.name)

    def unregister(self, name: str) -> None:
        self._tools.pop(name, None)
        self._enabled.discard(name)

    def enable(self, name: str) -> None:
        if name in self._tools:
            self._enabled.add(name)

    def disable(self, name: str) -> None:
        self._enabled.discard(name)

    def get_enabled_schemas(self) -> list[ToolDefinition]:
        return [
            tool.get_schema() for name, tool in self._tools.items() if name in self._enabled
        ]

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def is_enabled(self, name: str) -> bool:
        return name in self._tools and name in self._enabled

    async def execute(self, name: str, args: dict[str, Any]) -> str:
        tool = self._tools.get(name)
        if tool is None:
            return f"Tool not found: {name}"
        if name not in self._enabled:
            return f"Tool not available: {name}"

        try:
            result = tool.execute(args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.debug("Tool %s failed", name, exc_info=True)
            return f"Error executing {name}: {exc}"
        return result

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools
