from __future__ import annotations

from pathlib import Path
from typing import Optional

from agent_bridge.tools.base import ToolContext
from agent_bridge.tools.bash import RunBashTool
from agent_bridge.tools.filesystem import (
    ListDirTool,
    MkdirTool,
    MoveTool,
    ReadFileTool,
    RemoveTool,
    WriteFileTool,
)
from agent_bridge.tools.registry import ToolRegistry
from agent_bridge.tools.search import SearchFilesTool, SearchTextTool
from agent_bridge.tools.session import SaveSessionContextTool

__all__ = ["create_default_registry", "DISABLED_BY_DEFAULT"]

# Destructive tools; registered but off until enabled explicitly.
DISABLED_BY_DEFAULT = frozenset({"remove", "run_bash"})


def create_default_registry(
    context: ToolContext, base_dir: Optional[str | Path] = None
) -> ToolRegistry:
    """
    Registry pre-loaded with every built-in tool.

    Args:
        context: Live agent state for ``save_session_context``.
        base_dir: Directory the filesystem tools are confined to; the
            process cwd at call time when omitted.
    """
    registry = ToolRegistry()
    for tool in (
        ReadFileTool(base_dir),
        WriteFileTool(base_dir),
        ListDirTool(base_dir),
        MkdirTool(base_dir),
        MoveTool(base_dir),
        RemoveTool(base_dir),
        SearchTextTool(base_dir),
        SearchFilesTool(base_dir),
        RunBashTool(base_dir),
        SaveSessionContextTool(context),
    ):
        registry.register(tool, enabled=tool.name not in DISABLED_BY_DEFAULT)
    return registry
