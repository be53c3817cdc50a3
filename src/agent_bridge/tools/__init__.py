from .base import BaseTool, ExecutableTool, PathGuard, ToolContext
from .bash import RunBashTool
from .factory import DISABLED_BY_DEFAULT, create_default_registry
from .filesystem import ListDirTool, MkdirTool, MoveTool, ReadFileTool, RemoveTool, WriteFileTool
from .registry import ToolRegistry
from .search import SearchFilesTool, SearchTextTool
from .session import SaveSessionContextTool, format_session_context

__all__ = [
    "BaseTool",
    "ExecutableTool",
    "PathGuard",
    "ToolContext",
    "ToolRegistry",
    "create_default_registry",
    "DISABLED_BY_DEFAULT",
    "ReadFileTool",
    "WriteFileTool",
    "ListDirTool",
    "MkdirTool",
    "MoveTool",
    "RemoveTool",
    "SearchTextTool",
    "SearchFilesTool",
    "RunBashTool",
    "SaveSessionContextTool",
    "format_session_context",
]
