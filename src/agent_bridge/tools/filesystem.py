"""Filesystem tools. All paths are confined to the guard's base directory."""
from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any, ClassVar, Optional

from agent_bridge.tools.base import BaseTool, PathGuard

__all__ = [
    "ReadFileTool",
    "WriteFileTool",
    "ListDirTool",
    "MkdirTool",
    "MoveTool",
    "RemoveTool",
]


def _path_schema(description: str) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {"path": {"type": "string", "description": description}},
        "required": ["path"],
    }


class _FilesystemTool(BaseTool):
    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        self.guard = PathGuard(base_dir)


class ReadFileTool(_FilesystemTool):
    name: ClassVar[str] = "read_file"
    description: ClassVar[str] = "Reads the content of a file from the filesystem"
    parameters: ClassVar[dict[str, Any]] = {
        "type": "object",
        "properties": {
            "file_path": {"type": "string", "description": "The path to the file to read"},
        },
        "required": ["file_path"],
    }

    def execute(self, args: dict[str, Any]) -> str:
        raw = args.get("file_path")
        path = self.guard.check(raw)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {raw}")
        if path.is_dir():
            raise IsADirectoryError(f"Path is a directory, not a file: {raw}")
        try:
            return path.read_text(encoding="utf-8")
        except PermissionError:
            raise PermissionError(f"Permission denied: {raw}") from None


class WriteFileTool(_FilesystemTool):
    name: ClassVar[str] = "write_file"
    description: ClassVar[str] = "Writes content to a file on the filesystem"
    parameters: ClassVar[dict[str, Any]] = {
        "type": "object",
        "properties": {
            "file_path": {"type": "string", "description": "The path to the file to write"},
            "content": {"type": "string", "description": "The content to write to the file"},
        },
        "required": ["file_path", "content"],
    }

    def execute(self, args: dict[str, Any]) -> str:
        raw = args.get("file_path")
        path = self.guard.check(raw)
        if path.is_dir():
            raise IsADirectoryError(f"Path is a directory, not a file: {raw}")
        if not path.parent.is_dir():
            raise FileNotFoundError(f"Directory not found for file: {raw}")
        content = args.get("content", "")
        try:
            path.write_text(str(content), encoding="utf-8")
        except PermissionError:
            raise PermissionError(f"Permission denied: {raw}") from None
        return f"Successfully wrote to {raw}"


class ListDirTool(_FilesystemTool):
    name: ClassVar[str] = "list_dir"
    description: ClassVar[str] = (
        "Lists the contents of a directory at a given path. "
        "Returns entries with type (file or directory) and name."
    )
    parameters: ClassVar[dict[str, Any]] = _path_schema("The directory path to list")

    def execute(self, args: dict[str, Any]) -> str:
        raw = args.get("path")
        path = self.guard.check(raw)
        if not path.exists():
            raise FileNotFoundError(f"Directory not found: {raw}")
        if not path.is_dir():
            raise NotADirectoryError(f"Path is not a directory: {raw}")

        entries = sorted(path.iterdir(), key=lambda p: p.name)
        if not entries:
            return "Directory is empty"
        return "\n".join(
            f"{'directory' if entry.is_dir() else 'file'}: {entry.name}" for entry in entries
        )


class MkdirTool(_FilesystemTool):
    name: ClassVar[str] = "mkdir"
    description: ClassVar[str] = (
        "Creates a directory at the specified path. "
        "Creates intermediate parent directories if they don't exist."
    )
    parameters: ClassVar[dict[str, Any]] = _path_schema("The directory path to create")

    def execute(self, args: dict[str, Any]) -> str:
        raw = args.get("path")
        path = self.guard.check(raw)
        if path.exists() and not path.is_dir():
            raise FileExistsError(f"Path already exists as a file: {raw}")
        path.mkdir(parents=True, exist_ok=True)
        return f"Successfully created directory: {raw}"


class MoveTool(_FilesystemTool):
    name: ClassVar[str] = "move"
    description: ClassVar[str] = (
        "Moves or renames a file or directory from a source path to a destination path"
    )
    parameters: ClassVar[dict[str, Any]] = {
        "type": "object",
        "properties": {
            "path": {"type": "string", "description": "The source file or directory path"},
            "dest": {"type": "string", "description": "The destination file or directory path"},
        },
        "required": ["path", "dest"],
    }

    def execute(self, args: dict[str, Any]) -> str:
        raw_src, raw_dest = args.get("path"), args.get("dest")
        source = self.guard.check(raw_src)
        dest = self.guard.check(raw_dest)
        if not source.exists():
            raise FileNotFoundError(f"Source path not found: {raw_src}")
        if dest.exists():
            raise FileExistsError(f"Destination already exists: {raw_dest}")
        shutil.move(source, dest)
        return f"Successfully moved {raw_src} to {raw_dest}"


class RemoveTool(_FilesystemTool):
    """
    Deletes a file or a whole directory tree.

    Registered disabled by the default registry; enable it explicitly.
    """

    name: ClassVar[str] = "remove"
    description: ClassVar[str] = (
        "Deletes a file or directory at the specified path. WARNING: Supports recursive "
        "deletion for non-empty directories. This tool is disabled by default and must "
        "be explicitly enabled."
    )
    parameters: ClassVar[dict[str, Any]] = _path_schema("The file or directory path to remove")

    def execute(self, args: dict[str, Any]) -> str:
        raw = args.get("path")
        path = self.guard.check(raw)
        if path == self.guard.base_dir:
            raise PermissionError(f"Access denied: refusing to remove the base directory '{raw}'")
        if not path.exists():
            raise FileNotFoundError(f"Path not found: {raw}")
        if path.is_dir():
            shutil.rmtree(path)
        else:
            path.unlink()
        return f"Successfully removed: {raw}"
