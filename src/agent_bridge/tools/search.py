"""Content and filename search tools."""
from __future__ import annotations

import glob
import re
from pathlib import Path
from typing import Any, ClassVar, Iterator, Optional

from agent_bridge.tools.base import BaseTool, PathGuard

__all__ = ["SearchTextTool", "SearchFilesTool", "MAX_SEARCH_OUTPUT"]

MAX_SEARCH_OUTPUT = 50_000


def _is_hidden(path: Path, root: Path) -> bool:
    return any(part.startswith(".") for part in path.relative_to(root).parts)


def _walk_files(root: Path) -> Iterator[Path]:
    for path in sorted(root.rglob("*")):
        if path.is_file() and not _is_hidden(path, root):
            yield path


class SearchTextTool(BaseTool):
    name: ClassVar[str] = "search_text"
    description: ClassVar[str] = (
        "Searches for a text query within file contents. Supports literal and regex "
        "search modes. Returns matching lines with file path and line number."
    )
    parameters: ClassVar[dict[str, Any]] = {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "The text or regex pattern to search for"},
            "paths": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Array of file or directory paths to search in",
            },
            "regex": {
                "type": "boolean",
                "description": "If true, treat query as a regular expression. Default: false",
                "default": False,
            },
        },
        "required": ["query", "paths"],
    }

    def __init__(self, base_dir: Optional[str | Path] = None, *, max_output: int = MAX_SEARCH_OUTPUT) -> None:
        self.guard = PathGuard(base_dir)
        self.max_output = max_output

    def _files(self, raw_paths: list[str]) -> Iterator[Path]:
        for raw in raw_paths:
            path = self.guard.check(raw)
            if path.is_dir():
                yield from _walk_files(path)
            elif path.exists():
                yield path
            else:
                raise FileNotFoundError(f"Path not found: {raw}")

    def execute(self, args: dict[str, Any]) -> str:
        query = args.get("query", "")
        paths = args.get("paths") or []
        if isinstance(paths, str):
            paths = [paths]

        try:
            pattern = re.compile(query if args.get("regex") else re.escape(query))
        except re.error as exc:
            raise ValueError(f"Invalid regex pattern: {exc}") from exc

        matches: list[str] = []
        size = 0
        truncated = False

        for path in self._files(paths):
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                continue  # unreadable or binary
            for number, line in enumerate(text.split("\n"), start=1):
                if pattern.search(line) is None:
                    continue
                entry = f"{path}:{number}: {line}"
                matches.append(entry)
                size += len(entry) + 1
                if size > self.max_output:
                    truncated = True
                    break
            if truncated:
                break

        if not matches:
            return f"No matches found for query: {query}"
        result = "\n".join(matches)
        if truncated:
            result += "\n\n[Output truncated - exceeded size limit]"
        return result


class SearchFilesTool(BaseTool):
    name: ClassVar[str] = "search_files"
    description: ClassVar[str] = (
        "Finds files matching a glob pattern. Returns a list of matching file paths."
    )
    parameters: ClassVar[dict[str, Any]] = {
        "type": "object",
        "properties": {
            "pattern": {
                "type": "string",
                "description": "Glob pattern to match files (e.g., 'src/**/*.py', '**/*.md')",
            },
        },
        "required": ["pattern"],
    }

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        self.guard = PathGuard(base_dir)

    def execute(self, args: dict[str, Any]) -> str:
        pattern = args.get("pattern", "")
        if not pattern:
            raise ValueError("A glob pattern is required")
        base = self.guard.base_dir

        found: list[str] = []
        for match in sorted(glob.glob(pattern, root_dir=base, recursive=True)):
            path = (base / match).resolve()
            if path.is_file() and path.is_relative_to(base):
                found.append(str(path))

        if not found:
            return f"No files found matching pattern: {pattern}"
        return "\n".join(found)
