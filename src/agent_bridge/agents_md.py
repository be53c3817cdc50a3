"""Project instructions from ``AGENTS.md`` files, prepended to the system prompt."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

__all__ = [
    "AGENTS_MD_FILENAME",
    "discover_agents_md_files",
    "load_agents_md_content",
    "compose_system_prompt",
]

logger = logging.getLogger(__name__)

AGENTS_MD_FILENAME = "AGENTS.md"


def discover_agents_md_files(start_dir: Optional[str | Path] = None) -> list[Path]:
    """
    Every ``AGENTS.md`` from *start_dir* up to the filesystem root.

    Returned root-most first, so more specific instructions come last.
    """
    current = Path(start_dir or Path.cwd()).resolve()
    found = [
        candidate
        for directory in (current, *current.parents)
        if (candidate := directory / AGENTS_MD_FILENAME).is_file()
    ]
    found.reverse()
    logger.debug("Found %d %s file(s)", len(found), AGENTS_MD_FILENAME)
    return found


def load_agents_md_content(paths: Sequence[str | Path]) -> str:
    sections = [
        f"## Project Instructions (from {path})\n\n{Path(path).read_text(encoding='utf-8')}"
        for path in paths
    ]
    return "\n\n".join(sections)


def compose_system_prompt(agents_md_content: str, default_prompt: str) -> str:
    if not agents_md_content:
        return default_prompt
    return f"{agents_md_content}\n\n{default_prompt}"
