from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, ClassVar, Optional

from agent_bridge.tools.base import BaseTool

__all__ = ["RunBashTool", "DEFAULT_TIMEOUT_MS", "MAX_OUTPUT_SIZE"]

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30_000
MAX_OUTPUT_SIZE = 50 * 1024


def _truncate(output: str, label: str) -> str:
    if len(output) <= MAX_OUTPUT_SIZE:
        return output
    return output[:MAX_OUTPUT_SIZE] + f"\n[{label} truncated]"


def _result(stdout: str, stderr: str, exit_code: int) -> str:
    return json.dumps(
        {
            "stdout": _truncate(stdout, "stdout"),
            "stderr": _truncate(stderr, "stderr"),
            "exit_code": exit_code,
        },
        indent=2,
    )


class RunBashTool(BaseTool):
    """
    Runs a shell command through ``/bin/sh -c``.

    The result is always a JSON document with ``stdout``, ``stderr`` and
    ``exit_code``; a command that outlives its timeout is killed and reported
    with ``exit_code`` -1 instead of raising.
    """

    name: ClassVar[str] = "run_bash"
    description: ClassVar[str] = (
        "Executes a shell command and returns its output. WARNING: This tool can execute "
        "arbitrary commands. Disabled by default and must be explicitly enabled."
    )
    parameters: ClassVar[dict[str, Any]] = {
        "type": "object",
        "properties": {
            "command": {"type": "string", "description": "The shell command to execute"},
            "cwd": {
                "type": "string",
                "description": "Working directory for command execution. Defaults to the current directory",
            },
            "env": {
                "type": "object",
                "description": "Additional environment variables (merged with the current environment)",
                "additionalProperties": {"type": "string"},
            },
            "timeout": {
                "type": "number",
                "description": f"Timeout in milliseconds. Default: {DEFAULT_TIMEOUT_MS}",
                "default": DEFAULT_TIMEOUT_MS,
            },
        },
        "required": ["command"],
    }

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else None

    async def execute(self, args: dict[str, Any]) -> str:
        command = args.get("command")
        if not command or not isinstance(command, str):
            raise ValueError("A command string is required")

        base = self._base_dir or Path.cwd()
        cwd = base / args["cwd"] if args.get("cwd") else base
        env = {**os.environ, **{k: str(v) for k, v in (args.get("env") or {}).items()}}
        timeout_ms = args.get("timeout") or DEFAULT_TIMEOUT_MS

        proc = await asyncio.create_subprocess_exec(
            "/bin/sh",
            "-c",
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=env,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=float(timeout_ms) / 1000
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.debug("Command timed out after %sms: %s", timeout_ms, command)
            return _result("", "Command timed out and was killed", -1)
        except asyncio.CancelledError:
            proc.kill()
            await proc.wait()
            raise

        return _result(
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
            proc.returncode if proc.returncode is not None else -1,
        )
