from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, ClassVar, Optional, Sequence

from agent_bridge.tools.base import BaseTool, ToolContext
from agent_bridge.types.chat import Message

__all__ = ["SaveSessionContextTool", "format_session_context"]


def _render_message(msg: Message) -> str:
    if msg.role == "tool" and msg.tool_results:
        return "\n".join(f"{r.tool_name}: {r.content}" for r in msg.tool_results)
    return msg.content


def format_session_context(
    system_prompt: str,
    messages: Sequence[Message],
    *,
    reason: Optional[str] = None,
    saved_at: Optional[datetime] = None,
) -> str:
    """Render the plain-text transcript written by ``save_session_context``."""
    saved_at = saved_at or datetime.now(timezone.utc)
    lines = [
        "=== Session Context ===",
        f"System Prompt: {system_prompt}",
        f"Saved at: {saved_at.isoformat()}",
    ]
    if reason:
        lines.append(f"Reason: {reason}")
    text = "\n".join(lines) + "\n\n"

    if not messages:
        return text + "No session context.\n"
    for index, msg in enumerate(messages, start=1):
        text += f"[{index}] {msg.role.upper()}:\n{_render_message(msg)}\n\n"
    return text


class SaveSessionContextTool(BaseTool):
    """Overwrites the session file with the current transcript."""

    name: ClassVar[str] = "save_session_context"
    description: ClassVar[str] = (
        "Saves the current session context to a file. Call this after completing tasks "
        "to persist the session state."
    )
    parameters: ClassVar[dict[str, Any]] = {
        "type": "object",
        "properties": {
            "reason": {
                "type": "string",
                "description": "Optional reason for saving the session context",
            },
        },
    }

    def __init__(self, context: ToolContext) -> None:
        self.context = context

    def execute(self, args: dict[str, Any]) -> str:
        # Read through the context on every call; it reflects live agent state.
        path = self.context.session_context_file_path
        content = format_session_context(
            self.context.system_prompt,
            self.context.session_context,
            reason=args.get("reason"),
        )
        path.write_text(content, encoding="utf-8")
        return f"Successfully saved session context to {path}"
