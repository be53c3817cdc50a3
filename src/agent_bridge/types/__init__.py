from .chat import ChatRequest, ChatResponse, Message, StreamChunk
from .tool import ToolCall, ToolDefinition, ToolFunction, ToolResult

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "Message",
    "StreamChunk",
    "ToolCall",
    "ToolDefinition",
    "ToolFunction",
    "ToolResult",
]
