"""
Agent Bridge - a terminal LLM agent over Ollama, Bedrock and OpenRouter.
"""

from .providers import BaseAsyncLLM, BedrockLLM, OllamaLLM, OpenRouterLLM
from ._exceptions import (
    AuthenticationError,
    ConfigError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
)
from .agent import Agent
from .config import load_providers_config, resolve_model_key, resolve_provider
from .factory import ProviderType, create_llm
from .tools import ToolRegistry, create_default_registry
from .types import (
    ChatRequest,
    ChatResponse,
    Message,
    StreamChunk,
    ToolCall,
    ToolDefinition,
    ToolResult,
)

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "BaseAsyncLLM",
    "OllamaLLM",
    "BedrockLLM",
    "OpenRouterLLM",
    "ProviderType",
    "create_llm",
    "load_providers_config",
    "resolve_provider",
    "resolve_model_key",
    "ToolRegistry",
    "create_default_registry",
    "ChatRequest",
    "ChatResponse",
    "Message",
    "StreamChunk",
    "ToolCall",
    "ToolDefinition",
    "ToolResult",
    "ProviderError",
    "AuthenticationError",
    "RateLimitError",
    "ModelNotFoundError",
    "ConfigError",
]
