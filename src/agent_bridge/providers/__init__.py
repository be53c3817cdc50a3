from __future__ import annotations

from dotenv import load_dotenv

load_dotenv()

from agent_bridge.providers.base import BaseAsyncLLM, CallIdLedger, RequestAdapter  # noqa: E402
from agent_bridge.providers.bedrock import BedrockLLM  # noqa: E402
from agent_bridge.providers.ollama import OllamaLLM  # noqa: E402
from agent_bridge.providers.openrouter import OpenRouterLLM  # noqa: E402

__all__ = [
    "BaseAsyncLLM",
    "CallIdLedger",
    "RequestAdapter",
    "BedrockLLM",
    "OllamaLLM",
    "OpenRouterLLM",
]
