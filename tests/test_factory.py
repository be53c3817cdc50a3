"""Tests for adapter construction from provider entries."""

import httpx
import pytest
from ollama import AsyncClient

from agent_bridge._exceptions import AuthenticationError
from agent_bridge.config import ModelEntry, ProviderConfig
from agent_bridge.factory import ProviderType, create_llm, supported_types
from agent_bridge.providers.bedrock import BedrockLLM
from agent_bridge.providers.ollama import OllamaLLM
from agent_bridge.providers.openrouter import OpenRouterLLM


def _provider(type_, name="p", **extra):
    return ProviderConfig(
        name=name,
        type=type_,
        models=(ModelEntry("M", "m"),),
        default_model="m",
        **extra,
    )


class TestCreateLLM:
    def test_supported_types(self):
        assert supported_types() == ["ollama", "bedrock", "openrouter"]
        assert ProviderType("bedrock") is ProviderType.BEDROCK

    def test_ollama_with_host(self):
        llm = create_llm(_provider("ollama", name="local", host="http://box:11434"), "llama3.2")

        assert isinstance(llm, OllamaLLM)
        assert llm.name == "local"
        assert llm.model == "llama3.2"
        assert llm.host == "http://box:11434"

    def test_bedrock_with_region(self):
        llm = create_llm(_provider("bedrock", region="eu-west-1"), "claude")

        assert isinstance(llm, BedrockLLM)
        assert llm.region == "eu-west-1"

    def test_openrouter_options(self):
        llm = create_llm(
            _provider("openrouter", api_key="sk-1", http_referer="https://x", x_title="T"),
            "openai/gpt-4o-mini",
        )

        assert isinstance(llm, OpenRouterLLM)
        assert (llm.api_key, llm.http_referer, llm.x_title) == ("sk-1", "https://x", "T")

    def test_openrouter_without_key(self):
        with pytest.raises(AuthenticationError):
            create_llm(_provider("openrouter"), "m")

    def test_client_injection(self):
        ollama = create_llm(_provider("ollama"), "m", client=AsyncClient())
        router = create_llm(_provider("openrouter", api_key="k"), "m", client=httpx.AsyncClient())

        assert isinstance(ollama, OllamaLLM)
        assert isinstance(router, OpenRouterLLM)

    def test_unsupported_type(self):
        with pytest.raises(ValueError, match="Supported types"):
            create_llm(_provider("gemini"), "m")
