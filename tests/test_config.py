"""Tests for the provider config loader."""

import copy
import json

import pytest

from agent_bridge._exceptions import ConfigError
from agent_bridge.config import (
    load_providers_config,
    parse_providers_config,
    resolve_model_key,
    resolve_provider,
)

VALID = {
    "default": "local",
    "providers": [
        {
            "name": "local",
            "type": "ollama",
            "host": "http://localhost:11434",
            "models": [{"name": "Llama 3.2", "key": "llama3.2"}, {"name": "Qwen", "key": "qwen3"}],
            "defaultModel": "llama3.2",
        },
        {
            "name": "router",
            "type": "openrouter",
            "apiKey": "sk-x",
            "httpReferer": "https://example.org",
            "xTitle": "agent-bridge",
            "models": [{"name": "GPT-4o mini", "key": "openai/gpt-4o-mini"}],
            "defaultModel": "openai/gpt-4o-mini",
        },
    ],
}


def _doc(**changes):
    doc = copy.deepcopy(VALID)
    doc.update(changes)
    return doc


class TestLoadProvidersConfig:
    """File loading and validation."""

    def test_valid_file(self, tmp_path):
        path = tmp_path / "providers.json"
        path.write_text(json.dumps(VALID))

        config = load_providers_config(path)

        assert config.default == "local"
        assert config.provider_names == ["local", "router"]
        router = config.providers[1]
        assert router.api_key == "sk-x"
        assert router.http_referer == "https://example.org"
        assert router.x_title == "agent-bridge"
        assert config.providers[0].host == "http://localhost:11434"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Configuration file not found"):
            load_providers_config(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "providers.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_providers_config(path)

    def test_dangling_default(self):
        """The error names the bad default and lists the providers."""
        with pytest.raises(ConfigError) as excinfo:
            parse_providers_config(_doc(default="missing"))

        message = str(excinfo.value)
        assert '"missing"' in message
        assert "local, router" in message


class TestParseProvidersConfig:
    @pytest.mark.parametrize(
        "mutate, match",
        [
            (lambda d: d.pop("providers"), '"providers" array'),
            (lambda d: d.pop("default"), '"default" field'),
            (lambda d: d["providers"][0].pop("type"), "missing required fields: type"),
            (lambda d: d["providers"][0].pop("models"), "missing required fields: models"),
            (lambda d: d["providers"][1].update(name="local"), "Duplicate provider name"),
            (lambda d: d["providers"][0].update(type="gemini"), "Supported types: ollama, bedrock, openrouter"),
            (lambda d: d["providers"][0]["models"].append({"name": "dup", "key": "qwen3"}), "duplicate model key"),
            (lambda d: d["providers"][0]["models"].append({"name": "no key"}), '"name" and "key"'),
            (lambda d: d["providers"][0].update(defaultModel="gone"), "Available: llama3.2, qwen3"),
        ],
    )
    def test_invalid_documents(self, mutate, match):
        doc = copy.deepcopy(VALID)
        mutate(doc)
        with pytest.raises(ConfigError, match=match):
            parse_providers_config(doc)

    def test_empty_models(self):
        doc = copy.deepcopy(VALID)
        doc["providers"][0]["models"] = []
        with pytest.raises(ConfigError, match="must have at least one model in the models array"):
            parse_providers_config(doc)

    def test_non_object_root(self):
        with pytest.raises(ConfigError):
            parse_providers_config([VALID])


class TestResolvers:
    def test_resolve_default_provider_and_model(self):
        config = parse_providers_config(VALID)
        provider = resolve_provider(config)

        assert provider.name == "local"
        assert resolve_model_key(provider) == "llama3.2"
        assert resolve_model_key(provider, "qwen3") == "qwen3"

    def test_unknown_provider_lists_alternatives(self):
        config = parse_providers_config(VALID)
        with pytest.raises(ConfigError, match="Available providers: local, router"):
            resolve_provider(config, "aws")

    def test_unknown_model_lists_alternatives(self):
        provider = resolve_provider(parse_providers_config(VALID), "local")
        with pytest.raises(ConfigError, match="Available models: llama3.2, qwen3"):
            resolve_model_key(provider, "mistral")
