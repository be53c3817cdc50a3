"""
Multi-provider configuration document.

The document is JSON::

    {
      "default": "local",
      "providers": [
        {"name": "local", "type": "ollama", "host": "http://localhost:11434",
         "models": [{"name": "Llama 3.2", "key": "llama3.2"}],
         "defaultModel": "llama3.2"}
      ]
    }

Everything is validated at load time so a bad document fails before any
backend is contacted.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from agent_bridge._exceptions import ConfigError
from agent_bridge.factory import supported_types

__all__ = [
    "ModelEntry",
    "ProviderConfig",
    "ProvidersConfig",
    "load_providers_config",
    "parse_providers_config",
    "resolve_provider",
    "resolve_model_key",
]

logger = logging.getLogger(__name__)

_REQUIRED_PROVIDER_FIELDS = ("name", "type", "models", "defaultModel")


@dataclass(frozen=True, slots=True)
class ModelEntry:
    name: str
    key: str


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    name: str
    type: str
    models: tuple[ModelEntry, ...]
    default_model: str
    host: Optional[str] = None
    region: Optional[str] = None
    api_key: Optional[str] = field(default=None, repr=False)
    http_referer: Optional[str] = None
    x_title: Optional[str] = None

    @property
    def model_keys(self) -> list[str]:
        return [m.key for m in self.models]


@dataclass(frozen=True, slots=True)
class ProvidersConfig:
    default: str
    providers: tuple[ProviderConfig, ...]

    @property
    def provider_names(self) -> list[str]:
        return [p.name for p in self.providers]


def load_providers_config(path: str | Path) -> ProvidersConfig:
    """
    Load and validate a provider document from *path*.

    Raises:
        ConfigError: The file is missing, unreadable, not JSON or invalid.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {path}") from None
    except OSError as exc:
        raise ConfigError(f"Failed to read configuration file: {exc}") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in configuration file: {exc}") from exc

    config = parse_providers_config(data)
    logger.debug("Loaded %d provider(s) from %s", len(config.providers), path)
    return config


def parse_providers_config(data: Any) -> ProvidersConfig:
    """Validate an already-decoded provider document."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a JSON object")

    raw_providers = data.get("providers")
    if not raw_providers or not isinstance(raw_providers, list):
        raise ConfigError('Configuration must include a "providers" array')
    if data.get("default") is None:
        raise ConfigError(
            'Configuration must include a "default" field specifying default provider'
        )

    default = data["default"]
    names = [p.get("name") for p in raw_providers if isinstance(p, dict)]
    if default not in names:
        available = ", ".join(str(n) for n in names)
        raise ConfigError(
            f'Default provider "{default}" not found in providers list. Available: {available}'
        )

    seen: set[str] = set()
    providers = tuple(_parse_provider(raw, seen) for raw in raw_providers)
    return ProvidersConfig(default=default, providers=providers)


def _parse_provider(raw: Any, seen: set[str]) -> ProviderConfig:
    if not isinstance(raw, dict):
        raise ConfigError("Each provider entry must be a JSON object")

    missing = [f for f in _REQUIRED_PROVIDER_FIELDS if raw.get(f) in (None, "")]
    if missing:
        raise ConfigError(f"Provider is missing required fields: {', '.join(missing)}")

    name = raw["name"]
    if raw["type"] not in supported_types():
        raise ConfigError(
            f'Provider "{name}" has unsupported type "{raw["type"]}". '
            f"Supported types: {', '.join(supported_types())}"
        )
    if name in seen:
        raise ConfigError(
            f'Duplicate provider name: "{name}". Provider names must be unique.'
        )
    seen.add(name)

    raw_models = raw["models"]
    if not isinstance(raw_models, list) or not raw_models:
        raise ConfigError(
            f'Provider "{name}" must have at least one model in the models array'
        )

    models: list[ModelEntry] = []
    keys: set[str] = set()
    for m in raw_models:
        if not isinstance(m, dict) or not m.get("name") or not m.get("key"):
            raise ConfigError(
                f'Provider "{name}" has model missing required fields: '
                'each model must have "name" and "key"'
            )
        if m["key"] in keys:
            raise ConfigError(
                f'Provider "{name}" has duplicate model key: "{m["key"]}". '
                "Model keys must be unique within a provider."
            )
        keys.add(m["key"])
        models.append(ModelEntry(name=m["name"], key=m["key"]))

    default_model = raw["defaultModel"]
    if default_model not in keys:
        available = ", ".join(m.key for m in models)
        raise ConfigError(
            f'Provider "{name}" defaultModel "{default_model}" not found in models list. '
            f"Available: {available}"
        )

    return ProviderConfig(
        name=name,
        type=raw["type"],
        models=tuple(models),
        default_model=default_model,
        host=raw.get("host"),
        region=raw.get("region"),
        api_key=raw.get("apiKey"),
        http_referer=raw.get("httpReferer"),
        x_title=raw.get("xTitle"),
    )


def resolve_provider(config: ProvidersConfig, name: Optional[str] = None) -> ProviderConfig:
    """Provider called *name*, or the document's default."""
    name = name or config.default
    for provider in config.providers:
        if provider.name == name:
            return provider
    raise ConfigError(
        f'Unknown provider: "{name}". Available providers: {", ".join(config.provider_names)}'
    )


def resolve_model_key(provider: ProviderConfig, key: Optional[str] = None) -> str:
    """Model key *key* of *provider*, or its default model."""
    key = key or provider.default_model
    if key not in provider.model_keys:
        raise ConfigError(
            f'Invalid model key: "{key}" for provider "{provider.name}". '
            f"Available models: {', '.join(provider.model_keys)}"
        )
    return key
