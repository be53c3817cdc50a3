from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Type

from agent_bridge.providers.base import BaseAsyncLLM
from agent_bridge.providers.bedrock import BedrockLLM
from agent_bridge.providers.ollama import OllamaLLM
from agent_bridge.providers.openrouter import OpenRouterLLM

if TYPE_CHECKING:
    from agent_bridge.config import ProviderConfig

__all__ = ["ProviderType", "create_llm", "supported_types"]


class ProviderType(StrEnum):
    OLLAMA = "ollama"
    BEDROCK = "bedrock"
    OPENROUTER = "openrouter"


# map ProviderType to its LLM implementation
_LLM_REGISTRY: dict[ProviderType, Type[BaseAsyncLLM]] = {
    ProviderType.OLLAMA: OllamaLLM,
    ProviderType.BEDROCK: BedrockLLM,
    ProviderType.OPENROUTER: OpenRouterLLM,
}


def supported_types() -> list[str]:
    return [str(t) for t in _LLM_REGISTRY]


def _backend_kwargs(provider: ProviderConfig) -> dict[str, Any]:
    kind = ProviderType(provider.type)
    if kind is ProviderType.OLLAMA:
        return {"host": provider.host}
    if kind is ProviderType.BEDROCK:
        return {"region": provider.region}
    return {
        "api_key": provider.api_key,
        "http_referer": provider.http_referer,
        "x_title": provider.x_title,
    }


def create_llm(
    provider: ProviderConfig,
    model_key: str,
    *,
    client: Any = None,
    logger: logging.Logger | None = None,
) -> BaseAsyncLLM:
    """
    Factory for creating the adapter of one configured provider.

    Args:
        provider: Validated provider entry (see :mod:`agent_bridge.config`).
        model_key: Model identifier sent to the backend.
        client: Optional pre-configured client instance to use.
            - For ollama: an ``ollama.AsyncClient``
            - For bedrock: a boto3 ``bedrock-runtime`` client
            - For openrouter: an ``httpx.AsyncClient``
            If not provided, a client with the default configuration is built.
        logger: Optional custom logger.

    Raises:
        ValueError: The provider type is not supported.
        AuthenticationError: Required credentials are missing (openrouter).
    """
    try:
        llm_cls = _LLM_REGISTRY[ProviderType(provider.type)]
    except ValueError as exc:
        raise ValueError(
            f"Unsupported provider type: {provider.type!r}. "
            f"Supported types: {', '.join(supported_types())}"
        ) from exc

    kwargs = _backend_kwargs(provider)

    if client is not None:  # use caller-supplied client verbatim
        if llm_cls is OpenRouterLLM:
            return llm_cls.from_client(
                model_key, client, logger=logger, name=provider.name, **kwargs
            )
        return llm_cls.from_client(model_key, client, logger=logger, name=provider.name)

    return llm_cls(model_key, logger=logger, name=provider.name, **kwargs)
