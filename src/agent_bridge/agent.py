from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence

from agent_bridge._exceptions import ProviderError
from agent_bridge.config import (
    ProviderConfig,
    ProvidersConfig,
    load_providers_config,
    resolve_model_key,
    resolve_provider,
)
from agent_bridge.factory import create_llm
from agent_bridge.providers.base import BaseAsyncLLM
from agent_bridge.tools.factory import create_default_registry
from agent_bridge.tools.registry import ToolRegistry
from agent_bridge.types.chat import ChatRequest, Message
from agent_bridge.types.tool import ToolCall, ToolResult

__all__ = ["Agent", "MAX_ITERATIONS", "DEFAULT_SYSTEM_PROMPT", "DEFAULT_SESSION_FILE"]

MAX_ITERATIONS = 10
DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant."
DEFAULT_SESSION_FILE = "session_context.txt"

TokenCallback = Callable[[str], None]
ToolCallback = Callable[[ToolCall, str], None]


class LLMFactory(Protocol):
    def __call__(
        self, provider: ProviderConfig, model_key: str, *, logger: Optional[logging.Logger] = None
    ) -> BaseAsyncLLM: ...


class _AgentToolContext:
    """Live view of an agent for tools; every read goes to the agent."""

    __slots__ = ("_agent",)

    def __init__(self, agent: Agent) -> None:
        self._agent = agent

    @property
    def system_prompt(self) -> str:
        return self._agent.system_prompt

    @property
    def session_context(self) -> Sequence[Message]:
        return self._agent.get_context()

    @property
    def session_context_file_path(self) -> Path:
        return self._agent.session_file


class Agent:
    """
    Runs the conversation: one history, one active backend, a tool registry.

    A turn (:meth:`respond`) streams the model's reply, runs any requested
    tools and feeds their results back until the model answers without tools
    or :data:`MAX_ITERATIONS` round trips were made. The backend can be
    swapped between turns with :meth:`switch_provider`; the history carries
    over unchanged.
    """

    def __init__(
        self,
        providers_config: ProvidersConfig | str | Path,
        *,
        provider_name: Optional[str] = None,
        model_key: Optional[str] = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        session_file: Optional[str | Path] = None,
        registry: Optional[ToolRegistry] = None,
        base_dir: Optional[str | Path] = None,
        llm_factory: LLMFactory = create_llm,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Args:
            providers_config: Validated config, or a path to the JSON document.
            provider_name: Provider to start with; the config default if None.
            model_key: Model to start with; the provider default if None.
            system_prompt: Prompt sent as the first message of every request.
            session_file: Where ``save_session_context`` writes the transcript.
                Defaults to ``session_context.txt`` in the working directory.
            registry: Tool registry; :func:`create_default_registry` if None.
            base_dir: Directory the default filesystem tools are confined to.
            llm_factory: Builds adapters from provider entries.
            logger: Optional logger instance.
        """
        if isinstance(providers_config, (str, Path)):
            providers_config = load_providers_config(providers_config)

        self.logger = logger or logging.getLogger(__name__)
        self.providers_config = providers_config
        self._llm_factory = llm_factory
        self._system_prompt = system_prompt
        self._history: list[Message] = []
        self.session_file = Path(session_file) if session_file else Path.cwd() / DEFAULT_SESSION_FILE
        self.tool_context = _AgentToolContext(self)
        self.registry = registry if registry is not None else create_default_registry(
            self.tool_context, base_dir
        )
        self._retired: list[BaseAsyncLLM] = []
        self._lock = asyncio.Lock()

        provider = resolve_provider(providers_config, provider_name)
        self.model = resolve_model_key(provider, model_key)
        self.provider_config = provider
        self.llm = self._llm_factory(provider, self.model, logger=self.logger)

    # --- state -------------------------------------------------------------
    @property
    def provider_name(self) -> str:
        return self.provider_config.name

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    @system_prompt.setter
    def system_prompt(self, prompt: str) -> None:
        self._system_prompt = prompt

    def get_context(self) -> list[Message]:
        return list(self._history)

    def clear_context(self) -> None:
        self._history = []

    def switch_provider(self, name: str, model_key: Optional[str] = None) -> None:
        """
        Make *name* the active backend from the next request on.

        Raises:
            ConfigError: Unknown provider or model key.
        """
        provider = resolve_provider(self.providers_config, name)
        key = resolve_model_key(provider, model_key)
        llm = self._llm_factory(provider, key, logger=self.logger)

        self._retired.append(self.llm)
        self.llm = llm
        self.model = key
        self.provider_config = provider
        self.logger.info("Switched to provider %s (model %s)", provider.name, key)

    # --- turns -------------------------------------------------------------
    async def respond(
        self,
        user_text: str,
        *,
        on_token: Optional[TokenCallback] = None,
        on_tool: Optional[ToolCallback] = None,
    ) -> str:
        """
        Run one user turn and return the model's final text.

        Raises:
            ProviderError: The active backend failed; history keeps what was
                appended before the failure.
        """
        async with self._lock:
            self._history.append(Message.user(user_text))
            text = ""

            for iteration in range(1, MAX_ITERATIONS + 1):
                text, tool_calls = await self._stream_reply(on_token)
                self._history.append(Message.assistant(text, tool_calls))
                if not tool_calls:
                    return text

                results = []
                for call in tool_calls:
                    self.logger.debug("Executing tool %s (iteration %d)", call.name, iteration)
                    output = await self.registry.execute(call.name, dict(call.arguments))
                    if on_tool is not None:
                        on_tool(call, output)
                    results.append(
                        ToolResult(tool_call_id=call.id or "", tool_name=call.name, content=output)
                    )
                self._history.append(Message.batched_results(results))

            self.logger.warning(
                "Stopped after %d iterations without a final answer", MAX_ITERATIONS
            )
            return text

    async def chat(self, user_text: str) -> str:
        return await self.respond(user_text)

    async def _stream_reply(
        self, on_token: Optional[TokenCallback]
    ) -> tuple[str, list[ToolCall]]:
        request = ChatRequest(
            messages=[Message.system(self._system_prompt), *self._history],
            model=self.model,
            tools=self.registry.get_enabled_schemas() or None,
        )
        parts: list[str] = []
        tool_calls: list[ToolCall] = []
        try:
            async for chunk in self.llm.stream_chat(request):
                if chunk.delta:
                    parts.append(chunk.delta)
                    if on_token is not None:
                        on_token(chunk.delta)
                if chunk.tool_calls:
                    tool_calls = list(chunk.tool_calls)
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderError(
                f"Failed to get response from {self.llm.name}: {exc}",
                provider=self.llm.name,
                original_exc=exc,
            ) from exc
        return "".join(parts), tool_calls

    async def save_context(self, reason: Optional[str] = None) -> str:
        args = {"reason": reason} if reason else {}
        return await self.registry.execute("save_session_context", args)

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        llms, self._retired = [*self._retired, self.llm], []
        for llm in llms:
            try:
                await llm.aclose()
            except Exception:
                self.logger.warning("Failed to close %r", llm, exc_info=True)

    async def __aenter__(self) -> "Agent":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"Agent(provider={self.provider_name!r}, model={self.model!r})"
