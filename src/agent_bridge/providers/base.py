"""Base class for backend adapters. All implementations are async-first."""
from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncGenerator, ClassVar, Optional, Protocol, Sequence

from agent_bridge._exceptions import ProviderError
from agent_bridge.stream_utils import StreamStatus, aggregate_stream
from agent_bridge.types.chat import ChatRequest, ChatResponse, Message, StreamChunk
from agent_bridge.types.tool import ToolCall, ToolResult


__all__ = ["BaseAsyncLLM", "RequestAdapter", "CallIdLedger"]


class RequestAdapter(Protocol):
    """Protocol for adapting a unified ChatRequest to provider-specific format."""

    def build_messages(self, messages: Sequence[Message]) -> list[dict[str, Any]]:
        """Convert the unified message list to provider-specific format."""
        ...

    def to_provider(self, request: ChatRequest, model: str) -> dict[str, Any]:
        """Build the full provider request (messages, tools, model...)."""
        ...


class CallIdLedger:
    """
    Hands out stable ids for tool calls that arrived without one.

    History produced by a backend without call ids (Ollama) can later be sent
    to a backend that requires them. Each id-less call gets a synthetic id,
    and the id-less results that follow are matched to those ids in order.
    """

    def __init__(self, prefix: str = "call") -> None:
        self._prefix = prefix
        self._pending: list[str] = []
        self._counter = 0

    def call_id(self, call: ToolCall) -> str:
        if call.id:
            return call.id
        self._counter += 1
        synthetic = f"{self._prefix}_{call.name}_{self._counter}"
        self._pending.append(synthetic)
        return synthetic

    def result_id(self, result: ToolResult) -> str:
        if result.tool_call_id:
            return result.tool_call_id
        if self._pending:
            return self._pending.pop(0)
        self._counter += 1
        return f"{self._prefix}_{result.tool_name or 'tool'}_{self._counter}"


class BaseAsyncLLM(ABC):
    """
    Base class for all backend adapters.

    Subclasses implement :meth:`_stream_impl` (free to raise raw SDK errors)
    and :meth:`classify_error`; :meth:`stream_chat` guarantees that only
    :class:`ProviderError` subclasses ever reach the caller.
    """

    provider_type: ClassVar[str] = "base"

    def __init__(
        self,
        model: str,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        """
        Initializes the base adapter.

        Args:
            model: Default model identifier, used when a request leaves it empty.
            logger: Optional logger instance. If None, a logger named after
                    this module will be used.
            name: Name of the configured provider, used in logs and errors.
                  If None, defaults to the backend type.
        """
        self.model = model
        self.logger = logger or logging.getLogger(__name__)
        self.name = name if name is not None else self.provider_type

    @property
    @abstractmethod
    def adapter(self) -> RequestAdapter:
        """Request adapter for this backend."""
        ...

    @abstractmethod
    def _stream_impl(
        self, request: ChatRequest, status: StreamStatus
    ) -> AsyncGenerator[StreamChunk, None]:
        """
        Core streaming implementation; must be an async generator.

        Args:
            request: Unified request.
            status: Side channel for the backend's stop reason.

        Yields:
            Text chunks as they arrive, then at most one terminal chunk
            carrying the reconstructed tool calls.
        """
        ...

    @abstractmethod
    def classify_error(self, exc: Exception) -> ProviderError:
        """Map a backend failure into the shared taxonomy."""
        ...

    def stream_chat(self, request: ChatRequest) -> AsyncGenerator[StreamChunk, None]:
        """
        Stream one reply. A single pass: call again for the next turn.

        Closing the returned generator early stops all backend work.

        Raises:
            ProviderError: Any backend failure, already translated.
        """
        return self._guarded(self._stream_impl(request, StreamStatus()))

    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Send a request and return the drained reply as one response."""
        status = StreamStatus()
        return await aggregate_stream(
            self._guarded(self._stream_impl(request, status)), status
        )

    async def _guarded(
        self, stream: AsyncGenerator[StreamChunk, None]
    ) -> AsyncGenerator[StreamChunk, None]:
        try:
            async for chunk in stream:
                yield chunk
        except ProviderError as exc:
            if exc.provider is None:
                exc.provider = self.name
            self._log(f"Request failed: {exc.message}", logging.WARNING)
            raise
        except Exception as exc:
            raise self._translate(exc) from exc
        finally:
            await stream.aclose()

    def _translate(self, exc: Exception) -> ProviderError:
        error = self.classify_error(exc)
        error.provider = self.name
        self._log(f"Wrapping backend exception: {error.message}", logging.WARNING)
        return error

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """
        Close underlying clients. Safe to call multiple times.
        """
        client = getattr(self, "_client", None)
        close = getattr(client, "aclose", None) or getattr(client, "close", None)
        if close:
            result = close()
            if inspect.isawaitable(result):
                await result

    async def __aenter__(self) -> "BaseAsyncLLM":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, model={self.model!r})"
