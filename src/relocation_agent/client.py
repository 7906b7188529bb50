"""
Async LLM clients behind one chat()/stream() surface.

Each provider class pairs an SDK client with a request adapter; the loops in
``assistant`` and ``streaming`` only ever see ``ChatResponse`` and
``StreamChunk``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncGenerator, ClassVar, Optional, Protocol, Self, Sequence

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from relocation_agent.adapters import (
    AnthropicRequestAdapter,
    GeminiRequestAdapter,
    OpenAIRequestAdapter,
)
from relocation_agent.config import Provider, get_api_key
from relocation_agent.errors import classify_error
from relocation_agent.params import normalize_params
from relocation_agent.response import ChatResponse
from relocation_agent.types import ChatMessage, StreamChunk, ToolCallFragment


class RequestAdapter(Protocol):
    """Translates between OpenAI-shaped history and one provider's wire format."""

    def to_provider(
        self, messages: Sequence[ChatMessage], params: dict[str, Any]
    ) -> dict[str, Any]:
        ...

    def from_provider(self, raw: Any) -> ChatResponse:
        ...

    def stream_chunk(self, raw_chunk: Any) -> StreamChunk:
        ...


class BaseAsyncLLM(ABC):
    """
    Provider-neutral completion interface.

    Subclasses supply ``adapter`` and ``_chat_impl``. Neither ``chat`` nor
    ``stream`` raises for provider failures: the error is classified and
    returned in the response (or in a final chunk).
    """

    def __init__(
        self,
        model: str,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.model = model
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__

    @property
    @abstractmethod
    def adapter(self) -> RequestAdapter:
        ...

    @abstractmethod
    async def _chat_impl(self, messages: Sequence[ChatMessage], params: dict[str, Any]) -> Any:
        """
        Send one request.

        Returns the raw provider response, or an async iterable of raw
        chunks when ``params["stream"]`` is set.
        """

    async def chat(
        self,
        messages: Sequence[ChatMessage],
        *,
        params: dict[str, Any] | None = None,
    ) -> ChatResponse:
        request = {**normalize_params(params), "stream": False}
        try:
            return self.adapter.from_provider(await self._chat_impl(messages, request))
        except Exception as exc:
            return ChatResponse(content="", error=self._wrap_error(exc))

    async def stream(
        self,
        messages: Sequence[ChatMessage],
        *,
        params: dict[str, Any] | None = None,
    ) -> AsyncGenerator[StreamChunk, None]:
        """
        Yield normalized chunks.

        A provider failure ends the stream with one chunk whose ``error`` is
        set. Closing this generator early closes the provider stream.
        """
        request = {**normalize_params(params), "stream": True}
        raw_stream = None
        try:
            raw_stream = await self._chat_impl(messages, request)
            if hasattr(raw_stream, "__aiter__"):
                async for raw_chunk in raw_stream:
                    yield self.adapter.stream_chunk(raw_chunk)
            else:
                # Provider answered without streaming; replay it as one chunk.
                yield _chunk_from_response(self.adapter.from_provider(raw_stream))
        except Exception as exc:
            yield StreamChunk(error=self._wrap_error(exc))
        finally:
            await _close_quietly(raw_stream)

    def _wrap_error(self, exc: Exception) -> str:
        return str(classify_error(exc, self.logger))

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    async def aclose(self) -> None:
        """Close the SDK client's HTTP pool; safe to call more than once."""
        close = getattr(getattr(self, "_client", None), "close", None)
        if close:
            await close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def _chunk_from_response(response: ChatResponse) -> StreamChunk:
    fragments = [
        ToolCallFragment(index=i, id=call.id, name=call.name, arguments=call.arguments)
        for i, call in enumerate(response.tool_calls or [])
    ]
    return StreamChunk(
        content=response.content,
        reasoning=response.reasoning or "",
        tool_calls=fragments,
        finish_reason="tool_calls" if fragments else (response.finish_reason or "stop"),
        raw=response.raw,
        error=response.error,
    )


async def _close_quietly(raw_stream: Any) -> None:
    close = getattr(raw_stream, "close", None) or getattr(raw_stream, "aclose", None)
    if close is None:
        return
    result = close()
    if hasattr(result, "__await__"):
        await result


class _SDKBackedLLM(BaseAsyncLLM):
    """Shared construction for clients wrapping an official provider SDK."""

    _client_cls: ClassVar[type]
    _adapter_cls: ClassVar[type]
    _label: ClassVar[str]
    _default_base_url: ClassVar[Optional[str]] = None

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        base_url: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(model, logger=logger, name=name)
        client = self._client_cls(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url or self._default_base_url,
        )
        self._attach(client)

    @classmethod
    def from_client(
        cls,
        model: str,
        client: Any,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """Wrap an SDK client the caller already configured."""
        if not isinstance(client, cls._client_cls):
            raise TypeError(
                f"{cls.__name__}.from_client expects {cls._client_cls.__name__}; "
                f"got {type(client).__name__}"
            )
        self = cls.__new__(cls)
        BaseAsyncLLM.__init__(self, model, logger=logger, name=name)
        self._attach(client)
        return self

    def _attach(self, client: Any) -> None:
        self._client = client
        self.api_key = getattr(client, "api_key", None) or ""
        self._adapter = self._adapter_cls()

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    def _request_args(
        self, messages: Sequence[ChatMessage], params: dict[str, Any]
    ) -> dict[str, Any]:
        # A per-call "model" in the params overrides the client default.
        args = {"model": self.model, **self._adapter.to_provider(messages, params)}
        self._log(
            f"{self._label} request to {args['model']} (stream={params['stream']})",
            logging.DEBUG,
        )
        return args


def _move_passthrough(args: dict[str, Any]) -> dict[str, Any]:
    """OpenAI-compatible extension fields travel in ``extra_body``."""
    moved = {key: args.pop(key) for key in ("verbosity", "reasoning_effort") if key in args}
    if moved:
        args["extra_body"] = {**args.get("extra_body", {}), **moved}
    return args


class OpenAILLM(_SDKBackedLLM):
    _client_cls = AsyncOpenAI
    _adapter_cls = OpenAIRequestAdapter
    _label = "OpenAI"

    async def _chat_impl(self, messages: Sequence[ChatMessage], params: dict[str, Any]) -> Any:
        args = _move_passthrough(self._request_args(messages, params))
        return await self._client.chat.completions.create(stream=params["stream"], **args)


class GeminiLLM(OpenAILLM):
    """Gemini through its OpenAI-compatible endpoint."""

    _adapter_cls = GeminiRequestAdapter
    _label = "Gemini"
    _default_base_url = "https://generativelanguage.googleapis.com/v1beta/openai/"


class AnthropicLLM(_SDKBackedLLM):
    """
    Anthropic Messages API.

    Streams raw events from ``messages.create(stream=True)`` so tool-use
    blocks arrive as individual fragments.
    """

    _client_cls = AsyncAnthropic
    _adapter_cls = AnthropicRequestAdapter
    _label = "Anthropic"

    async def _chat_impl(self, messages: Sequence[ChatMessage], params: dict[str, Any]) -> Any:
        args = self._request_args(messages, params)
        if params["stream"]:
            return await self._client.messages.create(stream=True, **args)
        return await self._client.messages.create(**args)


_LLM_REGISTRY: dict[Provider, type[_SDKBackedLLM]] = {
    Provider.OPENAI: OpenAILLM,
    Provider.ANTHROPIC: AnthropicLLM,
    Provider.GEMINI: GeminiLLM,
}


def create_llm(
    provider: Provider | str,
    model: str,
    *,
    api_key: str | None = None,
    client: AsyncOpenAI | AsyncAnthropic | None = None,
    logger: logging.Logger | None = None,
    **provider_kwargs: Any,
) -> BaseAsyncLLM:
    """
    Build the client for ``provider``.

    Args:
        provider: ``Provider`` member or its value ("openai", "anthropic", "gemini").
        model: Default model id; a per-call ``model`` param overrides it.
        api_key: Looked up with ``get_api_key`` when omitted.
        client: Pre-configured SDK client to wrap instead of creating one
            (``AsyncOpenAI`` for OpenAI and Gemini, ``AsyncAnthropic`` for Anthropic).
        logger: Optional custom logger.
        **provider_kwargs: ``timeout``, ``max_retries``, ``base_url`` or ``name``.
    """
    try:
        provider = Provider(provider)
        llm_cls = _LLM_REGISTRY[provider]
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Unsupported provider: {provider}") from exc

    if client is not None:
        return llm_cls.from_client(
            model, client, logger=logger, name=provider_kwargs.get("name")
        )
    return llm_cls(
        model, api_key=api_key or get_api_key(provider), logger=logger, **provider_kwargs
    )
