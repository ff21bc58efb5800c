"""Transports that turn a :class:`~streamfold.listener.ChatRequest`
into a stream of fragments.

HTTP, authentication and retry/backoff belong to the ``openai`` SDK
client each provider wraps; SDK exceptions propagate unchanged.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import AsyncIterable, AsyncIterator

from openai import AsyncAzureOpenAI, AsyncOpenAI

from streamfold.config import AzureChatModelConfig, ChatModelConfig
from streamfold.listener import ChatRequest
from streamfold.response import FinishReason, TokenUsage
from streamfold.streaming import (
    FinishFragment,
    StreamFragment,
    TextDelta,
    ToolCallFragment,
    UsageFragment,
)

logger = logging.getLogger(__name__)


def chunk_to_fragments(chunk) -> list[StreamFragment]:
    """Translate one ``ChatCompletionChunk`` into content and usage
    fragments.  Finish reasons are handled by
    :func:`fragments_from_chunks`."""
    fragments: list[StreamFragment] = []
    for choice in getattr(chunk, "choices", None) or []:
        delta = getattr(choice, "delta", None)
        if delta is None:
            continue
        if delta.content:
            fragments.append(TextDelta(text=delta.content))
        for tc in getattr(delta, "tool_calls", None) or []:
            function = getattr(tc, "function", None)
            fragments.append(ToolCallFragment(
                index=tc.index,
                call_id=tc.id,
                name=function.name if function else None,
                arguments_delta=function.arguments if function else None,
            ))
    usage = getattr(chunk, "usage", None)
    if usage is not None:
        fragments.append(UsageFragment(usage=TokenUsage(
            input_token_count=usage.prompt_tokens,
            output_token_count=usage.completion_tokens,
            total_token_count=usage.total_tokens,
        )))
    return fragments


async def fragments_from_chunks(
    chunks: AsyncIterable,
) -> AsyncIterator[StreamFragment]:
    """Translate an SDK chunk stream into fragments.

    With ``include_usage`` the usage arrives in a chunk after the one
    carrying ``finish_reason``, so the single :class:`FinishFragment`
    is emitted once the stream is drained.  A stream that never
    reports a finish reason yields no terminal fragment.
    """
    finish_reason = None
    response_id = None
    model = None
    async for chunk in chunks:
        response_id = getattr(chunk, "id", None) or response_id
        model = getattr(chunk, "model", None) or model
        for choice in getattr(chunk, "choices", None) or []:
            if choice.finish_reason:
                finish_reason = choice.finish_reason
        for fragment in chunk_to_fragments(chunk):
            yield fragment
    if finish_reason is not None:
        yield FinishFragment(
            reason=FinishReason.from_wire(finish_reason),
            response_id=response_id,
            model=model,
        )
    else:
        logger.warning("Chunk stream ended without a finish_reason")


class ModelProvider(ABC):
    """Base transport.  ``system`` names the provider in telemetry."""

    system: str = "openai"

    @abstractmethod
    def stream_complete(
            self, request: ChatRequest
    ) -> AsyncIterator[StreamFragment]:
        ...


class OpenAIProvider(ModelProvider):

    def __init__(
            self,
            api_key: str | None = None,
            base_url: str | None = None,
            organization: str | None = None,
            max_retries: int = 3,
            timeout: float = 60.0,
    ):
        if not api_key:
            api_key = os.getenv("OPENAI_API_KEY")
        if not base_url:
            base_url = os.getenv("OPENAI_BASE_URL") or None
        if not organization:
            organization = os.getenv("OPENAI_ORGANIZATION_ID") or None
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            organization=organization,
            max_retries=max_retries,
            timeout=timeout,
        )

    async def stream_complete(
            self, request: ChatRequest
    ) -> AsyncIterator[StreamFragment]:
        stream = await self.client.chat.completions.create(
            stream=True,
            stream_options={"include_usage": True},
            **request.to_openai_kwargs(),
        )
        try:
            async for fragment in fragments_from_chunks(stream):
                yield fragment
        finally:
            close = getattr(stream, "close", None)
            if close is not None:
                await close()


class OpenAICompatibleProvider(OpenAIProvider):
    """Any server speaking the chat-completions API (vLLM, Ollama, ...)."""

    def __init__(
            self,
            base_url: str,
            api_key: str | None = None,
            max_retries: int = 3,
            timeout: float = 60.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = AsyncOpenAI(
            base_url=self.base_url,
            api_key=api_key or "DUMMY",
            max_retries=max_retries,
            timeout=timeout,
        )


class AzureOpenAIProvider(OpenAIProvider):

    system = "azure.ai.openai"

    def __init__(
            self,
            endpoint: str | None = None,
            api_key: str | None = None,
            api_version: str = "2024-10-21",
            max_retries: int = 3,
            timeout: float = 60.0,
    ):
        if not endpoint:
            endpoint = os.getenv("AZURE_OPENAI_ENDPOINT")
        if not api_key:
            api_key = os.getenv("AZURE_OPENAI_KEY")
        self.client = AsyncAzureOpenAI(
            azure_endpoint=endpoint,
            api_key=api_key,
            api_version=api_version,
            max_retries=max_retries,
            timeout=timeout,
        )


def provider_from_config(config: ChatModelConfig) -> ModelProvider:
    if isinstance(config, AzureChatModelConfig):
        return AzureOpenAIProvider(
            endpoint=config.endpoint,
            api_key=config.api_key,
            api_version=config.api_version,
            max_retries=config.max_retries,
            timeout=config.timeout,
        )
    return OpenAIProvider(
        api_key=config.api_key,
        base_url=config.base_url,
        organization=config.organization_id,
        max_retries=config.max_retries,
        timeout=config.timeout,
    )
