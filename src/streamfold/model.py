import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import suppress

from streamfold.config import ChatModelConfig
from streamfold.events import CompleteEvent, StreamEvent, TokenEvent
from streamfold.handler import CollectingResponseHandler, StreamingResponseHandler
from streamfold.instrumentation import completion_span, record_error, record_response
from streamfold.listener import ChatRequest
from streamfold.message import ChatMessage, Message, UserMessage
from streamfold.provider import ModelProvider, provider_from_config
from streamfold.response import ChatResponse
from streamfold.session import StreamingSession
from streamfold.tokenizer import TiktokenTokenizer, Tokenizer
from streamfold.tools import ToolSpecification

logger = logging.getLogger(__name__)

_DONE = object()


class _QueueHandler(StreamingResponseHandler):
    """Forwards session callbacks into a queue for ``stream()``."""

    def __init__(self, queue: asyncio.Queue):
        self.queue = queue

    def on_next(self, token: str) -> None:
        self.queue.put_nowait(TokenEvent(content=token))

    def on_complete(self, response: ChatResponse) -> None:
        self.queue.put_nowait(CompleteEvent(result=response))

    def on_error(self, error: BaseException) -> None:
        self.queue.put_nowait(error)


class StreamingChatModel:
    """Chat client that streams every response.

    ``generate()`` is the callback entry point; ``stream()`` exposes
    the same session as an async iterator and ``chat()`` waits for
    the final response.  Each call runs its own
    :class:`~streamfold.session.StreamingSession`, so concurrent calls
    on one model are independent.

    Args:
        config: Request options, listeners and tokenizer.
        provider: Transport; built from ``config`` when omitted.
    """

    def __init__(
        self,
        config: ChatModelConfig | None = None,
        provider: ModelProvider | None = None,
    ):
        self.config = config or ChatModelConfig()
        self.provider = provider or provider_from_config(self.config)
        self.tokenizer: Tokenizer = (
            self.config.tokenizer
            or TiktokenTokenizer(self.config.model_name)
        )

    def build_request(
        self,
        messages: str | Sequence[ChatMessage],
        tools: Sequence[ToolSpecification] | None = None,
    ) -> ChatRequest:
        if isinstance(messages, str):
            messages = [UserMessage.from_text(messages)]
        return ChatRequest(
            model=self.config.request_model,
            messages=list(messages),
            tools=list(tools or []),
            temperature=self.config.temperature,
            top_p=self.config.top_p,
            max_tokens=self.config.max_tokens,
            response_format=self.config.response_format,
        )

    async def generate(
        self,
        messages: str | Sequence[ChatMessage],
        handler: StreamingResponseHandler,
        tools: Sequence[ToolSpecification] | None = None,
    ) -> StreamingSession:
        """Stream one response into ``handler``.

        Returns the finished session.  Transport errors are reported
        through ``handler.on_error``, not raised.
        """
        request = self.build_request(messages, tools)
        session = StreamingSession(
            handler, request=request, listeners=self.config.listeners,
        )
        if self.config.log_requests:
            logger.info(f"Request: {request.model_dump_json()}")

        async with completion_span(self.provider.system, request.model) as span:
            try:
                source = self.provider.stream_complete(request)
            except Exception as e:
                # Eager providers can fail before the first fragment.
                session.open()
                session.fail(e)
            else:
                await session.run(source)
            if session.response is not None:
                record_response(span, session.response)
                if self.config.log_responses:
                    logger.info(
                        f"Response: {session.response.model_dump_json()}"
                    )
            elif session.error is not None:
                record_error(span, session.error)
                logger.info(f"Streaming session failed: {session.error!r}")
        return session

    async def stream(
        self,
        messages: str | Sequence[ChatMessage],
        tools: Sequence[ToolSpecification] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Yield :class:`TokenEvent` per delta, then one
        :class:`CompleteEvent`.

        Raises the session's error cause instead of completing.
        Leaving the loop early cancels the session.
        """
        queue: asyncio.Queue = asyncio.Queue()
        task = asyncio.create_task(
            self.generate(messages, _QueueHandler(queue), tools)
        )
        task.add_done_callback(lambda _: queue.put_nowait(_DONE))
        try:
            while True:
                item = await queue.get()
                if item is _DONE:
                    # Finished without a terminal callback; surface why.
                    task.result()
                    return
                if isinstance(item, BaseException):
                    await task
                    raise item
                if isinstance(item, CompleteEvent):
                    await task
                    yield item
                    return
                yield item
        finally:
            if not task.done():
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task

    async def chat(
        self,
        messages: str | Sequence[ChatMessage],
        tools: Sequence[ToolSpecification] | None = None,
    ) -> ChatResponse:
        """Run one session and return its response."""
        handler = CollectingResponseHandler()
        await self.generate(messages, handler, tools)
        return await handler.get()

    def estimate_token_count(
        self, content: str | Message | Sequence[Message]
    ) -> int:
        if isinstance(content, str):
            return self.tokenizer.estimate_token_count_in_text(content)
        if isinstance(content, Message):
            return self.tokenizer.estimate_token_count_in_message(content)
        return self.tokenizer.estimate_token_count_in_messages(content)
