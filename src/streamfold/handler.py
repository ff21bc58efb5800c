"""Caller-side callbacks for a streaming session."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

from streamfold.response import ChatResponse


class StreamingResponseHandler(ABC):
    """Receives the output of one streaming session.

    ``on_next`` is called once per text delta, in arrival order.
    Exactly one of ``on_complete`` and ``on_error`` is called, once,
    after the last ``on_next``.  Calls never overlap.
    """

    def on_next(self, token: str) -> None:
        pass

    @abstractmethod
    def on_complete(self, response: ChatResponse) -> None:
        ...

    @abstractmethod
    def on_error(self, error: BaseException) -> None:
        ...


class CollectingResponseHandler(StreamingResponseHandler):
    """Handler that records tokens and resolves a future.

    Must be created inside a running event loop.

    Example::

        handler = CollectingResponseHandler()
        await model.generate("Hi", handler)
        response = await handler.get()
    """

    def __init__(self) -> None:
        self.tokens: list[str] = []
        self._future: asyncio.Future[ChatResponse] = (
            asyncio.get_running_loop().create_future()
        )

    @property
    def text(self) -> str:
        return "".join(self.tokens)

    @property
    def done(self) -> bool:
        return self._future.done()

    def on_next(self, token: str) -> None:
        self.tokens.append(token)

    def on_complete(self, response: ChatResponse) -> None:
        self._future.set_result(response)

    def on_error(self, error: BaseException) -> None:
        self._future.set_exception(error)

    async def get(self, timeout: float | None = None) -> ChatResponse:
        """Wait for the response; raises the session's error cause."""
        return await asyncio.wait_for(asyncio.shield(self._future), timeout)
