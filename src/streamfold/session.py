"""The lifecycle of one streaming request.

A :class:`StreamingSession` consumes fragments from a single source,
folds them with a :class:`~streamfold.streaming.DeltaAccumulator` and
drives a :class:`~streamfold.handler.StreamingResponseHandler`::

    IDLE -> OPEN -> STREAMING -> COMPLETED | ERRORED
                 \\-> CANCELLED (from any non-terminal state)

Exactly one of ``on_complete`` / ``on_error`` fires per session that
reaches a terminal fragment.  Once terminal, the session ignores any
further fragment.  Sessions share nothing; one session is driven by
one task, so callbacks never overlap and no locking is needed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterable, Sequence
from enum import Enum
from typing import Any

from streamfold.errors import IncompleteStreamError, StreamingError
from streamfold.handler import StreamingResponseHandler
from streamfold.listener import (
    ChatModelErrorContext,
    ChatModelListener,
    ChatModelRequestContext,
    ChatModelResponseContext,
    ChatRequest,
    notify_listeners,
)
from streamfold.response import (
    ChatResponse,
    TokenUsage,
    finalize_response,
    partial_response,
)
from streamfold.streaming import (
    DeltaAccumulator,
    ErrorFragment,
    FinishFragment,
    StreamFragment,
    TextDelta,
    ToolCallFragment,
    UsageFragment,
)

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    OPEN = "open"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({
    SessionState.COMPLETED, SessionState.ERRORED, SessionState.CANCELLED,
})


class StreamingSession:
    """Drives one handler from one stream of fragments.

    Args:
        handler: Receives ``on_next`` / ``on_complete`` / ``on_error``.
        request: The request snapshot shown to listeners.  Required
            when ``listeners`` is non-empty.
        listeners: Observers notified on open and on the terminal
            transition.
    """

    def __init__(
        self,
        handler: StreamingResponseHandler,
        request: ChatRequest | None = None,
        listeners: Sequence[ChatModelListener] = (),
    ):
        if listeners and request is None:
            raise ValueError("listeners need a request snapshot")
        self.handler = handler
        self.request = request
        self.listeners = list(listeners)
        self.attributes: dict[Any, Any] = {}
        self.state = SessionState.IDLE
        self.response: ChatResponse | None = None
        self.error: BaseException | None = None
        self.partial_response: ChatResponse | None = None
        self._accumulator = DeltaAccumulator()
        self._usage: TokenUsage | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def open(self) -> None:
        """Move IDLE -> OPEN and tell listeners about the request."""
        if self.state is not SessionState.IDLE:
            logger.warning(f"open() called on a {self.state.value} session")
            return
        self.state = SessionState.OPEN
        if self.listeners:
            notify_listeners(
                self.listeners, "on_request",
                ChatModelRequestContext(
                    request=self.request, attributes=self.attributes,
                ),
            )

    def feed(self, fragment: StreamFragment) -> None:
        """Process one fragment."""
        if self.is_terminal:
            logger.warning(
                f"Ignoring {type(fragment).__name__} delivered to a "
                f"{self.state.value} session"
            )
            return
        if self.state is SessionState.IDLE:
            self.open()

        if isinstance(fragment, FinishFragment):
            self._complete(fragment)
        elif isinstance(fragment, ErrorFragment):
            self.fail(fragment.cause)
        elif isinstance(fragment, UsageFragment):
            self.state = SessionState.STREAMING
            self._usage = fragment.usage
        elif isinstance(fragment, (TextDelta, ToolCallFragment)):
            self.state = SessionState.STREAMING
            self._accumulator.apply(fragment)
            if isinstance(fragment, TextDelta) and fragment.text:
                try:
                    self.handler.on_next(fragment.text)
                except Exception as e:
                    logger.info(f"on_next raised, failing session: {e!r}")
                    self.fail(e)
        else:
            # Unknown fragment types are skipped, not fatal.
            logger.debug(f"Skipping unknown fragment {fragment!r}")

    def fail(self, cause: BaseException | str) -> None:
        """Move to ERRORED and report ``cause`` exactly once."""
        if self.is_terminal:
            logger.warning(
                f"Ignoring error on a {self.state.value} session: {cause!r}"
            )
            return
        if not isinstance(cause, BaseException):
            cause = StreamingError(str(cause))
        self.state = SessionState.ERRORED
        self.error = cause
        self.partial_response = partial_response(self._accumulator)
        if self.listeners:
            notify_listeners(
                self.listeners, "on_error",
                ChatModelErrorContext(
                    error=cause,
                    request=self.request,
                    partial_response=self.partial_response,
                    attributes=self.attributes,
                ),
            )
        self.handler.on_error(cause)

    def cancel(self) -> None:
        """Stop the session; no callback fires afterwards."""
        if self.is_terminal:
            return
        logger.debug("Session cancelled")
        self.state = SessionState.CANCELLED

    def _complete(self, fragment: FinishFragment) -> None:
        self.response = finalize_response(
            self._accumulator,
            finish_reason=fragment.reason,
            usage=self._usage,
            response_id=fragment.response_id,
            model=fragment.model,
        )
        self.state = SessionState.COMPLETED
        if self.listeners:
            notify_listeners(
                self.listeners, "on_response",
                ChatModelResponseContext(
                    response=self.response,
                    request=self.request,
                    attributes=self.attributes,
                ),
            )
        self.handler.on_complete(self.response)

    async def run(self, source: AsyncIterable[StreamFragment]) -> None:
        """Consume ``source`` until the session is terminal.

        Exceptions raised by the source become ``on_error``.  A source
        that ends early fails the session with
        :class:`~streamfold.errors.IncompleteStreamError`.  Task
        cancellation cancels the session and is re-raised.
        """
        if self.state is SessionState.IDLE:
            self.open()
        try:
            async for fragment in source:
                if self.state is SessionState.CANCELLED:
                    break
                self.feed(fragment)
                if self.is_terminal:
                    break
        except asyncio.CancelledError:
            self.cancel()
            raise
        except Exception as e:
            if self.state is SessionState.CANCELLED:
                logger.debug(f"Source failed after cancellation: {e!r}")
            elif self.is_terminal:
                # Raised by on_complete / on_error themselves.
                raise
            else:
                self.fail(e)
        finally:
            await self._close_source(source)
        if not self.is_terminal:
            self.fail(IncompleteStreamError(
                "fragment source ended without a finish or error fragment"
            ))

    async def _close_source(self, source) -> None:
        aclose = getattr(source, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as e:
            if self.is_terminal:
                # Already reported; never surfaces to the caller.
                logger.warning(f"Closing the fragment source failed: {e!r}")
            else:
                self.fail(e)
