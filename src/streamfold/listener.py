"""Observers notified around every chat request.

A listener sees the request before it is sent and exactly one of the
response or the error afterwards.  All three contexts of one session
share the same ``request`` instance and the same ``attributes`` dict,
so a listener can stash values (a trace id, a start time) in
``on_request`` and read them back later.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

from streamfold.message import ChatMessage
from streamfold.response import ChatResponse
from streamfold.tools import ToolSpecification

logger = logging.getLogger(__name__)


class ChatRequest(BaseModel):
    """Snapshot of what is sent to the model for one session."""

    model: str
    messages: list[ChatMessage]
    tools: list[ToolSpecification] = Field(default_factory=list)
    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    response_format: str | dict | None = None

    def to_openai_kwargs(self) -> dict:
        """Keyword arguments for ``chat.completions.create``."""
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_openai() for m in self.messages],
        }
        if self.tools:
            kwargs["tools"] = [t.tool_schema() for t in self.tools]
            kwargs["tool_choice"] = "auto"
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        if self.top_p is not None:
            kwargs["top_p"] = self.top_p
        if self.max_tokens is not None:
            kwargs["max_tokens"] = self.max_tokens
        if isinstance(self.response_format, str):
            kwargs["response_format"] = {"type": self.response_format}
        elif self.response_format is not None:
            kwargs["response_format"] = self.response_format
        return kwargs


@dataclass
class ChatModelRequestContext:
    request: ChatRequest
    attributes: dict[Any, Any] = field(default_factory=dict)


@dataclass
class ChatModelResponseContext:
    response: ChatResponse
    request: ChatRequest
    attributes: dict[Any, Any] = field(default_factory=dict)


@dataclass
class ChatModelErrorContext:
    """``partial_response`` is what had streamed before the failure,
    or ``None`` if nothing had."""

    error: BaseException
    request: ChatRequest
    partial_response: ChatResponse | None = None
    attributes: dict[Any, Any] = field(default_factory=dict)


class ChatModelListener:
    """Base listener; override the hooks you need."""

    def on_request(self, context: ChatModelRequestContext) -> None:
        pass

    def on_response(self, context: ChatModelResponseContext) -> None:
        pass

    def on_error(self, context: ChatModelErrorContext) -> None:
        pass


def notify_listeners(listeners, hook: str, context) -> None:
    """Call ``hook`` on every listener; a failing listener is logged
    and skipped."""
    for listener in listeners:
        try:
            getattr(listener, hook)(context)
        except Exception:
            logger.warning(
                f"Exception while calling {type(listener).__name__}.{hook}",
                exc_info=True,
            )
