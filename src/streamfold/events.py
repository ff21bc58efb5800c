"""Events yielded by :meth:`StreamingChatModel.stream`."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class StreamEvent:
    """Base for all streaming events."""


@dataclass
class TokenEvent(StreamEvent):
    """Token-level delta from the provider stream."""

    content: str = ""


@dataclass
class CompleteEvent(StreamEvent):
    """Final event, always the last event yielded on success.

    ``result`` is the :class:`~streamfold.response.ChatResponse`.
    """

    result: Any = None
