"""Streaming primitives for provider responses.

Providers yield :data:`StreamFragment` objects.  The
:class:`DeltaAccumulator` folds them into one in-progress assistant
message; its :class:`ToolCallAccumulator` reassembles tool calls whose
arguments arrive in fragments across multiple chunks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from streamfold.response import FinishReason, TokenUsage

logger = logging.getLogger(__name__)


@dataclass
class TextDelta:
    """A piece of assistant text."""

    text: str = ""


@dataclass
class ToolCallFragment:
    """A fragment of a tool call from a streaming chunk."""

    index: int | None = None
    call_id: str | None = None
    name: str | None = None
    arguments_delta: str | None = None


@dataclass
class UsageFragment:
    """Token usage reported by the server, normally just before finish."""

    usage: TokenUsage


@dataclass
class FinishFragment:
    """Terminal fragment: generation stopped for ``reason``."""

    reason: FinishReason | None = None
    response_id: str | None = None
    model: str | None = None


@dataclass
class ErrorFragment:
    """Terminal fragment: the stream failed with ``cause``."""

    cause: BaseException | str


StreamFragment = Union[
    TextDelta, ToolCallFragment, UsageFragment, FinishFragment, ErrorFragment,
]

TERMINAL_FRAGMENTS = (FinishFragment, ErrorFragment)


@dataclass
class ToolCall:
    """A resolved tool call ready for the transcript."""

    id: str = ""
    name: str = ""
    arguments: str = ""


def _normalize_index(index):
    if isinstance(index, str):
        try:
            return int(index.strip())
        except ValueError:
            return index
    return index


class ToolCallAccumulator:
    """Assembles complete tool calls from streaming fragments.

    Calls are kept in order of first appearance.  Name and id are
    taken from the first fragment that carries a non-empty value;
    argument deltas are concatenated per call in arrival order.
    """

    def __init__(self) -> None:
        self._pending: dict = {}
        self._last_key = None

    def __len__(self) -> int:
        return len(self._pending)

    def _route(self, fragment: ToolCallFragment):
        index = _normalize_index(fragment.index)
        if index is not None:
            return index
        # No index on the wire: fall back to the call id, then to the
        # call that was touched last.
        logger.debug("Tool-call fragment without index: %r", fragment)
        if fragment.call_id:
            for key, tc in self._pending.items():
                if tc.id == fragment.call_id:
                    return key
            return f"id:{fragment.call_id}"
        if self._last_key is not None:
            return self._last_key
        return 0

    def feed(self, fragment: ToolCallFragment) -> None:
        key = self._route(fragment)
        if key not in self._pending:
            self._pending[key] = ToolCall()
        tc = self._pending[key]
        if fragment.call_id and not tc.id:
            tc.id = fragment.call_id
        if fragment.name and not tc.name:
            tc.name = fragment.name
        if fragment.arguments_delta:
            tc.arguments += fragment.arguments_delta
        self._last_key = key

    def _filled(self) -> list[ToolCall]:
        # Index-only fragments open a call that may never be filled in.
        return [
            tc for tc in self._pending.values()
            if tc.id or tc.name or tc.arguments
        ]

    @property
    def has_calls(self) -> bool:
        return bool(self._filled())

    def finalize(self) -> list[ToolCall]:
        """Return completed tool calls in order of first appearance.

        Calls that never received an id, a name or any arguments are
        dropped.
        """
        return [
            ToolCall(id=tc.id, name=tc.name, arguments=tc.arguments)
            for tc in self._filled()
        ]


class DeltaAccumulator:
    """Folds text and tool-call fragments into one in-progress message.

    Usage and finish signals are not content; the session hands them
    to the finalizer directly.
    """

    def __init__(self) -> None:
        self._text_parts: list[str] = []
        self.tool_calls = ToolCallAccumulator()

    def apply(self, fragment: StreamFragment) -> None:
        if isinstance(fragment, TextDelta):
            if fragment.text:
                self._text_parts.append(fragment.text)
        elif isinstance(fragment, ToolCallFragment):
            self.tool_calls.feed(fragment)
        else:
            logger.debug(
                "Accumulator ignoring %s", type(fragment).__name__
            )

    @property
    def text(self) -> str:
        return "".join(self._text_parts)

    @property
    def has_tool_calls(self) -> bool:
        return self.tool_calls.has_calls

    @property
    def is_empty(self) -> bool:
        return not self._text_parts and not self.has_tool_calls
