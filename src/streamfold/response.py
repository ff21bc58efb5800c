"""Final response types and the finalizer that builds them.

:func:`finalize_response` turns the state of a
:class:`~streamfold.streaming.DeltaAccumulator` plus the terminal
signals of a stream into a :class:`ChatResponse`.
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import BaseModel, model_validator

from streamfold.message import AiMessage
from streamfold.streaming import DeltaAccumulator

logger = logging.getLogger(__name__)


class FinishReason(Enum):
    STOP = "stop"
    LENGTH = "length"
    TOOL_EXECUTION = "tool_execution"
    CONTENT_FILTER = "content_filter"
    OTHER = "other"

    @classmethod
    def from_wire(cls, value: str | None) -> FinishReason | None:
        """Map an OpenAI ``finish_reason`` string to a FinishReason."""
        if value is None:
            return None
        return _WIRE_FINISH_REASONS.get(value, cls.OTHER)


_WIRE_FINISH_REASONS = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "tool_calls": FinishReason.TOOL_EXECUTION,
    "function_call": FinishReason.TOOL_EXECUTION,
    "content_filter": FinishReason.CONTENT_FILTER,
}


class TokenUsage(BaseModel):
    """Token counts for one exchange.

    Any count may be unknown while a stream is in flight; a usage
    attached to a :class:`ChatResponse` always satisfies
    ``total == input + output``.
    """

    input_token_count: int | None = None
    output_token_count: int | None = None
    total_token_count: int | None = None

    @model_validator(mode="after")
    def _fill_total(self):
        if (
            self.total_token_count is None
            and self.input_token_count is not None
            and self.output_token_count is not None
        ):
            self.total_token_count = (
                self.input_token_count + self.output_token_count
            )
        return self

    @property
    def is_complete(self) -> bool:
        return (
            self.input_token_count is not None
            and self.output_token_count is not None
        )

    @property
    def is_consistent(self) -> bool:
        return self.is_complete and self.total_token_count == (
            self.input_token_count + self.output_token_count
        )

    def add(self, other: TokenUsage | None) -> TokenUsage:
        """Sum two usages, e.g. across the turns of a tool loop."""
        if other is None:
            return self

        def _sum(a, b):
            if a is None and b is None:
                return None
            return (a or 0) + (b or 0)

        return TokenUsage(
            input_token_count=_sum(self.input_token_count, other.input_token_count),
            output_token_count=_sum(self.output_token_count, other.output_token_count),
            total_token_count=_sum(self.total_token_count, other.total_token_count),
        )


class ChatResponse(BaseModel):
    """The result of one chat exchange."""

    message: AiMessage
    usage: TokenUsage | None = None
    finish_reason: FinishReason | None = None
    id: str | None = None
    model: str | None = None


def reconcile_usage(usage: TokenUsage | None) -> TokenUsage | None:
    """Return a usage that is either absent or internally consistent."""
    if usage is None:
        return None
    if not usage.is_complete:
        logger.warning(
            "Dropping partial token usage %s", usage.model_dump()
        )
        return None
    if usage.is_consistent:
        return usage
    expected = usage.input_token_count + usage.output_token_count
    logger.warning(
        f"Reported total_token_count {usage.total_token_count} does not "
        f"match input + output ({expected}); using {expected}"
    )
    return usage.model_copy(update={"total_token_count": expected})


def finalize_response(
    accumulator: DeltaAccumulator,
    finish_reason: FinishReason | None,
    usage: TokenUsage | None = None,
    response_id: str | None = None,
    model: str | None = None,
) -> ChatResponse:
    """Build the final response for a completed stream.

    Tool calls take precedence: when any were streamed, the message
    carries them and no text.  The finish reason is passed through
    as reported.
    """
    if accumulator.has_tool_calls:
        message = AiMessage(tool_calls=accumulator.tool_calls.finalize())
    else:
        message = AiMessage(text=accumulator.text)
    return ChatResponse(
        message=message,
        usage=reconcile_usage(usage),
        finish_reason=finish_reason,
        id=response_id,
        model=model,
    )


def partial_response(accumulator: DeltaAccumulator) -> ChatResponse | None:
    """Snapshot of what a failed stream produced, or ``None``."""
    if accumulator.is_empty:
        return None
    return finalize_response(accumulator, finish_reason=None)
