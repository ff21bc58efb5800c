"""Token-count estimation.

Estimates are advisory: they are used for pre-flight accounting and
never decide whether a request is sent.  Implement :class:`Tokenizer`
to plug in a different counting scheme.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable

import tiktoken

from streamfold.message import (
    AiMessage,
    ImageContent,
    Message,
    SystemMessage,
    TextContent,
    ToolCallResultMessage,
    UserMessage,
)
from streamfold.streaming import ToolCall
from streamfold.tools import ToolSpecification

logger = logging.getLogger(__name__)

# OpenAI chat framing overheads.
TOKENS_PER_MESSAGE = 3
TOKENS_PER_NAME = 1
TOKENS_REPLY_PRIMING = 3
TOKENS_PER_IMAGE = 85
TOKENS_PER_TOOL_CALL = 3
TOKENS_PER_TOOL_SPECIFICATION = 7


class Tokenizer(ABC):
    @abstractmethod
    def estimate_token_count_in_text(self, text: str) -> int:
        ...

    @abstractmethod
    def estimate_token_count_in_message(self, message: Message) -> int:
        ...

    @abstractmethod
    def estimate_token_count_in_messages(
            self, messages: Iterable[Message]
    ) -> int:
        ...

    @abstractmethod
    def estimate_token_count_in_tool_specifications(
            self, tool_specifications: Iterable[ToolSpecification]
    ) -> int:
        ...

    @abstractmethod
    def estimate_token_count_in_tool_calls(
            self, tool_calls: Iterable[ToolCall]
    ) -> int:
        ...


class TiktokenTokenizer(Tokenizer):
    """Default tokenizer backed by ``tiktoken``.

    The encoding is resolved lazily on first use, from ``model_name``
    if tiktoken knows it and ``cl100k_base`` otherwise.  Pass
    ``encoding`` to supply one directly.

    Args:
        model_name: Model whose encoding should be used.
        encoding: Any object with an ``encode(str) -> list`` method.
    """

    def __init__(self, model_name: str = "gpt-4o-mini", encoding=None):
        self.model_name = model_name
        self._encoding = encoding

    @property
    def encoding(self):
        if self._encoding is None:
            try:
                self._encoding = tiktoken.encoding_for_model(self.model_name)
            except KeyError:
                logger.warning(
                    f"No tiktoken encoding for model {self.model_name}, "
                    "falling back to cl100k_base"
                )
                self._encoding = tiktoken.get_encoding("cl100k_base")
        return self._encoding

    def estimate_token_count_in_text(self, text: str) -> int:
        if not text:
            return 0
        return len(self.encoding.encode(text))

    def estimate_token_count_in_message(self, message: Message) -> int:
        count = TOKENS_PER_MESSAGE
        count += self.estimate_token_count_in_text(message.role.value)
        if isinstance(message, SystemMessage):
            count += self.estimate_token_count_in_text(message.text)
        elif isinstance(message, UserMessage):
            for part in message.contents:
                if isinstance(part, TextContent):
                    count += self.estimate_token_count_in_text(part.text)
                elif isinstance(part, ImageContent):
                    count += TOKENS_PER_IMAGE
            if message.name:
                count += TOKENS_PER_NAME
                count += self.estimate_token_count_in_text(message.name)
        elif isinstance(message, AiMessage):
            count += self.estimate_token_count_in_text(message.text or "")
            if message.tool_calls:
                count += self.estimate_token_count_in_tool_calls(
                    message.tool_calls
                )
        elif isinstance(message, ToolCallResultMessage):
            count += self.estimate_token_count_in_text(message.text)
        return count

    def estimate_token_count_in_messages(
            self, messages: Iterable[Message]
    ) -> int:
        count = TOKENS_REPLY_PRIMING
        for message in messages:
            count += self.estimate_token_count_in_message(message)
        return count

    def estimate_token_count_in_tool_specifications(
            self, tool_specifications: Iterable[ToolSpecification]
    ) -> int:
        count = 0
        for spec in tool_specifications:
            count += TOKENS_PER_TOOL_SPECIFICATION
            count += self.estimate_token_count_in_text(spec.model_dump_json())
        return count

    def estimate_token_count_in_tool_calls(
            self, tool_calls: Iterable[ToolCall]
    ) -> int:
        count = 0
        for tc in tool_calls:
            count += TOKENS_PER_TOOL_CALL
            count += self.estimate_token_count_in_text(tc.name)
            count += self.estimate_token_count_in_text(tc.arguments)
        return count
