from abc import ABC, abstractmethod
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_serializer, model_validator

from streamfold.streaming import ToolCall


class MessageRole(Enum):
    SYSTEM = "system"
    ASSISTANT = "assistant"
    USER = "user"
    TOOL = "tool"


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageContent(BaseModel):
    """An image referenced by URL or carried inline as base64 data."""

    type: Literal["image"] = "image"
    url: str | None = None
    base64_data: str | None = None
    mime_type: str | None = None
    detail: Literal["low", "high", "auto"] = "auto"

    @model_validator(mode="after")
    def _check_source(self):
        if not self.url and not self.base64_data:
            raise ValueError("ImageContent needs either url or base64_data")
        if self.base64_data and not self.mime_type:
            raise ValueError("base64 image data needs a mime_type")
        return self

    @property
    def image_url(self) -> str:
        if self.url:
            return self.url
        return f"data:{self.mime_type};base64,{self.base64_data}"


Content = Annotated[Union[TextContent, ImageContent], Field(discriminator="type")]


def _tool_calls_to_openai(tool_calls: list[ToolCall]) -> list[dict]:
    return [
        {
            "id": t.id,
            "type": "function",
            "function": {
                "arguments": t.arguments,
                "name": t.name
            }
        }
        for t in tool_calls
    ]


class Message(BaseModel, ABC):
    role: MessageRole

    @field_serializer('role')
    def serialize_role(self, role: MessageRole, _info) -> str:
        return role.value

    @abstractmethod
    def to_openai(self) -> dict:
        """Return the chat-completions wire dict for this message."""


class SystemMessage(Message):
    role: MessageRole = MessageRole.SYSTEM
    text: str

    def to_openai(self) -> dict:
        return {"role": "system", "content": self.text}


class UserMessage(Message):
    role: MessageRole = MessageRole.USER
    contents: list[Content]
    name: str | None = None

    @classmethod
    def from_text(cls, text: str, name: str | None = None) -> "UserMessage":
        return cls(contents=[TextContent(text=text)], name=name)

    @classmethod
    def from_contents(cls, *contents) -> "UserMessage":
        return cls(contents=list(contents))

    @property
    def text(self) -> str | None:
        """The text of a single-text message, else ``None``."""
        if len(self.contents) == 1 and isinstance(self.contents[0], TextContent):
            return self.contents[0].text
        return None

    def to_openai(self) -> dict:
        if self.text is not None:
            content = self.text
        else:
            content = []
            for part in self.contents:
                if isinstance(part, TextContent):
                    content.append({"type": "text", "text": part.text})
                else:
                    content.append({
                        "type": "image_url",
                        "image_url": {
                            "url": part.image_url,
                            "detail": part.detail,
                        },
                    })
        wire = {"role": "user", "content": content}
        if self.name:
            wire["name"] = self.name
        return wire


class AiMessage(Message):
    """Assistant output: either text or tool-call requests.

    Exactly one of ``text`` and ``tool_calls`` is set on a finished
    streaming response.
    """

    role: MessageRole = MessageRole.ASSISTANT
    text: str | None = None
    tool_calls: list[ToolCall] | None = None

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    @field_serializer("tool_calls")
    def serialize_tool_calls(self, tool_calls: list | None) -> list[dict] | None:
        if tool_calls is None:
            return None
        return _tool_calls_to_openai(tool_calls)

    def to_openai(self) -> dict:
        wire = {"role": "assistant", "content": self.text}
        if self.tool_calls:
            wire["tool_calls"] = _tool_calls_to_openai(self.tool_calls)
        return wire


class ToolCallResultMessage(Message):
    role: MessageRole = MessageRole.TOOL
    tool_call_id: str
    tool_name: str | None = None
    text: str

    @classmethod
    def from_tool_call(cls, tool_call: ToolCall, result: str) -> "ToolCallResultMessage":
        return cls(
            tool_call_id=tool_call.id, tool_name=tool_call.name, text=result,
        )

    def to_openai(self) -> dict:
        return {
            "role": "tool",
            "tool_call_id": self.tool_call_id,
            "content": self.text,
        }


ChatMessage = Union[SystemMessage, UserMessage, AiMessage, ToolCallResultMessage]
