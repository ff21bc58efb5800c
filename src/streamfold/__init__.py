from streamfold.config import AzureChatModelConfig, ChatModelConfig
from streamfold.errors import IncompleteStreamError, StreamfoldError, StreamingError
from streamfold.events import CompleteEvent, StreamEvent, TokenEvent
from streamfold.handler import CollectingResponseHandler, StreamingResponseHandler
from streamfold.instrumentation import instrument, uninstrument
from streamfold.listener import (
    ChatModelErrorContext,
    ChatModelListener,
    ChatModelRequestContext,
    ChatModelResponseContext,
    ChatRequest,
)
from streamfold.message import (
    AiMessage,
    ImageContent,
    MessageRole,
    SystemMessage,
    TextContent,
    ToolCallResultMessage,
    UserMessage,
)
from streamfold.model import StreamingChatModel
from streamfold.provider import (
    AzureOpenAIProvider,
    ModelProvider,
    OpenAICompatibleProvider,
    OpenAIProvider,
)
from streamfold.response import ChatResponse, FinishReason, TokenUsage
from streamfold.session import SessionState, StreamingSession
from streamfold.streaming import (
    DeltaAccumulator,
    ErrorFragment,
    FinishFragment,
    TextDelta,
    ToolCall,
    ToolCallFragment,
    UsageFragment,
)
from streamfold.tokenizer import TiktokenTokenizer, Tokenizer
from streamfold.tools import JsonSchemaProperty, ToolSpecification

__all__ = [
    "AiMessage",
    "AzureChatModelConfig",
    "AzureOpenAIProvider",
    "ChatModelConfig",
    "ChatModelErrorContext",
    "ChatModelListener",
    "ChatModelRequestContext",
    "ChatModelResponseContext",
    "ChatRequest",
    "ChatResponse",
    "CollectingResponseHandler",
    "CompleteEvent",
    "DeltaAccumulator",
    "ErrorFragment",
    "FinishFragment",
    "FinishReason",
    "ImageContent",
    "IncompleteStreamError",
    "JsonSchemaProperty",
    "MessageRole",
    "ModelProvider",
    "OpenAICompatibleProvider",
    "OpenAIProvider",
    "SessionState",
    "StreamEvent",
    "StreamfoldError",
    "StreamingChatModel",
    "StreamingError",
    "StreamingResponseHandler",
    "StreamingSession",
    "SystemMessage",
    "TextContent",
    "TextDelta",
    "TiktokenTokenizer",
    "TokenEvent",
    "TokenUsage",
    "Tokenizer",
    "ToolCall",
    "ToolCallFragment",
    "ToolCallResultMessage",
    "ToolSpecification",
    "UsageFragment",
    "UserMessage",
    "instrument",
    "uninstrument",
]
