import pytest

from streamfold.config import ChatModelConfig
from streamfold.handler import StreamingResponseHandler
from streamfold.listener import ChatModelListener
from streamfold.model import StreamingChatModel
from streamfold.provider import ModelProvider
from streamfold.response import FinishReason, TokenUsage
from streamfold.streaming import (
    ErrorFragment,
    FinishFragment,
    TextDelta,
    ToolCallFragment,
    UsageFragment,
)
from streamfold.tools import ToolSpecification


# ---------------------------------------------------------------------------
# Mock provider
# ---------------------------------------------------------------------------

class MockProvider(ModelProvider):
    """Provider that streams pre-queued fragment lists. No network calls.

    A queued item that is an exception instance is raised by the
    source at that point instead of being yielded.
    """

    system = "mock"

    def __init__(self):
        self.responses: list[list] = []
        self.call_log: list = []
        self.closed = 0

    async def stream_complete(self, request):
        self.call_log.append(request)
        items = self.responses.pop(0)
        try:
            for item in items:
                if isinstance(item, BaseException):
                    raise item
                yield item
        finally:
            self.closed += 1


# ---------------------------------------------------------------------------
# Recording handler / listener
# ---------------------------------------------------------------------------

class RecordingHandler(StreamingResponseHandler):
    """Records every callback, in order, as ``(name, payload)``."""

    def __init__(self):
        self.calls: list[tuple[str, object]] = []

    def on_next(self, token):
        self.calls.append(("next", token))

    def on_complete(self, response):
        self.calls.append(("complete", response))

    def on_error(self, error):
        self.calls.append(("error", error))

    @property
    def tokens(self) -> list[str]:
        return [p for name, p in self.calls if name == "next"]

    @property
    def terminal_calls(self) -> list[tuple[str, object]]:
        return [c for c in self.calls if c[0] in ("complete", "error")]


class RecordingListener(ChatModelListener):
    def __init__(self):
        self.requests = []
        self.responses = []
        self.errors = []

    def on_request(self, context):
        self.requests.append(context)
        context.attributes["id"] = "12345"

    def on_response(self, context):
        self.responses.append(context)

    def on_error(self, context):
        self.errors.append(context)


# ---------------------------------------------------------------------------
# Fragment builder helpers
# ---------------------------------------------------------------------------

def usage(input_tokens=5, output_tokens=2, total=None) -> UsageFragment:
    return UsageFragment(usage=TokenUsage(
        input_token_count=input_tokens,
        output_token_count=output_tokens,
        total_token_count=total,
    ))


def make_text_fragments(
    *deltas: str,
    reason: FinishReason = FinishReason.STOP,
    input_tokens: int = 5,
    output_tokens: int = 2,
) -> list:
    """Text deltas, a usage fragment and a finish fragment."""
    return [
        *[TextDelta(text=d) for d in deltas],
        usage(input_tokens, output_tokens),
        FinishFragment(reason=reason, response_id="chatcmpl-1", model="mock-model"),
    ]


def make_tool_call_fragments(
    name: str,
    argument_parts: list[str],
    call_id: str = "call_1",
    index: int = 0,
    reason: FinishReason = FinishReason.TOOL_EXECUTION,
) -> list:
    """One tool call streamed as a header plus argument pieces."""
    fragments = [ToolCallFragment(index=index, call_id=call_id, name=name)]
    fragments += [
        ToolCallFragment(index=index, arguments_delta=part)
        for part in argument_parts
    ]
    fragments += [
        usage(53, 14),
        FinishFragment(reason=reason, response_id="chatcmpl-2", model="mock-model"),
    ]
    return fragments


def make_error_fragments(cause, *deltas: str) -> list:
    return [*[TextDelta(text=d) for d in deltas], ErrorFragment(cause=cause)]


@pytest.fixture
def mock_provider():
    return MockProvider()


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def calculator():
    return (
        ToolSpecification(name="calculator", description="returns a sum of two numbers")
        .add_parameter("first", "integer")
        .add_parameter("second", "integer")
    )


@pytest.fixture
def make_model(mock_provider):
    """Factory fixture to build models on the mock provider."""
    def _make(provider=None, **config):
        config.setdefault("model_name", "mock-model")
        return StreamingChatModel(
            config=ChatModelConfig(**config),
            provider=provider or mock_provider,
        )
    return _make
