"""Streaming chat example with a calculator tool.

Demonstrates:
- Streaming tokens with StreamingChatModel.stream()
- Declaring a tool with ToolSpecification
- Sending a tool result back and streaming the final answer
- Observing requests with a ChatModelListener

Usage:
    uv run --env-file=.env examples/calculator_chat.py --model gpt-4o-mini --trace
    uv run examples/calculator_chat.py --url http://localhost:8000/v1 --model Qwen/Qwen3-8B
"""

import argparse
import asyncio
import json
import time

from streamfold.config import ChatModelConfig
from streamfold.events import CompleteEvent, TokenEvent
from streamfold.listener import ChatModelListener
from streamfold.message import SystemMessage, ToolCallResultMessage, UserMessage
from streamfold.model import StreamingChatModel
from streamfold.provider import OpenAICompatibleProvider
from streamfold.response import TokenUsage
from streamfold.tools import ToolSpecification

calculator = (
    ToolSpecification(name="calculator", description="returns a sum of two numbers")
    .add_parameter("first", "integer")
    .add_parameter("second", "integer")
)


def run_tool(name: str, arguments: str) -> str:
    args = json.loads(arguments or "{}")
    if name == "calculator":
        return str(args["first"] + args["second"])
    return f"Unknown tool '{name}'."


class TimingListener(ChatModelListener):
    """Prints how long each request took."""

    def on_request(self, context):
        context.attributes["started"] = time.perf_counter()

    def on_response(self, context):
        elapsed = time.perf_counter() - context.attributes["started"]
        usage = context.response.usage
        tokens = usage.total_token_count if usage else "?"
        print(f"[{elapsed:.2f}s, {tokens} tokens]")

    def on_error(self, context):
        print(f"[failed: {context.error!r}]")


def setup_tracing(service_name: str):
    from opentelemetry import trace
    from opentelemetry.sdk.resources import SERVICE_NAME, Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import (
        SimpleSpanProcessor, ConsoleSpanExporter,
    )
    from streamfold.instrumentation import instrument

    provider = TracerProvider(
        resource=Resource({SERVICE_NAME: service_name})
    )
    provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)
    instrument()


async def answer(model: StreamingChatModel, messages: list) -> TokenUsage:
    """Stream replies, running tools, until the model answers in text.

    Returns the token usage summed over every request of the turn.
    """
    total = TokenUsage()
    while True:
        print("Assistant: ", end="", flush=True)
        async for event in model.stream(messages, tools=[calculator]):
            if isinstance(event, TokenEvent):
                print(event.content, end="", flush=True)
            elif isinstance(event, CompleteEvent):
                response = event.result
        print()
        total = total.add(response.usage)

        messages.append(response.message)
        if not response.message.has_tool_calls:
            return total
        for tc in response.message.tool_calls:
            result = run_tool(tc.name, tc.arguments)
            print(f"  -> {tc.name}({tc.arguments}) = {result}")
            messages.append(ToolCallResultMessage.from_tool_call(tc, result))


async def main():
    parser = argparse.ArgumentParser(description="Calculator chat")
    parser.add_argument("--model", default="gpt-4o-mini")
    parser.add_argument("--url", default=None)
    parser.add_argument("--trace", action="store_true")
    args = parser.parse_args()

    if args.trace:
        setup_tracing("calculator-chat")

    config = ChatModelConfig(
        model_name=args.model,
        temperature=0.0,
        listeners=[TimingListener()],
    )
    provider = OpenAICompatibleProvider(args.url) if args.url else None
    model = StreamingChatModel(config, provider)

    messages = [SystemMessage(
        text="Use the calculator tool for any arithmetic."
    )]
    print("Calculator Chat\n")

    while True:
        try:
            user_input = input("You: ")
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break
        messages.append(UserMessage.from_text(user_input))
        usage = await answer(model, messages)
        print(f"[turn used {usage.total_token_count or 0} tokens]\n")


if __name__ == "__main__":
    asyncio.run(main())
