"""Optional OpenTelemetry instrumentation for streamfold.

Call ``streamfold.instrument()`` once at startup to enable tracing.
Requires ``opentelemetry-api`` to be installed; the library
works identically without it.
"""

import importlib.util
import logging
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

_tracer = None


def instrument(*, tracer_name: str = "streamfold") -> None:
    """Enable OpenTelemetry tracing for every streaming session.

    Call once at startup, after configuring your TracerProvider.
    Requires ``opentelemetry-api``: ``pip install streamfold[otel]``

    Example::

        from opentelemetry import trace
        from opentelemetry.sdk.trace import TracerProvider

        trace.set_tracer_provider(TracerProvider())

        import streamfold
        streamfold.instrument()

    Args:
        tracer_name: Name passed to ``trace.get_tracer()``.

    Raises:
        ImportError: If ``opentelemetry-api`` is not installed.
    """
    global _tracer
    if importlib.util.find_spec("opentelemetry.trace") is None:
        raise ImportError(
            "opentelemetry-api is required for instrumentation. "
            "Install it with: pip install streamfold[otel]"
        )
    from opentelemetry import trace
    _tracer = trace.get_tracer(tracer_name)
    if isinstance(_tracer, trace.NoOpTracer):
        logger.info(
            "No TracerProvider configured; spans will be "
            "discarded. Set up a TracerProvider to export "
            "traces."
        )
    else:
        logger.info("streamfold instrumentation enabled")


def uninstrument() -> None:
    """Disable OpenTelemetry tracing.

    Subsequent sessions will not emit spans.
    """
    global _tracer
    _tracer = None


@asynccontextmanager
async def completion_span(system: str, model: str):
    """Wrap one streaming session in a ``chat`` span."""
    if _tracer is None:
        yield None
        return
    from opentelemetry.trace import SpanKind

    with _tracer.start_as_current_span(
        f"chat {model}",
        kind=SpanKind.CLIENT,
        attributes={
            "gen_ai.operation.name": "chat",
            "gen_ai.provider.name": system,
            "gen_ai.request.model": model,
        },
    ) as span:
        yield span


def record_response(span, response) -> None:
    """Set usage, response-model and finish-reason attributes."""
    if span is None or response is None:
        return
    usage = response.usage
    if usage is not None:
        span.set_attribute(
            "gen_ai.usage.input_tokens",
            usage.input_token_count,
        )
        span.set_attribute(
            "gen_ai.usage.output_tokens",
            usage.output_token_count,
        )
    if response.model:
        span.set_attribute(
            "gen_ai.response.model", response.model
        )
    if response.id:
        span.set_attribute("gen_ai.response.id", response.id)
    if response.finish_reason is not None:
        span.set_attribute(
            "gen_ai.response.finish_reasons",
            [response.finish_reason.value],
        )


def record_error(span, exception: BaseException) -> None:
    """Record an exception and set ERROR status on a span.

    Sets ``error.type`` per GenAI semantic conventions.
    No-ops when *span* is ``None`` (tracing disabled).
    """
    if span is None:
        return
    from opentelemetry.trace import StatusCode

    span.set_status(StatusCode.ERROR, str(exception))
    span.record_exception(exception)
    span.set_attribute(
        "error.type", type(exception).__qualname__
    )
