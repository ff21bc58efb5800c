class StreamfoldError(Exception):
    """Base class for errors raised by streamfold itself.

    Errors from the OpenAI SDK (authentication, connection, rate
    limits) are never wrapped; handlers receive the original instance.
    """


class StreamingError(StreamfoldError):
    """The stream reported an error that was not an exception object."""


class IncompleteStreamError(StreamfoldError):
    """The fragment source ended without a finish or error fragment."""
