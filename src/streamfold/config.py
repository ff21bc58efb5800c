from pydantic import BaseModel, Field

from streamfold.listener import ChatModelListener
from streamfold.tokenizer import Tokenizer


class ChatModelConfig(BaseModel):
    """Options for a :class:`~streamfold.model.StreamingChatModel`.

    Sampling options left as ``None`` are not sent, so the service
    default applies.  ``api_key``, ``base_url`` and ``organization_id``
    fall back to ``OPENAI_API_KEY``, ``OPENAI_BASE_URL`` and
    ``OPENAI_ORGANIZATION_ID``.

    Args:
        model_name: Model identifier sent with every request.
        response_format: ``"text"``, ``"json_object"``, or a full
            ``response_format`` dict passed through unchanged.
        tokenizer: Used by ``estimate_token_count``; defaults to a
            :class:`~streamfold.tokenizer.TiktokenTokenizer` for
            ``model_name``.
        max_retries: Retry budget handed to the SDK client.  ``0``
            makes the first failure terminal.
        timeout: Per-request timeout in seconds, enforced by the SDK.
        listeners: Observers notified around each request.
        log_requests: Log each outgoing request at INFO.
        log_responses: Log each final response at INFO.
    """

    base_url: str | None = None
    api_key: str | None = None
    organization_id: str | None = None
    model_name: str = "gpt-4o-mini"
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    max_tokens: int | None = Field(default=None, gt=0)
    response_format: str | dict | None = None
    tokenizer: Tokenizer | None = None
    max_retries: int = Field(default=3, ge=0)
    timeout: float = Field(default=60.0, gt=0)
    listeners: list[ChatModelListener] = Field(default_factory=list)
    log_requests: bool = False
    log_responses: bool = False

    model_config = {
        "arbitrary_types_allowed": True,
        "protected_namespaces": (),
    }

    @property
    def request_model(self) -> str:
        """The model identifier placed in the request body."""
        return self.model_name


class AzureChatModelConfig(ChatModelConfig):
    """Azure OpenAI variant.

    ``endpoint`` and ``api_key`` fall back to ``AZURE_OPENAI_ENDPOINT``
    and ``AZURE_OPENAI_KEY``.  Requests name the deployment rather
    than the model.
    """

    endpoint: str | None = None
    api_version: str = "2024-10-21"
    deployment_name: str

    @property
    def request_model(self) -> str:
        return self.deployment_name
