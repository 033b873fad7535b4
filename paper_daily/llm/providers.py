"""HTTP-backed LLM providers."""

from http import HTTPStatus
from typing import Any

import httpx
import structlog

from paper_daily.llm.errors import LlmApiError, LlmProcessingError
from paper_daily.llm.models import LlmRequest, LlmResponse, LlmUsage


logger = structlog.get_logger()

ANTHROPIC_API_URL = "https://api.anthropic.com/v1"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_MAX_TOKENS = 4096


def _post_json(
    client: httpx.Client,
    url: str,
    headers: dict[str, str],
    body: dict[str, Any],
    provider: str,
) -> dict[str, Any]:
    """POST a JSON body and return the decoded object.

    Raises:
        LlmApiError: On network errors or non-2xx status.
        LlmProcessingError: If the body is not a JSON object.
    """
    try:
        response = client.post(url, headers=headers, json=body)
    except httpx.HTTPError as exc:
        msg = f"{provider} request failed: {exc}"
        raise LlmApiError(msg) from exc

    if response.status_code != HTTPStatus.OK:
        detail = response.text[:300]
        msg = f"{provider} returned HTTP {response.status_code}: {detail}"
        raise LlmApiError(msg, status_code=response.status_code)

    try:
        data = response.json()
    except ValueError as exc:
        msg = f"{provider} returned a non-JSON body"
        raise LlmProcessingError(msg) from exc
    if not isinstance(data, dict):
        msg = f"{provider} returned an unexpected payload"
        raise LlmProcessingError(msg)
    return data


def _int_field(data: Any, key: str) -> int:
    if not isinstance(data, dict):
        return 0
    value = data.get(key)
    return value if isinstance(value, int) else 0


class OpenAICompatibleProvider:
    """Chat-completions provider for OpenAI and compatible gateways.

    Attributes:
        model: Model identifier sent with each request.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.openai.com/v1",
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._api_key = api_key
        self.model = model
        self._url = base_url.rstrip("/") + "/chat/completions"
        self._client = client or httpx.Client(timeout=timeout)
        self._log = logger.bind(component="llm", subcomponent="openai_compatible")

    def generate(self, request: LlmRequest) -> LlmResponse:
        """Send one chat-completions request.

        Raises:
            LlmApiError: If the API call fails.
            LlmProcessingError: If the response has no message content.
        """
        messages: list[dict[str, str]] = []
        if request.system:
            messages.append({"role": "system", "content": request.system})
        messages.append({"role": "user", "content": request.prompt})
        body: dict[str, Any] = {"model": self.model, "messages": messages}
        if request.temperature is not None:
            body["temperature"] = request.temperature
        if request.max_tokens is not None:
            body["max_tokens"] = request.max_tokens

        data = _post_json(
            self._client,
            self._url,
            {
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            body,
            "OpenAI-compatible API",
        )

        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            msg = "No message content in chat-completions response"
            raise LlmProcessingError(msg) from exc
        if not isinstance(text, str):
            msg = "Message content is not text"
            raise LlmProcessingError(msg)

        usage_data = data.get("usage")
        usage = None
        if isinstance(usage_data, dict):
            usage = LlmUsage(
                input_tokens=_int_field(usage_data, "prompt_tokens"),
                output_tokens=_int_field(usage_data, "completion_tokens"),
            )
        self._log.debug("llm_generate_complete", model=self.model, chars=len(text))
        return LlmResponse(text=text, usage=usage)


class AnthropicProvider:
    """Messages-API provider for Anthropic models.

    Attributes:
        model: Model identifier sent with each request.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = ANTHROPIC_API_URL,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._api_key = api_key
        self.model = model
        self._url = base_url.rstrip("/") + "/messages"
        self._client = client or httpx.Client(timeout=timeout)
        self._log = logger.bind(component="llm", subcomponent="anthropic")

    def generate(self, request: LlmRequest) -> LlmResponse:
        """Send one messages request.

        ``max_tokens`` is mandatory for this API, so a default applies.

        Raises:
            LlmApiError: If the API call fails.
            LlmProcessingError: If the response holds no text block.
        """
        body: dict[str, Any] = {
            "model": self.model,
            "max_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
            "messages": [{"role": "user", "content": request.prompt}],
        }
        if request.temperature is not None:
            body["temperature"] = request.temperature
        if request.system:
            body["system"] = request.system

        data = _post_json(
            self._client,
            self._url,
            {
                "x-api-key": self._api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "Content-Type": "application/json",
            },
            body,
            "Anthropic API",
        )

        blocks = data.get("content")
        text = None
        if isinstance(blocks, list):
            for block in blocks:
                if isinstance(block, dict) and block.get("type") == "text":
                    text = block.get("text")
                    break
        if not isinstance(text, str):
            msg = "No text block in messages response"
            raise LlmProcessingError(msg)

        usage_data = data.get("usage")
        usage = None
        if isinstance(usage_data, dict):
            usage = LlmUsage(
                input_tokens=_int_field(usage_data, "input_tokens"),
                output_tokens=_int_field(usage_data, "output_tokens"),
            )
        self._log.debug("llm_generate_complete", model=self.model, chars=len(text))
        return LlmResponse(text=text, usage=usage)
