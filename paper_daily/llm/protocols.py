"""Protocol interface for LLM providers."""

from typing import Protocol, runtime_checkable

from paper_daily.llm.models import LlmRequest, LlmResponse


@runtime_checkable
class LlmProvider(Protocol):
    """Anything that turns a prompt into text.

    Implementations can be swapped freely: the pipeline only relies on
    ``generate`` and on failures being raised as :class:`LlmApiError`
    or :class:`LlmProcessingError`.
    """

    def generate(self, request: LlmRequest) -> LlmResponse:
        """Generate text for a request.

        Args:
            request: Prompt and sampling parameters.

        Returns:
            Generated text and, when reported, token usage.

        Raises:
            LlmApiError: If the API call fails.
            LlmProcessingError: If the response cannot be interpreted.
        """
        ...
