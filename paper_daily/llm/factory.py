"""Factory for LLM providers."""

import httpx
import structlog

from paper_daily.config.schemas import LlmConfig, LlmProviderKind
from paper_daily.llm.errors import LlmAuthError
from paper_daily.llm.protocols import LlmProvider
from paper_daily.llm.providers import AnthropicProvider, OpenAICompatibleProvider


logger = structlog.get_logger()


def build_llm_provider(
    config: LlmConfig,
    client: httpx.Client | None = None,
) -> LlmProvider:
    """Create the provider selected by configuration.

    Args:
        config: LLM configuration (with the API key already merged in).
        client: Optional HTTP client, mainly for tests.

    Returns:
        A provider ready for use.

    Raises:
        LlmAuthError: If no API key is configured.
    """
    log = logger.bind(component="llm", subcomponent="factory")

    if not config.enabled:
        msg = "No LLM API key configured (set PAPER_DAILY_LLM_API_KEY)"
        raise LlmAuthError(msg)

    if config.provider == LlmProviderKind.ANTHROPIC:
        log.info("llm_provider_created", provider="anthropic", model=config.model)
        return AnthropicProvider(
            api_key=config.api_key,
            model=config.model,
            client=client,
            timeout=config.timeout_seconds,
        )

    log.info(
        "llm_provider_created", provider="openai_compatible", model=config.model
    )
    return OpenAICompatibleProvider(
        api_key=config.api_key,
        model=config.model,
        base_url=config.base_url,
        client=client,
        timeout=config.timeout_seconds,
    )
