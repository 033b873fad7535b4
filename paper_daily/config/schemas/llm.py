"""LLM provider and prompt library schemas."""

from typing import Annotated

from pydantic import Field

from paper_daily.config.schemas.base import LlmProviderKind
from paper_daily.data_model import StrictBaseModel


class PromptTemplate(StrictBaseModel):
    """A named prompt in the prompt library.

    Attributes:
        id: Identifier referenced by ``active_*_prompt_id`` settings.
        name: Display name.
        prompt: Template text with ``{{var}}`` placeholders.
    """

    id: Annotated[str, Field(min_length=1)]
    name: str = ""
    prompt: Annotated[str, Field(min_length=1)]


class LlmConfig(StrictBaseModel):
    """LLM provider configuration.

    The API key is normally supplied through the environment (see
    ``AppSettings``); an empty key disables every LLM stage.

    Attributes:
        provider: Wire protocol to speak.
        base_url: Endpoint base URL for OpenAI-compatible providers.
        api_key: Credential; empty means LLM stages are skipped.
        model: Model identifier.
        temperature: Sampling temperature for digest generation.
        max_tokens: Output budget for digest generation.
        timeout_seconds: HTTP timeout per request.
        daily_prompt: Override for the daily digest prompt.
        scoring_prompt: Override for the batch scoring prompt.
        weekly_prompt: Override for the weekly rollup prompt.
        monthly_prompt: Override for the monthly rollup prompt.
    """

    provider: LlmProviderKind = LlmProviderKind.OPENAI_COMPATIBLE
    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    temperature: Annotated[float, Field(ge=0.0, le=2.0)] = 0.3
    max_tokens: Annotated[int, Field(ge=1, le=200_000)] = 4096
    timeout_seconds: Annotated[float, Field(gt=0.0, le=600.0)] = 120.0
    daily_prompt: str | None = None
    scoring_prompt: str | None = None
    weekly_prompt: str | None = None
    monthly_prompt: str | None = None

    @property
    def enabled(self) -> bool:
        """Whether a credential is configured."""
        return bool(self.api_key.strip())


class DeepReadConfig(StrictBaseModel):
    """Per-paper LLM analysis of the top-ranked papers.

    Each analysed paper gets its own note and a link from the digest.

    Attributes:
        enabled: Whether deep reads run (needs an LLM credential).
        top_n: Papers analysed, from the top of the ranking.
        max_tokens: Output budget per paper.
        prompt: Override for the deep-read prompt.
        folder: Folder under the output root holding the notes.
        file_name_template: Note name with ``{{title}}``, ``{{arxivId}}``,
            ``{{date}}``, ``{{model}}``, ``{{year}}``, ``{{month}}`` and
            ``{{day}}`` placeholders.
        tags: Front-matter tags on every note.
    """

    enabled: bool = False
    top_n: Annotated[int, Field(ge=1, le=50)] = 5
    max_tokens: Annotated[int, Field(ge=64, le=32_000)] = 1024
    prompt: str | None = None
    folder: Annotated[str, Field(min_length=1)] = "deep-read"
    file_name_template: Annotated[str, Field(min_length=1)] = "{{title}}-deep-read-{{model}}"
    tags: list[str] = Field(default_factory=lambda: ["paper", "deep-read"])
