"""LLM provider abstraction, scoring and digest generation."""

from paper_daily.llm.digest import (
    DigestWriter,
    format_deep_read_section,
    format_fulltext_section,
)
from paper_daily.llm.errors import LlmApiError, LlmAuthError, LlmProcessingError
from paper_daily.llm.factory import build_llm_provider
from paper_daily.llm.json_utils import parse_json_array, parse_score_entries
from paper_daily.llm.models import (
    LlmRequest,
    LlmResponse,
    LlmUsage,
    ScoreEntry,
    TokenLedger,
)
from paper_daily.llm.prompts import (
    DEFAULT_DAILY_PROMPT,
    DEFAULT_DEEP_READ_PROMPT,
    DEFAULT_MONTHLY_PROMPT,
    DEFAULT_SCORING_PROMPT,
    DEFAULT_WEEKLY_PROMPT,
    fill_template,
    format_direction_lines,
    format_interest_keywords,
    resolve_prompt,
)
from paper_daily.llm.protocols import LlmProvider
from paper_daily.llm.providers import AnthropicProvider, OpenAICompatibleProvider
from paper_daily.llm.scorer import LlmBatchScorer, ScoringOutcome, sort_by_llm_score


__all__ = [
    "DEFAULT_DAILY_PROMPT",
    "DEFAULT_DEEP_READ_PROMPT",
    "DEFAULT_MONTHLY_PROMPT",
    "DEFAULT_SCORING_PROMPT",
    "DEFAULT_WEEKLY_PROMPT",
    "AnthropicProvider",
    "DigestWriter",
    "LlmApiError",
    "LlmAuthError",
    "LlmBatchScorer",
    "LlmProcessingError",
    "LlmProvider",
    "LlmRequest",
    "LlmResponse",
    "LlmUsage",
    "OpenAICompatibleProvider",
    "ScoreEntry",
    "ScoringOutcome",
    "TokenLedger",
    "build_llm_provider",
    "fill_template",
    "format_deep_read_section",
    "format_direction_lines",
    "format_fulltext_section",
    "format_interest_keywords",
    "parse_json_array",
    "parse_score_entries",
    "resolve_prompt",
    "sort_by_llm_score",
]
