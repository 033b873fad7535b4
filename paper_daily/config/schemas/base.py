"""Shared enums for configuration schemas."""

from enum import Enum


class SortBy(str, Enum):
    """Primary feed sort order."""

    SUBMITTED_DATE = "submittedDate"
    LAST_UPDATED_DATE = "lastUpdatedDate"


class FetchMode(str, Enum):
    """Which fetched papers enter ranking.

    - ALL: every deduplicated paper is ranked
    - INTEREST_ONLY: only papers hitting at least one interest keyword
    """

    ALL = "all"
    INTEREST_ONLY = "interest_only"


class OutputLanguage(str, Enum):
    """Language requested from the LLM for generated prose."""

    ZH = "zh"
    EN = "en"

    @property
    def prompt_label(self) -> str:
        """Human-readable label substituted into prompts."""
        return "Chinese (中文)" if self is OutputLanguage.ZH else "English"


class LlmProviderKind(str, Enum):
    """Supported LLM wire protocols."""

    OPENAI_COMPATIBLE = "openai_compatible"
    ANTHROPIC = "anthropic"
