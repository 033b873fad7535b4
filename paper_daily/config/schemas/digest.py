"""Root digest configuration schema."""

import re
from typing import Annotated, Any

from pydantic import Field, field_validator, model_validator

from paper_daily.config.schemas.base import FetchMode, OutputLanguage, SortBy
from paper_daily.config.schemas.interests import DirectionConfig, InterestKeyword
from paper_daily.config.schemas.llm import DeepReadConfig, LlmConfig, PromptTemplate
from paper_daily.config.schemas.sources import (
    CommunitySourceConfig,
    CustomSourceConfig,
    FullTextConfig,
    RssSourceConfig,
    TrendingConfig,
)
from paper_daily.data_model import StrictBaseModel


_DAILY_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class OutputConfig(StrictBaseModel):
    """Where and how digests are written.

    Attributes:
        root_folder: Folder (relative to the store root) holding every artifact.
        language: Language requested for LLM prose.
        include_abstract: Add an abstracts section to the digest.
        include_pdf_link: Add PDF links to the papers table.
        digest_top_n: Papers passed to the digest prompt.
    """

    root_folder: Annotated[str, Field(min_length=1)] = "PaperDaily"
    language: OutputLanguage = OutputLanguage.ZH
    include_abstract: bool = True
    include_pdf_link: bool = True
    digest_top_n: Annotated[int, Field(ge=1, le=200)] = 20


class ScheduleConfig(StrictBaseModel):
    """Daily trigger time (local wall clock, ``HH:MM``)."""

    daily_time: str = "08:30"

    @field_validator("daily_time")
    @classmethod
    def _check_daily_time(cls, value: str) -> str:
        if not _DAILY_TIME_PATTERN.match(value):
            msg = f"daily_time must be HH:MM, got {value!r}"
            raise ValueError(msg)
        return value


class DigestConfig(StrictBaseModel):
    """Complete configuration for one digest run.

    Loaded once per run and never mutated; overrides produce copies.
    """

    categories: list[str] = Field(default_factory=lambda: ["cs.AI", "cs.LG", "cs.CL"])
    keywords: list[str] = Field(default_factory=list)
    interest_keywords: list[InterestKeyword] = Field(default_factory=list)
    fetch_mode: FetchMode = FetchMode.ALL
    max_results_per_day: Annotated[int, Field(ge=1, le=2000)] = 20
    sort_by: SortBy = SortBy.SUBMITTED_DATE
    time_window_hours: Annotated[int, Field(ge=1, le=24 * 31)] = 72

    directions: list[DirectionConfig] = Field(default_factory=list)
    direction_top_k: Annotated[int, Field(ge=0, le=50)] = 5

    dedup: bool = True
    backfill_max_days: Annotated[int, Field(ge=1, le=366)] = 30

    llm: LlmConfig = Field(default_factory=LlmConfig)
    prompt_library: list[PromptTemplate] = Field(default_factory=list)
    active_prompt_id: str | None = None
    active_scoring_prompt_id: str | None = None
    active_deep_read_prompt_id: str | None = None

    community: CommunitySourceConfig = Field(default_factory=CommunitySourceConfig)
    rss: RssSourceConfig = Field(default_factory=RssSourceConfig)
    custom: CustomSourceConfig = Field(default_factory=CustomSourceConfig)
    full_text: FullTextConfig = Field(default_factory=FullTextConfig)
    deep_read: DeepReadConfig = Field(default_factory=DeepReadConfig)
    trending: TrendingConfig = Field(default_factory=TrendingConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)

    @field_validator("interest_keywords", mode="before")
    @classmethod
    def _accept_legacy_keywords(cls, value: Any) -> Any:
        """Accept the legacy form: a plain list of strings, weight 1."""
        if not isinstance(value, list):
            return value
        return [
            {"keyword": item, "weight": 1} if isinstance(item, str) else item
            for item in value
        ]

    @model_validator(mode="after")
    def _check_unique_names(self) -> "DigestConfig":
        direction_names = [d.name for d in self.directions]
        if len(direction_names) != len(set(direction_names)):
            msg = "direction names must be unique"
            raise ValueError(msg)
        prompt_ids = [p.id for p in self.prompt_library]
        if len(prompt_ids) != len(set(prompt_ids)):
            msg = "prompt library ids must be unique"
            raise ValueError(msg)
        return self

    @property
    def directions_enabled(self) -> bool:
        """Whether direction scoring contributes to ranking."""
        return bool(self.directions)

    def with_api_key(self, api_key: str | None) -> "DigestConfig":
        """Return a copy whose LLM credential is replaced when one is given."""
        if not api_key:
            return self
        return self.model_copy(
            update={"llm": self.llm.model_copy(update={"api_key": api_key})}
        )
