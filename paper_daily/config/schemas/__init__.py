"""Configuration schemas."""

from paper_daily.config.schemas.base import (
    FetchMode,
    LlmProviderKind,
    OutputLanguage,
    SortBy,
)
from paper_daily.config.schemas.digest import (
    DigestConfig,
    OutputConfig,
    ScheduleConfig,
)
from paper_daily.config.schemas.interests import (
    DirectionConfig,
    DirectionMatch,
    InterestKeyword,
)
from paper_daily.config.schemas.llm import DeepReadConfig, LlmConfig, PromptTemplate
from paper_daily.config.schemas.sources import (
    CommunitySourceConfig,
    CustomSourceConfig,
    FullTextConfig,
    RssSourceConfig,
    TrendingConfig,
)


__all__ = [
    "CommunitySourceConfig",
    "CustomSourceConfig",
    "DeepReadConfig",
    "DigestConfig",
    "DirectionConfig",
    "DirectionMatch",
    "FetchMode",
    "FullTextConfig",
    "InterestKeyword",
    "LlmConfig",
    "LlmProviderKind",
    "OutputConfig",
    "OutputLanguage",
    "PromptTemplate",
    "RssSourceConfig",
    "ScheduleConfig",
    "SortBy",
    "TrendingConfig",
]
