"""Interest keyword and research-direction schemas."""

from typing import Annotated

from pydantic import Field, field_validator

from paper_daily.data_model import StrictBaseModel


class InterestKeyword(StrictBaseModel):
    """A weighted interest keyword.

    Attributes:
        keyword: Phrase matched by case-insensitive substring containment.
        weight: Importance from 1 (default) to 5.
    """

    keyword: Annotated[str, Field(min_length=1)]
    weight: Annotated[int, Field(ge=1, le=5)] = 1

    @field_validator("keyword")
    @classmethod
    def _strip_keyword(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            msg = "keyword must not be blank"
            raise ValueError(msg)
        return stripped


class DirectionMatch(StrictBaseModel):
    """Matching rules for a research direction.

    Attributes:
        keywords: Phrases counted once each when found in title or abstract.
        categories: Optional primary-feed categories giving a +0.5 bonus.
    """

    keywords: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)


class DirectionConfig(StrictBaseModel):
    """A weighted research direction.

    Attributes:
        name: Unique direction name; declaration order breaks score ties.
        weight: Multiplier applied to the raw match score.
        match: Keyword and category matching rules.
        query_keywords: Optional keywords OR-ed into the primary-feed query.
    """

    name: Annotated[str, Field(min_length=1)]
    weight: Annotated[float, Field(ge=0.0, le=100.0)] = 1.0
    match: DirectionMatch = Field(default_factory=DirectionMatch)
    query_keywords: list[str] = Field(default_factory=list)
