"""Shared Pydantic base models."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class StrictBaseModel(BaseModel):
    """Base model with strict, immutable defaults."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class CamelModel(BaseModel):
    """Mutable model persisted with camelCase keys.

    Fields are declared in snake_case; ``model_dump(by_alias=True)``
    produces the camelCase form used by the on-disk JSON artifacts, and
    validation accepts either spelling.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )
