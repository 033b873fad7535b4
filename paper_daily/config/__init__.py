"""Configuration loading and validation."""

from paper_daily.config.loader import (
    ConfigLoader,
    ConfigState,
    ConfigStateError,
    ConfigValidationError,
)
from paper_daily.config.schemas import DigestConfig


__all__ = [
    "ConfigLoader",
    "ConfigState",
    "ConfigStateError",
    "ConfigValidationError",
    "DigestConfig",
]
