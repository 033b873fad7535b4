"""Shared data-model primitives."""

from paper_daily.data_model.base import CamelModel, StrictBaseModel


__all__ = ["CamelModel", "StrictBaseModel"]
