"""Markdown rendering of daily digests and rollups."""

from paper_daily.renderer.markdown import (
    MarkdownRenderer,
    deep_read_file_name,
    escape_cell,
    shorten,
)
from paper_daily.renderer.models import (
    DailyRenderContext,
    DeepReadRenderContext,
    RollupRenderContext,
    StageFailure,
)


__all__ = [
    "DailyRenderContext",
    "DeepReadRenderContext",
    "MarkdownRenderer",
    "RollupRenderContext",
    "StageFailure",
    "deep_read_file_name",
    "escape_cell",
    "shorten",
]
