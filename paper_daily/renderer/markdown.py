"""Markdown renderer using Jinja2 templates."""

import re

import structlog
import yaml
from jinja2 import Environment, PackageLoader, select_autoescape

from paper_daily.llm import fill_template
from paper_daily.papers import ARXIV_ABS_URL, Paper
from paper_daily.renderer.models import (
    DailyRenderContext,
    DeepReadRenderContext,
    RollupRenderContext,
)


logger = structlog.get_logger()

TITLE_CELL_CHARS = 45
TABLE_HITS_LIMIT = 3
FILE_TITLE_CHARS = 60
FILE_MODEL_CHARS = 40
DEEP_READ_AUTHORS = 5

_UNSAFE_FILE_CHARS = re.compile(r"[/\\:*?\"<>|]")
_WHITESPACE = re.compile(r"\s+")
_DASH_RUN = re.compile(r"-+")


def escape_cell(value: object) -> str:
    """Make a value safe inside a Markdown table cell."""
    text = "" if value is None else str(value)
    return text.replace("\r", "").replace("\n", " ").replace("|", "\\|")


def shorten(text: str, limit: int = TITLE_CELL_CHARS) -> str:
    """Cut ``text`` to ``limit`` characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit] + "…"


def blockquote(text: str) -> str:
    """Prefix every line with ``> ``."""
    return "\n".join(f"> {line}" if line else ">" for line in text.split("\n"))


def score_label(paper: Paper) -> str:
    """``N/10`` for LLM-scored papers, ``-`` otherwise."""
    if paper.llm_score is None:
        return "-"
    return f"{paper.llm_score:g}/10"


def _collapse_dashes(text: str) -> str:
    return _DASH_RUN.sub("-", _UNSAFE_FILE_CHARS.sub("-", text)).strip("-")


def _file_segment(text: str, limit: int) -> str:
    return _collapse_dashes(_WHITESPACE.sub("-", text))[:limit]


def deep_read_file_name(template: str, paper: Paper, date: str, model: str) -> str:
    """Note name (no extension) for a paper's deep read.

    Args:
        template: Name template, e.g. ``{{title}}-deep-read-{{model}}``.
        paper: Analysed paper.
        date: Digest date (``YYYY-MM-DD``).
        model: LLM model id; only its last ``/`` segment is used.

    Returns:
        A name safe for any filesystem, or the paper's base id when the
        template renders to nothing.
    """
    year, month, day = date.split("-")
    name = fill_template(
        template,
        {
            "title": _file_segment(paper.title, FILE_TITLE_CHARS),
            "arxivId": paper.base_id,
            "date": date,
            "model": _file_segment(model.rsplit("/", 1)[-1], FILE_MODEL_CHARS),
            "year": year,
            "month": month,
            "day": day,
        },
    )
    return _collapse_dashes(name) or paper.base_id


def _front_matter(data: dict[str, object]) -> str:
    body = yaml.safe_dump(
        data, sort_keys=False, allow_unicode=True, default_flow_style=None
    )
    return f"---\n{body}---"


class MarkdownRenderer:
    """Renders digest documents to Markdown strings.

    Rendering is pure: nothing is written here and optional fields that
    are missing simply drop out of the output.
    """

    def __init__(self, run_id: str = "") -> None:
        self._log = logger.bind(component="renderer", run_id=run_id)
        self._env = Environment(
            loader=PackageLoader("paper_daily.renderer", "templates"),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self._env.filters["escape_cell"] = escape_cell
        self._env.filters["shorten"] = shorten
        self._env.filters["blockquote"] = blockquote
        self._env.filters["score_label"] = score_label

    def render_daily(self, context: DailyRenderContext) -> str:
        """Render the daily digest."""
        front_matter = _front_matter(
            {
                "type": "paper-daily",
                "date": context.date,
                "sources": context.sources,
                "categories": context.categories,
                "interestKeywords": context.interest_keywords,
            }
        )
        content = self._env.get_template("daily.md.j2").render(
            ctx=context,
            front_matter=front_matter,
            hits_limit=TABLE_HITS_LIMIT,
        )
        self._log.debug(
            "template_rendered",
            template="daily.md.j2",
            date=context.date,
            paper_count=len(context.papers),
        )
        return content

    def render_deep_read(self, context: DeepReadRenderContext) -> str:
        """Render a standalone deep-read note."""
        paper = context.paper
        data: dict[str, object] = {
            "type": "deep-read",
            "title": paper.title,
            "date": context.date,
            "arxivId": paper.base_id,
            "arxivUrl": f"{ARXIV_ABS_URL}/{paper.base_id}",
            "authors": paper.authors[:DEEP_READ_AUTHORS],
            "published": paper.published[:10] or context.date,
            "tags": [
                *context.tags,
                *(_WHITESPACE.sub("-", hit) for hit in paper.interest_hits),
            ],
        }
        if paper.llm_score is not None:
            data["llmScore"] = paper.llm_score
        content = self._env.get_template("deep_read.md.j2").render(
            ctx=context,
            front_matter=_front_matter(data),
        )
        self._log.debug(
            "template_rendered", template="deep_read.md.j2", paper_id=paper.id
        )
        return content

    def render_rollup(self, context: RollupRenderContext) -> str:
        """Render a weekly or monthly rollup."""
        front_matter = _front_matter(
            {
                "type": f"paper-{context.kind}",
                "period": context.label,
                "start": context.start,
                "end": context.end,
                "papers": context.paper_count,
            }
        )
        content = self._env.get_template("rollup.md.j2").render(
            ctx=context,
            front_matter=front_matter,
        )
        self._log.debug(
            "template_rendered", template="rollup.md.j2", period=context.label
        )
        return content
