"""Prompt templates and ``{{var}}`` substitution."""

import re
from collections.abc import Mapping, Sequence

from paper_daily.config.schemas import InterestKeyword, PromptTemplate


SCORING_SYSTEM_INSTRUCTION = (
    "You are a research assistant that rates papers for one reader. "
    "Respond ONLY with a JSON array, no markdown fences or extra text."
)

DIGEST_SYSTEM_INSTRUCTION = (
    "You are a research analyst who writes concise, accurate daily briefings "
    "about new machine-learning papers. Never invent results that the "
    "abstracts do not state."
)

DEFAULT_SCORING_PROMPT = """Rate how relevant each paper is for a reader with these interests.

## Interests (keyword(weight:N), higher weight matters more)
{{interest_keywords}}

## Papers
{{papers_json}}

## Output
Return a JSON array with one object per paper, in any order:
[{"id": "<paper id exactly as given>", "score": <1-10>, "reason": "<one sentence>", "summary": "<one-sentence summary>"}]

Scoring guide: 9-10 directly on a high-weight interest with a novel method;
6-8 clearly related; 3-5 tangential; 1-2 unrelated. Use the full range.
"""

DEFAULT_DAILY_PROMPT = """Write today's research briefing for {{date}}.
Respond in {{language}}, using Markdown.

## Reader interests
{{interest_keywords}}

## Leading research directions today
{{topDirections}}

## Top papers (JSON)
{{papers_json}}

## Community favourites (JSON)
{{community_json}}

{{fulltext_section}}

{{deep_read_section}}

Structure the briefing with these sections (translate headings into the
response language):
1. Key takeaways: three to five bullets on what matters today.
2. Direction highlights: one short paragraph per leading direction.
3. Must-read papers: up to five papers, each with why it is worth reading.
"""

DEFAULT_DEEP_READ_PROMPT = """Read this paper in full and write a structured analysis.
Respond in {{language}}, using Markdown.

Title: {{title}}
Authors: {{authors}}
Published: {{published}}
Abstract page: {{arxiv_url}}
Matched interests: {{interest_hits}}

## Abstract
{{abstract}}

## Full text
{{fulltext}}

Sections (translate headings into the response language):
1. Problem: what gap the paper addresses.
2. Method: the core idea, with enough detail to reimplement it.
3. Results: the main numbers and what they are compared against.
4. Limitations: what the paper does not show.
5. Relevance: how it bears on the matched interests.
"""

DEFAULT_WEEKLY_PROMPT = """Write the weekly research review for {{week}}.
Respond in {{language}}, using Markdown.

## Direction totals for the week
{{directionTrends}}

## Top papers of the week (JSON)
{{papers_json}}

Sections (translate headings into the response language):
1. Direction trends: which directions grew or faded and why.
2. Recurring keywords: interests that kept showing up.
3. Recommended deep dives: three papers worth a full read.
4. Summary: one paragraph.
"""

DEFAULT_MONTHLY_PROMPT = """Write the monthly research review for {{month}}.
Respond in {{language}}, using Markdown.

## Direction totals for the month
{{directionTrends}}

## Top papers of the month (JSON)
{{papers_json}}

Sections (translate headings into the response language):
1. Direction evolution: how the leading directions shifted over the month.
2. Keyword heatmap: the interests that dominated, most frequent first.
3. Highlights: the five most significant papers.
4. Trend insights: what the month suggests for the coming weeks.
5. Summary: one paragraph.
"""

_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def fill_template(template: str, variables: Mapping[str, str]) -> str:
    """Substitute ``{{name}}`` placeholders.

    Unknown placeholders are left untouched so a custom prompt with a typo
    still reaches the model verbatim.

    Args:
        template: Template text.
        variables: Values by placeholder name.

    Returns:
        Filled prompt.
    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        return variables[name] if name in variables else match.group(0)

    return _PLACEHOLDER.sub(_replace, template)


def resolve_prompt(
    library: Sequence[PromptTemplate],
    active_id: str | None,
    configured: str | None,
    default: str,
) -> str:
    """Pick the prompt template to use.

    Order: the library entry with ``active_id``, then the configured
    override, then the built-in default.
    """
    if active_id:
        for template in library:
            if template.id == active_id:
                return template.prompt
    if configured and configured.strip():
        return configured
    return default


def format_interest_keywords(keywords: Sequence[InterestKeyword]) -> str:
    """Render interests as ``keyword(weight:N)`` joined by commas."""
    if not keywords:
        return "(none configured)"
    return ", ".join(f"{kw.keyword}(weight:{kw.weight})" for kw in keywords)


def format_direction_lines(totals: Mapping[str, float], top_k: int) -> str:
    """Render the strongest directions as ``- name: score`` lines.

    Args:
        totals: Aggregated direction scores, in declaration order.
        top_k: Maximum number of lines.

    Returns:
        Bullet lines, or ``No data`` when nothing scored.
    """
    ranked = sorted(totals.items(), key=lambda item: -item[1])[:top_k]
    if not ranked:
        return "No data"
    return "\n".join(f"- {name}: {score:.1f}" for name, score in ranked)
