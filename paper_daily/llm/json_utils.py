"""JSON parsing helpers for LLM response handling.

Models wrap arrays in markdown fences, prepend chatter, append trailing
notes and emit invalid escapes. These helpers recover the first JSON
array from such output.
"""

from __future__ import annotations

import json
import re

from paper_daily.llm.models import ScoreEntry


def fix_escape_sequences(text: str) -> str:
    """Double lone backslashes that do not form a valid JSON escape.

    Args:
        text: Raw text potentially containing invalid escapes.

    Returns:
        Text with invalid escape sequences fixed.
    """
    return re.sub(r'(?<!\\)\\(?!["\\/bfnrtu])', r"\\\\", text)


def strip_markdown_fences(text: str) -> str:
    """Strip a surrounding markdown code fence, if present."""
    text = text.strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        if first_newline != -1:
            text = text[first_newline + 1 :]
        if text.endswith("```"):
            text = text[: -len("```")]
        text = text.strip()
    return text


def extract_first_json_array(text: str) -> str | None:
    """Extract the first balanced ``[...]`` block from text.

    Brackets inside JSON string literals are not counted.

    Args:
        text: Raw text potentially containing a JSON array.

    Returns:
        The array text, or None if no balanced block exists.
    """
    start = text.find("[")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        char = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def try_parse_json_array(text: str) -> list[object] | None:
    """Parse text as a JSON array, retrying once with fixed escapes."""
    for candidate in (text, fix_escape_sequences(text)):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, list):
            return parsed
    return None


def parse_json_array(text: str) -> list[object] | None:
    """Recover the first JSON array from free-form model output.

    Args:
        text: Raw model output.

    Returns:
        Parsed list, or None when no array can be recovered.
    """
    stripped = strip_markdown_fences(text)
    candidates = [stripped]
    extracted = extract_first_json_array(stripped)
    if extracted and extracted != stripped:
        candidates.append(extracted)
    for candidate in candidates:
        parsed = try_parse_json_array(candidate)
        if parsed is not None:
            return parsed
    return None


def _as_score(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def parse_score_entries(text: str) -> list[ScoreEntry] | None:
    """Parse a scoring response into structured entries.

    Elements without a string ``id`` or a numeric ``score`` are dropped.
    Scores are clamped into ``[1, 10]``.

    Args:
        text: Raw model output.

    Returns:
        Parsed entries, or None when the output holds no JSON array.
    """
    items = parse_json_array(text)
    if items is None:
        return None

    entries: list[ScoreEntry] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        paper_id = item.get("id")
        score = _as_score(item.get("score"))
        if not isinstance(paper_id, str) or not paper_id.strip() or score is None:
            continue
        reason = item.get("reason")
        summary = item.get("summary")
        entries.append(
            ScoreEntry(
                id=paper_id.strip(),
                score=min(max(score, 1.0), 10.0),
                reason=reason if isinstance(reason, str) else "",
                summary=summary if isinstance(summary, str) and summary else None,
            )
        )
    return entries
