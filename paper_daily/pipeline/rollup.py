"""Weekly and monthly rollups built from daily snapshots."""

import calendar
import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta

import structlog

from paper_daily.config.schemas import DigestConfig
from paper_daily.llm import (
    DEFAULT_MONTHLY_PROMPT,
    DEFAULT_WEEKLY_PROMPT,
    DigestWriter,
    LlmProvider,
    TokenLedger,
    fill_template,
    format_direction_lines,
)
from paper_daily.papers import Paper
from paper_daily.renderer import MarkdownRenderer, RollupRenderContext
from paper_daily.scoring import aggregate_directions
from paper_daily.store import ArtifactPaths, DocumentStore, SnapshotStore


logger = structlog.get_logger()

WEEKLY_PROMPT_PAPERS = 20
MONTHLY_PROMPT_PAPERS = 30
FALLBACK_TOP_PAPERS = 10


@dataclass(frozen=True)
class RollupPeriod:
    """A calendar period covered by a rollup."""

    kind: str
    label: str
    start: date
    end: date


def iso_week_period(day: date) -> RollupPeriod:
    """Monday-to-Sunday ISO week containing ``day``."""
    iso = day.isocalendar()
    monday = day - timedelta(days=iso.weekday - 1)
    return RollupPeriod(
        kind="weekly",
        label=f"{iso.year}-W{iso.week:02d}",
        start=monday,
        end=monday + timedelta(days=6),
    )


def month_period(day: date) -> RollupPeriod:
    """Calendar month containing ``day``."""
    last_day = calendar.monthrange(day.year, day.month)[1]
    return RollupPeriod(
        kind="monthly",
        label=f"{day.year}-{day.month:02d}",
        start=day.replace(day=1),
        end=day.replace(day=last_day),
    )


@dataclass
class RollupResult:
    """Outcome of a rollup run.

    Attributes:
        period: Period covered.
        path: Store path of the written document.
        paper_count: Distinct papers in the period.
        day_count: Days with a snapshot.
        llm_error: LLM failure, if the narrative fell back.
    """

    period: RollupPeriod
    path: str
    paper_count: int
    day_count: int
    llm_error: str | None = None


def _prompt_payload(paper: Paper, day: str) -> dict[str, object]:
    return {
        "title": paper.title,
        "categories": paper.categories,
        "directions": paper.top_directions,
        "interestHits": paper.interest_hits,
        "date": day,
    }


class RollupPipeline:
    """Summarizes the snapshots of a week or a month into one document."""

    def __init__(
        self,
        config: DigestConfig,
        store: DocumentStore,
        llm: LlmProvider | None = None,
        clock: Callable[[], datetime] | None = None,
        run_id: str = "",
    ) -> None:
        self._config = config
        self._store = store
        self._llm = llm
        self._clock = clock or (lambda: datetime.now(UTC))
        self._paths = ArtifactPaths(config.output.root_folder)
        self._snapshots = SnapshotStore(store, self._paths, self._clock)
        self._renderer = MarkdownRenderer(run_id)
        self._run_id = run_id
        self._log = logger.bind(component="pipeline", subcomponent="rollup", run_id=run_id)

    def run_weekly(self, reference: date | None = None) -> RollupResult:
        """Write the rollup for the ISO week containing ``reference`` (default today)."""
        period = iso_week_period(reference or self._clock().date())
        return self._run(
            period,
            template=self._config.llm.weekly_prompt or DEFAULT_WEEKLY_PROMPT,
            period_var="week",
            prompt_papers=WEEKLY_PROMPT_PAPERS,
            path=self._paths.weekly(period.label),
        )

    def run_monthly(self, reference: date | None = None) -> RollupResult:
        """Write the rollup for the month containing ``reference`` (default today)."""
        period = month_period(reference or self._clock().date())
        return self._run(
            period,
            template=self._config.llm.monthly_prompt or DEFAULT_MONTHLY_PROMPT,
            period_var="month",
            prompt_papers=MONTHLY_PROMPT_PAPERS,
            path=self._paths.monthly(period.label),
        )

    def _collect(self, period: RollupPeriod) -> tuple[list[tuple[Paper, str]], int]:
        snapshots = self._snapshots.read_snapshots_for_range(
            period.start.isoformat(), period.end.isoformat()
        )
        seen: set[str] = set()
        papers: list[tuple[Paper, str]] = []
        for snapshot in snapshots:
            for paper in snapshot.papers:
                if paper.base_id in seen:
                    continue
                seen.add(paper.base_id)
                papers.append((paper, snapshot.date))
        papers.sort(
            key=lambda item: -(item[0].llm_score if item[0].llm_score is not None else -1.0)
        )
        return papers, len(snapshots)

    def _run(
        self,
        period: RollupPeriod,
        template: str,
        period_var: str,
        prompt_papers: int,
        path: str,
    ) -> RollupResult:
        self._log.info("rollup_started", kind=period.kind, period=period.label)
        dated_papers, day_count = self._collect(period)
        papers = [paper for paper, _ in dated_papers]
        totals = aggregate_directions(papers, self._config.directions)
        direction_lines = format_direction_lines(totals, self._config.direction_top_k)

        narrative: str | None = None
        llm_error: str | None = None
        if papers and self._llm is not None:
            prompt = fill_template(
                template,
                {
                    period_var: period.label,
                    "directionTrends": direction_lines,
                    "papers_json": json.dumps(
                        [
                            _prompt_payload(paper, day)
                            for paper, day in dated_papers[:prompt_papers]
                        ],
                        ensure_ascii=False,
                        indent=2,
                    ),
                    "language": self._config.output.language.prompt_label,
                },
            )
            writer = DigestWriter(
                self._llm,
                TokenLedger(),
                temperature=self._config.llm.temperature,
                max_tokens=self._config.llm.max_tokens,
                run_id=self._run_id,
            )
            try:
                narrative = writer.generate(prompt, label=f"{period.kind} rollup")
            except Exception as e:  # noqa: BLE001
                llm_error = str(e)
                self._log.warning("rollup_llm_failed", period=period.label, error=llm_error)

        content = self._renderer.render_rollup(
            RollupRenderContext(
                kind=period.kind,
                label=period.label,
                start=period.start.isoformat(),
                end=period.end.isoformat(),
                paper_count=len(papers),
                day_count=day_count,
                narrative=narrative,
                llm_error=llm_error,
                direction_lines=direction_lines,
                top_papers=papers[:FALLBACK_TOP_PAPERS],
            )
        )
        self._store.write_note(path, content)
        self._log.info(
            "rollup_complete", kind=period.kind, period=period.label, paper_count=len(papers)
        )
        return RollupResult(
            period=period,
            path=path,
            paper_count=len(papers),
            day_count=day_count,
            llm_error=llm_error,
        )
