"""Daily digest pipeline orchestrator."""

import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import structlog

from paper_daily.config.schemas import DigestConfig, FetchMode
from paper_daily.llm import (
    DEFAULT_DAILY_PROMPT,
    DEFAULT_DEEP_READ_PROMPT,
    DEFAULT_SCORING_PROMPT,
    DigestWriter,
    LlmBatchScorer,
    LlmProvider,
    TokenLedger,
    format_direction_lines,
    resolve_prompt,
)
from paper_daily.papers import Paper
from paper_daily.pipeline.cancellation import CancellationToken
from paper_daily.pipeline.errors import PipelineAbortedError
from paper_daily.pipeline.events import EventDispatcher, PipelineEvents
from paper_daily.pipeline.run_log import RunLog
from paper_daily.pipeline.state_machine import (
    STAGE_ORDER,
    PipelineStage,
    PipelineStateMachine,
)
from paper_daily.ranker import (
    PaperRanker,
    TrendingPaper,
    select_trending,
    summarize_interest_areas,
)
from paper_daily.renderer import (
    DailyRenderContext,
    DeepReadRenderContext,
    MarkdownRenderer,
    StageFailure,
    deep_read_file_name,
)
from paper_daily.scoring import aggregate_directions, interest_hits
from paper_daily.sources import (
    CommunityFeed,
    FetchQuery,
    FullTextFetcher,
    PaperSourceAdapter,
    RateLimitRetryPolicy,
    call_with_rate_limit_retry,
)
from paper_daily.store import (
    ArtifactPaths,
    DailySnapshot,
    DedupStore,
    DocumentStore,
    SnapshotStore,
    StateStore,
    TrackingStore,
)


logger = structlog.get_logger()

DEEP_READ_TEMPERATURE = 0.2


@dataclass(frozen=True)
class RunOptions:
    """Per-run overrides.

    Attributes:
        target_date: Pin the run to a past day (``YYYY-MM-DD``); None means
            a live run for today.
        window_start: Fetch window start; defaults to ``time_window_hours``
            before ``window_end``.
        window_end: Fetch window end; defaults to now.
        skip_dedup: Neither filter by nor update the dedup map, and leave
            the last-run timestamp alone.
    """

    target_date: str | None = None
    window_start: datetime | None = None
    window_end: datetime | None = None
    skip_dedup: bool = False

    @property
    def is_live(self) -> bool:
        return self.target_date is None


@dataclass
class DailyRunResult:
    """Outcome of one daily run.

    Attributes:
        run_id: Run identifier.
        date: Digest date.
        papers: Final ranked papers.
        trending: Trending section entries.
        digest_path: Store path of the rendered digest.
        snapshot: Persisted snapshot.
        fetch_error: Primary fetch failure, if any.
        llm_errors: LLM scoring and digest failures.
        digest_text: LLM narrative, if generated.
        tokens: Token usage across the run's LLM calls.
    """

    run_id: str
    date: str
    papers: list[Paper]
    trending: list[TrendingPaper]
    digest_path: str
    snapshot: DailySnapshot
    fetch_error: str | None = None
    llm_errors: list[str] = field(default_factory=list)
    digest_text: str | None = None
    tokens: TokenLedger = field(default_factory=TokenLedger)

    @property
    def has_errors(self) -> bool:
        return self.fetch_error is not None or bool(self.llm_errors)


@dataclass
class _RunData:
    """Mutable data handed from stage to stage within one run."""

    date: str
    query: FetchQuery
    is_live: bool
    use_dedup: bool
    skip_dedup: bool = False
    primary: list[Paper] = field(default_factory=list)
    community: list[Paper] = field(default_factory=list)
    extra: list[Paper] = field(default_factory=list)
    pool: list[Paper] = field(default_factory=list)
    ranked: list[Paper] = field(default_factory=list)
    excluded: list[Paper] = field(default_factory=list)
    partitioned: bool = False
    trending: list[TrendingPaper] = field(default_factory=list)
    excerpts: dict[str, str] = field(default_factory=dict)
    deep_read_links: dict[str, str] = field(default_factory=dict)
    digest_text: str | None = None
    digest_error: str | None = None
    score_error: str | None = None
    fetch_error: str | None = None
    digest_path: str = ""
    snapshot: DailySnapshot | None = None


class DailyPipeline:
    """Runs the daily digest end to end.

    Stages run strictly in order. Fetch, enrichment and LLM failures are
    recorded and the run carries on with whatever it has; render and
    persist failures propagate. Cancellation is checked before every stage.

    An instance executes one run at a time; use separate instances for a
    live run and a concurrent backfill.
    """

    def __init__(
        self,
        config: DigestConfig,
        store: DocumentStore,
        primary: PaperSourceAdapter,
        community: CommunityFeed | None = None,
        extra_sources: Sequence[PaperSourceAdapter] = (),
        llm: LlmProvider | None = None,
        fulltext: FullTextFetcher | None = None,
        events: PipelineEvents | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        retry_policy: RateLimitRetryPolicy | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Validated configuration.
            store: Document store for every artifact.
            primary: Primary paper feed.
            community: Community feed; None disables it.
            extra_sources: Further feeds (RSS, custom), each best-effort.
            llm: LLM provider; None disables every LLM stage.
            fulltext: Full-text fetcher used for digest excerpts.
            events: Progress observer.
            clock: Time source (UTC).
            sleep: Sleep used between rate-limit retries.
            retry_policy: Backoff for the primary feed.
        """
        self._config = config
        self._store = store
        self._primary = primary
        self._community = community
        self._extra_sources = list(extra_sources)
        self._llm = llm
        self._fulltext = fulltext
        self._observer = events
        self._clock = clock or (lambda: datetime.now(UTC))
        self._sleep = sleep
        self._retry_policy = retry_policy or RateLimitRetryPolicy()
        self._paths = ArtifactPaths(config.output.root_folder)

    def run(
        self,
        options: RunOptions | None = None,
        cancel: CancellationToken | None = None,
    ) -> DailyRunResult:
        """Execute one run.

        Args:
            options: Per-run overrides (target date, window, dedup skip).
            cancel: Cancellation token polled at stage boundaries.

        Returns:
            The run outcome.

        Raises:
            PipelineAbortedError: If cancelled.
            Exception: Render and persist failures propagate unchanged.
        """
        options = options or RunOptions()
        cancel = cancel or CancellationToken()
        run_id = uuid.uuid4().hex[:12]
        now = self._clock()
        window_end = options.window_end or now
        window_start = options.window_start or window_end - timedelta(
            hours=self._config.time_window_hours
        )
        run_date = options.target_date or now.date().isoformat()

        self._run_id = run_id
        self._cancel_token = cancel
        self._log = logger.bind(component="pipeline", run_id=run_id, date=run_date)
        self._events = EventDispatcher(self._observer, run_id)
        self._run_log = RunLog(self._clock)
        self._ledger = TokenLedger()
        self._dedup = DedupStore(self._store, self._paths.dedup)
        self._tracking = TrackingStore(self._store, self._paths.tracking)
        self._state = StateStore(self._store, self._paths.state, self._clock)
        self._state.load()
        machine = PipelineStateMachine(run_id)

        data = _RunData(
            date=run_date,
            is_live=options.is_live,
            use_dedup=self._config.dedup and not options.skip_dedup,
            skip_dedup=options.skip_dedup,
            query=FetchQuery(
                categories=list(self._config.categories),
                keywords=list(self._config.keywords),
                max_results=self._config.max_results_per_day,
                sort_by=self._config.sort_by,
                window_start=window_start,
                window_end=window_end,
                target_date=options.target_date,
            ),
        )

        handlers: dict[PipelineStage, Callable[[_RunData], str]] = {
            PipelineStage.FETCH_PRIMARY: self._fetch_primary,
            PipelineStage.FETCH_SECONDARY: self._fetch_secondary,
            PipelineStage.MERGE_ENRICH: self._merge_enrich,
            PipelineStage.DEDUP: self._dedup_stage,
            PipelineStage.RANK: self._rank,
            PipelineStage.LLM_SCORE: self._llm_score,
            PipelineStage.TRENDING: self._trending_stage,
            PipelineStage.FULLTEXT_ENRICH: self._fulltext_enrich,
            PipelineStage.DEEP_READ: self._deep_read,
            PipelineStage.LLM_DIGEST: self._llm_digest,
            PipelineStage.RENDER: self._render,
            PipelineStage.PERSIST_SNAPSHOT: self._persist_snapshot,
            PipelineStage.UPDATE_DEDUP: self._update_dedup,
            PipelineStage.UPDATE_STATE: self._update_state,
        }

        self._log.info(
            "pipeline_run_started",
            live=data.is_live,
            window_start=window_start.isoformat(),
            window_end=window_end.isoformat(),
        )
        self._run_log.add("RUN", f"start run_id={run_id} date={run_date} live={data.is_live}")
        try:
            for stage in STAGE_ORDER[1:-1]:
                cancel.raise_if_cancelled(stage.value)
                machine.transition_to(stage)
                self._events.stage_started(stage.value)
                self._log.info("pipeline_stage_started", stage=stage.value)
                detail = handlers[stage](data)
                self._run_log.add(stage.value, detail)
                self._events.stage_completed(stage.value, detail)
            machine.transition_to(PipelineStage.DONE)
        except PipelineAbortedError as e:
            machine.transition_to(PipelineStage.ABORTED)
            self._run_log.add("RUN", f"aborted at {e.stage}")
            self._log.warning("pipeline_run_aborted", stage=e.stage)
            raise
        except Exception as e:
            machine.transition_to(PipelineStage.FAILED)
            self._run_log.add("RUN", f"failed: {e}")
            self._log.error("pipeline_run_failed", error=str(e), error_type=type(e).__name__)
            raise
        finally:
            self._run_log.flush(self._store, self._paths.run_log)

        llm_errors = [msg for msg in (data.score_error, data.digest_error) if msg]
        self._log.info(
            "pipeline_run_complete",
            paper_count=len(data.ranked),
            trending_count=len(data.trending),
            fetch_failed=data.fetch_error is not None,
            llm_errors=len(llm_errors),
            input_tokens=self._ledger.input_tokens,
        )
        if data.snapshot is None:
            msg = "snapshot stage did not run"
            raise AssertionError(msg)
        return DailyRunResult(
            run_id=run_id,
            date=data.date,
            papers=data.ranked,
            trending=data.trending,
            digest_path=data.digest_path,
            snapshot=data.snapshot,
            fetch_error=data.fetch_error,
            llm_errors=llm_errors,
            digest_text=data.digest_text,
            tokens=self._ledger,
        )

    def _record_failure(self, stage: PipelineStage, message: str) -> None:
        self._log.warning("pipeline_stage_failed", stage=stage.value, error=message)
        self._run_log.add(stage.value, f"ERROR {message}")
        self._events.stage_failed(stage.value, message)
        self._state.set_last_error(stage.value, message)

    # Stages: each returns a one-line summary for the run log.

    def _fetch_primary(self, data: _RunData) -> str:
        try:
            data.primary = call_with_rate_limit_retry(
                lambda: self._primary.fetch(data.query),
                policy=self._retry_policy,
                sleep=self._sleep,
                source=self._primary.name,
            )
        except Exception as e:  # noqa: BLE001
            data.primary = []
            data.fetch_error = str(e)
            self._record_failure(PipelineStage.FETCH_PRIMARY, data.fetch_error)
            return f"failed: {data.fetch_error}"
        return f"{len(data.primary)} papers from {self._primary.name}"

    def _fetch_secondary(self, data: _RunData) -> str:
        parts: list[str] = []
        community_config = self._config.community
        if self._community is not None and community_config.enabled:
            try:
                result = self._community.fetch_day(
                    data.date, community_config.lookback_days
                )
            except Exception as e:  # noqa: BLE001
                self._log.warning("community_fetch_failed", error=str(e))
                parts.append(f"{self._community.name} failed: {e}")
            else:
                # Streaks count feed days, which trail the run date on lookback
                self._tracking.load()
                for paper in result.papers:
                    paper.streak = self._tracking.track(
                        paper.id, paper.title, result.feed_date
                    )
                self._tracking.save()
                kept = [
                    paper
                    for paper in result.papers
                    if not (
                        community_config.dedup
                        and self._tracking.seen_before(paper.id, result.feed_date)
                    )
                ]
                data.community = kept
                parts.append(
                    f"{len(kept)} papers from {self._community.name} ({result.feed_date})"
                )

        for source in self._extra_sources:
            try:
                papers = source.fetch(data.query)
            except Exception as e:  # noqa: BLE001
                self._log.warning("secondary_fetch_failed", source=source.name, error=str(e))
                parts.append(f"{source.name} failed: {e}")
                continue
            data.extra.extend(papers)
            parts.append(f"{len(papers)} papers from {source.name}")
        return "; ".join(parts) or "no secondary sources"

    def _merge_enrich(self, data: _RunData) -> str:
        pool: list[Paper] = []
        by_base: dict[str, Paper] = {}
        for paper in data.primary:
            if paper.base_id in by_base:
                continue
            by_base[paper.base_id] = paper
            pool.append(paper)

        enriched = 0
        added = 0
        for item in data.community:
            match = by_base.get(item.base_id)
            if match is not None:
                match.upvotes = item.upvotes
                match.streak = item.streak
                match.links = match.links.model_copy(
                    update={"community": item.links.community}
                )
                enriched += 1
            elif self._config.community.add_to_pool:
                by_base[item.base_id] = item
                pool.append(item)
                added += 1

        for item in data.extra:
            if item.base_id not in by_base:
                by_base[item.base_id] = item
                pool.append(item)
                added += 1

        data.pool = pool
        return f"pool={len(pool)} enriched={enriched} added={added}"

    def _dedup_stage(self, data: _RunData) -> str:
        before = len(data.pool)
        if data.use_dedup:
            self._dedup.load()
            data.pool = [p for p in data.pool if not self._dedup.has_id(p.id)]
        if (
            self._config.fetch_mode == FetchMode.INTEREST_ONLY
            and self._config.interest_keywords
        ):
            keywords = self._config.interest_keywords
            data.pool = [p for p in data.pool if interest_hits(p, keywords)]
        return f"kept {len(data.pool)} of {before}"

    def _rank(self, data: _RunData) -> str:
        data.partitioned = self._config.trending.enabled and bool(
            self._config.interest_keywords or self._config.directions
        )
        ranker = PaperRanker(
            self._config.interest_keywords,
            self._config.directions,
            self._config.direction_top_k,
            run_id=self._run_id,
        )
        result = ranker.rank(data.pool, partition=data.partitioned)
        data.ranked = result.ranked
        data.excluded = result.excluded
        return f"ranked={len(data.ranked)} excluded={len(data.excluded)}"

    def _checkpoint(self, stage: PipelineStage) -> Callable[[], None]:
        token = self._cancel_token

        def check() -> None:
            token.raise_if_cancelled(stage.value)

        return check

    def _llm_score(self, data: _RunData) -> str:
        if self._llm is None:
            return "skipped: LLM disabled"
        if not data.ranked:
            return "skipped: no papers"
        template = resolve_prompt(
            self._config.prompt_library,
            self._config.active_scoring_prompt_id,
            self._config.llm.scoring_prompt,
            DEFAULT_SCORING_PROMPT,
        )
        scorer = LlmBatchScorer(self._llm, self._ledger, run_id=self._run_id)
        try:
            outcome = scorer.score(
                data.ranked,
                self._config.interest_keywords,
                template,
                checkpoint=self._checkpoint(PipelineStage.LLM_SCORE),
            )
        except PipelineAbortedError:
            raise
        except Exception as e:  # noqa: BLE001
            data.score_error = f"scoring: {e}"
            self._record_failure(PipelineStage.LLM_SCORE, data.score_error)
            return f"failed: {e}"
        data.ranked = outcome.papers
        if outcome.errors:
            data.score_error = "scoring: " + "; ".join(outcome.errors)
            self._record_failure(PipelineStage.LLM_SCORE, data.score_error)
        return f"scored {outcome.scored}/{len(data.ranked)} in {outcome.batches} batches"

    def _trending_stage(self, data: _RunData) -> str:
        if not data.partitioned:
            return "skipped: no interests configured or trending disabled"
        reference = data.query.window_end if not data.is_live else self._clock()
        data.trending = select_trending(
            data.excluded,
            reference,
            self._config.trending.min_score,
            self._config.trending.max_items,
        )
        return f"{len(data.trending)} of {len(data.excluded)} excluded papers"

    def _fulltext_enrich(self, data: _RunData) -> str:
        settings = self._config.full_text
        if not settings.enabled or self._fulltext is None or self._llm is None:
            return "skipped"
        for paper in data.ranked[: settings.top_n]:
            try:
                text = self._fulltext.fetch(paper.base_id, settings.max_chars_per_paper)
            except Exception as e:  # noqa: BLE001
                self._log.warning("fulltext_fetch_failed", paper_id=paper.id, error=str(e))
                continue
            if text:
                data.excerpts[paper.base_id] = text
        return f"{len(data.excerpts)} excerpts"

    def _deep_read(self, data: _RunData) -> str:
        settings = self._config.deep_read
        if not settings.enabled or self._llm is None:
            return "skipped"
        if not data.ranked:
            return "skipped: no papers"
        template = resolve_prompt(
            self._config.prompt_library,
            self._config.active_deep_read_prompt_id,
            settings.prompt,
            DEFAULT_DEEP_READ_PROMPT,
        )
        writer = DigestWriter(
            self._llm,
            self._ledger,
            temperature=DEEP_READ_TEMPERATURE,
            max_tokens=settings.max_tokens,
            run_id=self._run_id,
        )
        renderer = MarkdownRenderer(self._run_id)
        checkpoint = self._checkpoint(PipelineStage.DEEP_READ)
        targets = data.ranked[: settings.top_n]
        analysed = 0
        for index, paper in enumerate(targets, start=1):
            checkpoint()
            label = f"deep read {index}/{len(targets)}"
            try:
                paper.deep_read_analysis = writer.deep_read(
                    paper,
                    date=data.date,
                    language=self._config.output.language,
                    fulltext=data.excerpts.get(paper.base_id),
                    template=template,
                    label=label,
                )
            except Exception as e:  # noqa: BLE001
                self._log.warning("deep_read_failed", paper_id=paper.id, error=str(e))
                self._run_log.add(PipelineStage.DEEP_READ.value, f"ERROR {paper.base_id}: {e}")
                continue
            analysed += 1

            file_name = deep_read_file_name(
                settings.file_name_template, paper, data.date, self._config.llm.model
            )
            path = self._paths.deep_read(data.date, file_name, settings.folder)
            note = renderer.render_deep_read(
                DeepReadRenderContext(date=data.date, paper=paper, tags=list(settings.tags))
            )
            try:
                self._store.write_note(path, note)
            except Exception as e:  # noqa: BLE001
                self._log.warning("deep_read_write_failed", path=path, error=str(e))
                continue
            data.deep_read_links[paper.base_id] = path.removesuffix(".md")
        return f"{analysed}/{len(targets)} papers analysed, {len(data.deep_read_links)} notes"

    def _llm_digest(self, data: _RunData) -> str:
        if self._llm is None:
            return "skipped: LLM disabled"
        if not data.ranked:
            return "skipped: no papers"
        template = resolve_prompt(
            self._config.prompt_library,
            self._config.active_prompt_id,
            self._config.llm.daily_prompt,
            DEFAULT_DAILY_PROMPT,
        )
        totals = aggregate_directions(data.ranked, self._config.directions)
        writer = DigestWriter(
            self._llm,
            self._ledger,
            temperature=self._config.llm.temperature,
            max_tokens=self._config.llm.max_tokens,
            run_id=self._run_id,
        )
        try:
            data.digest_text = writer.daily_digest(
                date=data.date,
                papers=data.ranked[: self._config.output.digest_top_n],
                top_directions=format_direction_lines(
                    totals, self._config.direction_top_k
                ),
                interest_keywords=self._config.interest_keywords,
                language=self._config.output.language,
                community=data.community[: self._config.community.prompt_top_n],
                excerpts=data.excerpts,
                deep_reads=[p for p in data.ranked if p.deep_read_analysis],
                template=template,
            )
        except Exception as e:  # noqa: BLE001
            data.digest_error = str(e)
            self._record_failure(PipelineStage.LLM_DIGEST, data.digest_error)
            return f"failed: {e}"
        finally:
            self._ledger.check_total()
        return f"{len(data.digest_text)} chars"

    def _render(self, data: _RunData) -> str:
        failures: list[StageFailure] = []
        if data.fetch_error:
            failures.append(StageFailure("Fetch", data.fetch_error))
        llm_messages = [msg for msg in (data.score_error, data.digest_error) if msg]
        if llm_messages:
            failures.append(StageFailure("LLM", "; ".join(llm_messages)))

        totals = aggregate_directions(data.ranked, self._config.directions)
        ranked_totals = sorted(totals.items(), key=lambda item: -item[1])
        sources = [self._primary.name]
        if self._community is not None and self._config.community.enabled:
            sources.append(self._community.name)
        sources.extend(source.name for source in self._extra_sources)

        context = DailyRenderContext(
            date=data.date,
            papers=data.ranked,
            sources=sources,
            categories=list(self._config.categories),
            interest_keywords=[
                f"{kw.keyword}({kw.weight})" for kw in self._config.interest_keywords
            ],
            failures=failures,
            digest_text=data.digest_text,
            digest_error=data.digest_error,
            llm_disabled=self._llm is None,
            direction_totals=ranked_totals[: self._config.direction_top_k],
            trending=data.trending,
            interest_stats=summarize_interest_areas(
                data.ranked, self._config.interest_keywords
            ),
            include_abstract=self._config.output.include_abstract,
            include_pdf_link=self._config.output.include_pdf_link,
            deep_read_links=data.deep_read_links,
        )
        content = MarkdownRenderer(self._run_id).render_daily(context)
        data.digest_path = self._paths.inbox(data.date)
        self._store.write_note(data.digest_path, content)
        return f"wrote {data.digest_path}"

    def _persist_snapshot(self, data: _RunData) -> str:
        snapshots = SnapshotStore(self._store, self._paths, self._clock)
        data.snapshot = snapshots.write_snapshot(data.date, data.ranked, data.fetch_error)
        return f"{len(data.ranked)} papers"

    def _update_dedup(self, data: _RunData) -> str:
        if not data.is_live or not data.use_dedup:
            return "skipped"
        added = self._dedup.mark_seen_batch(
            [p.id for p in (*data.ranked, *data.excluded)], data.date
        )
        return f"{added} ids added"

    def _update_state(self, data: _RunData) -> str:
        if not data.is_live:
            return "skipped: historical run"
        if data.skip_dedup:
            return "skipped: dedup bypassed"
        self._state.set_last_daily_run(self._clock().isoformat())
        if data.fetch_error is None and data.score_error is None and data.digest_error is None:
            self._state.clear_last_error()
        return "last daily run recorded"
