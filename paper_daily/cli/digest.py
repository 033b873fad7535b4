"""CLI commands for the paper digest."""

import logging
import signal
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, date, datetime
from pathlib import Path

import click
import structlog

from paper_daily.config import ConfigLoader, ConfigValidationError, DigestConfig
from paper_daily.llm import LlmProvider, build_llm_provider
from paper_daily.observability import bind_run_context, configure_logging
from paper_daily.pipeline import (
    BackfillDriver,
    BackfillValidationError,
    CancellationToken,
    DailyPipeline,
    PipelineAbortedError,
    PipelineBusyError,
    PipelineEvents,
    RollupPipeline,
    RunCoordinator,
    RunOptions,
    is_daily_run_due,
)
from paper_daily.settings import AppSettings, get_settings
from paper_daily.sources import (
    Ar5ivFullTextFetcher,
    ArxivSource,
    CommunitySource,
    CustomApiSource,
    PaperSourceAdapter,
    RssSource,
)
from paper_daily.store import (
    ArtifactPaths,
    DedupStore,
    FileDocumentStore,
    FullTextCache,
    StateStore,
)


logger = structlog.get_logger()

EXIT_ABORTED = 130


class EchoEvents(PipelineEvents):
    """Prints stage progress to the terminal."""

    def stage_completed(self, stage: str, detail: str) -> None:
        click.echo(f"  {stage}: {detail}")

    def stage_failed(self, stage: str, message: str) -> None:
        click.echo(f"  {stage} failed: {message}", err=True)

    def backfill_progress(self, day: str, index: int, total: int) -> None:
        click.echo(f"[{index}/{total}] {day}")


def _setup(json_logs: bool, verbose: bool, settings: AppSettings) -> str:
    level = (
        logging.DEBUG
        if verbose
        else getattr(logging, settings.log_level.upper(), logging.INFO)
    )
    configure_logging(level=level, json_format=json_logs)
    run_id = uuid.uuid4().hex[:12]
    bind_run_context(run_id)
    return run_id


def _load_config(config_path: Path, settings: AppSettings, run_id: str) -> DigestConfig:
    """Load configuration or exit with the validation errors."""
    loader = ConfigLoader(run_id=run_id)
    try:
        config = loader.load(config_path)
    except ConfigValidationError as e:
        click.echo(f"Configuration validation failed: {e.file_path}", err=True)
        for error in e.errors:
            click.echo(f"  - {error['loc']}: {error['msg']}", err=True)
        sys.exit(1)
    return config.with_api_key(settings.llm_api_key)


def _build_llm(config: DigestConfig) -> LlmProvider | None:
    if not config.llm.enabled:
        return None
    return build_llm_provider(config.llm)


def _build_pipeline(
    config: DigestConfig,
    store: FileDocumentStore,
    run_id: str,
) -> DailyPipeline:
    """Wire the concrete sources, LLM provider and stores."""
    extra: list[PaperSourceAdapter] = []
    if config.rss.enabled and config.rss.feeds:
        extra.append(RssSource(config.rss.feeds, run_id=run_id))
    if config.custom.enabled:
        extra.append(CustomApiSource(config.custom.url))

    fulltext = None
    if config.full_text.enabled:
        cache = FullTextCache(store, ArtifactPaths(config.output.root_folder))
        fulltext = Ar5ivFullTextFetcher(cache=cache, run_id=run_id)

    return DailyPipeline(
        config=config,
        store=store,
        primary=ArxivSource(run_id=run_id),
        community=CommunitySource(run_id=run_id) if config.community.enabled else None,
        extra_sources=extra,
        llm=_build_llm(config),
        fulltext=fulltext,
        events=EchoEvents(),
    )


@contextmanager
def _cancel_on_interrupt(token: CancellationToken) -> Iterator[None]:
    """Turn Ctrl-C into a cooperative cancel for the duration of a run."""

    def _handler(signum: int, frame: object) -> None:  # noqa: ARG001
        click.echo("Cancelling after the current stage...", err=True)
        token.cancel()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to paper-daily.yaml (default: $PAPER_DAILY_CONFIG).",
)
root_option = click.option(
    "--root",
    "store_root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory all artifacts are written under (default: $PAPER_DAILY_STORE_ROOT).",
)
json_logs_option = click.option(
    "--json-logs/--no-json-logs",
    default=True,
    help="Use JSON format for logs (default: true).",
)
verbose_option = click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging.")


def _resolve_paths(
    config_path: Path | None, store_root: Path | None, settings: AppSettings
) -> tuple[Path, Path]:
    return (
        config_path or Path(settings.config_path),
        store_root or Path(settings.store_root),
    )


@click.group()
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Daily research-paper digest."""
    ctx.ensure_object(RunCoordinator)


@cli.command()
@config_option
@root_option
@json_logs_option
@verbose_option
@click.option("--skip-dedup", is_flag=True, help="Ignore and do not update the dedup map.")
@click.option("--if-due", is_flag=True, help="Only run when the scheduled run is due.")
@click.pass_obj
def run(
    coordinator: RunCoordinator,
    config_path: Path | None,
    store_root: Path | None,
    json_logs: bool,
    verbose: bool,
    skip_dedup: bool,
    if_due: bool,
) -> None:
    """Run today's digest."""
    settings = get_settings()
    run_id = _setup(json_logs, verbose, settings)
    config_path, store_root = _resolve_paths(config_path, store_root, settings)
    config = _load_config(config_path, settings, run_id)
    store = FileDocumentStore(store_root, run_id)

    if if_due:
        paths = ArtifactPaths(config.output.root_folder)
        state = StateStore(store, paths.state)
        state.load()
        now = datetime.now().astimezone()
        if not is_daily_run_due(
            now,
            config.schedule.daily_time,
            state.get().last_daily_run,
            store.file_exists(paths.inbox(now.date().isoformat())),
        ):
            click.echo("Daily run not due.")
            return

    pipeline = _build_pipeline(config, store, run_id)
    try:
        with coordinator.live_run() as token, _cancel_on_interrupt(token):
            result = pipeline.run(RunOptions(skip_dedup=skip_dedup), token)
    except PipelineBusyError as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    except PipelineAbortedError as e:
        click.echo(str(e), err=True)
        sys.exit(EXIT_ABORTED)

    logger.info("cli_run_complete", digest_path=result.digest_path, has_errors=result.has_errors)
    click.echo(f"Digest written: {store_root / result.digest_path}")
    click.echo(f"  Papers: {len(result.papers)}  Trending: {len(result.trending)}")
    if result.fetch_error:
        click.echo(f"  Fetch failed: {result.fetch_error}", err=True)
    for message in result.llm_errors:
        click.echo(f"  LLM failed: {message}", err=True)
    for warning in result.tokens.warnings:
        click.echo(f"  Token warning: {warning}", err=True)


@cli.command()
@click.option("--start", required=True, help="First day (YYYY-MM-DD).")
@click.option("--end", required=True, help="Last day (YYYY-MM-DD).")
@config_option
@root_option
@json_logs_option
@verbose_option
@click.pass_obj
def backfill(
    coordinator: RunCoordinator,
    start: str,
    end: str,
    config_path: Path | None,
    store_root: Path | None,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Regenerate digests for a past date range."""
    settings = get_settings()
    run_id = _setup(json_logs, verbose, settings)
    config_path, store_root = _resolve_paths(config_path, store_root, settings)
    config = _load_config(config_path, settings, run_id)
    store = FileDocumentStore(store_root, run_id)
    driver = BackfillDriver(
        _build_pipeline(config, store, run_id),
        max_days=config.backfill_max_days,
        events=EchoEvents(),
    )

    try:
        with coordinator.backfill_run() as token, _cancel_on_interrupt(token):
            result = driver.run_backfill(start, end, cancel=token)
    except BackfillValidationError as e:
        click.echo(f"Invalid range: {e}", err=True)
        sys.exit(2)
    except PipelineBusyError as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    except PipelineAbortedError as e:
        click.echo(str(e), err=True)
        sys.exit(EXIT_ABORTED)

    logger.info(
        "cli_backfill_complete", processed=len(result.processed), failed=len(result.errors)
    )
    click.echo(f"Backfill complete: {len(result.processed)} days processed")
    for day, message in result.errors.items():
        click.echo(f"  {day}: {message}", err=True)
    if result.errors:
        sys.exit(1)


def _parse_reference(value: str | None) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise click.BadParameter(f"expected YYYY-MM-DD, got {value!r}") from e


def _run_rollup(
    kind: str,
    reference: str | None,
    config_path: Path | None,
    store_root: Path | None,
    json_logs: bool,
    verbose: bool,
) -> None:
    settings = get_settings()
    run_id = _setup(json_logs, verbose, settings)
    config_path, store_root = _resolve_paths(config_path, store_root, settings)
    config = _load_config(config_path, settings, run_id)
    store = FileDocumentStore(store_root, run_id)
    pipeline = RollupPipeline(config, store, llm=_build_llm(config), run_id=run_id)
    day = _parse_reference(reference)
    result = pipeline.run_weekly(day) if kind == "weekly" else pipeline.run_monthly(day)
    click.echo(f"{result.period.label}: {result.paper_count} papers -> {result.path}")
    if result.llm_error:
        click.echo(f"  LLM failed: {result.llm_error}", err=True)


@cli.command()
@click.option("--date", "reference", default=None, help="Any day in the week (default: today).")
@config_option
@root_option
@json_logs_option
@verbose_option
def weekly(
    reference: str | None,
    config_path: Path | None,
    store_root: Path | None,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Write the weekly rollup."""
    _run_rollup("weekly", reference, config_path, store_root, json_logs, verbose)


@cli.command()
@click.option("--date", "reference", default=None, help="Any day in the month (default: today).")
@config_option
@root_option
@json_logs_option
@verbose_option
def monthly(
    reference: str | None,
    config_path: Path | None,
    store_root: Path | None,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Write the monthly rollup."""
    _run_rollup("monthly", reference, config_path, store_root, json_logs, verbose)


@cli.command()
@click.option(
    "--keep-days",
    type=click.IntRange(min=0),
    required=True,
    help="Forget dedup entries first seen more than this many days ago.",
)
@config_option
@root_option
@json_logs_option
@verbose_option
def prune(
    keep_days: int,
    config_path: Path | None,
    store_root: Path | None,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Prune the dedup map and the full-text cache."""
    settings = get_settings()
    run_id = _setup(json_logs, verbose, settings)
    config_path, store_root = _resolve_paths(config_path, store_root, settings)
    config = _load_config(config_path, settings, run_id)
    store = FileDocumentStore(store_root, run_id)
    paths = ArtifactPaths(config.output.root_folder)

    dedup = DedupStore(store, paths.dedup)
    dedup.load()
    removed = dedup.prune(keep_days, datetime.now(UTC).date())
    deleted = FullTextCache(store, paths).prune(config.full_text.cache_ttl_days)
    click.echo(f"Dedup entries removed: {removed}")
    click.echo(f"Full-text cache entries deleted: {deleted}")


@cli.command()
@config_option
def validate(config_path: Path | None) -> None:
    """Validate the configuration file without running anything."""
    settings = get_settings()
    run_id = _setup(json_logs=False, verbose=False, settings=settings)
    config_path = config_path or Path(settings.config_path)
    loader = ConfigLoader(run_id=run_id)
    try:
        config = loader.load(config_path)
    except ConfigValidationError as e:
        click.echo("Configuration validation failed:", err=True)
        for error in e.errors:
            click.echo(f"  - {error['loc']}: {error['msg']}", err=True)
        sys.exit(1)

    click.echo("Configuration is valid!")
    click.echo(f"  Categories: {', '.join(config.categories)}")
    click.echo(f"  Interest keywords: {len(config.interest_keywords)}")
    click.echo(f"  Directions: {len(config.directions)}")
    click.echo(f"  LLM: {'enabled' if settings.llm_api_key or config.llm.enabled else 'disabled'}")
    click.echo(f"  Checksum: {loader.checksum}")
