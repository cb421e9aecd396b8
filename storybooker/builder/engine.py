"""
Build Engine for Storybooker.

Walks the event catalog, renders every started event's chapters to
markdown, and converts each event story to one EPUB. Accepts an injected
PandocRunner for testability; defaults to the real pandoc binary.

A failing story is logged, recorded and skipped; the rest of the batch
continues.
"""

import json
import logging
import time
from dataclasses import dataclass, asdict, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

from storybooker.builder.assembly import assemble_story
from storybooker.builder.converter import convert_to_epub
from storybooker.builder.failure_report import BuildFailureReport
from storybooker.builder.protocols import PandocRunner
from storybooker.markdown import book_filename, render_scenario
from storybooker.models import BuildConfig, Event, MalformedScenario, Scenario, StoryChapter
from storybooker.source.asset_cache import AssetCache
from storybooker.source.bestdori import BestdoriClient, FetchError

# Structured logger for build operations
logger = logging.getLogger("storybooker.builder")

EVENT_STORIES_DIR = "Event Stories"


# ---------------------------------------------------------------------------
# Structured logging
# ---------------------------------------------------------------------------

@dataclass
class BuildLog:
    """Structured log entry for one story build."""
    event_id: str
    event_name: str
    chapter_count: int
    total_chars: int = 0
    start_time: float = 0.0
    end_time: float = 0.0
    output_path: str = ""
    status: str = "pending"  # pending | success | error
    error_message: str = ""
    error_scenario_id: str = ""

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

    def log(self):
        if self.status == "error":
            logger.error(f"BUILD_FAIL: {self.to_json()}")
        else:
            logger.info(f"BUILD_OK: {self.to_json()}")


class StoryBuildError(RuntimeError):
    """One event story could not be built; the cause is chained."""

    def __init__(self, message: str, event_id: str = "", scenario_id: str = ""):
        super().__init__(message)
        self.event_id = event_id
        self.scenario_id = scenario_id


# ---------------------------------------------------------------------------
# Story building
# ---------------------------------------------------------------------------

def build_event(
    event: Event,
    chapters: list[StoryChapter],
    client: BestdoriClient,
    cache: AssetCache,
    config: BuildConfig,
    *,
    runner: Optional[PandocRunner] = None,
) -> Path:
    """
    Build one event story into an EPUB.

    Args:
        event: Event metadata
        chapters: The event's chapters in reading order
        client: Catalog client (for scenario URLs)
        cache: Asset cache (scenario JSON is loaded through it)
        config: Build configuration
        runner: Injected PandocRunner (defaults to subprocess)

    Returns:
        Path to the written EPUB

    Raises:
        StoryBuildError: Any fetch, render or conversion failure
    """
    region = config.region
    build_log = BuildLog(
        event_id=event.event_id,
        event_name=_display_name(event, region),
        chapter_count=len(chapters),
        start_time=time.time(),
    )

    current_scenario_id = ""

    try:
        name = event.name(region)
        fragments = []

        for chapter in chapters:
            current_scenario_id = chapter.scenario_id
            url = client.scenario_url(event.event_id, chapter.scenario_id)
            data = cache.load(event.asset_bundle_name, chapter.scenario_id, url)
            scenario = Scenario.from_dict(data, scenario_id=chapter.scenario_id)
            fragments.append((chapter, render_scenario(scenario)))
        current_scenario_id = ""

        markdown = assemble_story(name, fragments, region)
        build_log.total_chars = len(markdown)

        output_path = Path(config.output_dir) / EVENT_STORIES_DIR / book_filename(event.event_id, name)

        if config.keep_markdown:
            md_path = output_path.with_suffix(".md")
            md_path.parent.mkdir(parents=True, exist_ok=True)
            md_path.write_text(markdown, encoding="utf-8")

        result = convert_to_epub(
            markdown,
            output_path,
            title=name,
            runner=runner,
            pandoc_path=config.pandoc_path,
            extra_args=config.pandoc_extra_args,
        )

        build_log.end_time = time.time()
        build_log.output_path = str(result.output_path)
        build_log.status = "success"
        build_log.log()

        return result.output_path

    except Exception as e:
        build_log.end_time = time.time()
        build_log.status = "error"
        build_log.error_message = str(e)
        build_log.error_scenario_id = current_scenario_id
        build_log.log()

        where = f" (scenario {current_scenario_id})" if current_scenario_id else ""
        raise StoryBuildError(
            f"Event {event.event_id}{where} failed: {e}",
            event_id=event.event_id,
            scenario_id=current_scenario_id,
        ) from e


# ---------------------------------------------------------------------------
# Build summary (returned to caller for user-facing messages)
# ---------------------------------------------------------------------------

@dataclass
class BuildSummary:
    """Result of build_events with per-story accounting."""
    built: int = 0
    skipped_not_started: int = 0
    skipped_excluded: int = 0
    skipped_filtered: int = 0
    failed: int = 0
    total: int = 0
    outputs: list[Path] = field(default_factory=list)
    failed_stories: list[dict] = field(default_factory=list)
    report_path: str = ""


class BuildError(RuntimeError):
    """The build could not run at all (e.g. a catalog was unavailable)."""

    def __init__(self, message: str, summary: Optional[BuildSummary] = None):
        super().__init__(message)
        self.summary = summary


def excluded_ids_predicate(event_ids: Iterable[str]) -> Callable[[Event], bool]:
    """Exclusion predicate matching a fixed set of event ids."""
    excluded = {str(e) for e in event_ids}
    return lambda event: event.event_id in excluded


# ---------------------------------------------------------------------------
# Batch building
# ---------------------------------------------------------------------------

def build_events(
    client: BestdoriClient,
    cache: AssetCache,
    config: BuildConfig,
    now: datetime,
    *,
    runner: Optional[PandocRunner] = None,
    exclude: Optional[Callable[[Event], bool]] = None,
    only: Optional[Iterable[str]] = None,
    progress_callback: Optional[Callable[[int, int, str], None]] = None,
) -> BuildSummary:
    """
    Build an EPUB for every event that has started.

    Args:
        client: Catalog client
        cache: Asset cache for scenario JSON
        config: Build configuration (region, output folders, pandoc)
        now: Clock value deciding which events have started
        runner: Injected PandocRunner (defaults to subprocess)
        exclude: Predicate for events to skip (default: config.excluded_event_ids)
        only: If given, build only these event ids
        progress_callback: Callback(current_event, total_events, status)

    Returns:
        BuildSummary

    Raises:
        BuildError: A catalog could not be fetched
    """
    region = config.region
    if exclude is None:
        exclude = excluded_ids_predicate(config.excluded_event_ids)
    only_ids = {str(e) for e in only} if only is not None else None

    summary = BuildSummary()
    report = BuildFailureReport(
        region=region,
        assets_dir=str(cache.root),
        output_dir=config.output_dir,
    )

    logger.info(
        f"BUILD_START: region={region} now={now.isoformat()} "
        f"output={config.output_dir} assets={cache.root}"
    )

    try:
        events = client.fetch_events()
        stories = client.fetch_event_stories()
    except FetchError as e:
        logger.error(f"BUILD_CATALOG_FAIL: error={e}")
        raise BuildError(f"Could not fetch catalog: {e}", summary=summary) from e

    for i, event in enumerate(events):
        if only_ids is not None and event.event_id not in only_ids:
            summary.skipped_filtered += 1
            continue

        if exclude(event):
            logger.info(f"BUILD_SKIP_EXCLUDED: event={event.event_id}")
            summary.skipped_excluded += 1
            continue

        try:
            started = event.has_started(now, region)
        except (ValueError, TypeError, OverflowError, OSError) as e:
            summary.total += 1
            _record_failure(summary, report, event, region, MalformedScenario(f"bad start time: {e}"))
            continue

        if not started:
            summary.skipped_not_started += 1
            continue

        summary.total += 1
        if progress_callback:
            progress_callback(i + 1, len(events), f"{event.event_id} - {_display_name(event, region)}")

        chapters = stories.get(event.event_id)
        if chapters is None:
            _record_failure(
                summary, report, event, region,
                MalformedScenario(f"event {event.event_id} has no story listing"),
            )
            continue

        try:
            output_path = build_event(event, chapters, client, cache, config, runner=runner)
        except StoryBuildError as e:
            _record_failure(summary, report, event, region, e, scenario_id=e.scenario_id)
            continue

        summary.built += 1
        summary.outputs.append(output_path)

    report.total_stories = summary.total
    report.built_ok = summary.built
    if report.failed_stories:
        summary.report_path = str(report.save())

    _log_summary(summary)
    return summary


def _record_failure(
    summary: BuildSummary,
    report: BuildFailureReport,
    event: Event,
    region: int,
    error: Exception,
    scenario_id: str = "",
) -> None:
    name = _display_name(event, region)
    summary.failed += 1
    summary.failed_stories.append({
        "event_id": event.event_id,
        "name": name,
        "scenario_id": scenario_id,
        "error": str(error),
    })
    report.add_failure(event.event_id, name, error, scenario_id=scenario_id)
    logger.error(f"BUILD_STORY_FAIL: event={event.event_id} error={error}")


def _display_name(event: Event, region: int) -> str:
    try:
        return event.name(region)
    except MalformedScenario:
        return f"event {event.event_id}"


def _log_summary(summary: BuildSummary) -> None:
    """Log the build summary."""
    logger.info(
        f"BUILD_SUMMARY: built={summary.built} failed={summary.failed} "
        f"not_started={summary.skipped_not_started} excluded={summary.skipped_excluded} "
        f"total={summary.total}"
    )
