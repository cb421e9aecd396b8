"""
Command-Line Interface for Storybooker.

Usage:
    storybooker build                      # Build EPUBs for all started events
    storybooker build --only 12 --only 13  # Build selected events
    storybooker events                     # List events and whether they started
    storybooker render assets/x/12.json    # Render one cached scenario to markdown
    storybooker info "Stories/Event Stories/012 - Name.epub"
"""

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    from storybooker import __version__

    parser = argparse.ArgumentParser(
        prog="storybooker",
        description="Event story e-books from Bestdori scenario data",
    )
    parser.add_argument("--version", action="version", version=f"storybooker {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline details to stderr")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # --- build ---
    build_parser = subparsers.add_parser("build", help="Build EPUBs for started events")
    _add_catalog_args(build_parser)
    build_parser.add_argument("--exclude", action="append", default=[], metavar="ID", help="Skip event ID (repeatable)")
    build_parser.add_argument("--only", action="append", metavar="ID", help="Build only event ID (repeatable)")
    build_parser.add_argument("-o", "--output-dir", help="Output folder (default: Stories)")
    build_parser.add_argument("--assets", help="Asset cache folder (default: assets)")
    build_parser.add_argument("--keep-markdown", action="store_true", help="Also write the assembled markdown")

    # --- events ---
    events_parser = subparsers.add_parser("events", help="List events")
    _add_catalog_args(events_parser)
    events_parser.add_argument("--all", action="store_true", help="Include events that have not started")

    # --- render ---
    render_parser = subparsers.add_parser("render", help="Render one scenario JSON file to markdown")
    render_parser.add_argument("scenario", help="Scenario JSON file (cached asset)")
    render_parser.add_argument("-o", "--output", help="Output markdown file (default: stdout)")

    # --- info ---
    info_parser = subparsers.add_parser("info", help="Show EPUB metadata")
    info_parser.add_argument("book", help="EPUB file")

    return parser


def _add_catalog_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-c", "--config", help="JSON config file")
    parser.add_argument("--region", type=int, metavar="N", help="Region index (0 jp, 1 en, 2 tw, 3 cn, 4 kr)")
    parser.add_argument("--now", metavar="ISO", help="Treat this time as now (default: current UTC time)")


def parse_now(value: Optional[str]) -> datetime:
    """Parse --now; naive values are taken as UTC."""
    if not value:
        return datetime.now(timezone.utc)
    now = datetime.fromisoformat(value)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now


def load_build_config(args):
    """BuildConfig from --config, overridden by explicit flags."""
    from storybooker.models import BuildConfig, SERVER_CODES, load_config

    config = load_config(args.config) if getattr(args, "config", None) else BuildConfig()

    if getattr(args, "region", None) is not None:
        config.region = args.region
    if getattr(args, "output_dir", None):
        config.output_dir = args.output_dir
    if getattr(args, "assets", None):
        config.assets_dir = args.assets
    if getattr(args, "keep_markdown", False):
        config.keep_markdown = True
    for event_id in getattr(args, "exclude", None) or []:
        if event_id not in config.excluded_event_ids:
            config.excluded_event_ids.append(event_id)

    if config.region not in SERVER_CODES:
        raise ValueError(f"Unknown region: {config.region!r}")
    return config


def _make_client(config):
    from storybooker.source.bestdori import BestdoriClient, RequestsHttpClient

    http = RequestsHttpClient(timeout=config.request_timeout_s)
    return BestdoriClient(http, region=config.region)


def cmd_build(args) -> int:
    """Build EPUBs for started events."""
    from storybooker.builder.engine import BuildError, build_events
    from storybooker.source.asset_cache import AssetCache

    try:
        config = load_build_config(args)
        now = parse_now(args.now)
        client = _make_client(config)
        cache = AssetCache(Path(config.assets_dir), client.http.get_json)

        print(f"Processing Event Stories (region {config.region}, as of {now.isoformat()})")

        def progress(current, total, status):
            print(f"  [{current}/{total}] {status}")

        summary = build_events(
            client,
            cache,
            config,
            now,
            only=args.only,
            progress_callback=progress,
        )

    except BuildError as e:
        print(f"\nBuild failed: {e}")
        return 1

    except Exception as e:
        print(f"Error: {e}")
        return 1

    print(f"\nBuild summary: {summary.built} built, {summary.failed} failed "
          f"(of {summary.total} started), {summary.skipped_not_started} not started, "
          f"{summary.skipped_excluded} excluded")

    if summary.failed_stories:
        print("\nFailed stories:")
        for story in summary.failed_stories:
            print(f"  {story['event_id']} - {story['name']}")
            print(f"    Error: {story['error']}")
        if summary.report_path:
            print(f"\nFailure report: {summary.report_path}")
        return 1

    return 0


def cmd_events(args) -> int:
    """List events and whether they have started."""
    from storybooker.models import MalformedScenario

    try:
        config = load_build_config(args)
        now = parse_now(args.now)
        client = _make_client(config)
        events = client.fetch_events()
    except Exception as e:
        print(f"Error: {e}")
        return 1

    for event in events:
        try:
            started = event.has_started(now, config.region)
        except (ValueError, TypeError, OverflowError, OSError):
            started = False
        if not started and not args.all:
            continue
        try:
            name = event.name(config.region)
        except MalformedScenario:
            name = "[no name in this region]"
        status = "" if started else " [not started]"
        print(f"  {event.event_id} - {name}{status}")

    return 0


def cmd_render(args) -> int:
    """Render one scenario JSON file to markdown."""
    import json

    from storybooker.markdown import render_scenario
    from storybooker.models import MalformedScenario, Scenario

    source = Path(args.scenario)
    if not source.exists():
        print(f"Error: Scenario file not found: {source}")
        return 1

    try:
        data = json.loads(source.read_text(encoding="utf-8"))
        markdown = render_scenario(Scenario.from_dict(data, scenario_id=source.stem))
    except json.JSONDecodeError as e:
        print(f"Error: {source} is not valid JSON: {e}")
        return 1
    except MalformedScenario as e:
        print(f"Error: Malformed scenario: {e}")
        return 1

    if args.output:
        Path(args.output).write_text(markdown, encoding="utf-8")
        print(f"Markdown written: {args.output}")
    else:
        sys.stdout.write(markdown)

    return 0


def cmd_info(args) -> int:
    """Show EPUB metadata."""
    from storybooker.builder.epub_info import read_epub_summary

    try:
        summary = read_epub_summary(Path(args.book))
    except Exception as e:
        print(f"Error: {e}")
        return 1

    print(f"Title: {summary.title or '(none)'}")
    if summary.author:
        print(f"Author: {summary.author}")
    if summary.language:
        print(f"Language: {summary.language}")
    print(f"Documents: {len(summary.documents)}")
    for heading in summary.headings:
        print(f"  {heading}")

    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "build": cmd_build,
        "events": cmd_events,
        "render": cmd_render,
        "info": cmd_info,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
