"""
Radio Sync CLI - Entry point

Shows which segment each station airs right now, derived only from
station metadata and the clock.
"""

import argparse
import sys
from datetime import datetime, timezone
from typing import Optional

from loguru import logger
from rich.markup import escape

from radio_sync.core.config import Config, ensure_directories, get_log_file_path, load_config
from radio_sync.core.console import get_console, print_table, safe_print
from radio_sync.core.output import log, setup_loguru
from radio_sync.domain.radio import (
    PlayableSegment,
    RadioError,
    StationSource,
    calculate_now_playing,
    get_upcoming_segments,
    load_station_sources,
)
from radio_sync.domain.radio.timeline import as_utc


def _find_source(config: Config, station_path: str) -> StationSource:
    """Look up a station by folder name or title."""
    sources = load_station_sources(config.data)
    wanted = station_path.strip("/").lower()
    for source in sources:
        if source.path.lower() == wanted:
            return source

    for source in sources:
        source.load_meta()
        if source.title.lower() == wanted:
            return source

    raise RadioError(f"Station '{station_path}' not found")


def _format_time(timestamp_ms: float) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _segment_row(segment: PlayableSegment) -> tuple[str, str, str, str]:
    category = segment.category.label if segment.category is not None else "-"
    return (
        _format_time(segment.start_timestamp),
        category,
        segment.get_title(),
        f"{segment.info.duration:.1f}s",
    )


def run_stations(config: Config) -> int:
    """List every station in radio.json.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    sources = load_station_sources(config.data)
    if not sources:
        log("No stations listed in radio.json", "warning")
        return 1

    rows = []
    for source in sources:
        meta = source.load_meta()
        rows.append((source.path, source.title, meta.type, meta.info.genre, meta.info.dj))

    print_table("Stations", ["Folder", "Title", "Type", "Genre", "DJ"], rows)
    return 0


def run_now(config: Config, station_path: str, at: Optional[datetime], show_state: bool) -> int:
    """Print the segment airing on a station at ``at`` (default: now).

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    source = _find_source(config, station_path)
    station = source.create_station(config.scheduler)
    now_playing = calculate_now_playing(station, at)
    segment = now_playing.segment
    position = now_playing.position_ms / 1000

    category = segment.category.label if segment.category is not None else "-"

    console = get_console()
    console.print(f"[bold]{escape(source.title)}[/bold] ({station.station_type})")
    console.print(
        f"  Now playing: {escape(segment.get_title(position))} "
        f"({category}, {position:.1f}s/{segment.info.duration:.1f}s)"
    )
    console.print(f"  File: {escape(segment.info.path)}")
    for voiceover in segment.voiceovers:
        console.print(f"  Voiceover ({voiceover.offset:.1f}s): {escape(voiceover.path)}")

    if now_playing.upcoming:
        print_table(
            "Up next",
            ["Starts (UTC)", "Category", "Title", "Duration"],
            [_segment_row(s) for s in now_playing.upcoming],
        )

    if show_state and station.state is not None:
        console.print(station.state.to_dict())
    return 0


def run_upcoming(config: Config, station_path: str, count: int) -> int:
    """Print the forecast for the next ``count`` segments.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    source = _find_source(config, station_path)
    station = source.create_station(config.scheduler)
    current = station.get_synced_segment()
    upcoming = get_upcoming_segments(station, count)

    print_table(
        f"{source.title} schedule",
        ["Starts (UTC)", "Category", "Title", "Duration"],
        [_segment_row(s) for s in [current, *upcoming]],
    )
    return 0


def _parse_time(value: str) -> datetime:
    try:
        return as_utc(datetime.fromisoformat(value))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid ISO timestamp: {value}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="radio-sync",
        description="Radio Sync - deterministic radio station schedules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--data-path",
        help="Folder or URL holding radio.json (overrides config)",
    )
    parser.add_argument(
        "--log-level",
        help="Log level for the log file (overrides config)",
    )

    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    subparsers.add_parser("stations", help="List stations")

    now_parser = subparsers.add_parser("now", help="Show what a station is airing")
    now_parser.add_argument("station", help="Station folder or title")
    now_parser.add_argument(
        "--at",
        type=_parse_time,
        help="ISO timestamp to calculate for (default: now, UTC if no offset)",
    )
    now_parser.add_argument(
        "--show-state",
        action="store_true",
        help="Print scheduler state after syncing",
    )

    upcoming_parser = subparsers.add_parser("upcoming", help="Forecast upcoming segments")
    upcoming_parser.add_argument("station", help="Station folder or title")
    upcoming_parser.add_argument("--count", type=int, default=10, help="Segments to show")

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the radio-sync command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config()
    ensure_directories()
    if args.data_path:
        config.data.local_path = args.data_path
    level = (args.log_level or config.logging.level).upper()
    setup_loguru(get_log_file_path(config), level, config.logging.console_output)

    try:
        if args.subcommand == "stations":
            sys.exit(run_stations(config))
        elif args.subcommand == "now":
            sys.exit(run_now(config, args.station, args.at, args.show_state))
        elif args.subcommand == "upcoming":
            sys.exit(run_upcoming(config, args.station, args.count))
        else:
            parser.print_help()
            sys.exit(1)
    except RadioError as e:
        logger.error(f"{args.subcommand} failed: {e}")
        safe_print(f"❌ {e}", style="bold red")
        sys.exit(1)


if __name__ == "__main__":
    main()
