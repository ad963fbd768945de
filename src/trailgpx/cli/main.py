from __future__ import annotations

import argparse
import logging
import os
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from trailgpx.codec import encode, parse_path
from trailgpx.config import (
    AppConfig,
    load_app_config,
    resolve_config_path,
    save_app_config,
)
from trailgpx.errors import GPXError
from trailgpx.model import Document

logger = logging.getLogger(__name__)

_DEBUG_VALUES = {"1", "true", "yes", "on"}


def _parse_log_level(value: str | None) -> int | None:
    if not value:
        return None
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else None


def configure_logging() -> None:
    level = _parse_log_level(os.getenv("TRAILGPX_LOG_LEVEL"))
    if level is None:
        debug = os.getenv("TRAILGPX_DEBUG", "").lower() in _DEBUG_VALUES
        level = logging.DEBUG if debug else logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


def _format_meters(value: float) -> str:
    if value >= 1000:
        return f"{value / 1000:.2f} km"
    return f"{value:.1f} m"


def _format_extremes(extremes: tuple[float, float] | None) -> str:
    if extremes is None:
        return "-"
    return f"{extremes[0]:.1f} / {extremes[1]:.1f} m"


def _label(kind: str, index: int, name: str | None) -> str:
    return f"{kind} {index}: {escape(name)}" if name else f"{kind} {index}"


def _load(path: Path) -> Document:
    try:
        return parse_path(path)
    except GPXError as exc:
        raise SystemExit(f"Failed to load {path}: {exc}") from None


def build_summary_table(document: Document, config: AppConfig) -> Table:
    haversine = config.force_haversine
    smooth = config.smooth_elevation

    table = Table(title="GPX summary")
    table.add_column("Item")
    table.add_column("Points", justify="right")
    table.add_column("2D length", justify="right")
    table.add_column("3D length", justify="right")
    table.add_column("Min / max elevation", justify="right")
    table.add_column("Uphill / downhill", justify="right")

    def add_row(label: str, item, points: int) -> None:
        uphill, downhill = item.uphill_downhill(smooth)
        table.add_row(
            label,
            str(points),
            _format_meters(item.length_2d(haversine)),
            _format_meters(item.length_3d(haversine)),
            _format_extremes(item.elevation_extremes()),
            f"{uphill:.1f} / {downhill:.1f} m",
        )

    for idx, track in enumerate(document.tracks, start=1):
        points = sum(len(segment.points) for segment in track.segments)
        add_row(_label("Track", idx, track.name), track, points)
    for idx, route in enumerate(document.routes, start=1):
        add_row(_label("Route", idx, route.name), route, len(route.points))

    total_points = sum(
        len(segment.points) for track in document.tracks for segment in track.segments
    )
    add_row("All tracks", document, total_points)
    return table


def handle_info(args: argparse.Namespace) -> None:
    config = load_app_config(args.config_path)
    document = _load(args.gpx)
    console = Console()

    metadata = document.metadata
    if metadata is not None and metadata.name:
        console.print(f"[bold]{escape(metadata.name)}[/bold]")
    console.print(
        f"GPX {escape(document.version)} by {escape(document.creator)}: "
        f"{len(document.waypoints)} waypoints, {len(document.routes)} routes, "
        f"{len(document.tracks)} tracks"
    )

    bounds = document.bounds()
    if bounds.is_empty:
        console.print("Bounds: -")
    else:
        console.print(f"Bounds: {bounds}")

    console.print(build_summary_table(document, config))


def handle_strip(args: argparse.Namespace) -> None:
    if not (args.time or args.elevation):
        raise SystemExit("Nothing to strip: pass --time and/or --elevation.")

    document = _load(args.gpx)
    for item in [*document.tracks, *document.routes]:
        if args.time:
            item.remove_time()
        if args.elevation:
            item.remove_elevation()

    try:
        content = encode(document)
    except GPXError as exc:
        raise SystemExit(f"Failed to write {args.out}: {exc}") from None

    args.out.parent.mkdir(parents=True, exist_ok=True)
    args.out.write_bytes(content)
    logger.info("Wrote %s", args.out)


def handle_configure(args: argparse.Namespace) -> None:
    config_path = resolve_config_path(args.config_path)
    current = load_app_config(config_path, include_env=False)

    updates: dict[str, object] = {}
    if args.force_haversine is not None:
        updates["force_haversine"] = args.force_haversine
    if args.smooth_elevation is not None:
        updates["smooth_elevation"] = args.smooth_elevation
    if not updates:
        raise SystemExit("No configuration values provided.")

    updated = replace(current, **updates)
    path = save_app_config(updated, config_path)
    print(f"Saved config to {path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trailgpx",
        description="Inspect and rewrite GPX files.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    info = sub.add_parser("info", help="Summarize tracks and routes of a GPX file.")
    info.add_argument("gpx", type=Path, help="Path to a GPX file.")
    info.add_argument(
        "--config-path",
        type=Path,
        default=None,
        help="Optional config file path override.",
    )

    strip = sub.add_parser(
        "strip", help="Remove timestamps and/or elevations from tracks and routes."
    )
    strip.add_argument("gpx", type=Path, help="Path to a GPX file.")
    strip.add_argument("--out", required=True, type=Path, help="Output GPX path.")
    strip.add_argument(
        "--time", action="store_true", default=False, help="Remove timestamps."
    )
    strip.add_argument(
        "--elevation", action="store_true", default=False, help="Reset elevations."
    )

    configure = sub.add_parser(
        "configure", help="Configure default settings (stored on disk)."
    )
    configure.add_argument(
        "--config-path",
        type=Path,
        default=None,
        help="Optional config file path override.",
    )
    configure.add_argument(
        "--force-haversine",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Always use the haversine formula for lengths.",
    )
    configure.add_argument(
        "--smooth-elevation",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Smooth elevations before computing uphill/downhill.",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "info":
        handle_info(args)
    elif args.command == "strip":
        handle_strip(args)
    elif args.command == "configure":
        handle_configure(args)


if __name__ == "__main__":
    main()
