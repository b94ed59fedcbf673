from __future__ import annotations

import argparse
import datetime as dt
import logging
import sys
import webbrowser
from pathlib import Path

import yaml

from .layout_models import Viewer
from .normalize import LayoutError, load_records, normalize
from .render_week import render_week
from .row_assignment import assign_rows
from .week_window import navigate, week_window

logger = logging.getLogger("week_layout")


def _week_day(value: str) -> dt.date:
    """argparse type for --date: any ISO day inside the wanted week."""

    try:
        return dt.date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{value!r} is not a YYYY-MM-DD day") from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Week calendar layout",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("records", help="Path to task records YAML")
    parser.add_argument("--out", default="output/week.svg", help="Output SVG path")
    parser.add_argument("--date", type=_week_day, help="Any day of the week to show (YYYY-MM-DD); defaults to today")
    parser.add_argument("--week-offset", type=int, default=0, help="Weeks to move from --date (negative goes back)")
    parser.add_argument("--viewer-id", help="Id of the person viewing the calendar")
    parser.add_argument("--viewer-role", help="Role of the viewer; 'Employee' restricts the view to own work")
    parser.add_argument("--title", default="", help="Chart title")
    parser.add_argument("--verbose", action="store_true", help="Log dropped records and layout details")
    parser.add_argument("--open", action="store_true", help="Open the rendered SVG in the default browser")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    records_path = Path(args.records)

    try:
        records = load_records(str(records_path))
    except (yaml.YAMLError, LayoutError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except FileNotFoundError:
        print(f"Error: records file not found: {records_path}", file=sys.stderr)
        return 1
    except Exception as exc:  # Unexpected
        print(f"Unexpected error while loading records: {exc}", file=sys.stderr)
        return 1

    viewer = Viewer(id=args.viewer_id, role=args.viewer_role)
    items = normalize(records, viewer)
    if not items:
        print("Error: no schedulable items in records", file=sys.stderr)
        return 2

    # No --date means "today", which navigate() resolves for a zero delta.
    reference = args.date if args.date is not None else navigate(args.date, 0)
    for _ in range(abs(args.week_offset)):
        reference = navigate(reference, 1 if args.week_offset > 0 else -1)
    window = week_window(reference)

    assignment = assign_rows(items)
    logger.info(
        "%d items on %d rows, week of %s", len(items), assignment.total_rows, window.days[0].isoformat()
    )

    try:
        render_week(items, assignment, window, out_path=args.out, title=args.title)
    except Exception as exc:
        print(f"Unexpected error while rendering: {exc}", file=sys.stderr)
        return 1

    if args.open and not _open_in_browser(Path(args.out)):
        logger.warning("could not open %s in a browser", args.out)

    return 0


def _open_in_browser(path: Path) -> bool:
    try:
        return webbrowser.open(path.resolve().as_uri())
    except webbrowser.Error as exc:
        logger.debug("browser error: %s", exc)
        return False


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
