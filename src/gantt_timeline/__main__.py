from __future__ import annotations

import argparse
import datetime as dt
import logging
import sys
import webbrowser
from pathlib import Path

import yaml

from .config import DEFAULT_CONFIG, ConfigError, EngineConfig, load_config
from .engine import GanttEngine
from .parse_schedule import DataShapeError
from .store import YamlScheduleStore
from .timeline import SCALES

logger = logging.getLogger(__name__)


def _parse_date(value: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD") from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gantt-timeline",
        description="Interactive Gantt timeline engine",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("store", help="Path to the schedule YAML store")
    common.add_argument("--project", help="Project id; defaults to the store's project")
    common.add_argument("--schedule", help="Schedule (cronograma) id")
    common.add_argument("--config", help="Path to an engine config YAML")
    common.add_argument("--today", type=_parse_date, help="Override today's date (YYYY-MM-DD)")

    render = subparsers.add_parser(
        "render", parents=[common], help="Render the schedule to SVG", formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    render.add_argument("--out", default="output/gantt_timeline.svg", help="Output SVG path")
    render.add_argument("--scale", choices=SCALES, default="weeks", help="Time axis scale")
    render.add_argument("--zoom", type=float, default=1.0, help="Zoom factor")
    render.add_argument("--expand-all", action="store_true", help="Expand every level of the hierarchy")
    render.add_argument("--expand", action="append", default=[], metavar="ID", help="Expand one item (repeatable)")
    render.add_argument("--no-dependencies", dest="dependencies", action="store_false", help="Hide dependency connectors")
    render.add_argument("--view", dest="view", action="store_true", default=False, help="Open the output after rendering")

    shift = subparsers.add_parser("shift", parents=[common], help="Move an item by a number of days")
    shift.add_argument("item", help="Item id")
    shift.add_argument("days", type=int, help="Days to shift both dates by (negative moves earlier)")

    subparsers.add_parser("variance", parents=[common], help="Print slip against the frozen baseline")
    return parser


def _open_engine(args: argparse.Namespace) -> tuple[GanttEngine, YamlScheduleStore]:
    config: EngineConfig = load_config(args.config) if args.config else DEFAULT_CONFIG
    store = YamlScheduleStore(args.store)
    project_id = args.project or store.project_id
    if project_id is None:
        raise ConfigError("no --project given and the store declares no project id")
    engine = GanttEngine(store, project_id, schedule_id=args.schedule, config=config, today=args.today)
    engine.load()
    return engine, store


def _cmd_render(args: argparse.Namespace, engine: GanttEngine, store: YamlScheduleStore) -> int:
    engine.set_scale(args.scale)
    engine.set_zoom(args.zoom)
    if args.expand_all:
        engine.expand_all()
    for item_id in args.expand:
        engine.toggle_expand(item_id)
    engine.render(args.out, title=store.project_name or "", show_dependencies=args.dependencies)
    print(args.out)
    if args.view:
        try:
            webbrowser.open(Path(args.out).resolve().as_uri())
        except Exception as exc:
            logger.warning("Could not open %s: %s", args.out, exc)
    return 0


def _cmd_shift(args: argparse.Namespace, engine: GanttEngine, store: YamlScheduleStore) -> int:
    item = engine.find_item(args.item)
    if item is None:
        print(f"Error: unknown item '{args.item}'", file=sys.stderr)
        return 2
    span = item.display_span
    if span is None:
        print(f"Error: item '{args.item}' has no dates to shift", file=sys.stderr)
        return 2
    delta = dt.timedelta(days=args.days)
    if not engine.on_drag_commit(item, span.start + delta, span.end + delta):
        return 1
    moved = engine.find_item(args.item)
    if moved is not None and moved.display_span is not None:
        print(f"{moved.id}: {moved.display_span.start} - {moved.display_span.end}")
    return 0


def _cmd_variance(args: argparse.Namespace, engine: GanttEngine, store: YamlScheduleStore) -> int:
    rows = engine.variance()
    if not rows:
        print("No baseline available for this schedule")
        return 0
    for row in rows:
        print(f"{row.level.item_type:<9} {row.name:<40} start {row.start_delta_days:+d}d  end {row.end_delta_days:+d}d  {row.status}")
    return 0


_COMMANDS = {"render": _cmd_render, "shift": _cmd_shift, "variance": _cmd_variance}


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        engine, store = _open_engine(args)
    except (yaml.YAMLError, ConfigError, DataShapeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except FileNotFoundError as exc:
        print(f"Error: file not found: {exc.filename or exc}", file=sys.stderr)
        return 1
    except Exception as exc:  # Unexpected
        print(f"Unexpected error while loading schedule: {exc}", file=sys.stderr)
        return 1

    try:
        return _COMMANDS[args.command](args, engine, store)
    except Exception as exc:
        print(f"Unexpected error while running '{args.command}': {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
