"""
AVONLEA Command Line

Usage:
    avonlea moon [--date 2024-05-20T22:00] [--config avonlea.yaml]
    avonlea run [--config avonlea.yaml] [--duration 60]
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime
from typing import Optional, Sequence

from avonlea.config import AvonleaConfig, load_config
from avonlea.exceptions import AvonleaError
from avonlea.installation import Installation, Frame
from avonlea.logging_config import get_logger, setup_logging
from services.ephemeris.moon_calculator import CalendarTime
from services.weather.sources import create_condition_source

logger = get_logger("cli")


class ConsoleSurface:
    """Logs a frame whenever what it would show changes."""

    def __init__(self):
        self._last = None

    def draw(self, frame: Frame) -> None:
        key = (frame.moon.x, frame.moon.y, frame.moon.visible, frame.weather, frame.overlay_text)
        if key == self._last:
            return
        self._last = key
        if frame.moon.visible:
            where = f"at ({frame.moon.x:.1f}, {frame.moon.y:.1f})"
        else:
            where = "out of view"
        label = f" [{frame.overlay_text}]" if frame.overlay_text else ""
        logger.info(f"Frame: moon {where}, weather {frame.weather.value}{label}")


def _parse_date(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid ISO date/time: {value}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="avonlea",
        description="Moon and weather engine for the Avonlea installation",
    )
    parser.add_argument("--config", help="Path to config YAML")
    parser.add_argument("--log-level", help="Override the configured log level")
    sub = parser.add_subparsers(dest="command", required=True)

    moon = sub.add_parser("moon", help="Print the Moon state for a local date/time")
    moon.add_argument(
        "--date", type=_parse_date,
        help="Local wall-clock time, ISO format (default: configured start time)",
    )
    moon.add_argument("--shape", action="store_true", help="Also print the phase silhouette")

    run = sub.add_parser("run", help="Run the installation headless")
    run.add_argument(
        "--duration", type=float, default=None,
        help="Stop after this many seconds (default: run until interrupted)",
    )
    return parser


def _moon_command(config: AvonleaConfig, args: argparse.Namespace) -> int:
    installation = Installation(config, create_condition_source(config.weather))
    if args.date is not None:
        when = CalendarTime.from_datetime(args.date, config.site.utc_offset_hours)
        state = installation.set_time(
            year=when.year, month=when.month, day=when.day,
            hour=when.hour, minute=when.minute, second=when.second,
        )
    else:
        state = installation.update_moon_data()

    print(json.dumps(state.to_dict(), indent=2))
    if args.shape:
        print("\n".join(state.shape.to_rows()))
    return 0


async def _run_command(config: AvonleaConfig, args: argparse.Namespace) -> int:
    installation = Installation(
        config,
        create_condition_source(config.weather),
        surface=ConsoleSurface(),
    )
    await installation.start()
    try:
        if args.duration is None:
            while installation.is_running:
                await asyncio.sleep(3600)
        else:
            await asyncio.sleep(args.duration)
    finally:
        await installation.shutdown()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except AvonleaError as e:
        setup_logging(stream=sys.stderr)
        logger.error(str(e))
        return 2

    setup_logging(log_level=args.log_level or config.log_level, stream=sys.stderr)

    try:
        if args.command == "moon":
            return _moon_command(config, args)
        return asyncio.run(_run_command(config, args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except AvonleaError as e:
        logger.error(str(e))
        return 1
