"""Command-line entry point.

Usage:
    python -m whale_swap_tracker run       # poll until SIGINT/SIGTERM
    python -m whale_swap_tracker once      # run a single cycle
    python -m whale_swap_tracker init-db   # create the schema
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from typing import Literal

from pydantic import ValidationError

from whale_swap_tracker import __version__
from whale_swap_tracker.config import Settings, get_settings
from whale_swap_tracker.pipeline import Pipeline
from whale_swap_tracker.storage.database import DatabaseManager

logger = logging.getLogger("whale_swap_tracker")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="whale_swap_tracker",
        description="Poll whale swaps and deliver filtered alerts to subscribed users.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override LOG_LEVEL",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Log alerts instead of sending them",
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=["run", "once", "init-db"],
        default="run",
        help="What to do (default: run)",
    )
    return parser


def configure_logging(level: int) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # aiohttp access logs are noisy at INFO
    logging.getLogger("aiohttp").setLevel(max(level, logging.WARNING))


async def _run_forever(pipeline: Pipeline) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, pipeline.request_stop)
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl+C still raises.
            pass
    await pipeline.run()


async def _init_db(settings: Settings) -> bool:
    db = DatabaseManager(settings.database.url)
    try:
        if not await db.ping():
            return False
        await db.init_schema_async()
    finally:
        await db.dispose_async()
    return True


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    command: Literal["run", "once", "init-db"] = args.command

    try:
        settings = get_settings()
        if args.dry_run:
            settings = settings.model_copy(update={"dry_run": True})
        if args.log_level:
            settings = settings.model_copy(update={"log_level": args.log_level})
        settings.validate_requirements(command=command)
    except (ValidationError, ValueError) as e:
        logging.basicConfig(format=LOG_FORMAT)
        logger.error("Invalid configuration: %s", e)
        return 2

    configure_logging(settings.get_logging_level())
    logger.info("whale_swap_tracker %s starting: %s", __version__, command)
    logger.debug("Settings: %s", settings.redacted_summary())

    try:
        if command == "init-db":
            if not asyncio.run(_init_db(settings)):
                logger.error("Database unreachable: %s", Settings._redact_url(settings.database.url))
                return 1
        elif command == "once":
            report = asyncio.run(Pipeline(settings).run_once())
            if report is not None and report.aborted:
                logger.error("Cycle aborted: %s", report.error)
                return 1
        else:
            asyncio.run(_run_forever(Pipeline(settings)))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
