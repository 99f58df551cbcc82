"""
Main entry point for the PageWatch monitor.

Runs the refresh scheduler as a daemon, or a single refresh cycle with
``--once``. Resources are managed with ``--add URL``/``--remove ID`` or via
the HTTP API (see run_api.py).
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

import structlog
from utilities.logger import setup_logging
from utilities.config import config
from scheduler.scheduler_service import MonitorService
from watcher.exceptions import WatcherError


def positive_minutes(value: str) -> int:
    """argparse type for whole minutes, at least 1."""
    try:
        minutes = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not a whole number of minutes")
    if minutes < 1:
        raise argparse.ArgumentTypeError("interval must be at least 1 minute")
    return minutes


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Watch web pages for visible changes.")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--once", action="store_true", help="run a single refresh cycle and exit")
    group.add_argument("--add", metavar="URL", help="start tracking URL and exit")
    group.add_argument("--remove", metavar="ID", help="stop tracking the resource with ID and exit")
    group.add_argument("--list", action="store_true", help="list tracked resources and exit")
    parser.add_argument("--interval", type=positive_minutes, metavar="MINUTES", help="override the refresh interval")
    return parser.parse_args(argv)


async def run_daemon(service: MonitorService) -> None:
    """Run until SIGINT/SIGTERM."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass

    await service.start()
    await stop_event.wait()
    await service.stop()


async def main(argv=None) -> int:
    """Main function to run the monitor."""
    args = parse_args(argv)

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger = structlog.get_logger(__name__)

    service = MonitorService(config)
    if args.interval is not None:
        service.set_refresh_interval(args.interval)

    try:
        if args.add:
            service.tracker.load()
            record = service.add_resource(args.add)
            logger.info("Resource added", record_id=record.id, url=str(record.url))
        elif args.remove:
            service.tracker.load()
            record = service.remove_resource(args.remove)
            logger.info("Resource removed", record_id=record.id, url=str(record.url))
        elif args.list:
            service.tracker.load()
            for record in service.list_resources():
                marker = "*" if record.has_unacknowledged_change else " "
                print(f"{marker} {record.id}  {record.url}")
        elif args.once:
            result = await service.run_once()
            await service.notifier.drain()
            logger.info(
                "Refresh completed",
                resources_checked=result.resources_checked,
                any_change=result.any_change,
                errors=len(result.errors)
            )
        else:
            logger.info("Running in DAEMON MODE", interval_minutes=service.refresh_scheduler.interval_minutes)
            await run_daemon(service)
    except WatcherError as e:
        logger.error("Operation failed", error=str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
