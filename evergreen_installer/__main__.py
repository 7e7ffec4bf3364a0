"""
Entry point for the evergreen installer.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from .application.exceptions import InstallerError
from .infrastructure.containers import Container

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(level: str, log_file: Optional[Path] = None):
    """Applies logging configuration, optionally also writing to a file."""
    handlers = [logging.StreamHandler()]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=level.upper(), format=_LOG_FORMAT, handlers=handlers, force=True
    )


async def run_application(args: argparse.Namespace) -> int:
    """Wires and runs the application using the DI container.

    Returns:
        The process exit code: 0 once the run completed, whatever the
        individual task outcomes; 1 if the run itself could not proceed.
    """

    container = Container()
    container.cli_args.from_dict(vars(args))

    try:
        config = container.config()
    except InstallerError as e:
        setup_logging(level=args.log_level or "INFO")
        logger.error(f"An application error occurred: {e}")
        return 1

    setup_logging(
        level=args.log_level or config.logging.level,
        log_file=config.logging.file,
    )

    try:
        provisioning_service = container.provisioning_service()
        await provisioning_service.run(only=args.tasks)
    except InstallerError as e:
        logger.error(f"An application error occurred: {e}")
        return 1
    finally:
        await container.http_client().aclose()

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="evergreen-installer",
        description="Download, verify and silently install vendor installers.",
    )

    parser.add_argument(
        "--tasks",
        nargs="+",
        metavar="NAME",
        help="Only run the named install tasks (default: all configured tasks).",
    )

    parser.add_argument(
        "--verify-only",
        action="store_true",
        help="Download and verify the installers without running them.",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the configured logging level.",
    )

    return parser


def main(argv=None):
    cli_args = build_parser().parse_args(argv)
    sys.exit(asyncio.run(run_application(cli_args)))


if __name__ == "__main__":
    main()
