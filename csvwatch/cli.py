"""Command line entrypoint for csvwatch."""
from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Callable, List, Optional

from .config import Config, load_config
from .errors import ConfigError
from .logsetup import configure_logging
from .sinks import JsonLinesRowHandler, PrintRowHandler
from .supervisor import Supervisor, Watch, install_failure_hook
from .version import __version__
from .watch import AppendWatch, LatestFileWatch, RowHandler

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="csvwatch",
        description="Follow CSV files by polling and print every delivered row.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-a",
        dest="append",
        metavar="FILE",
        help="tail one CSV file and emit each newly appended row",
    )
    parser.add_argument(
        "-n",
        dest="newest",
        nargs=2,
        metavar=("DIR", "PREFIX"),
        help="re-read the newest PREFIX*.csv in DIR in full whenever it changes",
    )
    parser.add_argument("--interval", type=int, help="poll interval in whole seconds (config default 5)")
    parser.add_argument("--config", type=Path, help="path to config.json (default ./config.json)")
    parser.add_argument("--format", choices=("text", "json"), default="text", help="row output format")
    parser.add_argument(
        "--keep-header",
        action="store_true",
        help="with -a, deliver the first line as data instead of skipping it",
    )
    return parser


def build_watch(
    args: argparse.Namespace,
    config: Config,
    on_row: RowHandler,
    sleep: Callable[[float], None],
) -> Watch:
    if args.append is not None:
        return AppendWatch(
            args.append, on_row, config.interval, skip_header=config.skip_header, sleep=sleep
        )
    directory, prefix = args.newest
    return LatestFileWatch(directory, prefix, on_row, config.interval, sleep=sleep)


def _install_signal_handlers(supervisor: Supervisor) -> None:
    def _on_signal(signum: int, frame: object) -> None:
        logger.warning("caught signal %d", signum)
        supervisor.stop()

    for name in ("SIGINT", "SIGTERM"):
        signum = getattr(signal, name, None)
        if signum is not None:
            signal.signal(signum, _on_signal)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    if (args.append is None) == (args.newest is None):
        parser.error("exactly one of -a FILE or -n DIR PREFIX is required")
    if args.keep_header and args.newest is not None:
        parser.error("--keep-header only applies to -a")
    try:
        config = load_config(args.config).with_overrides(
            interval=args.interval,
            skip_header=False if args.keep_header else None,
        )
    except ConfigError as exc:
        parser.error(str(exc))

    configure_logging(config)
    on_row: RowHandler = JsonLinesRowHandler() if args.format == "json" else PrintRowHandler()
    supervisor = Supervisor(config)
    try:
        watch = build_watch(args, config, on_row, supervisor.sleep)
    except ConfigError as exc:
        logger.error("invalid watch arguments: %s", exc)
        return 1
    supervisor.add("append" if args.append is not None else "newest", watch)

    install_failure_hook()
    _install_signal_handlers(supervisor)
    logger.info("%s %s starting (log file %s)", config.app_name, __version__, config.log_file())
    supervisor.start()
    supervisor.wait()
    logger.info("%s exiting", config.app_name)
    return 0


if __name__ == "__main__":  # pragma: no cover - manual execution
    sys.exit(main())
