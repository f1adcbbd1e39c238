#!/usr/bin/env python3
"""
insightmint_main.py — CLI entry point for InsightMint.

Sub-commands
------------
watch   Start the file-access detection engine and print every document
        it sees being opened, until Ctrl+C or ``--duration`` elapses.

probe   List reader windows that currently show a supported document,
        then exit.  Useful to check what the process source can see.

Usage
-----
    # Watch with default settings
    python -m insightmint.insightmint_main watch

    # One JSON line per detection, stop after five minutes
    python -m insightmint.insightmint_main watch --json --duration 300

    # What is open right now?
    python -m insightmint.insightmint_main probe
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from insightmint.alerts import show_file_opened, show_probe_results, show_status
from insightmint.config import PROCESS_BACKENDS, MonitorConfig
from insightmint.engine import FileAccessMonitor, MonitorError
from insightmint.events import FileOpenEvent

logger = logging.getLogger("insightmint")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def config_from_args(args: argparse.Namespace) -> MonitorConfig:
    """Build a :class:`MonitorConfig` from parsed flags."""
    kwargs = {
        "scan_interval": args.scan_interval,
        "handle_interval": args.handle_interval,
        "recent_interval": args.recent_interval,
        "max_process_age": args.max_process_age,
        "settle_delay": args.settle_delay,
        "process_backend": args.backend,
        "watch_dirs": args.watch_dirs,
    }
    if args.extensions:
        kwargs["target_extensions"] = tuple(
            e.lower() if e.startswith(".") else "." + e.lower() for e in args.extensions
        )
    return MonitorConfig(**kwargs)


# ---------------------------------------------------------------------------
# Watch sub-command
# ---------------------------------------------------------------------------

def _print_json(event: FileOpenEvent) -> None:
    print(json.dumps(event.to_dict()), flush=True)


def _log_error(error: MonitorError) -> None:
    logger.error("Monitor error: %s (%s)", error.message, error.cause)


async def _watch(config: MonitorConfig, duration: float | None, as_json: bool) -> None:
    monitor = FileAccessMonitor(config)
    monitor.on_file_opened(_print_json if as_json else show_file_opened)
    monitor.on_error(_log_error)

    await monitor.start()
    try:
        if duration:
            await asyncio.sleep(duration)
        else:
            await asyncio.Event().wait()
    finally:
        if not as_json:
            show_status(monitor.get_status())
        await monitor.stop()


def cmd_watch(args: argparse.Namespace) -> None:
    """Run the detection engine in the foreground."""
    try:
        config = config_from_args(args)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(2)

    logger.info("=== InsightMint File Monitor ===")
    logger.info("Extensions : %s", ", ".join(config.target_extensions))
    logger.info("Backend    : %s", config.process_backend)
    logger.info("Watch dirs : %s", ", ".join(config.resolved_watch_dirs()))
    logger.info("Press Ctrl+C to stop.")

    try:
        asyncio.run(_watch(config, args.duration, args.json))
    except KeyboardInterrupt:
        logger.info("Monitoring stopped by user.")


# ---------------------------------------------------------------------------
# Probe sub-command
# ---------------------------------------------------------------------------

def cmd_probe(args: argparse.Namespace) -> None:
    """List currently open documents once."""
    config = MonitorConfig(process_backend=args.backend)
    monitor = FileAccessMonitor(config)
    records = asyncio.run(monitor.probe_open_documents())
    show_probe_results(records)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    defaults = MonitorConfig()
    parser = argparse.ArgumentParser(
        prog="insightmint",
        description="InsightMint — detect PDF and Word documents as they are opened.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    # -- watch --
    watch_p = sub.add_parser("watch", help="Start the detection engine.")
    watch_p.add_argument(
        "--scan-interval",
        type=float,
        default=defaults.scan_interval,
        help="Seconds between process scans (default: %(default)s).",
    )
    watch_p.add_argument(
        "--handle-interval",
        type=float,
        default=defaults.handle_interval,
        help="Seconds between command-line scans (default: %(default)s).",
    )
    watch_p.add_argument(
        "--recent-interval",
        type=float,
        default=defaults.recent_interval,
        help="Seconds between recent-items scans (default: %(default)s).",
    )
    watch_p.add_argument(
        "--max-process-age",
        type=float,
        default=defaults.max_process_age,
        help="Seconds before a seen process may be analysed again (default: %(default)s).",
    )
    watch_p.add_argument(
        "--settle-delay",
        type=float,
        default=defaults.settle_delay,
        help="Seconds to wait after a file change before confirming (default: %(default)s).",
    )
    watch_p.add_argument(
        "--watch-dirs",
        nargs="+",
        default=None,
        help="Directories to watch (default: Documents, Desktop, Downloads, Public Documents).",
    )
    watch_p.add_argument(
        "--extensions",
        nargs="+",
        default=None,
        help="Document extensions to detect (default: .pdf .doc .docx).",
    )
    watch_p.add_argument(
        "--backend",
        choices=PROCESS_BACKENDS,
        default=defaults.process_backend,
        help="Process snapshot backend (default: %(default)s).",
    )
    watch_p.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds (default: run until Ctrl+C).",
    )
    watch_p.add_argument(
        "--json",
        action="store_true",
        help="Print one JSON object per detection instead of a banner.",
    )

    # -- probe --
    probe_p = sub.add_parser("probe", help="List documents open right now.")
    probe_p.add_argument(
        "--backend",
        choices=PROCESS_BACKENDS,
        default=defaults.process_backend,
        help="Process snapshot backend (default: %(default)s).",
    )

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> None:
    """Parse CLI args and dispatch to the appropriate sub-command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command == "watch":
        cmd_watch(args)
    elif args.command == "probe":
        cmd_probe(args)


if __name__ == "__main__":
    main()
