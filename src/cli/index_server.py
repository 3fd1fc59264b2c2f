# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Command line entry point for serving and inspecting a wheel directory."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import TextIO

import uvicorn
from rich.console import Console
from rich.logging import RichHandler
from rich.style import Style
from rich.table import Table

from wheelhouse.api import create_app
from wheelhouse.config import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_REBUILD_INTERVAL_SECONDS,
    ConfigError,
    ServerConfig,
)
from wheelhouse.index import IndexSnapshot, IndexStore
from wheelhouse.rebuild import RebuildOrchestrator, RebuildReport
from wheelhouse.scanner import ArtifactScanner
from wheelhouse.triggers import PeriodicTrigger, TriggerEvent, TriggerQueue

logger = logging.getLogger(__name__)

WORKER_SHUTDOWN_TIMEOUT_SECONDS: float = 10.0


def configure_logging(level: int = logging.INFO) -> None:
    """Configure application logging with Rich handler.

    Args:
        level: Logging severity threshold.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser instance.
    """
    parser = argparse.ArgumentParser(prog="wheelhouse")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve")
    serve_parser.add_argument("package_dir", help="Directory holding wheel files.")
    serve_parser.add_argument("--host", default=DEFAULT_HOST, help="Bind address.")
    serve_parser.add_argument(
        "--port", type=int, default=DEFAULT_PORT, help="Listening port."
    )
    serve_parser.add_argument(
        "--interval",
        type=float,
        default=DEFAULT_REBUILD_INTERVAL_SECONDS,
        help="Seconds between two periodic rebuilds.",
    )

    scan_parser = subparsers.add_parser("scan")
    scan_parser.add_argument("package_dir", help="Directory holding wheel files.")
    scan_parser.add_argument(
        "--format",
        choices=("table", "json"),
        default="table",
        help="Output format.",
    )
    return parser


def run(argv: list[str], stdout: TextIO, stderr: TextIO) -> int:
    """Run CLI command.

    Args:
        argv: CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit:
        logger.warning(f"Argument parsing failed (argv={argv})")
        return 2
    if args.command == "serve":
        return _run_serve(args=args, stderr=stderr)
    if args.command == "scan":
        return _run_scan(args=args, stdout=stdout, stderr=stderr)

    logger.warning(f"Unsupported command (command={args.command})")
    stderr.write(f"Unsupported command: {args.command}\n")
    return 2


def _run_serve(args: argparse.Namespace, stderr: TextIO) -> int:
    """Run serve command until the HTTP server exits.

    Args:
        args: Parsed CLI arguments.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    try:
        config = ServerConfig(
            package_dir=Path(args.package_dir).absolute(),
            host=args.host,
            port=args.port,
            rebuild_interval_seconds=args.interval,
        ).validate()
    except ConfigError as exc:
        logger.warning(f"Invalid server configuration (error={exc})")
        stderr.write(f"Invalid configuration: {exc}\n")
        return 2
    if not config.package_dir.is_dir():
        # Not fatal: each rebuild retries and keeps the previous index.
        logger.warning(f"Package directory is not readable yet (path={config.package_dir})")

    serve(config)
    return 0


def serve(config: ServerConfig) -> None:
    """Run the rebuild worker, the timer and the HTTP server.

    Args:
        config: Validated server configuration.
    """
    store = IndexStore()
    triggers = TriggerQueue()
    orchestrator = RebuildOrchestrator(
        base_dir=config.package_dir,
        store=store,
        triggers=triggers,
        scanner=ArtifactScanner(extension=config.extension),
    )
    timer = PeriodicTrigger(triggers, config.rebuild_interval_seconds)
    orchestrator.start()
    timer.start()
    logger.info(
        f"Serving simple index (package_dir={config.package_dir} host={config.host} "
        f"port={config.port} interval={config.rebuild_interval_seconds})"
    )
    try:
        uvicorn.run(
            create_app(store, triggers),
            host=config.host,
            port=config.port,
            log_config=None,
        )
    finally:
        timer.stop()
        triggers.close()
        if not orchestrator.join(WORKER_SHUTDOWN_TIMEOUT_SECONDS):
            logger.warning("Rebuild worker still running at shutdown")


def _run_scan(args: argparse.Namespace, stdout: TextIO, stderr: TextIO) -> int:
    """Run one rebuild cycle and print the resulting index.

    Args:
        args: Parsed CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    package_dir = Path(args.package_dir).absolute()
    store = IndexStore()
    orchestrator = RebuildOrchestrator(
        base_dir=package_dir, store=store, triggers=TriggerQueue()
    )
    report = orchestrator.run_cycle(TriggerEvent(source="cli"))
    if report.status == "aborted":
        stderr.write(f"Package directory is not readable: {package_dir}\n")
        return 2

    _write_failures(report=report, stderr=stderr)
    snapshot = store.snapshot()
    if args.format == "json":
        _write_json(snapshot=snapshot, report=report, stdout=stdout)
    else:
        _write_table(snapshot=snapshot, package_dir=package_dir, stdout=stdout)
    return 0


def _write_failures(report: RebuildReport, stderr: TextIO) -> None:
    for failure in report.failures:
        stderr.write(f"artifact_error: {failure.kind} {failure.path}: {failure.message}\n")


def _write_json(snapshot: IndexSnapshot, report: RebuildReport, stdout: TextIO) -> None:
    """Write the index and cycle summary in JSON format.

    Args:
        snapshot: Published snapshot.
        report: Cycle summary.
        stdout: Standard output stream.
    """
    payload = {
        "generation": snapshot.generation,
        "status": report.status,
        "projects": [
            {
                "normalized_name": normalized_name,
                "canonical_name": canonical_name,
                "files": [str(path) for path in snapshot.projects[canonical_name].files],
            }
            for normalized_name, canonical_name in snapshot.list_projects()
        ],
        "failures": [
            {"path": str(failure.path), "kind": failure.kind, "message": failure.message}
            for failure in report.failures
        ],
        "skipped_count": report.skipped_count,
    }
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    console.print(
        json.dumps(payload, indent=2, sort_keys=True),
        markup=False,
        highlight=False,
        soft_wrap=True,
    )


def _write_table(snapshot: IndexSnapshot, package_dir: Path, stdout: TextIO) -> None:
    """Write the index as a table.

    Args:
        snapshot: Published snapshot.
        package_dir: Scanned directory.
        stdout: Standard output stream.
    """
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    console.rule(f"{package_dir}", style=Style(color="cyan"), characters="-")
    table = Table(show_header=True, show_lines=True, expand=True)
    table.add_column("normalized_name", ratio=2, overflow="fold")
    table.add_column("canonical_name", ratio=2, overflow="fold")
    table.add_column("files", ratio=5, overflow="fold")
    for normalized_name, canonical_name in snapshot.list_projects():
        table.add_row(
            normalized_name,
            canonical_name,
            "\n".join(snapshot.list_files(normalized_name)),
        )
    console.print(table)


def main() -> None:
    """Run the CLI application and exit."""
    configure_logging()
    exit_code = run(sys.argv[1:], stdout=sys.stdout, stderr=sys.stderr)
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
