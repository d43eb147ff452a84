#!/usr/bin/env python3
"""
dmntck CLI -- Entry point for the DMN TCK conformance runner.

Usage:
  dmntck run [--config FILE] [--workers N] [--timeout SECONDS]
             [--stop-on-failure] [--pattern REGEX] [--report FILE]
  dmntck check [--config FILE] [--pattern REGEX]

Exit status: 0 when every case succeeded, 1 when a case did not succeed or
a test-case file failed to load, 2 when the configuration is unusable.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from domain.errors import ConfigError
from kernel.config import DEFAULT_CONFIG_FILE, RunnerConfig, load_config
from kernel.console import configure, console

logger = logging.getLogger("dmntck")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2

# ---------------------------------------------------------------------------
# Configuration overrides
# ---------------------------------------------------------------------------


def apply_overrides(config: RunnerConfig, args: argparse.Namespace) -> RunnerConfig:
    """Return ``config`` with the command-line flags applied on top."""
    changes: dict[str, object] = {}
    if getattr(args, "pattern", None) is not None:
        changes["file_name_pattern"] = args.pattern
    if getattr(args, "workers", None) is not None:
        if args.workers < 1:
            msg = "--workers must be at least 1"
            raise ConfigError(msg)
        changes["workers"] = args.workers
    if getattr(args, "timeout", None) is not None:
        # 0 disables the per-case limit
        changes["timeout_seconds"] = args.timeout if args.timeout > 0 else None
    if getattr(args, "stop_on_failure", False):
        changes["stop_on_failure"] = True
    if getattr(args, "report", None) is not None:
        changes["report_file_path"] = args.report
    return dataclasses.replace(config, **changes) if changes else config


def configure_logging(config: RunnerConfig, args: argparse.Namespace) -> None:
    """Send log records to the configured log file."""
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    config.log_file_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(config.log_file_path),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        level=level,
    )


# ---------------------------------------------------------------------------
# CLI commands
# ---------------------------------------------------------------------------


def cmd_run(config: RunnerConfig) -> int:
    """Run every test case and write the report."""
    from kernel.session import run_session

    console.kv(
        {
            "Test cases": str(config.test_cases_dir_path),
            "Pattern": config.file_name_pattern or "(all)",
            "Workers": str(config.workers),
            "Timeout": f"{config.timeout_seconds:g}s" if config.timeout_seconds else "none",
            "Stop on failure": "yes" if config.stop_on_failure else "no",
        },
        title="dmntck run",
    )
    result = run_session(config)
    return EXIT_OK if result.clean else EXIT_FAILED


def cmd_check(config: RunnerConfig) -> int:
    """Load every test-case file without contacting a backend."""
    from kernel.session import check_session

    loaded = check_session(config)
    return EXIT_FAILED if loaded.errors else EXIT_OK


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dmntck",
        description="dmntck -- DMN TCK conformance runner",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_FILE,
        help=f"Runner configuration file (default: {DEFAULT_CONFIG_FILE})",
    )
    common.add_argument("--pattern", default=None, help="Regex the test-case file path must match")
    common.add_argument("--verbose", action="store_true", help="Enable debug logging")
    common.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    common.add_argument("--plain", action="store_true", help="Plain-text console output")

    sub = parser.add_subparsers(dest="command")

    # dmntck run
    run_p = sub.add_parser("run", parents=[common], help="Run the test cases against a backend")
    run_p.add_argument("--workers", type=int, default=None, help="Cases evaluated concurrently")
    run_p.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-case limit in seconds (0 disables it)",
    )
    run_p.add_argument(
        "--stop-on-failure",
        action="store_true",
        help="Stop submitting cases after the first failure",
    )
    run_p.add_argument("--report", type=Path, default=None, help="CSV report file")

    # dmntck check
    sub.add_parser("check", parents=[common], help="Load the test cases without running them")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command not in ("run", "check"):
        parser.print_help()
        sys.exit(EXIT_FAILED)

    # -- Console configuration ----------------------------------------------
    configure(backend="plain" if args.plain else "auto")

    try:
        config = apply_overrides(load_config(args.config), args)
        configure_logging(config, args)
        if args.command == "run":
            code = cmd_run(config)
        else:
            code = cmd_check(config)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        console.error(str(exc))
        sys.exit(EXIT_CONFIG)
    sys.exit(code)


if __name__ == "__main__":
    main()
