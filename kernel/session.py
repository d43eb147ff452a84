"""
kernel/session.py — One runner session, from configuration to report.

Wires the pieces together:
- test-case files are discovered and loaded (modules/loader)
- the backend is built from the configuration (adapters/http_backend)
  unless the caller supplies one
- cases run on the coordinator (modules/runner)
- every outcome goes to the CSV report and the console (modules/reporter)

A file that fails to load is reported and skipped; the cases of every other
file still run.
"""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from adapters.http_backend import HttpBackend
from domain.errors import ConfigError, LoaderError
from kernel.config import TEST_CASE_EXTENSION
from kernel.console import console
from modules.loader.core import discover_files, load_test_cases
from modules.reporter.core import CsvReport, summary_rows
from modules.runner.core import RunCoordinator

if TYPE_CHECKING:
    from pathlib import Path
    from types import FrameType

    from domain.models import Outcome, RunSummary, TestCase
    from domain.ports import BackendPort
    from kernel.config import RunnerConfig

logger = logging.getLogger("dmntck.session")

# Socket timeout for the HTTP backend when no per-case limit is configured
HTTP_TIMEOUT_SECONDS = 30.0


@dataclass
class LoadedCases:
    """Test cases gathered from the configured directory."""

    files: list[Path] = field(default_factory=list)
    cases: list[TestCase] = field(default_factory=list)
    errors: list[LoaderError] = field(default_factory=list)


@dataclass
class SessionResult:
    """What a finished ``run_session`` hands back to the command line."""

    summary: RunSummary
    loaded: LoadedCases
    cancelled: bool = False

    @property
    def clean(self) -> bool:
        """True when every case succeeded and every file loaded."""
        _, _, failure, other = self.summary.counts()
        return failure == 0 and other == 0 and not self.loaded.errors


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def collect_cases(config: RunnerConfig) -> LoadedCases:
    """Discover and load every test-case file named by ``config``.

    Raises:
        ConfigError: the test-case directory does not exist or the file name
            pattern is not a valid regular expression.
    """
    root = config.test_cases_dir_path
    if not root.is_dir():
        msg = f"test cases directory not found: {root}"
        raise ConfigError(msg)

    loaded = LoadedCases(files=discover_files(root, TEST_CASE_EXTENSION, config.file_name_pattern))
    for path in loaded.files:
        try:
            suite = load_test_cases(path)
        except LoaderError as exc:
            logger.warning("Skipping %s: %s", path, exc)
            loaded.errors.append(exc)
            continue
        loaded.cases.extend(suite.cases)
    logger.info(
        "Loaded %d case(s) from %d file(s), %d file(s) rejected",
        len(loaded.cases),
        len(loaded.files),
        len(loaded.errors),
    )
    return loaded


# ---------------------------------------------------------------------------
# Backend and interrupt handling
# ---------------------------------------------------------------------------


def build_backend(config: RunnerConfig) -> HttpBackend:
    """Create the HTTP backend described by ``config``."""
    if not config.deploy_url or not config.evaluate_url:
        msg = "'deploy_url' and 'evaluate_url' are required to run against a service"
        raise ConfigError(msg)
    timeout = config.timeout_seconds or HTTP_TIMEOUT_SECONDS
    return HttpBackend(config.deploy_url, config.evaluate_url, timeout=timeout)


@contextmanager
def interrupt_sets(cancel: threading.Event) -> Iterator[None]:
    """Turn Ctrl-C into ``cancel.set()`` while the block runs.

    Signal handlers can only be installed from the main thread; elsewhere the
    block runs without one.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum: int, frame: FrameType | None) -> None:
        if not cancel.is_set():
            console.warning("Interrupted, waiting for running cases to finish")
        cancel.set()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


def run_session(
    config: RunnerConfig,
    *,
    backend: BackendPort | None = None,
    cancel: threading.Event | None = None,
) -> SessionResult:
    """Load, run and report every test case named by ``config``.

    Args:
        config: Runner settings.
        backend: Backend to drive; an ``HttpBackend`` is built from the
            configured URLs when omitted.
        cancel: Stops the run once set; Ctrl-C sets it too.

    Raises:
        ConfigError: the configuration cannot drive a run.
    """
    loaded = collect_cases(config)
    for error in loaded.errors:
        console.error(str(error))

    owned = backend is None
    if backend is None:
        backend = build_backend(config)
    cancel = cancel if cancel is not None else threading.Event()

    coordinator = RunCoordinator(
        backend,
        workers=config.workers,
        timeout=config.timeout_seconds,
        stop_on_failure=config.stop_on_failure,
    )
    console.info(
        f"Running {len(loaded.cases)} case(s) from {len(loaded.files)} file(s) "
        f"with {config.workers} worker(s)"
    )

    try:
        with CsvReport.open(config.report_file_path) as report:

            def on_outcome(outcome: Outcome) -> None:
                report.record(outcome)
                console.case_outcome(outcome)

            with interrupt_sets(cancel):
                summary = coordinator.run(loaded.cases, on_outcome=on_outcome, cancel=cancel)
    finally:
        if owned and isinstance(backend, HttpBackend):
            backend.close()

    console.run_summary(summary_rows(summary))
    console.info(f"Report written to {config.report_file_path}")
    if cancel.is_set():
        console.warning("Run cancelled before all cases were executed")
    return SessionResult(summary=summary, loaded=loaded, cancelled=cancel.is_set())


def check_session(config: RunnerConfig) -> LoadedCases:
    """Load every test-case file without running anything and show the result."""
    loaded = collect_cases(config)
    counts: dict[str, int] = {}
    for case in loaded.cases:
        key = case.source or "<unknown>"
        counts[key] = counts.get(key, 0) + 1

    rows = [[str(path), str(counts.get(str(path), 0))] for path in loaded.files]
    console.table(["File", "Cases"], rows, title="Test-case files")
    for error in loaded.errors:
        console.error(str(error))
    if loaded.errors:
        console.warning(f"{len(loaded.errors)} of {len(loaded.files)} file(s) failed to load")
    else:
        console.success(f"{len(loaded.cases)} case(s) in {len(loaded.files)} file(s) loaded")
    return loaded
