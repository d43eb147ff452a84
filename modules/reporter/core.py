"""Reporter module — turns outcomes into the CSV report and summary rows.

The CSV report has one row per case, every field quoted:

    "dir","file","test id","SUCCESS|FAILURE|OTHER","remarks"

where dir and file are the parent directory and name of the test-case file.

This module depends only on domain/ types and has zero external imports beyond stdlib.
"""

from __future__ import annotations

import csv
from pathlib import PurePath
from typing import TYPE_CHECKING, TextIO

from domain.models import OutcomeStatus

if TYPE_CHECKING:
    from pathlib import Path
    from types import TracebackType

    from domain.models import Outcome, RunSummary


def outcome_remarks(outcome: Outcome) -> str:
    """Return the remarks column for an outcome; empty for a plain success."""
    if outcome.status is OutcomeStatus.SUCCESS:
        return ""
    if outcome.detail:
        return outcome.detail
    if outcome.error is not None:
        return outcome.error.value
    return ""


def outcome_row(outcome: Outcome) -> tuple[str, str, str, str, str]:
    """Build the CSV row for one outcome."""
    if outcome.source:
        path = PurePath(outcome.source)
        directory, name = str(path.parent), path.name
    else:
        directory, name = "", ""
    return (directory, name, outcome.case_id, outcome.status.value, outcome_remarks(outcome))


def summary_rows(summary: RunSummary) -> list[tuple[str, int, str]]:
    """Return ``(label, count, percentage)`` rows for Total, Success, Failure and Other.

    Percentages are relative to Total, with one decimal place.
    """
    total, success, failure, other = summary.counts()

    def percent(count: int) -> str:
        return f"{count / total * 100:.1f}%" if total else "-"

    return [
        ("Total", total, percent(total)),
        ("Success", success, percent(success)),
        ("Failure", failure, percent(failure)),
        ("Other", other, percent(other)),
    ]


class CsvReport:
    """OutcomeSinkPort writing one quoted CSV row per outcome.

    Wraps an open text stream. Use ``CsvReport.open(path)`` to have the
    report own the file; it is closed by ``close()`` or on leaving a
    ``with`` block.
    """

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._writer = csv.writer(stream, quoting=csv.QUOTE_ALL, lineterminator="\n")
        self._owned = False
        self.rows_written = 0

    @classmethod
    def open(cls, path: Path) -> CsvReport:
        """Create (or truncate) the report file at ``path``."""
        path.parent.mkdir(parents=True, exist_ok=True)
        report = cls(path.open("w", encoding="utf-8", newline=""))
        report._owned = True
        return report

    def record(self, outcome: Outcome) -> None:
        """Append the row for ``outcome``."""
        self._writer.writerow(outcome_row(outcome))
        self.rows_written += 1

    def close(self) -> None:
        """Flush, and close the stream if this report opened it."""
        self._stream.flush()
        if self._owned:
            self._stream.close()

    def __enter__(self) -> CsvReport:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
