"""kernel.console._plain -- Plain-text backend.

print()-based output with no external dependencies. Used when stdout is not
a TTY or when ``--plain`` is given.
"""

from __future__ import annotations

from pathlib import PurePath
from typing import TYPE_CHECKING

from domain.models import OutcomeStatus
from modules.reporter.core import outcome_remarks

if TYPE_CHECKING:
    from domain.models import Outcome

_TAGS = {
    OutcomeStatus.SUCCESS: "[ok]",
    OutcomeStatus.FAILURE: "[FAIL]",
    OutcomeStatus.OTHER: "[other]",
}


def case_label(outcome: Outcome) -> str:
    """Return ``file.xml#id`` for an outcome, or just the id without a source."""
    if outcome.source:
        return f"{PurePath(outcome.source).name}#{outcome.case_id}"
    return outcome.case_id


class PlainBackend:
    """ConsoleProtocol implementation using only built-in print()."""

    # -- General messages ---------------------------------------------------

    def info(self, message: str) -> None:
        print(f"  {message}")

    def success(self, message: str) -> None:
        print(f"  [ok] {message}")

    def warning(self, message: str) -> None:
        print(f"  [warn] {message}")

    def error(self, message: str) -> None:
        print(f"  [error] {message}")

    # -- Structured output --------------------------------------------------

    def table(self, headers: list[str], rows: list[list[str]], *, title: str = "") -> None:
        if title:
            print(f"\n  {title}:")

        if not headers and not rows:
            return

        all_rows = [headers, *rows]
        col_widths = [
            max(len(str(row[i])) if i < len(row) else 0 for row in all_rows)
            for i in range(len(headers))
        ]

        print("  " + "  ".join(h.ljust(w) for h, w in zip(headers, col_widths, strict=True)))
        print("  " + "  ".join("-" * w for w in col_widths))

        for row in rows:
            cells = [
                str(row[i]).ljust(col_widths[i]) if i < len(row) else " " * col_widths[i]
                for i in range(len(headers))
            ]
            print("  " + "  ".join(cells))

    def kv(self, data: dict[str, str], *, title: str = "") -> None:
        if title:
            print(f"\n  {title}:")
        if not data:
            return
        max_key = max(len(k) for k in data)
        for k, v in data.items():
            print(f"  {k.rjust(max_key)}: {v}")

    # -- Run lifecycle ------------------------------------------------------

    def case_outcome(self, outcome: Outcome) -> None:
        line = f"  {_TAGS[outcome.status]} {case_label(outcome)}"
        remarks = outcome_remarks(outcome)
        if remarks:
            line += f": {remarks[:200]}"
        print(line, flush=True)

    def run_summary(self, rows: list[tuple[str, int, str]]) -> None:
        print("-----------------")
        width = max(len(label) for label, _, _ in rows)
        for label, count, percent in rows:
            print(f"  {label.rjust(width)}: {count}  ({percent})")
