"""kernel.console._rich -- Rich-based terminal backend.

Provides coloured, structured terminal output using the Rich library.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

from domain.models import OutcomeStatus
from kernel.console._plain import case_label
from modules.reporter.core import outcome_remarks

if TYPE_CHECKING:
    from domain.models import Outcome

_THEME = Theme(
    {
        "info": "blue",
        "success": "bold green",
        "warning": "bold yellow",
        "error": "bold red",
        "case.success": "green",
        "case.failure": "bold red",
        "case.other": "yellow",
        "dim": "dim",
    }
)

_CASE_STYLES = {
    OutcomeStatus.SUCCESS: ("✓", "case.success"),
    OutcomeStatus.FAILURE: ("✗", "case.failure"),
    OutcomeStatus.OTHER: ("?", "case.other"),
}

_SUMMARY_STYLES = {"Success": "case.success", "Failure": "case.failure", "Other": "case.other"}


class RichBackend:
    """ConsoleProtocol implementation backed by Rich."""

    def __init__(self, console: Console | None = None) -> None:
        self._con = console if console is not None else Console(theme=_THEME, highlight=False)

    # -- General messages ---------------------------------------------------

    def info(self, message: str) -> None:
        self._con.print(f"  {escape(message)}", style="info")

    def success(self, message: str) -> None:
        self._con.print(f"  ✓ {escape(message)}", style="success")

    def warning(self, message: str) -> None:
        self._con.print(f"  ⚠ {escape(message)}", style="warning")

    def error(self, message: str) -> None:
        self._con.print(f"  ✗ {escape(message)}", style="error")

    # -- Structured output --------------------------------------------------

    def table(self, headers: list[str], rows: list[list[str]], *, title: str = "") -> None:
        t = Table(title=title or None, box=box.SIMPLE, show_edge=False, pad_edge=True)
        for h in headers:
            t.add_column(h)
        for r in rows:
            t.add_row(*(escape(str(cell)) for cell in r))
        self._con.print(t)

    def kv(self, data: dict[str, str], *, title: str = "") -> None:
        t = Table(
            title=title or None,
            box=box.SIMPLE,
            show_header=False,
            show_edge=False,
            pad_edge=True,
        )
        t.add_column("Key", style="bold", justify="right")
        t.add_column("Value")
        for k, v in data.items():
            t.add_row(k, escape(v))
        self._con.print(t)

    # -- Run lifecycle ------------------------------------------------------

    def case_outcome(self, outcome: Outcome) -> None:
        icon, style = _CASE_STYLES[outcome.status]
        line = f"  [{style}]{icon}[/] {escape(case_label(outcome))}"
        remarks = outcome_remarks(outcome)
        if remarks:
            line += f" [dim]{escape(remarks[:200])}[/]"
        self._con.print(line)

    def run_summary(self, rows: list[tuple[str, int, str]]) -> None:
        t = Table(box=box.SIMPLE, show_header=False, show_edge=False, pad_edge=True)
        t.add_column("Result", justify="right", style="bold")
        t.add_column("Count", justify="right")
        t.add_column("Share", justify="right", style="dim")
        for label, count, percent in rows:
            style = _SUMMARY_STYLES.get(label, "")
            t.add_row(label, f"[{style}]{count}[/]" if style and count else str(count), percent)
        self._con.print(t)
