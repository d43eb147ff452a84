"""kernel.console._protocol -- ConsoleProtocol definition.

Pure standard-library typing.Protocol for the runner's terminal output.
No external dependencies allowed in this file.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from domain.models import Outcome


class ConsoleProtocol(Protocol):
    """Runner terminal output protocol.

    Three layers of methods:

    **General messages** -- usable from any module::

        console.info("Found 42 files")
        console.success("All cases loaded")
        console.warning("Run stopped early")
        console.error("Configuration invalid")

    **Structured output** -- tables and key-value displays::

        console.table(["File", "Cases"], [["a.xml", "3"]], title="Files")
        console.kv({"Workers": "4", "Timeout": "60s"})

    **Run lifecycle** -- used by kernel/session.py::

        console.case_outcome(outcome)
        console.run_summary([("Total", 3, "100.0%"), ...])
    """

    # -- General messages ---------------------------------------------------

    def info(self, message: str) -> None:
        """Informational message."""
        ...

    def success(self, message: str) -> None:
        """Success / positive-outcome message."""
        ...

    def warning(self, message: str) -> None:
        """Warning message."""
        ...

    def error(self, message: str) -> None:
        """Error message."""
        ...

    # -- Structured output --------------------------------------------------

    def table(self, headers: list[str], rows: list[list[str]], *, title: str = "") -> None:
        """Display a table with *headers* and *rows*."""
        ...

    def kv(self, data: dict[str, str], *, title: str = "") -> None:
        """Display key-value pairs."""
        ...

    # -- Run lifecycle ------------------------------------------------------

    def case_outcome(self, outcome: Outcome) -> None:
        """Display one finished test case."""
        ...

    def run_summary(self, rows: list[tuple[str, int, str]]) -> None:
        """Display the Total / Success / Failure / Other block."""
        ...
