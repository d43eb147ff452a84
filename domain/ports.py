"""Port interfaces for the TCK runner.

All ports are defined as typing.Protocol — structural subtyping means any class
with matching method signatures satisfies the Protocol without inheritance.

This module has ZERO external imports — only stdlib and typing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping

    from domain.models import EvaluationTarget, ModelHandle, Outcome
    from domain.values import Value


class BackendPort(Protocol):
    """The decision-evaluation engine under test.

    This is the only seam between the runner and an engine. In-process and
    remote engines plug in here without touching the run coordinator.
    """

    def invoke(
        self,
        model: ModelHandle,
        inputs: Mapping[str, Value],
        *,
        targets: tuple[EvaluationTarget, ...] = (),
    ) -> Mapping[str, Value]:
        """Evaluate ``model`` with ``inputs``.

        Returns a mapping from each requested decision or result node name to
        its computed value. When ``targets`` is empty the backend returns
        every output it computes.

        Raises:
            InvocationError: ModelLoadFailure, EvaluationFailure,
                UnsupportedFeature or InvocationTimeout.
        """
        ...


class OutcomeSinkPort(Protocol):
    """Consumer of per-case outcomes (reports, consoles)."""

    def record(self, outcome: Outcome) -> None:
        """Receive one finished outcome."""
        ...
