"""Core data types for the TCK runner.

All types except RunSummary are frozen dataclasses with complete type
annotations. RunSummary is the single mutable accumulator of a run and
guards its counters with a lock.

This module has ZERO imports from outside the Python standard library.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum

from domain.errors import InvocationErrorKind
from domain.values import Value


class ArtifactKind(Enum):
    """Kind of decision artifact a test case evaluates."""

    DECISION = "decision"
    BUSINESS_KNOWLEDGE_MODEL = "bkm"
    DECISION_SERVICE = "decisionService"


class OutcomeStatus(Enum):
    """Classification of a completed test case."""

    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    OTHER = "OTHER"


# ---------------------------------------------------------------------------
# Test case types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModelHandle:
    """Opaque reference to a decision model, stable across invocations.

    ``name`` is the model file name and doubles as the deployment tag.
    """

    name: str
    path: str | None = None
    namespace: str | None = None


@dataclass(frozen=True)
class InputBinding:
    """A named input value supplied to the model."""

    name: str
    value: Value


@dataclass(frozen=True)
class ExpectedOutput:
    """Expected value of a decision or result node."""

    name: str
    value: Value
    artifact: str | None = None
    error_result: bool = False


@dataclass(frozen=True)
class EvaluationTarget:
    """A decision artifact the backend is asked to evaluate."""

    name: str
    artifact: str = ArtifactKind.DECISION.value
    invocable_name: str | None = None


@dataclass(frozen=True)
class TestCase:
    """A single test case: model, inputs, and expected outputs."""

    __test__ = False

    case_id: str
    model: ModelHandle
    inputs: tuple[InputBinding, ...] = ()
    expected: tuple[ExpectedOutput, ...] = ()
    expects_failure: bool = False
    name: str | None = None
    description: str | None = None
    kind: ArtifactKind = ArtifactKind.DECISION
    invocable_name: str | None = None
    labels: tuple[str, ...] = ()
    source: str | None = None

    def input_mapping(self) -> dict[str, Value]:
        """Return the input bindings as a name → value dict."""
        return {binding.name: binding.value for binding in self.inputs}

    def targets(self) -> tuple[EvaluationTarget, ...]:
        """Return one evaluation target per expected output, in order."""
        return tuple(
            EvaluationTarget(
                name=output.name,
                artifact=output.artifact or self.kind.value,
                invocable_name=self.invocable_name,
            )
            for output in self.expected
        )


@dataclass(frozen=True)
class TestSuite:
    """All test cases loaded from one test-case file."""

    __test__ = False

    model_name: str | None
    labels: tuple[str, ...]
    cases: tuple[TestCase, ...]
    source: str | None = None


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Mismatch:
    """One expected output whose actual value did not compare equal."""

    output: str
    reason: str


@dataclass(frozen=True)
class Outcome:
    """Result of running a single test case."""

    case_id: str
    status: OutcomeStatus
    mismatches: tuple[Mismatch, ...] = ()
    error: InvocationErrorKind | None = None
    detail: str = ""
    source: str | None = None
    elapsed: float = 0.0

    @property
    def passed(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS


@dataclass(eq=False)
class RunSummary:
    """Aggregate counters for a run.

    Updated through ``record`` from any thread. Counters only ever grow, so
    the final values do not depend on the order outcomes arrive in.
    """

    total: int = 0
    success: int = 0
    failure: int = 0
    other: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record(self, outcome: Outcome) -> None:
        """Count one finished case."""
        with self._lock:
            self.total += 1
            if outcome.status is OutcomeStatus.SUCCESS:
                self.success += 1
            elif outcome.status is OutcomeStatus.FAILURE:
                self.failure += 1
            else:
                self.other += 1

    def merge(self, other: RunSummary) -> None:
        """Add the counters of a partial summary into this one."""
        total, success, failure, other_count = other.counts()
        with self._lock:
            self.total += total
            self.success += success
            self.failure += failure
            self.other += other_count

    def counts(self) -> tuple[int, int, int, int]:
        """Return ``(total, success, failure, other)`` as one consistent snapshot."""
        with self._lock:
            return (self.total, self.success, self.failure, self.other)

    def is_consistent(self) -> bool:
        total, success, failure, other = self.counts()
        return total == success + failure + other

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RunSummary):
            return NotImplemented
        return self.counts() == other.counts()

    __hash__ = None  # type: ignore[assignment]
