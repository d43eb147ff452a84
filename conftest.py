"""Shared pytest fixtures and test factories for the TCK runner.

Provides:
- Fake port implementations (BackendPort, OutcomeSinkPort)
- Factory functions for test cases and outcomes with sensible defaults
- Pytest fixtures wrapping the most commonly used factories
- A small on-disk TCK directory and an in-process engine that answers it
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any

import pytest

from adapters.in_process import CallableBackend
from domain.models import (
    ExpectedOutput,
    InputBinding,
    ModelHandle,
    Outcome,
    OutcomeStatus,
    TestCase,
)
from domain.values import Value, ValueKind

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from pathlib import Path

    from domain.models import EvaluationTarget


# ── Fake Port Implementations ─────────────────────────────────────────────


class FakeBackend:
    """Fake BackendPort with configurable results.

    ``results`` maps a case's first input value (the key) to the outputs it
    returns, so one backend can answer many cases differently. Pass
    ``outputs`` to answer every call the same way, or ``raise_exc`` to
    simulate a failing engine. Tracks calls via ``calls``.
    """

    def __init__(
        self,
        outputs: Mapping[str, Any] | None = None,
        *,
        results: Mapping[str, Mapping[str, Any]] | None = None,
        raise_exc: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self._outputs = outputs
        self._results = results or {}
        self._raise_exc = raise_exc
        self._delay = delay
        self._lock = threading.Lock()
        self.calls: list[tuple[ModelHandle, dict[str, Value], tuple[EvaluationTarget, ...]]] = []

    def invoke(
        self,
        model: ModelHandle,
        inputs: Mapping[str, Value],
        *,
        targets: tuple[EvaluationTarget, ...] = (),
    ) -> Mapping[str, Value]:
        """Record the call and return the configured outputs or raise."""
        with self._lock:
            self.calls.append((model, dict(inputs), targets))
        if self._delay:
            threading.Event().wait(self._delay)
        if self._raise_exc is not None:
            raise self._raise_exc
        if self._outputs is not None:
            return {name: Value.of(value) for name, value in self._outputs.items()}
        first = next(iter(inputs.values()), Value.null())
        key = first.as_string() if first.kind is ValueKind.STRING else str(first)
        outputs = self._results.get(key, {})
        return {name: Value.of(value) for name, value in outputs.items()}


class RecordingSink:
    """OutcomeSinkPort that keeps every outcome it receives."""

    def __init__(self) -> None:
        self.outcomes: list[Outcome] = []

    def record(self, outcome: Outcome) -> None:
        """Append the outcome."""
        self.outcomes.append(outcome)


# ── Domain Model Factories ───────────────────────────────────────────────


def make_case(
    case_id: str = "001",
    inputs: Mapping[str, Any] | None = None,
    expected: Mapping[str, Any] | None = None,
    *,
    model: str = "0001-input-data-string.dmn",
    expects_failure: bool = False,
    source: str | None = "tck/0001/0001-test-01.xml",
) -> TestCase:
    """Create a TestCase; plain Python values are converted with Value.of."""
    if inputs is None:
        inputs = {"Full Name": "John Doe"}
    if expected is None:
        expected = {"Greeting Message": "Hello John Doe"}
    return TestCase(
        case_id=case_id,
        model=ModelHandle(name=model),
        inputs=tuple(InputBinding(name, Value.of(value)) for name, value in inputs.items()),
        expected=tuple(
            ExpectedOutput(name, Value.of(value), error_result=expects_failure)
            for name, value in expected.items()
        ),
        expects_failure=expects_failure,
        source=source,
    )


def make_outcome(
    case_id: str = "001",
    status: OutcomeStatus = OutcomeStatus.SUCCESS,
    detail: str = "",
    source: str | None = "tck/0001/0001-test-01.xml",
) -> Outcome:
    """Create an Outcome with sensible defaults."""
    return Outcome(case_id=case_id, status=status, detail=detail, source=source)


# ── Pytest Fixtures ──────────────────────────────────────────────────────


@pytest.fixture
def sample_case() -> TestCase:
    """Provide the default string-greeting TestCase."""
    return make_case()


@pytest.fixture
def greeting_backend() -> FakeBackend:
    """Provide a backend that answers the default case correctly."""
    return FakeBackend({"Greeting Message": "Hello John Doe"})


@pytest.fixture
def recording_sink() -> RecordingSink:
    """Provide an empty RecordingSink."""
    return RecordingSink()


@pytest.fixture
def case_factory() -> Callable[..., TestCase]:
    """Provide the make_case factory function."""
    return make_case


@pytest.fixture
def outcome_factory() -> Callable[..., Outcome]:
    """Provide the make_outcome factory function."""
    return make_outcome


@pytest.fixture
def backend_factory() -> Callable[..., FakeBackend]:
    """Provide the FakeBackend constructor."""
    return FakeBackend


# ── TCK Directory Fixtures ───────────────────────────────────────────────

GREETING_MODEL = "0001-input-data-string.dmn"

GREETING_SUITE = """<?xml version="1.0" encoding="UTF-8"?>
<testCases xmlns="http://www.omg.org/spec/DMN/20160719/testcase"
           xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
           xmlns:xsd="http://www.w3.org/2001/XMLSchema">
  <modelName>0001-input-data-string.dmn</modelName>
  <testCase id="001">
    <inputNode name="Full Name"><value xsi:type="xsd:string">John Doe</value></inputNode>
    <resultNode name="Greeting Message">
      <expected><value xsi:type="xsd:string">Hello John Doe</value></expected>
    </resultNode>
  </testCase>
  <testCase id="002">
    <inputNode name="Full Name"><value xsi:type="xsd:string">Jane Roe</value></inputNode>
    <resultNode name="Greeting Message">
      <expected><value xsi:type="xsd:string">Hello Jane Roe</value></expected>
    </resultNode>
  </testCase>
  <testCase id="003">
    <inputNode name="Full Name"><value xsi:type="xsd:string">boom</value></inputNode>
    <resultNode name="Greeting Message">
      <expected><value xsi:type="xsd:string">Hello boom</value></expected>
    </resultNode>
  </testCase>
</testCases>
"""


def greeting_engine(
    model: ModelHandle,
    inputs: Mapping[str, Value],
    targets: tuple[EvaluationTarget, ...],
) -> dict[str, str]:
    """In-process engine answering GREETING_SUITE: one pass, one miss, one unsupported feature."""
    name = inputs["Full Name"].as_string()
    if name == "boom":
        msg = "FEEL function 'boom' is not supported"
        raise NotImplementedError(msg)
    if name == "Jane Roe":
        return {"Greeting Message": f"Hi {name}"}
    return {"Greeting Message": f"Hello {name}"}


@pytest.fixture
def tck_dir(tmp_path: Path) -> Path:
    """Provide a directory holding GREETING_SUITE beside its model file."""
    suite_dir = tmp_path / "tck" / "0001-input-data-string"
    suite_dir.mkdir(parents=True)
    (suite_dir / GREETING_MODEL).write_text("<definitions/>\n", encoding="utf-8")
    (suite_dir / "0001-input-data-string-test-01.xml").write_text(GREETING_SUITE, encoding="utf-8")
    return tmp_path / "tck"


@pytest.fixture
def engine_backend() -> CallableBackend:
    """Provide an in-process backend running greeting_engine."""
    return CallableBackend(greeting_engine)
