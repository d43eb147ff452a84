"""Error taxonomy for the TCK runner.

Every error raised by the harness derives from HarnessError. Invocation
errors are recoverable at run level and become Other outcomes; loader errors
are surfaced before a case reaches the run coordinator.

This module has ZERO imports from outside the Python standard library.
"""

from __future__ import annotations

from enum import Enum


class InvocationErrorKind(Enum):
    """Reason a backend could not produce outputs for a case."""

    MODEL_LOAD_FAILURE = "model_load_failure"
    EVALUATION_FAILURE = "evaluation_failure"
    UNSUPPORTED_FEATURE = "unsupported_feature"
    TIMEOUT = "timeout"


class HarnessError(Exception):
    """Base class for all runner errors."""


class TypeMismatch(HarnessError):
    """A typed Value accessor was called on a value with a different tag."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"expected {expected} value, found {actual}")


class LoaderError(HarnessError):
    """A test-case descriptor is malformed and cannot be turned into a TestCase."""

    def __init__(self, message: str, *, source: str | None = None) -> None:
        self.source = source
        super().__init__(f"{source}: {message}" if source else message)


class ConfigError(HarnessError):
    """The runner configuration file is missing or invalid."""


class InvocationError(HarnessError):
    """The backend failed to evaluate a case."""

    kind: InvocationErrorKind = InvocationErrorKind.EVALUATION_FAILURE

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ModelLoadFailure(InvocationError):
    """The model reference is invalid or the backend could not parse it."""

    kind = InvocationErrorKind.MODEL_LOAD_FAILURE


class EvaluationFailure(InvocationError):
    """The backend raised a runtime error while evaluating."""

    kind = InvocationErrorKind.EVALUATION_FAILURE


class UnsupportedFeature(InvocationError):
    """The backend does not implement a construct the model requires."""

    kind = InvocationErrorKind.UNSUPPORTED_FEATURE


class InvocationTimeout(InvocationError):
    """The backend did not answer within the per-case time limit."""

    kind = InvocationErrorKind.TIMEOUT
