"""Comparator module — judges an actual DMN value against the expected one.

Equality is type-aware and follows the TCK value-equality rules:

- numbers compare as exact decimals, with no tolerance;
- dates and times compare component-wise, and a missing timezone never
  equals an explicit one;
- durations compare by subtype and normalised magnitude;
- lists compare in order, contexts by key set regardless of key order.

Anything that is not a Value (an error token, a raw backend object) is
Unequal with a reason, never a silent pass. The verdict is symmetric; the
reason text is written from the expected value's side.

This module depends only on domain/ types and has zero external imports beyond stdlib.
"""

from __future__ import annotations

from dataclasses import dataclass

from domain.values import Value, ValueKind


@dataclass(frozen=True)
class ComparisonResult:
    """Verdict of a comparison plus a diagnostic reason when unequal."""

    equal: bool
    reason: str = ""

    @classmethod
    def same(cls) -> ComparisonResult:
        return cls(equal=True)

    @classmethod
    def differ(cls, reason: str) -> ComparisonResult:
        return cls(equal=False, reason=reason)

    def __bool__(self) -> bool:
        return self.equal


_SCALAR_KINDS = frozenset(
    {
        ValueKind.BOOLEAN,
        ValueKind.NUMBER,
        ValueKind.STRING,
        ValueKind.DATE,
        ValueKind.TIME,
        ValueKind.DATE_AND_TIME,
        ValueKind.DAY_TIME_DURATION,
        ValueKind.YEAR_MONTH_DURATION,
    }
)


def _is_null_equivalent(value: object) -> bool:
    return value is None or (isinstance(value, Value) and value.is_null)


def _describe(value: object) -> str:
    if isinstance(value, Value):
        return f"{value.kind.value} {value}"
    return f"non-value {type(value).__name__} {value!r}"


def _at(path: str) -> str:
    return f"at {path}: " if path else ""


def compare(expected: object, actual: object) -> ComparisonResult:
    """Compare ``expected`` with ``actual`` under DMN value equality.

    Args:
        expected: The value the test case declares.
        actual: Whatever the backend returned for the same output.

    Returns:
        A ComparisonResult; ``reason`` names the first differing node.
    """
    return _compare(expected, actual, "")


def _compare(expected: object, actual: object, path: str) -> ComparisonResult:
    if _is_null_equivalent(expected) and _is_null_equivalent(actual):
        return ComparisonResult.same()
    if not isinstance(expected, Value) or not isinstance(actual, Value):
        return ComparisonResult.differ(
            f"{_at(path)}cannot compare {_describe(expected)} with {_describe(actual)}"
        )
    if expected.kind is not actual.kind:
        return ComparisonResult.differ(
            f"{_at(path)}expected {_describe(expected)}, found {_describe(actual)}"
        )
    if expected.kind in _SCALAR_KINDS:
        return _compare_scalar(expected, actual, path)
    if expected.kind is ValueKind.LIST:
        return _compare_list(expected, actual, path)
    if expected.kind is ValueKind.CONTEXT:
        return _compare_context(expected, actual, path)
    return ComparisonResult.differ(f"{_at(path)}no comparison rule for {expected.kind.value}")


def _compare_scalar(expected: Value, actual: Value, path: str) -> ComparisonResult:
    """Exact equality of scalar payloads.

    Payload equality already encodes the rules: Decimal equality ignores
    literal precision, temporal dataclasses compare every component including
    the zone, and durations hold their normalised magnitude.
    """
    if expected.payload == actual.payload:
        return ComparisonResult.same()
    return ComparisonResult.differ(f"{_at(path)}expected {expected}, found {actual}")


def _compare_list(expected: Value, actual: Value, path: str) -> ComparisonResult:
    expected_items = expected.as_list()
    actual_items = actual.as_list()
    if len(expected_items) != len(actual_items):
        return ComparisonResult.differ(
            f"{_at(path)}expected list of {len(expected_items)} items, "
            f"found {len(actual_items)}: {actual}"
        )
    for index, (want, got) in enumerate(zip(expected_items, actual_items, strict=True)):
        result = _compare(want, got, f"{path}[{index}]")
        if not result.equal:
            return result
    return ComparisonResult.same()


def _compare_context(expected: Value, actual: Value, path: str) -> ComparisonResult:
    expected_entries = expected.as_context()
    actual_entries = actual.as_context()
    missing = [key for key in expected_entries if key not in actual_entries]
    extra = [key for key in actual_entries if key not in expected_entries]
    if missing or extra:
        parts: list[str] = []
        if missing:
            parts.append(f"missing keys {missing}")
        if extra:
            parts.append(f"unexpected keys {extra}")
        return ComparisonResult.differ(f"{_at(path)}context {', '.join(parts)}")
    for key, want in expected_entries.items():
        child = f"{path}.{key}" if path else key
        result = _compare(want, actual_entries[key], child)
        if not result.equal:
            return result
    return ComparisonResult.same()
