"""Wire module — JSON value layout spoken by remote evaluation services.

A value travels as an object with exactly one of three keys:

- ``{"simple": {"type": "xsd:decimal", "text": "1.5", "isNil": false}}``
- ``{"components": [{"name": "a", "value": {...}, "isNil": false}, ...]}``
- ``{"list": {"items": [{...}, ...], "isNil": false}}``

Service responses wrap their payload in an envelope
``{"data": ..., "errors": [{"details": "..."}]}``.

Malformed payloads raise ValueError; adapters translate that into their own
error types.

This module depends only on domain/ types and has zero external imports beyond stdlib.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from domain.values import Value, ValueKind
from modules.lexical.core import parse_typed, to_lexical

_NIL_SIMPLE: dict[str, Any] = {"type": None, "text": None, "isNil": True}


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


def encode_value(value: Value) -> dict[str, Any]:
    """Encode a Value as a wire DTO."""
    if value.is_null:
        return {"simple": dict(_NIL_SIMPLE)}
    if value.kind is ValueKind.LIST:
        return {"list": {"items": [encode_value(item) for item in value.as_list()], "isNil": False}}
    if value.kind is ValueKind.CONTEXT:
        return {
            "components": [
                {
                    "name": key,
                    "value": None if item.is_null else encode_value(item),
                    "isNil": item.is_null,
                }
                for key, item in value.as_context().items()
            ]
        }
    xsd_type, text = to_lexical(value)
    return {"simple": {"type": xsd_type, "text": text, "isNil": False}}


def decode_value(dto: object) -> Value:
    """Decode a wire DTO into a Value; a missing DTO (None) is null.

    Raises:
        ValueError: the DTO does not follow the wire layout.
    """
    if dto is None:
        return Value.null()
    if not isinstance(dto, Mapping):
        msg = f"value DTO must be an object, not {type(dto).__name__}"
        raise ValueError(msg)
    if dto.get("simple") is not None:
        return _decode_simple(dto["simple"])
    if dto.get("components") is not None:
        return _decode_components(dto["components"])
    if dto.get("list") is not None:
        return _decode_list(dto["list"])
    if not dto:
        return Value.null()
    msg = f"value DTO has none of simple, components or list: {sorted(dto)}"
    raise ValueError(msg)


def _decode_simple(simple: object) -> Value:
    if not isinstance(simple, Mapping):
        msg = "simple DTO must be an object"
        raise ValueError(msg)
    text = simple.get("text")
    if simple.get("isNil") or text is None:
        return Value.null()
    return parse_typed(simple.get("type"), text)


def _decode_components(components: object) -> Value:
    if not isinstance(components, list):
        msg = "components DTO must be an array"
        raise ValueError(msg)
    entries: list[tuple[str, Value]] = []
    for component in components:
        if not isinstance(component, Mapping) or not isinstance(component.get("name"), str):
            msg = f"component DTO needs a string name: {component!r}"
            raise ValueError(msg)
        if component.get("isNil"):
            entries.append((component["name"], Value.null()))
        else:
            entries.append((component["name"], decode_value(component.get("value"))))
    return Value.context(entries)


def _decode_list(list_dto: object) -> Value:
    if not isinstance(list_dto, Mapping):
        msg = "list DTO must be an object"
        raise ValueError(msg)
    if list_dto.get("isNil"):
        return Value.null()
    items = list_dto.get("items") or []
    if not isinstance(items, list):
        msg = "list items must be an array"
        raise ValueError(msg)
    return Value.list(decode_value(item) for item in items)


def encode_inputs(inputs: Mapping[str, Value]) -> list[dict[str, Any]]:
    """Encode input bindings as ``[{"name": ..., "value": {...}}, ...]``."""
    return [{"name": name, "value": encode_value(value)} for name, value in inputs.items()]


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Envelope:
    """Unwrapped service response: payload plus any error details."""

    data: Any
    errors: tuple[str, ...] = ()

    @property
    def failed(self) -> bool:
        return bool(self.errors)

    @property
    def error_text(self) -> str:
        return ", ".join(self.errors)


def unwrap_envelope(payload: object) -> Envelope:
    """Split a ``{"data", "errors"}`` response body.

    Raises:
        ValueError: the body is not an envelope, or carries neither data
            nor errors.
    """
    if not isinstance(payload, Mapping):
        msg = f"response body must be an object, not {type(payload).__name__}"
        raise ValueError(msg)
    raw_errors = payload.get("errors") or []
    if not isinstance(raw_errors, list):
        msg = "response errors must be an array"
        raise ValueError(msg)
    errors = tuple(
        str(error.get("details", "")) if isinstance(error, Mapping) else str(error)
        for error in raw_errors
    )
    data = payload.get("data")
    if data is None and not errors:
        msg = f"response has neither data nor errors: {dict(payload)!r}"
        raise ValueError(msg)
    return Envelope(data=data, errors=errors)
