"""Tests for modules/wire/core.py — JSON value DTOs and response envelopes."""

from __future__ import annotations

import pytest

from domain.values import Value
from modules.lexical.core import parse_typed
from modules.wire.core import (
    Envelope,
    decode_value,
    encode_inputs,
    encode_value,
    unwrap_envelope,
)


def test_encode_simple_number() -> None:
    assert encode_value(Value.number("600000")) == {
        "simple": {"type": "xsd:decimal", "text": "600000", "isNil": False}
    }


def test_encode_null_is_nil_simple() -> None:
    assert encode_value(Value.null()) == {"simple": {"type": None, "text": None, "isNil": True}}


def test_encode_context_with_null_component() -> None:
    value = Value.context({"name": Value.string("Bob"), "age": Value.null()})
    assert encode_value(value) == {
        "components": [
            {
                "name": "name",
                "value": {"simple": {"type": "xsd:string", "text": "Bob", "isNil": False}},
                "isNil": False,
            },
            {"name": "age", "value": None, "isNil": True},
        ]
    }


def test_encode_list() -> None:
    value = Value.list([Value.boolean(True), Value.null()])
    assert encode_value(value) == {
        "list": {
            "items": [
                {"simple": {"type": "xsd:boolean", "text": "true", "isNil": False}},
                {"simple": {"type": None, "text": None, "isNil": True}},
            ],
            "isNil": False,
        }
    }


def test_decode_nested_structure() -> None:
    dto = {
        "components": [
            {
                "name": "dates",
                "value": {
                    "list": {
                        "items": [{"simple": {"type": "xsd:date", "text": "2021-01-06", "isNil": False}}],
                        "isNil": False,
                    }
                },
                "isNil": False,
            },
            {"name": "gone", "isNil": True},
        ]
    }
    decoded = decode_value(dto)
    entries = decoded.as_context()
    assert entries["dates"] == Value.list([parse_typed("xsd:date", "2021-01-06")])
    assert entries["gone"].is_null


def test_decode_none_and_nil_forms_are_null() -> None:
    assert decode_value(None).is_null
    assert decode_value({}).is_null
    assert decode_value({"simple": {"isNil": True}}).is_null
    assert decode_value({"list": {"items": [], "isNil": True}}).is_null


def test_decode_simple_without_text_is_null() -> None:
    assert decode_value({"simple": {"type": None, "text": None, "isNil": False}}).is_null
    assert decode_value({"simple": {"type": "xsd:decimal", "isNil": False}}).is_null
    assert decode_value({"simple": {"type": "xsd:string", "text": "", "isNil": False}}) == (
        Value.string("")
    )


def test_decode_nested_value_survives_encoding() -> None:
    value = Value.of({"loan": {"rate": Value.number("0.0375"), "tags": ["a", None]}})
    assert decode_value(encode_value(value)) == value


@pytest.mark.parametrize(
    "dto",
    [
        "text",
        {"other": 1},
        {"simple": "1"},
        {"components": [{"value": None}]},
        {"list": {"items": "abc", "isNil": False}},
        {"simple": {"type": "xsd:decimal", "text": "abc", "isNil": False}},
    ],
)
def test_decode_rejects_malformed(dto: object) -> None:
    with pytest.raises(ValueError):
        decode_value(dto)


def test_encode_inputs_preserves_order() -> None:
    encoded = encode_inputs({"b": Value.number(2), "a": Value.number(1)})
    assert [entry["name"] for entry in encoded] == ["b", "a"]
    assert encoded[1]["value"]["simple"]["text"] == "1"


def test_unwrap_envelope_data() -> None:
    envelope = unwrap_envelope({"data": {"value": None}})
    assert envelope == Envelope(data={"value": None})
    assert not envelope.failed


def test_unwrap_envelope_errors_joined() -> None:
    envelope = unwrap_envelope({"errors": [{"details": "first"}, {"details": "second"}]})
    assert envelope.failed
    assert envelope.error_text == "first, second"


@pytest.mark.parametrize("body", [[], {"data": None}, {"errors": "boom"}])
def test_unwrap_envelope_rejects_malformed(body: object) -> None:
    with pytest.raises(ValueError):
        unwrap_envelope(body)
