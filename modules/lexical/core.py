"""Lexical module — XML Schema lexical forms to typed Values and back.

Test-case files carry simple values as text tagged with an ``xsi:type``
(``xsd:decimal``, ``xsd:date``, ``xsd:duration``...). This module parses
that text into Values, keeping temporal components as written, and renders
simple Values back into lexical form for backends that need it.

Malformed text raises ValueError; callers decide how to surface it.

This module depends only on domain/ types and has zero external imports beyond stdlib.
"""

from __future__ import annotations

import re
from decimal import Decimal

from domain.values import (
    Date,
    DateTime,
    DayTimeDuration,
    Time,
    Value,
    ValueKind,
    YearMonthDuration,
    Zone,
)

_ZONE = r"(Z|[+-]\d{2}:\d{2}|@[^\s@]+)?"
_DATE_RE = re.compile(r"^(-?\d{4,})-(\d{2})-(\d{2})" + _ZONE + "$")
_TIME_RE = re.compile(r"^(\d{2}):(\d{2}):(\d{2})(\.\d+)?" + _ZONE + "$")
_DURATION_RE = re.compile(
    r"^(-)?P(?:(\d+)Y)?(?:(\d+)M)?(?:(\d+)D)?"
    r"(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?)?$"
)

_STRING_TYPES = frozenset({"string", "normalizedString", "token", "anyURI", "NCName", "Name"})
_NUMBER_TYPES = frozenset(
    {
        "decimal",
        "integer",
        "int",
        "long",
        "short",
        "byte",
        "double",
        "float",
        "nonNegativeInteger",
        "positiveInteger",
        "nonPositiveInteger",
        "negativeInteger",
        "unsignedInt",
        "unsignedLong",
        "unsignedShort",
        "unsignedByte",
    }
)


def local_type_name(xsd_type: str | None) -> str | None:
    """Strip the namespace prefix: ``xsd:decimal`` → ``decimal``."""
    if xsd_type is None:
        return None
    return xsd_type.rsplit(":", 1)[-1].strip()


# ---------------------------------------------------------------------------
# Temporal parsers
# ---------------------------------------------------------------------------


def parse_zone(text: str | None) -> Zone | None:
    """Parse ``Z``, ``+hh:mm``, ``-hh:mm`` or ``@Region/City``; None when absent."""
    if not text:
        return None
    if text == "Z":
        return Zone(offset_minutes=0)
    if text.startswith("@"):
        return Zone(zone_id=text[1:])
    sign = -1 if text[0] == "-" else 1
    hours, minutes = text[1:].split(":")
    if int(minutes) > 59:
        msg = f"invalid timezone offset: {text}"
        raise ValueError(msg)
    return Zone(offset_minutes=sign * (int(hours) * 60 + int(minutes)))


def parse_date(text: str) -> Date:
    """Parse an ``xsd:date`` lexical form such as ``2021-01-06`` or ``2021-01-06Z``."""
    match = _DATE_RE.match(text.strip())
    if match is None:
        msg = f"invalid date: {text!r}"
        raise ValueError(msg)
    year, month, day, zone = match.groups()
    return Date(int(year), int(month), int(day), parse_zone(zone))


def parse_time(text: str) -> Time:
    """Parse an ``xsd:time`` lexical form such as ``13:20:00.5+01:00``."""
    match = _TIME_RE.match(text.strip())
    if match is None:
        msg = f"invalid time: {text!r}"
        raise ValueError(msg)
    hour, minute, second, fraction, zone = match.groups()
    return Time(
        int(hour),
        int(minute),
        int(second),
        Decimal(fraction) if fraction else Decimal(0),
        parse_zone(zone),
    )


def parse_date_time(text: str) -> DateTime:
    """Parse an ``xsd:dateTime`` lexical form such as ``2021-01-06T10:00:00Z``."""
    stripped = text.strip()
    date_part, sep, time_part = stripped.partition("T")
    if not sep:
        msg = f"invalid date and time: {text!r}"
        raise ValueError(msg)
    return DateTime(parse_date(date_part), parse_time(time_part))


def parse_duration(text: str) -> DayTimeDuration | YearMonthDuration:
    """Parse an ISO 8601 duration into its DMN subtype.

    Durations with only years and months are years-and-months durations;
    durations with only days and time parts are days-and-time durations.
    Mixing both is rejected, as FEEL has no such type.
    """
    stripped = text.strip()
    match = _DURATION_RE.match(stripped)
    if match is None or stripped.endswith(("P", "T")):
        msg = f"invalid duration: {text!r}"
        raise ValueError(msg)
    sign_text, years, months, days, hours, minutes, seconds = match.groups()
    sign = -1 if sign_text else 1
    has_year_month = years is not None or months is not None
    has_day_time = any(part is not None for part in (days, hours, minutes, seconds))
    if has_year_month and has_day_time:
        msg = f"duration mixes years/months with days/time: {text!r}"
        raise ValueError(msg)
    if has_year_month:
        total_months = int(years or 0) * 12 + int(months or 0)
        return YearMonthDuration(sign * total_months)
    total = (
        Decimal(int(days or 0)) * 86400
        + Decimal(int(hours or 0)) * 3600
        + Decimal(int(minutes or 0)) * 60
        + Decimal(seconds or 0)
    )
    return DayTimeDuration(total if sign > 0 else -total)


def _parse_boolean(text: str) -> bool:
    stripped = text.strip()
    if stripped in ("true", "1"):
        return True
    if stripped in ("false", "0"):
        return False
    msg = f"invalid boolean: {text!r}"
    raise ValueError(msg)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_typed(xsd_type: str | None, text: str | None) -> Value:
    """Build a Value from an ``xsi:type`` and the element text.

    An absent type reads the text as a string.

    Raises:
        ValueError: the type is unknown or the text is not a valid lexical
            form for it.
    """
    local = local_type_name(xsd_type)
    raw = text if text is not None else ""
    if local is None or local in _STRING_TYPES:
        return Value.string(raw)
    if local in _NUMBER_TYPES:
        return Value.number(raw)
    if local == "boolean":
        return Value.boolean(_parse_boolean(raw))
    if local == "date":
        return Value.date(parse_date(raw))
    if local == "time":
        return Value.time(parse_time(raw))
    if local == "dateTime":
        return Value.date_time(parse_date_time(raw))
    if local in ("duration", "dayTimeDuration", "yearMonthDuration"):
        duration = parse_duration(raw)
        if local == "dayTimeDuration" and not isinstance(duration, DayTimeDuration):
            msg = f"expected a days and time duration: {raw!r}"
            raise ValueError(msg)
        if local == "yearMonthDuration" and not isinstance(duration, YearMonthDuration):
            msg = f"expected a years and months duration: {raw!r}"
            raise ValueError(msg)
        return Value.of(duration)
    msg = f"unsupported xsi:type: {xsd_type}"
    raise ValueError(msg)


_LEXICAL_TYPES: dict[ValueKind, str] = {
    ValueKind.BOOLEAN: "xsd:boolean",
    ValueKind.NUMBER: "xsd:decimal",
    ValueKind.STRING: "xsd:string",
    ValueKind.DATE: "xsd:date",
    ValueKind.TIME: "xsd:time",
    ValueKind.DATE_AND_TIME: "xsd:dateTime",
    ValueKind.DAY_TIME_DURATION: "xsd:duration",
    ValueKind.YEAR_MONTH_DURATION: "xsd:duration",
}


def to_lexical(value: Value) -> tuple[str, str]:
    """Render a simple Value as ``(xsi:type, text)``.

    Raises:
        ValueError: the value is null, a list or a context.
    """
    xsd_type = _LEXICAL_TYPES.get(value.kind)
    if xsd_type is None:
        msg = f"{value.kind.value} has no simple lexical form"
        raise ValueError(msg)
    if value.kind is ValueKind.BOOLEAN:
        return xsd_type, "true" if value.as_boolean() else "false"
    if value.kind is ValueKind.STRING:
        return xsd_type, value.as_string()
    return xsd_type, str(value.payload)
