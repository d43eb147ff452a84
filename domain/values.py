"""Typed DMN values shared by expected and actual results.

A Value is a tagged union over the FEEL value types. Numbers are decimals,
never binary floats. Dates, times and durations keep their lexical components
so that equality stays component-wise: a value without a timezone is a
distinct state from one in UTC.

Lists and contexts hold their children in tuples, so every Value is an
immutable tree.

This module has ZERO imports from outside the Python standard library.
"""

from __future__ import annotations

import datetime as _dt
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from domain.errors import TypeMismatch


class ValueKind(Enum):
    """Tag of a Value, named after the FEEL type."""

    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    DATE = "date"
    TIME = "time"
    DATE_AND_TIME = "date and time"
    DAY_TIME_DURATION = "days and time duration"
    YEAR_MONTH_DURATION = "years and months duration"
    LIST = "list"
    CONTEXT = "context"


# ---------------------------------------------------------------------------
# Temporal components
# ---------------------------------------------------------------------------


def _is_leap(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def _days_in_month(year: int, month: int) -> int:
    if month == 2:
        return 29 if _is_leap(year) else 28
    return 30 if month in (4, 6, 9, 11) else 31


@dataclass(frozen=True)
class Zone:
    """Timezone attached to a date or time: a fixed offset or an IANA zone id."""

    offset_minutes: int | None = None
    zone_id: str | None = None

    def __post_init__(self) -> None:
        if (self.offset_minutes is None) == (self.zone_id is None):
            msg = "zone needs exactly one of offset_minutes or zone_id"
            raise ValueError(msg)
        if self.offset_minutes is not None and abs(self.offset_minutes) > 14 * 60:
            msg = f"zone offset out of range: {self.offset_minutes} minutes"
            raise ValueError(msg)

    def __str__(self) -> str:
        if self.offset_minutes is None:
            return f"@{self.zone_id}"
        if self.offset_minutes == 0:
            return "Z"
        sign = "+" if self.offset_minutes > 0 else "-"
        hours, minutes = divmod(abs(self.offset_minutes), 60)
        return f"{sign}{hours:02d}:{minutes:02d}"


@dataclass(frozen=True)
class Date:
    """Calendar date with an optional timezone."""

    year: int
    month: int
    day: int
    zone: Zone | None = None

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            msg = f"month out of range: {self.month}"
            raise ValueError(msg)
        if not 1 <= self.day <= _days_in_month(self.year, self.month):
            msg = f"day out of range: {self.year}-{self.month:02d}-{self.day}"
            raise ValueError(msg)

    def __str__(self) -> str:
        sign = "-" if self.year < 0 else ""
        zone = str(self.zone) if self.zone is not None else ""
        return f"{sign}{abs(self.year):04d}-{self.month:02d}-{self.day:02d}{zone}"


@dataclass(frozen=True)
class Time:
    """Time of day; ``fraction`` holds the fractional seconds in ``[0, 1)``."""

    hour: int
    minute: int
    second: int
    fraction: Decimal = Decimal(0)
    zone: Zone | None = None

    def __post_init__(self) -> None:
        if not (0 <= self.hour <= 23 and 0 <= self.minute <= 59 and 0 <= self.second <= 59):
            msg = f"time out of range: {self.hour}:{self.minute}:{self.second}"
            raise ValueError(msg)
        if not Decimal(0) <= self.fraction < Decimal(1):
            msg = f"fractional seconds out of range: {self.fraction}"
            raise ValueError(msg)

    def __str__(self) -> str:
        text = f"{self.hour:02d}:{self.minute:02d}:{self.second:02d}"
        if self.fraction:
            text += format(self.fraction.normalize(), "f")[1:]
        if self.zone is not None:
            text += str(self.zone)
        return text


@dataclass(frozen=True)
class DateTime:
    """Date and time of day. The timezone, if any, lives on ``time``."""

    date: Date
    time: Time

    def __post_init__(self) -> None:
        if self.date.zone is not None:
            msg = "date and time carries its zone on the time part"
            raise ValueError(msg)

    def __str__(self) -> str:
        return f"{self.date}T{self.time}"


@dataclass(frozen=True)
class DayTimeDuration:
    """Days-and-time duration, normalised to signed total seconds."""

    seconds: Decimal

    def __str__(self) -> str:
        sign = "-" if self.seconds < 0 else ""
        days, rest = divmod(abs(self.seconds), 86400)
        hours, rest = divmod(rest, 3600)
        minutes, secs = divmod(rest, 60)
        text = f"{sign}P"
        if days:
            text += f"{int(days)}D"
        time_part = ""
        if hours:
            time_part += f"{int(hours)}H"
        if minutes:
            time_part += f"{int(minutes)}M"
        if secs:
            time_part += f"{format(secs.normalize(), 'f')}S"
        if time_part:
            text += f"T{time_part}"
        if text in ("P", "-P"):
            return "PT0S"
        return text


@dataclass(frozen=True)
class YearMonthDuration:
    """Years-and-months duration, normalised to signed total months."""

    months: int

    def __str__(self) -> str:
        sign = "-" if self.months < 0 else ""
        years, months = divmod(abs(self.months), 12)
        text = f"{sign}P"
        if years:
            text += f"{years}Y"
        if months or not years:
            text += f"{months}M"
        return text


# ---------------------------------------------------------------------------
# Value
# ---------------------------------------------------------------------------

_PAYLOAD_TYPES: dict[ValueKind, type | tuple[type, ...]] = {
    ValueKind.NULL: type(None),
    ValueKind.BOOLEAN: bool,
    ValueKind.NUMBER: Decimal,
    ValueKind.STRING: str,
    ValueKind.DATE: Date,
    ValueKind.TIME: Time,
    ValueKind.DATE_AND_TIME: DateTime,
    ValueKind.DAY_TIME_DURATION: DayTimeDuration,
    ValueKind.YEAR_MONTH_DURATION: YearMonthDuration,
    ValueKind.LIST: tuple,
    ValueKind.CONTEXT: tuple,
}


def _to_decimal(number: Decimal | int | str) -> Decimal:
    if isinstance(number, bool) or isinstance(number, float):
        msg = f"number must be a Decimal, int or numeric literal, not {type(number).__name__}"
        raise TypeError(msg)
    if isinstance(number, Decimal):
        result = number
    elif isinstance(number, int):
        result = Decimal(number)
    elif isinstance(number, str):
        try:
            result = Decimal(number.strip())
        except InvalidOperation:
            msg = f"invalid numeric literal: {number!r}"
            raise ValueError(msg) from None
    else:
        msg = f"number must be a Decimal, int or numeric literal, not {type(number).__name__}"
        raise TypeError(msg)
    if not result.is_finite():
        msg = f"number must be finite: {number!r}"
        raise ValueError(msg)
    return result


def _quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


@dataclass(frozen=True, eq=False)
class Value:
    """A single DMN value.

    Build values with the classmethod constructors (or ``Value.of``) and read
    them back with the typed accessors, which raise TypeMismatch when the tag
    does not match.
    """

    kind: ValueKind
    payload: Any = field(default=None)

    def __post_init__(self) -> None:
        expected = _PAYLOAD_TYPES[self.kind]
        if not isinstance(self.payload, expected):
            msg = f"{self.kind.value} value cannot hold {type(self.payload).__name__}"
            raise TypeError(msg)
        if self.kind is ValueKind.LIST:
            if not all(isinstance(item, Value) for item in self.payload):
                msg = "list items must be Values"
                raise TypeError(msg)
        elif self.kind is ValueKind.CONTEXT:
            keys: set[str] = set()
            for entry in self.payload:
                if not (
                    isinstance(entry, tuple)
                    and len(entry) == 2
                    and isinstance(entry[0], str)
                    and isinstance(entry[1], Value)
                ):
                    msg = "context entries must be (str, Value) pairs"
                    raise TypeError(msg)
                if entry[0] in keys:
                    msg = f"duplicate context key: {entry[0]!r}"
                    raise ValueError(msg)
                keys.add(entry[0])

    # -- Constructors -------------------------------------------------------

    @classmethod
    def null(cls) -> Value:
        return cls(ValueKind.NULL)

    @classmethod
    def boolean(cls, value: bool) -> Value:
        return cls(ValueKind.BOOLEAN, value)

    @classmethod
    def number(cls, value: Decimal | int | str) -> Value:
        """Build a number from a Decimal, an int or a numeric literal string."""
        return cls(ValueKind.NUMBER, _to_decimal(value))

    @classmethod
    def string(cls, value: str) -> Value:
        return cls(ValueKind.STRING, value)

    @classmethod
    def date(cls, value: Date) -> Value:
        return cls(ValueKind.DATE, value)

    @classmethod
    def time(cls, value: Time) -> Value:
        return cls(ValueKind.TIME, value)

    @classmethod
    def date_time(cls, value: DateTime) -> Value:
        return cls(ValueKind.DATE_AND_TIME, value)

    @classmethod
    def day_time_duration(cls, value: DayTimeDuration) -> Value:
        return cls(ValueKind.DAY_TIME_DURATION, value)

    @classmethod
    def year_month_duration(cls, value: YearMonthDuration) -> Value:
        return cls(ValueKind.YEAR_MONTH_DURATION, value)

    @classmethod
    def list(cls, items: Iterable[Value]) -> Value:
        return cls(ValueKind.LIST, tuple(items))

    @classmethod
    def context(cls, entries: Mapping[str, Value] | Iterable[tuple[str, Value]]) -> Value:
        """Build a context from a mapping or from (key, value) pairs."""
        pairs = entries.items() if isinstance(entries, Mapping) else entries
        return cls(ValueKind.CONTEXT, tuple((key, value) for key, value in pairs))

    @classmethod
    def of(cls, obj: object) -> Value:
        """Build a Value from a plain Python object, recursively.

        Accepts None, bool, int, Decimal, str, the temporal component types,
        the stdlib ``datetime`` types, sequences and string-keyed mappings.
        Floats are rejected so that no binary rounding leaks into comparison.
        """
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return cls.null()
        if isinstance(obj, bool):
            return cls.boolean(obj)
        if isinstance(obj, (int, Decimal)):
            return cls.number(obj)
        if isinstance(obj, str):
            return cls.string(obj)
        if isinstance(obj, Date):
            return cls.date(obj)
        if isinstance(obj, Time):
            return cls.time(obj)
        if isinstance(obj, DateTime):
            return cls.date_time(obj)
        if isinstance(obj, DayTimeDuration):
            return cls.day_time_duration(obj)
        if isinstance(obj, YearMonthDuration):
            return cls.year_month_duration(obj)
        if isinstance(obj, (_dt.date, _dt.time, _dt.timedelta)):
            return _from_stdlib(obj)
        if isinstance(obj, Mapping):
            entries: list[tuple[str, Value]] = []
            for key, item in obj.items():
                if not isinstance(key, str):
                    msg = f"context keys must be strings, not {type(key).__name__}"
                    raise TypeError(msg)
                entries.append((key, cls.of(item)))
            return cls.context(entries)
        if isinstance(obj, (list, tuple)):
            return cls.list(cls.of(item) for item in obj)
        msg = f"cannot build a DMN value from {type(obj).__name__}"
        raise TypeError(msg)

    # -- Accessors ----------------------------------------------------------

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    def _expect(self, kind: ValueKind) -> Any:
        if self.kind is not kind:
            raise TypeMismatch(kind.value, self.kind.value)
        return self.payload

    def as_boolean(self) -> bool:
        result: bool = self._expect(ValueKind.BOOLEAN)
        return result

    def as_number(self) -> Decimal:
        result: Decimal = self._expect(ValueKind.NUMBER)
        return result

    def as_string(self) -> str:
        result: str = self._expect(ValueKind.STRING)
        return result

    def as_date(self) -> Date:
        result: Date = self._expect(ValueKind.DATE)
        return result

    def as_time(self) -> Time:
        result: Time = self._expect(ValueKind.TIME)
        return result

    def as_date_time(self) -> DateTime:
        result: DateTime = self._expect(ValueKind.DATE_AND_TIME)
        return result

    def as_day_time_duration(self) -> DayTimeDuration:
        result: DayTimeDuration = self._expect(ValueKind.DAY_TIME_DURATION)
        return result

    def as_year_month_duration(self) -> YearMonthDuration:
        result: YearMonthDuration = self._expect(ValueKind.YEAR_MONTH_DURATION)
        return result

    def as_list(self) -> tuple[Value, ...]:
        result: tuple[Value, ...] = self._expect(ValueKind.LIST)
        return result

    def as_context(self) -> dict[str, Value]:
        """Return a fresh dict of the context entries, in insertion order."""
        pairs: tuple[tuple[str, Value], ...] = self._expect(ValueKind.CONTEXT)
        return dict(pairs)

    # -- Equality and rendering ---------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        if self.kind is not other.kind:
            return False
        if self.kind is ValueKind.CONTEXT:
            return dict(self.payload) == dict(other.payload)
        result: bool = self.payload == other.payload
        return result

    def __hash__(self) -> int:
        if self.kind is ValueKind.CONTEXT:
            return hash((self.kind, frozenset(self.payload)))
        return hash((self.kind, self.payload))

    def __str__(self) -> str:
        kind = self.kind
        if kind is ValueKind.NULL:
            return "null"
        if kind is ValueKind.BOOLEAN:
            return "true" if self.payload else "false"
        if kind is ValueKind.NUMBER:
            return str(self.payload)
        if kind is ValueKind.STRING:
            return _quote(self.payload)
        if kind is ValueKind.DATE:
            return f'date("{self.payload}")'
        if kind is ValueKind.TIME:
            return f'time("{self.payload}")'
        if kind is ValueKind.DATE_AND_TIME:
            return f'date and time("{self.payload}")'
        if kind in (ValueKind.DAY_TIME_DURATION, ValueKind.YEAR_MONTH_DURATION):
            return f'duration("{self.payload}")'
        if kind is ValueKind.LIST:
            return "[" + ", ".join(str(item) for item in self.payload) + "]"
        return "{" + ", ".join(f"{key}: {item}" for key, item in self.payload) + "}"


def _zone_of(tzinfo: _dt.tzinfo | None, reference: _dt.datetime | None) -> Zone | None:
    if tzinfo is None:
        return None
    offset = tzinfo.utcoffset(reference)
    if offset is None:
        return None
    return Zone(offset_minutes=int(offset.total_seconds() // 60))


def _time_of(value: _dt.time | _dt.datetime, zone: Zone | None) -> Time:
    return Time(
        value.hour,
        value.minute,
        value.second,
        Decimal(value.microsecond).scaleb(-6),
        zone,
    )


def _from_stdlib(obj: _dt.date | _dt.time | _dt.timedelta) -> Value:
    """Convert stdlib date/time/timedelta objects into Values."""
    if isinstance(obj, _dt.datetime):
        date = Date(obj.year, obj.month, obj.day)
        return Value.date_time(DateTime(date, _time_of(obj, _zone_of(obj.tzinfo, obj))))
    if isinstance(obj, _dt.date):
        return Value.date(Date(obj.year, obj.month, obj.day))
    if isinstance(obj, _dt.time):
        return Value.time(_time_of(obj, _zone_of(obj.tzinfo, None)))
    seconds = Decimal(obj.days * 86400 + obj.seconds) + Decimal(obj.microseconds).scaleb(-6)
    return Value.day_time_duration(DayTimeDuration(seconds))
