# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Log events and the field visitor used to serialize them.

This module provides Level, LogEvent and FieldVisitor. A LogEvent lives only
for the duration of one format call: the serializer asks it to push each of
its fields, in order, into a visitor.

CONVENIENCE CONSTRUCTORS
------------------------
LogEvent.build places an implicit message first, then keyword fields:

    LogEvent.build(Level.INFO, "svc::handler", "Test", z=10)
    LogEvent.build("WARN", "svc::db", retries=3)

FIELD VISITING
--------------
Values are dispatched to the typed ``record_*`` method matching their
semantic type.  Anything that is not a JSON-native value goes to
``record_debug``; the serializer rejects it with ``EventEncodingError``
rather than coercing it:

    event.record(visitor)

KEY CLASSES
-----------
Level : Enum with TRACE, DEBUG, INFO, WARN, ERROR
LogEvent : Severity, target and ordered fields of a single log call
FieldVisitor : Push-style receiver of typed field values

"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Protocol

__all__ = [
    "EventEncodingError",
    "FieldVisitor",
    "FlatJsonError",
    "Level",
    "LogEvent",
    "level_text",
    "visit_field",
]


class FlatJsonError(Exception):
    """Base class for errors raised by flat_json_log."""


class EventEncodingError(FlatJsonError, ValueError):
    """Raised when a level or field value cannot be encoded as JSON.

    Raised before anything reaches the sink, so a failed call never
    produces a truncated line.
    """


class Level(Enum):
    """Severity levels for log events.

    Levels are ordered from least to most severe.  The value of each member
    is its canonical textual token, which is what appears in the ``level``
    key of an output line.

    Attributes:
        TRACE: Fine-grained tracing information for detailed diagnostics.
        DEBUG: Detailed information useful for debugging.
        INFO: General informational message about processing status.
        WARN: Potential issue that should be reviewed but isn't necessarily wrong.
        ERROR: Significant error.

    """

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


def level_text(level: Level | str) -> str:
    """Return the canonical token for *level*.

    Raises:
        EventEncodingError: If *level* is neither a ``Level`` nor a ``str``.

    """
    if isinstance(level, Level):
        return level.value
    if isinstance(level, str):
        return level
    raise EventEncodingError(f"Cannot encode level of type {type(level).__name__}")


class FieldVisitor(Protocol):
    """Receiver for the fields of a log event, one call per field."""

    def record_str(self, key: str, value: str) -> None:
        """Record a string field."""
        ...

    def record_int(self, key: str, value: int) -> None:
        """Record an integer field."""
        ...

    def record_float(self, key: str, value: float) -> None:
        """Record a float field."""
        ...

    def record_bool(self, key: str, value: bool) -> None:
        """Record a boolean field."""
        ...

    def record_value(self, key: str, value: object) -> None:
        """Record a nested structured value (mapping, sequence or ``None``)."""
        ...

    def record_debug(self, key: str, value: object) -> None:
        """Record a value with no JSON-native representation."""
        ...


def visit_field(visitor: FieldVisitor, key: str, value: object) -> None:
    """Dispatch one field to the ``record_*`` method matching its type."""
    # bool before int: bool is a subclass of int
    if isinstance(value, bool):
        visitor.record_bool(key, value)
    elif isinstance(value, int):
        visitor.record_int(key, value)
    elif isinstance(value, float):
        visitor.record_float(key, value)
    elif isinstance(value, str):
        visitor.record_str(key, value)
    elif value is None or isinstance(value, (Mapping, list, tuple)):
        visitor.record_value(key, value)
    else:
        visitor.record_debug(key, value)


@dataclass(frozen=True)
class LogEvent:
    """A single log call: severity, target and ordered event-local fields.

    Attributes:
        level: Severity token, a ``Level`` or an already-canonical string.
        target: Module or component identifier, written verbatim.
        fields: Event-local fields in the order the call produced them.

    """

    level: Level | str
    target: str
    fields: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(cls, level: Level | str, target: str, message: str | None = None, /, **fields: object) -> LogEvent:
        """Create an event, placing *message* ahead of the keyword fields."""
        ordered: dict[str, object] = {}
        if message is not None:
            ordered["message"] = message
        ordered.update(fields)
        return cls(level, target, MappingProxyType(ordered))

    def record(self, visitor: FieldVisitor) -> None:
        """Push every field into *visitor*, in order."""
        for key, value in self.fields.items():
            visit_field(visitor, key, value)
