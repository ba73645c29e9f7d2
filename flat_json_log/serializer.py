# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Flat, single-line JSON serialization of a log event and its scope chain.

Provides :class:`FlatJsonConfig` and :class:`FlatJsonFormat`.  Each event
becomes one JSON object whose keys are emitted in a fixed order:

1. ``timestamp`` (optional): UTC, RFC 3339, nanosecond precision, ``Z`` suffix.
2. ``level``: the canonical level token.
3. ``target`` (optional): the event target, verbatim.
4. The event's own fields, in the order the event produced them.
5. ``span``: the innermost scope's name, only when a scope is active.
6. Every scope's recorded fields, innermost scope first.

Scope fields are concatenated, not merged: a key recorded on two scopes is
written twice.  A scope whose recorded fields do not parse as a JSON object
contributes nothing and the rest of the line is unaffected.

Usage::

    fmt = FlatJsonFormat().with_timestamp(False)
    fmt.write(LogEvent.build(Level.INFO, "svc::handler", "ping"), None, sys.stdout)
"""

from __future__ import annotations

import dataclasses
import json
import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from flat_json_log.log import EventEncodingError, LogEvent, level_text
from flat_json_log.scope import ScopeChain, ScopeRef, recorded_fields

__all__ = [
    "FlatJsonConfig",
    "FlatJsonFormat",
    "LineWriter",
    "rfc3339_nanos",
]

_NANOS_PER_SECOND = 1_000_000_000


class LineWriter(Protocol):
    """Sink for finished lines: anything with a text ``write`` method."""

    def write(self, s: str, /) -> object:
        """Write *s*; errors propagate to the caller."""
        ...


@dataclass(frozen=True)
class FlatJsonConfig:
    """Options controlling the optional top-level keys.

    Attributes:
        include_timestamp: Emit ``timestamp`` first (default ``True``).
        include_target: Emit ``target`` after ``level`` (default ``True``).

    """

    include_timestamp: bool = True
    include_target: bool = True

    def with_timestamp(self, include_timestamp: bool) -> FlatJsonConfig:
        """Return a copy with ``include_timestamp`` set."""
        return dataclasses.replace(self, include_timestamp=include_timestamp)

    def with_target(self, include_target: bool) -> FlatJsonConfig:
        """Return a copy with ``include_target`` set."""
        return dataclasses.replace(self, include_target=include_target)


def rfc3339_nanos(epoch_ns: int) -> str:
    """Render nanoseconds since the epoch as ``YYYY-MM-DDTHH:MM:SS.nnnnnnnnnZ``."""
    seconds, nanos = divmod(epoch_ns, _NANOS_PER_SECOND)
    stamp = datetime.fromtimestamp(seconds, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")
    return f"{stamp}.{nanos:09d}Z"


def _plain(value: object) -> object:
    """Normalize a nested value into what ``json.dumps`` encodes natively."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, Mapping):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _utf8_json(value: object) -> str:
    """Encode *value*, escaping non-ASCII only when the text is not valid UTF-8 (lone surrogates)."""
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=True, allow_nan=False)
    return text


def _dumps(value: object) -> str:
    try:
        return _utf8_json(_plain(value))
    except (TypeError, ValueError, RecursionError) as exc:
        raise EventEncodingError(f"Cannot encode value of type {type(value).__name__}: {exc}") from exc


class _EntryWriter:
    """Field visitor accumulating ``"key":value`` entries of one object."""

    __slots__ = ("entries",)

    def __init__(self) -> None:
        self.entries: list[str] = []

    def entry(self, key: str, value: object) -> None:
        if not isinstance(key, str):
            raise EventEncodingError(f"Field keys must be strings, got {type(key).__name__}")
        self.entries.append(f"{_utf8_json(key)}:{_dumps(value)}")

    def record_str(self, key: str, value: str) -> None:
        self.entry(key, value)

    def record_int(self, key: str, value: int) -> None:
        self.entry(key, value)

    def record_float(self, key: str, value: float) -> None:
        self.entry(key, value)

    def record_bool(self, key: str, value: bool) -> None:
        self.entry(key, value)

    def record_value(self, key: str, value: object) -> None:
        self.entry(key, value)

    def record_debug(self, key: str, value: object) -> None:
        raise EventEncodingError(f"Field {key!r} has no JSON representation: {type(value).__name__}")

    def finish(self) -> str:
        return "{" + ",".join(self.entries) + "}"


class FlatJsonFormat:
    """Serializer producing one flat JSON object per event.

    Immutable after construction and safe to share between threads; the
    ``with_*`` methods return new instances.
    """

    __slots__ = ("_clock", "_config")

    def __init__(self, config: FlatJsonConfig | None = None, *, clock: Callable[[], int] = time.time_ns) -> None:
        """Create a serializer.

        Args:
            config: Key options; defaults to timestamp and target enabled.
            clock: Returns the current time in nanoseconds since the epoch.

        """
        self._config = config if config is not None else FlatJsonConfig()
        self._clock = clock

    @property
    def config(self) -> FlatJsonConfig:
        """The options this serializer was built with."""
        return self._config

    def with_timestamp(self, include_timestamp: bool) -> FlatJsonFormat:
        """Return a serializer with ``include_timestamp`` set."""
        return FlatJsonFormat(self._config.with_timestamp(include_timestamp), clock=self._clock)

    def with_target(self, include_target: bool) -> FlatJsonFormat:
        """Return a serializer with ``include_target`` set."""
        return FlatJsonFormat(self._config.with_target(include_target), clock=self._clock)

    def serialize(self, event: LogEvent, scope: ScopeRef | ScopeChain | None = None) -> str:
        """Return the JSON object text for *event*, without a line terminator.

        Raises:
            EventEncodingError: If the level or a field value cannot be encoded.

        """
        out = _EntryWriter()
        if self._config.include_timestamp:
            out.entry("timestamp", rfc3339_nanos(self._clock()))
        out.entry("level", level_text(event.level))
        if self._config.include_target:
            out.entry("target", event.target)

        event.record(out)

        chain = scope if isinstance(scope, ScopeChain) else ScopeChain(scope)
        for span, ordinal in chain:
            if ordinal == 0:
                out.entry("span", span.name)
            for key, value in recorded_fields(span):
                out.entry(key, value)

        return out.finish()

    def format(self, event: LogEvent, scope: ScopeRef | ScopeChain | None = None) -> str:
        """Return the complete output line for *event*, including the ``\\n``."""
        return self.serialize(event, scope) + "\n"

    def write(self, event: LogEvent, scope: ScopeRef | ScopeChain | None, writer: LineWriter) -> None:
        """Format *event* and hand the whole line to *writer* in one call.

        Nothing is written if formatting fails.  Errors raised by *writer*
        propagate unchanged.
        """
        writer.write(self.format(event, scope))
