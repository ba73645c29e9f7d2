# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Flat JSON formatter for the standard library ``logging`` module.

Provides :class:`FlatJsonFormatter`, a :class:`logging.Formatter` subclass
that turns each record into a :class:`~flat_json_log.log.LogEvent` and
serializes it, together with the scopes entered via
:func:`~flat_json_log.scope.enter_scope`, as a single-line JSON object.
All ``extra`` fields attached to a record (via ``LoggerAdapter`` or
per-call ``extra``) are included, in the order they were supplied.

Attach it to any handler::

    handler = logging.StreamHandler()
    handler.setFormatter(FlatJsonFormatter())
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence

from flat_json_log.log import Level, LogEvent
from flat_json_log.scope import current_scope
from flat_json_log.serializer import FlatJsonConfig, FlatJsonFormat

__all__ = ["TRACE", "FlatJsonFormatter", "level_for"]

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Build the set of attribute names that every LogRecord has by default.
# Anything *not* in this set was injected via ``extra``.
_DEFAULT_RECORD_ATTRS: frozenset[str] = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()) | {
    "message",
    "asctime",
    "taskName",
}

_NATIVE_TYPES = (str, int, float, bool, type(None))

FieldProvider = Callable[[], Mapping[str, object]]
"""Zero-argument callable returning extra fields for the current event."""


def level_for(levelno: int) -> Level:
    """Map a numeric ``logging`` level onto the nearest :class:`Level` at or above it."""
    if levelno <= TRACE:
        return Level.TRACE
    if levelno <= logging.DEBUG:
        return Level.DEBUG
    if levelno <= logging.INFO:
        return Level.INFO
    if levelno <= logging.WARNING:
        return Level.WARN
    return Level.ERROR


def _loggable(value: object) -> object:
    """Return *value* if it is JSON-native, otherwise its ``repr``."""
    if isinstance(value, _NATIVE_TYPES):
        return value
    if isinstance(value, Mapping):
        return {str(k): _loggable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_loggable(v) for v in value]
    return repr(value)


class FlatJsonFormatter(logging.Formatter):
    """Formatter emitting one flat JSON object per log record.

    The output starts with ``timestamp`` (optional), ``level`` and
    ``target`` (the logger name, optional), followed by ``message``, every
    ``extra`` field, any field-provider output, then ``exception`` and
    ``stack_info`` when present.  If a scope is active, ``span`` and the
    fields recorded on each enclosing scope follow.

    Non-serializable values are rendered with ``repr`` rather than failing
    the record.
    """

    def __init__(
        self,
        config: FlatJsonConfig | None = None,
        *,
        field_providers: Sequence[FieldProvider] = (),
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        """Create a formatter.

        Args:
            config: Key options passed to :class:`FlatJsonFormat`.
            field_providers: Callables whose fields are appended to every event.
            clock: Nanosecond clock used for ``timestamp``.

        """
        super().__init__()
        self._serializer = FlatJsonFormat(config, clock=clock)
        self._field_providers = tuple(field_providers)

    def to_event(self, record: logging.LogRecord) -> LogEvent:
        """Build the :class:`LogEvent` for *record*."""
        record.message = record.getMessage()
        fields: dict[str, object] = {"message": record.message}
        for key, value in record.__dict__.items():
            if key not in _DEFAULT_RECORD_ATTRS:
                fields[key] = _loggable(value)
        for provider in self._field_providers:
            for key, value in provider().items():
                fields[key] = _loggable(value)
        if record.exc_info and record.exc_info[1]:
            fields["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            fields["stack_info"] = self.formatStack(record.stack_info)
        return LogEvent(level_for(record.levelno), record.name, fields)

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a single-line JSON string."""
        return self._serializer.serialize(self.to_event(record), current_scope())
