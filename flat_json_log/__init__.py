# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Flat, single-line JSON rendering of log events and their enclosing scopes."""

import contextlib
import logging

from flat_json_log.log import EventEncodingError, FieldVisitor, FlatJsonError, Level, LogEvent
from flat_json_log.logging_utils import TRACE, FlatJsonFormatter
from flat_json_log.scope import (
    Scope,
    ScopeChain,
    ScopeRef,
    current_scope,
    enter_scope,
    recorded_fields,
    walk_scope_chain,
)
from flat_json_log.serializer import FlatJsonConfig, FlatJsonFormat, LineWriter, rfc3339_nanos

# OpenTelemetry correlation (optional — requires `pip install flat-json-log[otel]`)
with contextlib.suppress(ImportError):
    from flat_json_log.otel import trace_context_fields

__all__ = [
    # Core
    "FlatJsonConfig",
    "FlatJsonFormat",
    "LineWriter",
    "rfc3339_nanos",
    # Events
    "FieldVisitor",
    "Level",
    "LogEvent",
    # Scopes
    "Scope",
    "ScopeChain",
    "ScopeRef",
    "current_scope",
    "enter_scope",
    "recorded_fields",
    "walk_scope_chain",
    # Logging integration
    "TRACE",
    "FlatJsonFormatter",
    # Errors
    "EventEncodingError",
    "FlatJsonError",
]

if "trace_context_fields" in dir():
    __all__.append("trace_context_fields")

# Attach NullHandler so library users don't get "No handler found" warnings.
logging.getLogger("flat_json_log").addHandler(logging.NullHandler())
