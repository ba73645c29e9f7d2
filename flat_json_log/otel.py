# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""OpenTelemetry trace correlation for flat JSON log lines.

Provides ``trace_context_fields()``, a field provider that adds the active
span's ``trace_id`` and ``span_id`` to every event so that log lines can be
joined with exported traces.

Requires ``pip install flat-json-log[otel]`` (opentelemetry-api).

Usage::

    from flat_json_log.logging_utils import FlatJsonFormatter
    from flat_json_log.otel import trace_context_fields

    handler.setFormatter(FlatJsonFormatter(field_providers=[trace_context_fields]))
"""

from __future__ import annotations

from opentelemetry import trace

__all__ = ["trace_context_fields"]


def trace_context_fields() -> dict[str, object]:
    """Return ``trace_id`` / ``span_id`` of the current span as lowercase hex.

    Returns an empty dict when no valid span is active.
    """
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return {}
    return {
        "trace_id": trace.format_trace_id(span_context.trace_id),
        "span_id": trace.format_span_id(span_context.span_id),
    }
