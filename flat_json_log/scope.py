# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Scope chains: walking ancestry and reading recorded fields.

A scope (span) is a named unit of context whose fields are captured once,
when it is created.  Every event logged inside it reuses those fields.
Scopes are owned by whatever tracks them; this module only reads them
through the :class:`ScopeRef` protocol.

:class:`Scope` and :func:`enter_scope` provide a minimal context-local
implementation used by :class:`~flat_json_log.logging_utils.FlatJsonFormatter`::

    with enter_scope("parent", x=7), enter_scope("child", y=9):
        logger.info("Test", extra={"z": 10})
"""

from __future__ import annotations

import contextlib
import json
import logging
from collections.abc import Iterator, Mapping, Sequence
from contextvars import ContextVar
from typing import Protocol

__all__ = [
    "Scope",
    "ScopeChain",
    "ScopeRef",
    "current_scope",
    "enter_scope",
    "recorded_fields",
    "walk_scope_chain",
]

_logger = logging.getLogger("flat_json_log.scope")


class ScopeRef(Protocol):
    """Read-only handle to an open scope.

    Attributes:
        name: Display name, written under the ``span`` key for the innermost scope.
        parent: The enclosing scope, or ``None`` at the root.
        recorded_fields: Fields captured at scope creation, either as JSON
            object text or as an ordered mapping; ``None`` when nothing was recorded.

    """

    @property
    def name(self) -> str: ...

    @property
    def parent(self) -> ScopeRef | None: ...

    @property
    def recorded_fields(self) -> str | Mapping[str, object] | None: ...


def walk_scope_chain(innermost: ScopeRef | None) -> Iterator[tuple[ScopeRef, int]]:
    """Yield ``(scope, ordinal)`` from *innermost* outward to the root.

    Ordinal 0 is the innermost scope.  ``None`` yields nothing.  The chain is
    followed through ``parent`` links and is re-read on every call.
    """
    scope = innermost
    ordinal = 0
    while scope is not None:
        yield scope, ordinal
        scope = scope.parent
        ordinal += 1


class ScopeChain:
    """Re-iterable view of the ancestry of a scope, innermost first."""

    __slots__ = ("_innermost",)

    def __init__(self, innermost: ScopeRef | None) -> None:
        """Wrap *innermost*; ``None`` gives an empty chain."""
        self._innermost = innermost

    def __iter__(self) -> Iterator[tuple[ScopeRef, int]]:
        """Walk the chain from the innermost scope."""
        return walk_scope_chain(self._innermost)


# Set while a skipped blob is being reported so that a handler formatting
# the report with the same scope chain does not report it again.
_reporting: ContextVar[bool] = ContextVar("flat_json_log_reporting", default=False)


def _report_skipped(scope: ScopeRef, reason: str) -> None:
    if _reporting.get():
        return
    token = _reporting.set(True)
    try:
        _logger.debug("Skipping recorded fields of scope %r: %s", scope.name, reason)
    finally:
        _reporting.reset(token)


def recorded_fields(scope: ScopeRef) -> Sequence[tuple[str, object]]:
    """Return the recorded fields of *scope* as ordered ``(key, value)`` pairs.

    A mapping is used as-is.  Text is parsed as JSON; if it does not parse, or
    parses to anything but an object, the scope contributes no fields.
    """
    data = scope.recorded_fields
    if data is None:
        return ()
    if isinstance(data, Mapping):
        return list(data.items())
    try:
        parsed = json.loads(data)
    except (TypeError, ValueError) as exc:
        _report_skipped(scope, f"{type(exc).__name__}: {exc}")
        return ()
    if not isinstance(parsed, dict):
        _report_skipped(scope, f"expected a JSON object, got {type(parsed).__name__}")
        return ()
    return list(parsed.items())


# ---------------------------------------------------------------------------
# Context-local scopes
# ---------------------------------------------------------------------------


def _encode_fields(fields: Mapping[str, object]) -> str:
    return json.dumps(fields, separators=(",", ":"), ensure_ascii=False, default=repr)


class Scope:
    """A named scope whose fields are serialized once, at creation.

    Attributes:
        name: Display name.
        parent: Enclosing scope, or ``None``.

    """

    __slots__ = ("_blob", "_fields", "name", "parent")

    def __init__(self, name: str, parent: Scope | None = None, /, **fields: object) -> None:
        """Create a scope and capture *fields* as a JSON object blob."""
        self.name = name
        self.parent = parent
        self._fields: dict[str, object] = dict(fields)
        self._blob = _encode_fields(self._fields)

    def __repr__(self) -> str:
        """Return a string representation suitable for debugging."""
        return f"Scope({self.name!r}, fields={self._blob})"

    @property
    def recorded_fields(self) -> str:
        """The pre-serialized JSON object text of this scope's fields."""
        return self._blob

    def record(self, **fields: object) -> None:
        """Add or overwrite fields after creation.

        The blob is rebuilt here so that events inside the scope keep reading
        a single pre-serialized string.
        """
        self._fields.update(fields)
        self._blob = _encode_fields(self._fields)


_current_scope: ContextVar[Scope | None] = ContextVar("flat_json_log_scope", default=None)


def current_scope() -> Scope | None:
    """Return the innermost scope entered in the current context."""
    return _current_scope.get()


@contextlib.contextmanager
def enter_scope(name: str, /, **fields: object) -> Iterator[Scope]:
    """Open a child of the current scope for the duration of the block.

    The previous scope becomes current again on exit, even if the block raises.
    """
    scope = Scope(name, _current_scope.get(), **fields)
    token = _current_scope.set(scope)
    try:
        yield scope
    finally:
        _current_scope.reset(token)
