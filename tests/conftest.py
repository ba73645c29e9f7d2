# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Shared test fixtures for flat-json-log tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field

import pytest

from flat_json_log.scope import _current_scope

FIXED_NS = 1_700_000_000_123_456_789
"""2023-11-14T22:13:20.123456789Z"""


@dataclass
class StubScope:
    """ScopeRef whose recorded fields are supplied verbatim."""

    name: str
    parent: StubScope | None = None
    recorded_fields: str | Mapping[str, object] | None = None


def chain(*scopes: tuple[str, str | Mapping[str, object] | None]) -> StubScope | None:
    """Build a scope chain from ``(name, fields)`` pairs given outermost first; return the innermost."""
    innermost: StubScope | None = None
    for name, fields in scopes:
        innermost = StubScope(name, innermost, fields)
    return innermost


@dataclass
class LineCapture:
    """Writer recording every ``write`` call."""

    writes: list[str] = field(default_factory=list)

    def write(self, s: str) -> int:
        """Record *s*."""
        self.writes.append(s)
        return len(s)

    @property
    def text(self) -> str:
        """Everything written so far."""
        return "".join(self.writes)


@pytest.fixture()
def capture() -> LineCapture:
    """A fresh line-capturing writer."""
    return LineCapture()


@pytest.fixture()
def fixed_clock() -> Callable[[], int]:
    """A clock that always returns ``FIXED_NS``."""
    return lambda: FIXED_NS


@pytest.fixture(autouse=True)
def _no_active_scope() -> Iterator[None]:
    """Start every test outside any scope."""
    token = _current_scope.set(None)
    yield
    _current_scope.reset(token)
