# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Tests for flat_json_log.scope — chain walking, recorded fields and context scopes."""

from __future__ import annotations

import asyncio
import logging
import threading

import pytest

from flat_json_log.scope import (
    Scope,
    ScopeChain,
    current_scope,
    enter_scope,
    recorded_fields,
    walk_scope_chain,
)
from tests.conftest import StubScope, chain

# ---------------------------------------------------------------------------
# walk_scope_chain / ScopeChain
# ---------------------------------------------------------------------------


class TestWalkScopeChain:
    """Tests for innermost-to-root traversal."""

    def test_none_is_empty(self) -> None:
        """No active scope yields nothing."""
        assert list(walk_scope_chain(None)) == []

    def test_ordinals_innermost_first(self) -> None:
        """Ordinal 0 is the innermost scope; ordinals increase outward."""
        leaf = chain(("root", None), ("mid", None), ("leaf", None))
        assert [(s.name, i) for s, i in walk_scope_chain(leaf)] == [("leaf", 0), ("mid", 1), ("root", 2)]

    def test_lazy(self) -> None:
        """The walk follows parent links only as it is consumed."""
        leaf = chain(("root", None), ("leaf", None))
        walk = walk_scope_chain(leaf)
        first, _ = next(walk)
        assert first is leaf
        assert leaf is not None
        leaf.parent = StubScope("replaced")
        assert [s.name for s, _ in walk] == ["replaced"]

    def test_scope_chain_reiterable(self) -> None:
        """A ScopeChain restarts from the innermost scope on every iteration."""
        scopes = ScopeChain(chain(("a", None), ("b", None)))
        assert [s.name for s, _ in scopes] == ["b", "a"]
        assert [s.name for s, _ in scopes] == ["b", "a"]
        assert list(ScopeChain(None)) == []


# ---------------------------------------------------------------------------
# recorded_fields
# ---------------------------------------------------------------------------


class TestRecordedFields:
    """Tests for reading a scope's recorded fields."""

    def test_blob_order_preserved(self) -> None:
        """Pairs come back in the blob's own key order."""
        scope = StubScope("s", None, '{"b":1,"a":2,"c":3}')
        assert list(recorded_fields(scope)) == [("b", 1), ("a", 2), ("c", 3)]

    def test_none(self) -> None:
        """A scope with nothing recorded contributes nothing."""
        assert list(recorded_fields(StubScope("s"))) == []

    def test_mapping(self) -> None:
        """Mappings are read without parsing."""
        assert list(recorded_fields(StubScope("s", None, {"k": "v"}))) == [("k", "v")]

    @pytest.mark.parametrize("blob", ["not-json", "[1]", "3", "true", '"s"', "{"])
    def test_invalid_blob(self, blob: str) -> None:
        """Anything that is not a JSON object yields no fields."""
        assert list(recorded_fields(StubScope("s", None, blob))) == []

    def test_invalid_blob_logged_at_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        """A skipped blob is reported on the flat_json_log.scope logger."""
        with caplog.at_level(logging.DEBUG, logger="flat_json_log.scope"):
            recorded_fields(StubScope("broken", None, "not-json"))
        records = [r for r in caplog.records if r.name == "flat_json_log.scope"]
        assert len(records) == 1
        assert records[0].levelno == logging.DEBUG
        assert "broken" in records[0].getMessage()


# ---------------------------------------------------------------------------
# Scope
# ---------------------------------------------------------------------------


class TestScope:
    """Tests for the concrete Scope."""

    def test_fields_serialized_at_creation(self) -> None:
        """The blob is compact JSON of the creation-time fields."""
        scope = Scope("req", None, method="GET", status=200)
        assert scope.recorded_fields == '{"method":"GET","status":200}'

    def test_name_and_parent_are_not_fields(self) -> None:
        """Fields may be called name or parent without clashing with the scope's own attributes."""
        parent = Scope("p")
        scope = Scope("c", parent, name="field-name", parent="field-parent")
        assert scope.name == "c"
        assert scope.parent is parent
        assert scope.recorded_fields == '{"name":"field-name","parent":"field-parent"}'

    def test_non_native_values_use_repr(self) -> None:
        """Values with no JSON form are captured as their repr."""

        class _Thing:
            def __repr__(self) -> str:
                return "<thing>"

        assert Scope("s", None, obj=_Thing()).recorded_fields == '{"obj":"<thing>"}'

    def test_record_updates_blob(self) -> None:
        """Late-recorded fields are merged into the blob in place."""
        scope = Scope("s", None, a=1)
        scope.record(b=2, a=3)
        assert scope.recorded_fields == '{"a":3,"b":2}'

    def test_repr(self) -> None:
        """repr shows the name and the blob."""
        assert repr(Scope("s", None, a=1)) == "Scope('s', fields={\"a\":1})"


# ---------------------------------------------------------------------------
# enter_scope / current_scope
# ---------------------------------------------------------------------------


class TestEnterScope:
    """Tests for context-local scope tracking."""

    def test_nesting_and_restore(self) -> None:
        """Entering nests under the current scope; leaving restores it."""
        assert current_scope() is None
        with enter_scope("outer", x=1) as outer:
            assert current_scope() is outer
            with enter_scope("inner") as inner:
                assert inner.parent is outer
                assert current_scope() is inner
            assert current_scope() is outer
        assert current_scope() is None

    def test_restored_on_exception(self) -> None:
        """The previous scope is restored when the block raises."""
        with pytest.raises(RuntimeError), enter_scope("doomed"):
            raise RuntimeError("boom")
        assert current_scope() is None

    def test_threads_are_isolated(self) -> None:
        """A scope entered on one thread is invisible to another."""
        seen: list[object] = []
        entered = threading.Event()
        checked = threading.Event()

        def _other() -> None:
            entered.wait(timeout=5)
            seen.append(current_scope())
            checked.set()

        thread = threading.Thread(target=_other)
        thread.start()
        with enter_scope("main-only"):
            entered.set()
            checked.wait(timeout=5)
        thread.join(timeout=5)
        assert seen == [None]

    def test_tasks_are_isolated(self) -> None:
        """Concurrent asyncio tasks each see their own scope chain."""

        async def _task(name: str) -> list[str]:
            with enter_scope(name):
                await asyncio.sleep(0)
                return [s.name for s, _ in ScopeChain(current_scope())]

        async def _main() -> list[list[str]]:
            with enter_scope("root"):
                return list(await asyncio.gather(_task("a"), _task("b")))

        assert asyncio.run(_main()) == [["a", "root"], ["b", "root"]]
