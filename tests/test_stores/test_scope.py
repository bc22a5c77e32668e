"""Tests for ScopeStore -- global/local bindings and shadowing."""

from __future__ import annotations

import threading

import pytest

from restified.exceptions import InvalidValueError
from restified.models import Scope, ScopeSnapshot
from restified.stores import ScopeStore


# ------------------------------------------------------------------ #
# Basic reads and writes
# ------------------------------------------------------------------ #


class TestSetGet:
    def test_global_binding(self, store: ScopeStore) -> None:
        store.set_global("base", "https://api.example.com")
        assert store.get("base") == "https://api.example.com"
        assert store.get_global("base") == "https://api.example.com"
        assert store.get_local("base") is None

    def test_local_binding(self, store: ScopeStore) -> None:
        store.set_local("id", 42)
        assert store.get("id") == 42
        assert store.get_global("id") is None

    def test_set_defaults_to_local(self, store: ScopeStore) -> None:
        store.set("token", "abc")
        store.set("base", "x", Scope.GLOBAL)
        assert store.get_all_local() == {"token": "abc"}
        assert store.get_all_global() == {"base": "x"}

    def test_set_accepts_scope_string(self, store: ScopeStore) -> None:
        store.set("base", "x", "global")
        assert store.get_global("base") == "x"

    def test_missing_key_returns_default(self, store: ScopeStore) -> None:
        assert store.get("nope") is None
        assert store.get("nope", "fallback") == "fallback"

    def test_null_value_distinguished_by_has(self, store: ScopeStore) -> None:
        store.set_local("empty", None)
        assert store.get("empty") is None
        assert store.has("empty")
        assert not store.has("other")

    def test_overwrite_replaces(self, store: ScopeStore) -> None:
        store.set_global("k", 1)
        store.set_global("k", 2)
        assert store.get("k") == 2

    def test_contains(self, store: ScopeStore) -> None:
        store.set_local("k", 1)
        assert "k" in store
        assert "missing" not in store
        assert 1 not in store


class TestShadowing:
    def test_local_shadows_global(self, store: ScopeStore) -> None:
        store.set_global("x", 1)
        store.set_local("x", 2)
        assert store.get("x") == 2
        assert store.get_global("x") == 1

    def test_clear_local_reveals_global(self, store: ScopeStore) -> None:
        store.set_global("x", 1)
        store.set_local("x", 2)
        store.clear_local()
        assert store.get("x") == 1

    def test_view_merges_with_local_precedence(self, store: ScopeStore) -> None:
        store.set_global_batch({"a": 1, "b": 2})
        store.set_local_batch({"b": 3, "c": 4})
        assert store.view() == {"a": 1, "b": 3, "c": 4}

    def test_get_keys_is_sorted_union(self, store: ScopeStore) -> None:
        store.set_global_batch({"b": 1, "a": 1})
        store.set_local_batch({"b": 2, "c": 3})
        assert store.get_keys() == ["a", "b", "c"]


# ------------------------------------------------------------------ #
# Isolation from caller mutations
# ------------------------------------------------------------------ #


class TestCopies:
    def test_input_is_copied(self, store: ScopeStore) -> None:
        user = {"id": 1, "tags": ["a"]}
        store.set_local("user", user)
        user["tags"].append("b")
        assert store.get("user") == {"id": 1, "tags": ["a"]}

    def test_output_is_copied(self, store: ScopeStore) -> None:
        store.set_local("user", {"tags": ["a"]})
        store.get("user")["tags"].append("b")
        assert store.get("user") == {"tags": ["a"]}

    def test_view_is_point_in_time(self, store: ScopeStore) -> None:
        store.set_global("a", 1)
        snapshot = store.view()
        store.set_global("a", 2)
        store.set_global("b", 3)
        assert snapshot == {"a": 1}


# ------------------------------------------------------------------ #
# Validation
# ------------------------------------------------------------------ #


class TestValidation:
    def test_rejects_unsupported_value(self, store: ScopeStore) -> None:
        with pytest.raises(InvalidValueError) as exc_info:
            store.set_global("when", object())
        assert exc_info.value.key == "when"
        assert "object" in str(exc_info.value)

    def test_rejects_nan(self, store: ScopeStore) -> None:
        with pytest.raises(InvalidValueError):
            store.set_local("n", float("nan"))

    def test_batch_is_all_or_nothing(self, store: ScopeStore) -> None:
        with pytest.raises(InvalidValueError):
            store.set_global_batch({"ok": 1, "bad": {1, 2}})
        assert store.get_all_global() == {}

    def test_tuples_are_stored_as_lists(self, store: ScopeStore) -> None:
        store.set_local("pair", (1, 2))
        assert store.get("pair") == [1, 2]


# ------------------------------------------------------------------ #
# Delete / clear
# ------------------------------------------------------------------ #


class TestDeleteClear:
    def test_delete_without_scope_removes_local_first(self, store: ScopeStore) -> None:
        store.set_global("x", 1)
        store.set_local("x", 2)
        assert store.delete("x") is True
        assert store.get("x") == 1
        assert store.delete("x") is True
        assert store.delete("x") is False

    def test_delete_in_scope(self, store: ScopeStore) -> None:
        store.set_global("x", 1)
        assert store.delete("x", Scope.LOCAL) is False
        assert store.delete("x", Scope.GLOBAL) is True

    def test_clear_global_keeps_local(self, store: ScopeStore) -> None:
        store.set_global("g", 1)
        store.set_local("l", 2)
        store.clear_global()
        assert store.get_keys() == ["l"]

    def test_clear_all(self, store: ScopeStore) -> None:
        store.set_global("g", 1)
        store.set_local("l", 2)
        store.clear_all()
        assert store.get_keys() == []


# ------------------------------------------------------------------ #
# Snapshots and stats
# ------------------------------------------------------------------ #


class TestSnapshots:
    def test_export_import_roundtrip(self, store: ScopeStore) -> None:
        store.set_global("base", "u")
        store.set_local("id", 7)
        snapshot = store.export_snapshot()

        other = ScopeStore()
        other.set_global("stale", True)
        other.import_snapshot(snapshot)
        assert other.get_all_global() == {"base": "u"}
        assert other.get_all_local() == {"id": 7}

    def test_snapshot_dumps_with_scope_names(self, store: ScopeStore) -> None:
        store.set_global("a", 1)
        dumped = store.export_snapshot().model_dump(by_alias=True)
        assert dumped == {"global": {"a": 1}, "local": {}}

    def test_import_from_mapping(self, store: ScopeStore) -> None:
        store.import_snapshot({"global": {"a": 1}, "local": {"b": [1]}})
        assert store.view() == {"a": 1, "b": [1]}

    def test_import_validates_values(self, store: ScopeStore) -> None:
        store.set_global("keep", 1)
        snapshot = ScopeSnapshot(global_vars={"bad": object()})
        with pytest.raises(InvalidValueError):
            store.import_snapshot(snapshot)
        assert store.get("keep") == 1


class TestStats:
    def test_counts(self, store: ScopeStore) -> None:
        store.set_global_batch({"a": 1, "b": 2})
        store.set_local("a", 3)
        stats = store.get_stats()
        assert stats.global_count == 2
        assert stats.local_count == 1
        assert stats.total == 3
        assert stats.memory_usage_estimate > 0

    def test_empty(self, store: ScopeStore) -> None:
        stats = store.get_stats()
        assert stats.total == 0
        assert stats.memory_usage_estimate == 0


class TestConcurrency:
    def test_parallel_writers(self, store: ScopeStore) -> None:
        def writer(prefix: str) -> None:
            for i in range(200):
                store.set_local(f"{prefix}{i}", i)

        threads = [threading.Thread(target=writer, args=(p,)) for p in "abcd"]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert store.get_stats().local_count == 800
