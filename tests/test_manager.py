"""Tests for the StorageManager facade."""

from __future__ import annotations

import json

import pytest

from restified.builtins import BuiltinFunctionRegistry
from restified.cache import CachedResponse
from restified.exceptions import ExtractionError, UnresolvedVariableError
from restified.manager import StorageManager, generate_response_key
from restified.models import CacheConfig, RestifiedConfig, Scope


@pytest.fixture
def storage(clock) -> StorageManager:
    config = RestifiedConfig(cache=CacheConfig(max_size=10, default_ttl_ms=None))
    manager = StorageManager(config, clock=clock)
    yield manager
    manager.close()


class TestResolve:
    def test_resolve_uses_store(self, storage: StorageManager) -> None:
        storage.store.set_global("base", "https://api.example.com")
        storage.store.set_local("id", 5)
        assert storage.resolve("{{base}}/users/{{id}}") == "https://api.example.com/users/5"

    def test_resolve_object(self, storage: StorageManager) -> None:
        storage.store.set_local("name", "Ada")
        assert storage.resolve_object({"user": {"name": "{{name}}"}}) == {"user": {"name": "Ada"}}

    def test_default_registry_installed(self, storage: StorageManager) -> None:
        assert "random" in storage.registry
        assert len(storage.resolve("{{$random.uuid}}")) == 36

    def test_custom_registry(self) -> None:
        registry = BuiltinFunctionRegistry()
        registry.register("const", lambda path, args: "K")
        with StorageManager(registry=registry) as storage:
            assert storage.resolve("{{$const.x}}") == "K"
            assert storage.registry is registry


class TestResponses:
    def test_store_and_get_with_key(self, storage: StorageManager, make_response) -> None:
        key = storage.store_response(make_response(), key="login")
        assert key == "login"
        assert storage.get_response("login")["status"] == 200

    def test_generated_key(self, storage: StorageManager, make_response) -> None:
        key = storage.store_response(make_response(201, "https://api.example.com/users?a=1", "POST"))
        assert key.startswith("POST-https___api_example_com_users_a_1-201-")
        assert storage.get_response(key) is not None

    def test_generate_response_key_format(self, make_response) -> None:
        key = generate_response_key(make_response(200, "https://x.test/a b"), now=1.5)
        assert key == "GET-https___x_test_a_b-200-1500"

    def test_find_responses(self, storage: StorageManager, make_response) -> None:
        storage.store_response(make_response(200), key="ok")
        storage.store_response(make_response(500), key="err")
        assert [hit.key for hit in storage.find_responses(status=500)] == ["err"]


class TestExtract:
    def test_extract_into_local_scope(self, storage: StorageManager, make_response) -> None:
        storage.store_response(make_response(body={"data": {"items": [{"id": 42}]}}), key="list")
        assert storage.extract("list", "data.items.0.id", "firstId") == 42
        assert storage.store.get_local("firstId") == 42
        assert storage.resolve("/items/{{firstId}}") == "/items/42"

    def test_extract_into_global_scope(self, storage: StorageManager, make_response) -> None:
        storage.store_response(make_response(body={"token": "abc"}), key="login")
        storage.extract("login", "token", "token", scope=Scope.GLOBAL)
        storage.reset_chain()
        assert storage.resolve("{{token}}") == "abc"

    def test_extract_whole_body(self, storage: StorageManager, make_response) -> None:
        storage.store_response(make_response(body=[1, 2]), key="nums")
        assert storage.extract("nums", "", "all") == [1, 2]

    def test_extract_from_cached_response_model(self, storage: StorageManager) -> None:
        storage.store_response(CachedResponse(status_code=200, body={"id": 9}), key="r")
        assert storage.extract("r", "id", "rid") == 9

    def test_missing_response(self, storage: StorageManager) -> None:
        with pytest.raises(ExtractionError, match="no cached response"):
            storage.extract("nope", "id", "x")

    def test_missing_path(self, storage: StorageManager, make_response) -> None:
        storage.store_response(make_response(), key="r")
        with pytest.raises(ExtractionError) as exc_info:
            storage.extract("r", "data.missing", "x")
        assert exc_info.value.path == "data.missing"
        assert not storage.store.has("x")


class TestLifecycle:
    def test_reset_chain_clears_local_only(self, storage: StorageManager) -> None:
        storage.store.set_global("g", 1)
        storage.store.set_local("l", 2)
        storage.reset_chain()
        assert storage.store.get_keys() == ["g"]
        with pytest.raises(UnresolvedVariableError):
            storage.resolve("{{l}}")

    def test_clear_all(self, storage: StorageManager, make_response) -> None:
        storage.store.set_global("g", 1)
        storage.store_response(make_response(), key="r")
        storage.clear_all()
        assert storage.store.get_keys() == []
        assert storage.cache.keys() == []

    def test_stats(self, storage: StorageManager, make_response) -> None:
        storage.store.set_global("g", 1)
        storage.store_response(make_response(), key="r")
        stats = storage.get_stats()
        assert stats.scopes.total == 1
        assert stats.cache.size == 1

    def test_export_import(self, storage: StorageManager, clock, make_response) -> None:
        storage.store.set_global("base", "u")
        storage.store.set_local("id", 3)
        storage.store_response(make_response(), key="r")
        exported = storage.export_all()
        json.dumps(exported)

        with StorageManager(clock=clock) as other:
            other.import_all(exported)
            assert other.resolve("{{base}}/{{id}}") == "u/3"
            assert other.get_response("r")["status"] == 200

    def test_close_is_idempotent(self) -> None:
        storage = StorageManager(RestifiedConfig(cache=CacheConfig(enable_cleanup=True)))
        storage.close()
        storage.close()
        assert storage.cache.closed
