"""Facade wiring the variable store, builtins, resolver and response cache.

A DSL runner creates one :class:`StorageManager` per test session (or per
worker thread) and passes it to every step; there is no process-wide
instance. A typical request chain looks like::

    with StorageManager() as storage:
        storage.store.set_global("base", "https://api.example.com")
        url = storage.resolve("{{base}}/users")
        key = storage.store_response(CachedResponse.from_httpx(response))
        storage.extract(key, "id", "userId")
        storage.resolve("{{base}}/users/{{userId}}")
        storage.reset_chain()
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Mapping, Optional

from restified.builtins import BuiltinFunctionRegistry, default_registry
from restified.cache import CacheHit, ResponseCache
from restified.cache.query import TimePoint, UrlMatcher, payload_method, payload_status, payload_url
from restified.exceptions import ExtractionError
from restified.models import ExportedEntry, RestifiedConfig, Scope, ScopeSnapshot, StorageStats
from restified.stores.scope import ScopeStore
from restified.stores.values import MISSING, walk
from restified.templating import TemplateResolver

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_-]")


class StorageManager:
    """Runtime state for one DSL session.

    Args:
        config: Effective configuration; defaults to model defaults.
        registry: Builtin registry to use instead of
            :func:`~restified.builtins.default_registry`.
        clock: Time source (epoch seconds) for the response cache.
    """

    def __init__(
        self,
        config: Optional[RestifiedConfig] = None,
        registry: Optional[BuiltinFunctionRegistry] = None,
        clock: Any = None,
    ) -> None:
        self._config = config or RestifiedConfig()
        self._store = ScopeStore()
        self._registry = registry if registry is not None else default_registry(self._config.builtins)
        self._resolver = TemplateResolver(self._store, self._registry)
        self._cache = ResponseCache(self._config.cache, clock=clock)

    @property
    def config(self) -> RestifiedConfig:
        return self._config

    @property
    def store(self) -> ScopeStore:
        return self._store

    @property
    def registry(self) -> BuiltinFunctionRegistry:
        return self._registry

    @property
    def resolver(self) -> TemplateResolver:
        return self._resolver

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, template: str) -> str:
        return self._resolver.resolve(template)

    def resolve_object(self, value: Any) -> Any:
        return self._resolver.resolve_object(value)

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def store_response(
        self,
        payload: Any,
        key: Optional[str] = None,
        ttl_ms: Optional[int] = None,
    ) -> str:
        """Cache *payload* and return the key it was stored under.

        Without an explicit *key* one is generated as
        ``METHOD-url-status-millis`` with every character outside
        ``[A-Za-z0-9_-]`` replaced by ``_``.
        """
        if key is None:
            key = generate_response_key(payload)
        self._cache.store(key, payload, ttl_ms=ttl_ms)
        logger.debug("Stored response under '%s'", key)
        return key

    def get_response(self, key: str) -> Any:
        return self._cache.get(key)

    def extract(
        self,
        key: str,
        path: str,
        variable: str,
        scope: Scope = Scope.LOCAL,
    ) -> Any:
        """Copy a value from a cached response body into a variable.

        Args:
            key: Cache key of the response.
            path: Dotted path into the body (``"data.items.0.id"``); an
                empty path selects the whole body.
            variable: Variable name to bind.
            scope: Scope to bind it in.

        Returns:
            The extracted value.

        Raises:
            ExtractionError: If the response is absent or expired, or the
                path does not exist in its body.
            InvalidValueError: If the extracted value is not JSON-like.
        """
        payload = self._cache.get(key)
        if payload is None:
            raise ExtractionError(path, f"no cached response under key '{key}'")

        segments = [segment for segment in path.split(".") if segment] if path else []
        value = walk(_response_body(payload), segments)
        if value is MISSING:
            raise ExtractionError(path, f"path not found in response '{key}'")

        self._store.set(variable, value, scope)
        return value

    def find_responses(
        self,
        status: Optional[int] = None,
        url: Optional[UrlMatcher] = None,
        since: Optional[TimePoint] = None,
        until: Optional[TimePoint] = None,
        method: Optional[str] = None,
    ) -> list[CacheHit]:
        return self._cache.query(status=status, url=url, since=since, until=until, method=method)

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_all(self) -> dict[str, Any]:
        """Return ``{"scopes": {...}, "cache": [...]}`` as JSON-compatible data."""
        return {
            "scopes": self._store.export_snapshot().model_dump(by_alias=True),
            "cache": [entry.model_dump(mode="json") for entry in self._cache.export()],
        }

    def import_all(self, data: Mapping[str, Any]) -> None:
        """Restore state produced by :meth:`export_all`.

        Scopes are replaced wholesale; cache entries are added (expired ones
        are skipped).
        """
        scopes = data.get("scopes")
        if scopes is not None:
            self._store.import_snapshot(
                scopes if isinstance(scopes, ScopeSnapshot) else ScopeSnapshot.model_validate(scopes)
            )
        entries = data.get("cache") or []
        self._cache.import_entries(
            entry if isinstance(entry, ExportedEntry) else ExportedEntry.model_validate(entry)
            for entry in entries
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def get_stats(self) -> StorageStats:
        return StorageStats(scopes=self._store.get_stats(), cache=self._cache.get_stats())

    def reset_chain(self) -> None:
        """Forget chain-scoped state by clearing the local scope."""
        self._store.clear_local()

    def clear_all(self) -> None:
        self._store.clear_all()
        self._cache.clear()

    def close(self) -> None:
        self._cache.close()

    def __enter__(self) -> "StorageManager":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def generate_response_key(payload: Any, now: Optional[float] = None) -> str:
    """Build a cache key of the form ``METHOD-url-status-millis``."""
    millis = int((time.time() if now is None else now) * 1000)
    method = payload_method(payload) or "GET"
    url = payload_url(payload) or ""
    status = payload_status(payload)
    raw = f"{method}-{url}-{status if status is not None else 0}-{millis}"
    return _UNSAFE_KEY_CHARS.sub("_", raw)


def _response_body(payload: Any) -> Any:
    if isinstance(payload, dict):
        return payload["body"] if "body" in payload else payload
    body = getattr(payload, "body", MISSING)
    return payload if body is MISSING else body
