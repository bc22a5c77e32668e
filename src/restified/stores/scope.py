"""Two-scope variable store.

:class:`ScopeStore` keeps a *global* and a *local* namespace of
``key -> JSON value`` bindings. Lookups check the local scope first, so a
local binding shadows a global one with the same key; clearing the local
scope (done between independent request chains) makes the global binding
visible again.

Values are validated and deep-copied on the way in and copied again on the
way out, so neither the caller's object nor a returned snapshot aliases the
store's internal state.

All mutation and snapshotting happens under a single re-entrant lock per
instance, which makes one store safe to share between request chains that
run on different threads.
"""

from __future__ import annotations

import threading
from typing import Any, Mapping, Optional, Union

from restified.exceptions import InvalidValueError
from restified.models import Scope, ScopeSnapshot, ScopeStats
from restified.stores.values import copy_value, estimate_size, normalize


class ScopeStore:
    """Global and local variable bindings with local-over-global shadowing.

    Example::

        store = ScopeStore()
        store.set_global("base_url", "https://api.example.com")
        store.set_local("user", {"id": 7, "tags": ["a", "b"]})
        store.get("user")        # {"id": 7, "tags": ["a", "b"]}
        store.clear_local()
        store.get("user")        # None
    """

    def __init__(self) -> None:
        self._global: dict[str, Any] = {}
        self._local: dict[str, Any] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_global(self, key: str, value: Any) -> None:
        """Bind *key* in the global scope, silently replacing any previous value."""
        stored = _prepare(key, value)
        with self._lock:
            self._global[key] = stored

    def set_local(self, key: str, value: Any) -> None:
        """Bind *key* in the local scope, silently replacing any previous value."""
        stored = _prepare(key, value)
        with self._lock:
            self._local[key] = stored

    def set(self, key: str, value: Any, scope: Scope = Scope.LOCAL) -> None:
        """Bind *key* in *scope* (local by default)."""
        if Scope(scope) == Scope.GLOBAL:
            self.set_global(key, value)
        else:
            self.set_local(key, value)

    def set_global_batch(self, variables: Mapping[str, Any]) -> None:
        """Bind every item of *variables* in the global scope.

        The batch is validated before anything is written, so an invalid
        value leaves the store untouched.
        """
        prepared = {key: _prepare(key, value) for key, value in variables.items()}
        with self._lock:
            self._global.update(prepared)

    def set_local_batch(self, variables: Mapping[str, Any]) -> None:
        """Bind every item of *variables* in the local scope (all-or-nothing)."""
        prepared = {key: _prepare(key, value) for key, value in variables.items()}
        with self._lock:
            self._local.update(prepared)

    def delete(self, key: str, scope: Optional[Scope] = None) -> bool:
        """Remove *key* from *scope*, or from the first scope holding it.

        Returns:
            ``True`` if a binding was removed.
        """
        with self._lock:
            if scope is None:
                targets = (self._local, self._global)
            elif Scope(scope) == Scope.GLOBAL:
                targets = (self._global,)
            else:
                targets = (self._local,)
            for bindings in targets:
                if key in bindings:
                    del bindings[key]
                    return True
        return False

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value bound to *key*, local scope first.

        Returns *default* (``None`` unless given) when the key is bound in
        neither scope. Use :meth:`has` to distinguish an absent key from
        one bound to ``None``.
        """
        with self._lock:
            if key in self._local:
                return copy_value(self._local[key])
            if key in self._global:
                return copy_value(self._global[key])
        return default

    def get_global(self, key: str, default: Any = None) -> Any:
        """Return the global binding of *key*, ignoring any local shadow."""
        with self._lock:
            if key in self._global:
                return copy_value(self._global[key])
        return default

    def get_local(self, key: str, default: Any = None) -> Any:
        """Return the local binding of *key*."""
        with self._lock:
            if key in self._local:
                return copy_value(self._local[key])
        return default

    def has(self, key: str) -> bool:
        """Whether *key* is bound in either scope."""
        with self._lock:
            return key in self._local or key in self._global

    def get_all_global(self) -> dict[str, Any]:
        """Return a deep copy of the global scope."""
        with self._lock:
            return copy_value(self._global)

    def get_all_local(self) -> dict[str, Any]:
        """Return a deep copy of the local scope."""
        with self._lock:
            return copy_value(self._local)

    def get_keys(self) -> list[str]:
        """Return the sorted union of keys across both scopes."""
        with self._lock:
            return sorted(set(self._global) | set(self._local))

    def view(self) -> dict[str, Any]:
        """Return a point-in-time merged mapping with local bindings shadowing global ones.

        The result is a deep copy; later writes to the store are not
        reflected in it.
        """
        with self._lock:
            merged = dict(self._global)
            merged.update(self._local)
            return copy_value(merged)

    # ------------------------------------------------------------------
    # Clearing
    # ------------------------------------------------------------------

    def clear_global(self) -> None:
        with self._lock:
            self._global.clear()

    def clear_local(self) -> None:
        with self._lock:
            self._local.clear()

    def clear_all(self) -> None:
        with self._lock:
            self._global.clear()
            self._local.clear()

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def export_snapshot(self) -> ScopeSnapshot:
        """Capture both scopes in a :class:`~restified.models.ScopeSnapshot`."""
        with self._lock:
            return ScopeSnapshot(
                global_vars=copy_value(self._global),
                local_vars=copy_value(self._local),
            )

    def import_snapshot(self, snapshot: Union[ScopeSnapshot, Mapping[str, Any]]) -> None:
        """Replace the entire state with *snapshot*.

        Accepts a :class:`~restified.models.ScopeSnapshot` or a mapping with
        ``global``/``local`` keys (as produced by
        ``snapshot.model_dump(by_alias=True)``). Existing bindings that are
        not in the snapshot are dropped.
        """
        if not isinstance(snapshot, ScopeSnapshot):
            snapshot = ScopeSnapshot.model_validate(dict(snapshot))
        new_global = {k: _prepare(k, v) for k, v in snapshot.global_vars.items()}
        new_local = {k: _prepare(k, v) for k, v in snapshot.local_vars.items()}
        with self._lock:
            self._global = new_global
            self._local = new_local

    def get_stats(self) -> ScopeStats:
        """Return binding counts and an approximate memory footprint."""
        with self._lock:
            memory = sum(
                len(key) * 2 + estimate_size(value)
                for bindings in (self._global, self._local)
                for key, value in bindings.items()
            )
            return ScopeStats(
                global_count=len(self._global),
                local_count=len(self._local),
                total=len(self._global) + len(self._local),
                memory_usage_estimate=memory,
            )

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __repr__(self) -> str:
        with self._lock:
            return f"ScopeStore(global={len(self._global)}, local={len(self._local)})"


def _prepare(key: str, value: Any) -> Any:
    """Validate and deep-copy *value* for storage under *key*."""
    try:
        return normalize(value)
    except TypeError:
        raise InvalidValueError(key, value) from None
