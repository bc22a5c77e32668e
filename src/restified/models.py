"""Canonical Pydantic models shared across restified modules.

The models fall into three groups:

**Configuration models** -- loaded from ``restified.json`` / environment
variables by :mod:`restified.config`:
    :class:`CacheConfig`, :class:`BuiltinsConfig`, :class:`RestifiedConfig`.

**Scope models** -- produced by :class:`~restified.stores.scope.ScopeStore`:
    :class:`Scope`, :class:`ScopeSnapshot`, :class:`ScopeStats`.

**Cache models** -- produced by :class:`~restified.cache.ResponseCache`:
    :class:`CacheStats`, :class:`ExportedEntry`.

:class:`StorageStats` combines both for
:class:`~restified.manager.StorageManager`.

Range checks for the cache options (``max_size > 0``, non-negative TTL) are
performed by the cache itself at construction time so that they surface as
:class:`~restified.exceptions.InvalidConfigurationError` rather than a
Pydantic validation error.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class CacheConfig(BaseModel):
    """Construction-time options for :class:`~restified.cache.ResponseCache`."""

    max_size: int = Field(default=100, description="Maximum number of live entries")
    default_ttl_ms: Optional[int] = Field(
        default=300_000,
        description="Default entry lifetime in milliseconds; None means never expire",
    )
    enable_cleanup: bool = Field(
        default=False, description="Run a background sweep that purges expired entries"
    )
    cleanup_interval_ms: int = Field(
        default=60_000, description="Interval between background sweeps"
    )


class BuiltinsConfig(BaseModel):
    """Settings for the builtin ``$namespace`` functions."""

    faker_locale: Optional[str] = Field(
        default=None, description="Locale passed to faker.Faker (e.g. 'de_DE')"
    )
    faker_seed: Optional[int] = Field(
        default=None, description="Seed for reproducible $faker values"
    )
    enabled: list[str] = Field(
        default_factory=list,
        description="Entry-point namespaces to load; empty means all discovered",
    )
    disabled: list[str] = Field(
        default_factory=list, description="Entry-point namespaces to skip"
    )


class RestifiedConfig(BaseModel):
    """Top-level configuration resolved by :func:`~restified.config.resolve_config`.

    Unknown keys in ``restified.json`` are preserved in ``model_extra`` so
    that higher DSL layers can keep their own settings in the same file.
    """

    model_config = ConfigDict(extra="allow")

    cache: CacheConfig = Field(default_factory=CacheConfig)
    builtins: BuiltinsConfig = Field(default_factory=BuiltinsConfig)


# --- Scopes ---


class Scope(str, enum.Enum):
    """The two variable namespaces. Local bindings shadow global ones."""

    GLOBAL = "global"
    LOCAL = "local"


class ScopeSnapshot(BaseModel):
    """Full ``{global, local}`` state of a :class:`~restified.stores.scope.ScopeStore`.

    Serialises with ``global``/``local`` keys (``model_dump(by_alias=True)``)
    so that a snapshot dumped to JSON can be fed straight back into
    :meth:`~restified.stores.scope.ScopeStore.import_snapshot`.
    """

    model_config = ConfigDict(populate_by_name=True)

    global_vars: dict[str, Any] = Field(default_factory=dict, alias="global")
    local_vars: dict[str, Any] = Field(default_factory=dict, alias="local")


class ScopeStats(BaseModel):
    """Variable counts and an approximate memory footprint."""

    global_count: int
    local_count: int
    total: int
    memory_usage_estimate: int


# --- Cache ---


class CacheStats(BaseModel):
    """Aggregate statistics returned by :meth:`~restified.cache.ResponseCache.get_stats`."""

    size: int
    max_size: int
    memory_usage_estimate: int
    oldest_entry_timestamp: Optional[datetime] = None
    newest_entry_timestamp: Optional[datetime] = None
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0


class ExportedEntry(BaseModel):
    """A cache entry in exportable form (see :meth:`ResponseCache.export`)."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    key: str
    payload: Any
    inserted_at: float = Field(description="Epoch seconds")
    expires_at: Optional[float] = Field(default=None, description="Epoch seconds")


class StorageStats(BaseModel):
    """Combined statistics returned by :meth:`~restified.manager.StorageManager.get_stats`."""

    scopes: ScopeStats
    cache: CacheStats
