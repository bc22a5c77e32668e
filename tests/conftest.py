"""Shared test fixtures for restified.

Provides a fresh variable store, registry and resolver per test, a
controllable clock for TTL tests, isolated configuration environments and
output-state cleanup. These fixtures are automatically discovered by pytest
and available to all test modules without explicit imports.
"""

from __future__ import annotations

import random
from datetime import datetime, timezone
from pathlib import Path

import pytest

from restified.builtins import BuiltinFunctionRegistry, default_registry
from restified.builtins.clock import ClockNamespace
from restified.builtins.math_ops import MathNamespace
from restified.builtins.random_values import RandomNamespace
from restified.cache import ResponseCache
from restified.config import ENV_VARIABLES
from restified.models import CacheConfig
from restified.output import reset_output
from restified.stores import ScopeStore
from restified.templating import TemplateResolver


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms / 1000.0


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


FIXED_NOW = datetime(2024, 3, 15, 12, 30, 45, 123000, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Stores, registry, resolver
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> ScopeStore:
    return ScopeStore()


@pytest.fixture
def registry() -> BuiltinFunctionRegistry:
    """Default registry with seeded random sources and a fixed clock."""
    reg = default_registry()
    reg.register("random", RandomNamespace(random.Random(1234)), replace=True)
    reg.register("math", MathNamespace(random.Random(1234)), replace=True)
    reg.register("date", ClockNamespace(lambda: FIXED_NOW), replace=True)
    return reg


@pytest.fixture
def resolver(store: ScopeStore, registry: BuiltinFunctionRegistry) -> TemplateResolver:
    return TemplateResolver(store, registry)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


@pytest.fixture
def cache(clock: FakeClock) -> ResponseCache:
    """A 3-entry cache driven by the fake clock, entries live for 1 s by default."""
    c = ResponseCache(CacheConfig(max_size=3, default_ttl_ms=1000), clock=clock)
    yield c
    c.close()


def _make_response(
    status: int = 200,
    url: str = "https://api.example.com/users",
    method: str = "GET",
    body: object = None,
) -> dict:
    """Build a minimal cached response dict."""
    return {
        "status": status,
        "url": url,
        "method": method,
        "headers": {"content-type": "application/json"},
        "body": {"id": 1, "name": "test"} if body is None else body,
    }


@pytest.fixture
def make_response():
    """Factory fixture for response dicts (status, url, method, body)."""
    return _make_response


# ---------------------------------------------------------------------------
# Configuration isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty directory with no RESTIFIED_* variables set."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("RESTIFIED_CONFIG", raising=False)
    for name in ENV_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    return tmp_path
