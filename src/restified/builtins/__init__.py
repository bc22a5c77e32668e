"""Builtin ``{{$namespace...}}`` functions.

:class:`BuiltinFunctionRegistry` maps namespace names to handlers.
:func:`default_registry` returns a registry pre-populated with the
standard namespaces:

* ``$random`` -- UUIDs and random values (:mod:`~restified.builtins.random_values`)
* ``$date`` -- current time (:mod:`~restified.builtins.clock`)
* ``$math`` -- arithmetic helpers (:mod:`~restified.builtins.math_ops`)
* ``$string`` -- casing helpers (:mod:`~restified.builtins.strings`)
* ``$env`` -- environment variables (:mod:`~restified.builtins.environment`)
* ``$faker`` -- fake data (:mod:`~restified.builtins.fake_data`)
"""

from __future__ import annotations

from typing import Optional

from restified.builtins.base import BuiltinNamespace, Handler
from restified.builtins.clock import ClockNamespace
from restified.builtins.environment import EnvironmentNamespace
from restified.builtins.fake_data import FakerNamespace
from restified.builtins.math_ops import MathNamespace
from restified.builtins.random_values import RandomNamespace
from restified.builtins.registry import ENTRY_POINT_GROUP, BuiltinFunctionRegistry
from restified.builtins.strings import StringNamespace
from restified.models import BuiltinsConfig

__all__ = [
    "BuiltinFunctionRegistry",
    "BuiltinNamespace",
    "ENTRY_POINT_GROUP",
    "Handler",
    "default_registry",
]


def default_registry(
    config: Optional[BuiltinsConfig] = None,
    discover: bool = False,
) -> BuiltinFunctionRegistry:
    """Create a registry holding the standard namespaces.

    Args:
        config: Builtin settings (Faker locale/seed, entry-point filters).
        discover: Also load third-party namespaces from the
            ``restified.builtins`` entry-point group.
    """
    config = config or BuiltinsConfig()
    registry = BuiltinFunctionRegistry()
    for namespace in (
        RandomNamespace(),
        ClockNamespace(),
        MathNamespace(),
        StringNamespace(),
        EnvironmentNamespace(),
        FakerNamespace(locale=config.faker_locale, seed=config.faker_seed),
    ):
        registry.register(namespace.name, namespace)
    if discover:
        registry.discover(enabled=config.enabled, disabled=config.disabled)
    return registry
