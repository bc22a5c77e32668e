"""``$env`` -- environment variable reader.

``{{$env.API_TOKEN}}`` expands to the variable's value, or to an empty
string when it is unset. ``{{$env.API_TOKEN('fallback')}}`` supplies a
default instead.
"""

from __future__ import annotations

import os
from typing import Mapping, Optional

from restified.builtins.base import BuiltinNamespace


class EnvironmentNamespace(BuiltinNamespace):
    """Reads from ``os.environ`` (or an injected mapping) at call time."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self._environ = environ

    @property
    def name(self) -> str:
        return "env"

    @property
    def description(self) -> str:
        return "Environment variables: $env.NAME or $env.NAME('default')"

    def call(self, path: str, args: list[str]) -> str:
        if not path:
            raise self.fail(path, "missing environment variable name")
        environ = self._environ if self._environ is not None else os.environ
        value = environ.get(path)
        if value is None:
            return args[0] if args else ""
        return value
