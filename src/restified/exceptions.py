"""Exception hierarchy for restified.

All exceptions inherit from :class:`RestifiedError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`restified.exit_codes`.
The command line entry point in :func:`restified.app.main` catches
``RestifiedError`` and exits with the appropriate code; library callers
simply let them propagate to the test that made the authoring mistake.

Cache misses are *not* errors: :class:`~restified.cache.ResponseCache`
returns ``None`` for missing or expired keys.

Subclass hierarchy::

    RestifiedError (exit 1)
    +-- InvalidUsageError           (exit 2)
    |   +-- InvalidValueError       (exit 2)
    +-- ConfigError                 (exit 1)
    |   +-- InvalidConfigurationError
    +-- ResolutionError             (exit 8)
    |   +-- UnresolvedVariableError
    |   +-- TemplateSyntaxError
    |   +-- ExtractionError
    +-- BuiltinError                (exit 9)
        +-- UnknownNamespaceError
        +-- BuiltinFunctionError
        +-- RegistryError
"""

from __future__ import annotations

from typing import Iterable, Optional

from restified.exit_codes import (
    EXIT_BUILTIN_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_RESOLUTION_ERROR,
)


class RestifiedError(Exception):
    """Base exception for all restified errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`restified.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(RestifiedError):
    """Raised for invalid arguments, such as a negative per-entry TTL."""

    exit_code = EXIT_INVALID_USAGE


class InvalidValueError(InvalidUsageError):
    """Raised when a value that is not JSON-representable is written to a scope."""

    def __init__(self, key: str, value: object):
        self.key = key
        self.value_type = type(value).__name__
        super().__init__(
            f"Cannot store variable '{key}': values of type "
            f"'{self.value_type}' are not JSON-representable"
        )


class ConfigError(RestifiedError):
    """Raised for configuration problems (missing files, invalid JSON, bad env values)."""

    exit_code = EXIT_GENERIC_FAILURE


class InvalidConfigurationError(ConfigError):
    """Raised at construction time for out-of-range options (``max_size <= 0``, negative TTL)."""


class ResolutionError(RestifiedError):
    """Base class for failures while materialising a template."""

    exit_code = EXIT_RESOLUTION_ERROR


class UnresolvedVariableError(ResolutionError):
    """Raised when a ``{{variable}}`` placeholder has no binding in either scope.

    Attributes:
        variable: The full placeholder expression (e.g. ``user.profile.name``).
        known_keys: Every variable key visible when resolution started.
    """

    def __init__(self, variable: str, known_keys: Iterable[str]):
        self.variable = variable
        self.known_keys = sorted(set(known_keys))
        known = ", ".join(self.known_keys) if self.known_keys else "(none)"
        super().__init__(
            f"Unresolved variable '{variable}'. Known variables: {known}"
        )


class TemplateSyntaxError(ResolutionError):
    """Raised when a placeholder expression cannot be parsed."""

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        super().__init__(f"Invalid placeholder '{{{{{expression}}}}}': {reason}")


class ExtractionError(ResolutionError):
    """Raised when a value cannot be extracted from a cached response."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Failed to extract '{path}': {reason}")


class BuiltinError(RestifiedError):
    """Base class for builtin ``$namespace`` failures."""

    exit_code = EXIT_BUILTIN_ERROR


class UnknownNamespaceError(BuiltinError):
    """Raised when a ``{{$name...}}`` call references an unregistered namespace."""

    def __init__(self, namespace: str, known_namespaces: Iterable[str] = ()):
        self.namespace = namespace
        self.known_namespaces = sorted(known_namespaces)
        known = ", ".join(f"${n}" for n in self.known_namespaces) or "(none)"
        super().__init__(
            f"Unknown builtin namespace '${namespace}'. Registered: {known}"
        )


class BuiltinFunctionError(BuiltinError):
    """Raised when a builtin handler rejects its path/arguments or fails internally."""

    def __init__(self, namespace: str, path: str, reason: str):
        self.namespace = namespace
        self.path = path
        target = f"${namespace}.{path}" if path else f"${namespace}"
        super().__init__(f"{target}: {reason}")


class RegistryError(BuiltinError):
    """Raised for registry misuse (duplicate namespace, invalid handler)."""

    def __init__(self, message: str, namespace: Optional[str] = None):
        self.namespace = namespace
        super().__init__(message)
