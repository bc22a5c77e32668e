"""Registry mapping ``$namespace`` prefixes to builtin handlers.

:class:`BuiltinFunctionRegistry` is the only thing the resolver knows about
builtins: it looks up the namespace of a ``{{$ns.path(args)}}`` call and
delegates to the registered handler. Adding a namespace therefore never
requires resolver changes.

Third-party packages can contribute namespaces through the
``restified.builtins`` entry-point group, discovered by
:meth:`BuiltinFunctionRegistry.discover`::

    [project.entry-points."restified.builtins"]
    geo = "my_package.builtins:GeoNamespace"
"""

from __future__ import annotations

import importlib.metadata
import logging
import threading
from typing import Iterable, Optional, Union

from restified.builtins.base import BuiltinNamespace, Handler
from restified.exceptions import (
    BuiltinFunctionError,
    RegistryError,
    RestifiedError,
    UnknownNamespaceError,
)

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "restified.builtins"
"""The entry-point group name used for namespace discovery."""


class BuiltinFunctionRegistry:
    """Pluggable table of builtin namespaces.

    Handlers are either :class:`~restified.builtins.base.BuiltinNamespace`
    instances or plain callables taking ``(path, args)`` and returning a
    string.

    Example::

        registry = BuiltinFunctionRegistry()
        registry.register("greet", lambda path, args: f"hello {path}")
        registry.resolve("greet", "world", [])   # "hello world"
    """

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}
        self._descriptions: dict[str, str] = {}
        self._failures: dict[str, str] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        namespace: str,
        handler: Union[Handler, BuiltinNamespace],
        replace: bool = False,
        description: Optional[str] = None,
    ) -> None:
        """Register *handler* under *namespace*.

        Args:
            namespace: Name used after ``$`` in placeholders (no dots).
            handler: A callable ``(path, args) -> str`` or a
                :class:`BuiltinNamespace`.
            replace: Allow overwriting an existing registration.
            description: Optional text for listings; defaults to the
                namespace's own description when it has one.

        Raises:
            RegistryError: If *namespace* is empty, contains a dot or
                parenthesis, is already registered (and *replace* is
                ``False``), or *handler* is not callable.
        """
        namespace = namespace.lstrip("$")
        if not namespace or any(c in namespace for c in ".() "):
            raise RegistryError(f"Invalid builtin namespace name '{namespace}'", namespace)
        if not callable(handler):
            raise RegistryError(f"Handler for '${namespace}' is not callable", namespace)

        if description is None:
            description = getattr(handler, "description", "") or ""

        with self._lock:
            if namespace in self._handlers and not replace:
                raise RegistryError(f"Builtin namespace '${namespace}' is already registered", namespace)
            self._handlers[namespace] = handler
            self._descriptions[namespace] = description
        logger.debug("Registered builtin namespace '$%s'", namespace)

    def unregister(self, namespace: str) -> bool:
        """Remove *namespace* (a leading ``$`` is ignored). Returns ``True`` if it was registered."""
        namespace = namespace.lstrip("$")
        with self._lock:
            self._descriptions.pop(namespace, None)
            return self._handlers.pop(namespace, None) is not None

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, namespace: str, path: str, args: Optional[list[str]] = None) -> str:
        """Invoke the handler registered for *namespace*.

        Raises:
            UnknownNamespaceError: If *namespace* is not registered.
            BuiltinFunctionError: If the handler fails. Errors that are
                already :class:`~restified.exceptions.RestifiedError`
                instances propagate unchanged; anything else is wrapped.
        """
        with self._lock:
            handler = self._handlers.get(namespace)
            known = list(self._handlers)
        if handler is None:
            raise UnknownNamespaceError(namespace, known)

        try:
            result = handler(path, list(args or []))
        except RestifiedError:
            raise
        except Exception as exc:
            raise BuiltinFunctionError(namespace, path, str(exc) or type(exc).__name__) from exc
        return result if isinstance(result, str) else str(result)

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    @property
    def failures(self) -> dict[str, str]:
        """Entry points that :meth:`discover` could not load, mapped to the error text."""
        with self._lock:
            return dict(self._failures)

    def namespaces(self) -> list[str]:
        """Return registered namespace names, sorted."""
        with self._lock:
            return sorted(self._handlers)

    def describe(self) -> list[dict[str, str]]:
        """Return ``{"name", "description"}`` rows for every namespace, sorted by name."""
        with self._lock:
            return [
                {"name": name, "description": self._descriptions.get(name, "")}
                for name in sorted(self._handlers)
            ]

    def __contains__(self, namespace: object) -> bool:
        if isinstance(namespace, str):
            namespace = namespace.lstrip("$")
        with self._lock:
            return namespace in self._handlers

    def __len__(self) -> int:
        with self._lock:
            return len(self._handlers)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover(
        self,
        enabled: Optional[Iterable[str]] = None,
        disabled: Optional[Iterable[str]] = None,
    ) -> list[str]:
        """Load namespaces registered in the ``restified.builtins`` entry-point group.

        Each entry point may reference a :class:`BuiltinNamespace`
        subclass (instantiated with no arguments), an instance, or a plain
        handler callable. The entry-point name becomes the namespace.

        Args:
            enabled: If non-empty, only these entry points are loaded.
            disabled: Entry points to skip.

        Returns:
            Names of the namespaces that were loaded. Entry points that fail
            to load are logged as warnings, recorded in :attr:`failures`
            and skipped.
        """
        loaded: list[str] = []
        enabled_set = set(enabled or ())
        disabled_set = set(disabled or ())

        for ep in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
            name = ep.name
            if enabled_set and name not in enabled_set:
                logger.debug("Builtin '%s' not in enabled list, skipping", name)
                continue
            if name in disabled_set:
                logger.debug("Builtin '%s' is disabled, skipping", name)
                continue

            try:
                target = ep.load()
                if isinstance(target, type) and issubclass(target, BuiltinNamespace):
                    target = target()
                self.register(name, target)
                loaded.append(name)
            except Exception as exc:
                logger.warning("Failed to load builtin namespace '%s': %s", name, exc)
                with self._lock:
                    self._failures[name] = str(exc) or type(exc).__name__
                continue
            logger.info("Loaded builtin namespace '$%s'", name)

        return loaded
