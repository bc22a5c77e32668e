"""Materialise ``{{...}}`` placeholders against a :class:`ScopeStore`.

:class:`TemplateResolver` turns request templates into concrete strings:

* ``{{name}}`` / ``{{user.profile.name}}`` / ``{{items.0}}`` resolve
  against the variable store. Resolution is strict: a missing variable or
  path segment raises :class:`~restified.exceptions.UnresolvedVariableError`
  listing every known key, because silently sending ``{{userId}}`` to an API
  would hide a test-authoring mistake.
* ``{{$namespace.path(args)}}`` is delegated to the
  :class:`~restified.builtins.BuiltinFunctionRegistry`. An unquoted
  argument that names a bound variable (``{{$string.upper(name)}}``) is
  replaced by that variable's text first; quoted arguments are literal.

When a variable's value is itself a template, it is resolved again. The
chain of variable expressions visited on the way down is tracked, and a
placeholder whose expression already appears in its own chain is left in
place as literal text. Cyclic bindings such as ``x -> "{{y}}"``,
``y -> "{{x}}"`` therefore terminate (``{{x}}`` yields the text ``{{x}}``)
instead of raising. A fresh chain is built per branch so sibling
placeholders never interfere.

Each top-level :meth:`~TemplateResolver.resolve` or
:meth:`~TemplateResolver.resolve_object` call reads a single point-in-time
:meth:`~restified.stores.scope.ScopeStore.view`; concurrent writes made
while it runs are not observed.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from restified.builtins.registry import BuiltinFunctionRegistry
from restified.exceptions import UnresolvedVariableError
from restified.stores.scope import ScopeStore
from restified.stores.values import MISSING, ValueKind, classify, copy_value, to_text, walk
from restified.templating.parser import (
    BuiltinCall,
    CallArg,
    Literal,
    VariableRef,
    has_placeholders,
    parse_expression,
    parse_template,
)

logger = logging.getLogger(__name__)


class TemplateResolver:
    """Resolve placeholders in strings and nested structures.

    Args:
        store: Variable store providing the bindings.
        registry: Builtin namespaces available as ``{{$name...}}``.

    Example::

        store = ScopeStore()
        store.set_global("base", "https://api.example.com")
        store.set_local("user", {"id": 42})
        resolver = TemplateResolver(store, default_registry())
        resolver.resolve("{{base}}/users/{{user.id}}")
        # "https://api.example.com/users/42"
    """

    def __init__(self, store: ScopeStore, registry: BuiltinFunctionRegistry) -> None:
        self._store = store
        self._registry = registry

    @property
    def store(self) -> ScopeStore:
        return self._store

    @property
    def registry(self) -> BuiltinFunctionRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, template: str) -> str:
        """Return *template* with every placeholder substituted.

        Non-string input is returned unchanged.

        Raises:
            UnresolvedVariableError: A plain variable (or one of its path
                segments) has no binding.
            UnknownNamespaceError: A builtin call names an unregistered
                namespace.
            BuiltinFunctionError: A builtin handler failed.
            TemplateSyntaxError: A builtin call is malformed.
        """
        if not isinstance(template, str):
            return template
        if not has_placeholders(template):
            return template
        return self._render(template, self._store.view(), frozenset())

    def resolve_object(self, value: Any) -> Any:
        """Deep-copy *value*, resolving every string leaf.

        Maps and lists (and tuples, returned as lists) are traversed
        recursively; map keys are left untouched. Other leaves pass through
        unchanged. Errors propagate exactly as from :meth:`resolve`.
        """
        return self._resolve_node(value, None)

    def has_placeholders(self, text: str) -> bool:
        return isinstance(text, str) and has_placeholders(text)

    def referenced_variables(self, template: str) -> list[str]:
        """Return the root names of plain variables referenced by *template*.

        Builtin calls are ignored. Nested templates held in variables are not
        followed. Order of first appearance is preserved.
        """
        names: list[str] = []
        for segment in parse_template(template):
            if isinstance(segment, Literal):
                continue
            expr = parse_expression(segment.expression)
            if isinstance(expr, VariableRef) and expr.name not in names:
                names.append(expr.name)
        return names

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_node(self, value: Any, view: Mapping[str, Any] | None) -> Any:
        kind = classify(value)
        if kind == ValueKind.STRING:
            if not has_placeholders(value):
                return value
            if view is None:
                view = self._store.view()
            return self._render(value, view, frozenset())
        if kind == ValueKind.MAP:
            if view is None:
                view = self._store.view()
            return {key: self._resolve_node(item, view) for key, item in value.items()}
        if kind == ValueKind.LIST:
            if view is None:
                view = self._store.view()
            return [self._resolve_node(item, view) for item in value]
        return copy_value(value)

    def _render(self, template: str, view: Mapping[str, Any], chain: frozenset[str]) -> str:
        parts: list[str] = []
        for segment in parse_template(template):
            if isinstance(segment, Literal):
                parts.append(segment.text)
                continue
            expr = parse_expression(segment.expression)
            if isinstance(expr, BuiltinCall):
                args = self._call_args(expr.arguments, view)
                parts.append(self._registry.resolve(expr.namespace, expr.path, args))
            else:
                parts.append(self._resolve_variable(expr, segment.raw, view, chain))
        return "".join(parts)

    def _resolve_variable(
        self,
        ref: VariableRef,
        raw: str,
        view: Mapping[str, Any],
        chain: frozenset[str],
    ) -> str:
        if ref.name not in view:
            raise UnresolvedVariableError(ref.expression, view.keys())
        value = walk(view[ref.name], ref.path)
        if value is MISSING:
            raise UnresolvedVariableError(ref.expression, view.keys())

        text = to_text(value)
        if classify(value) != ValueKind.STRING or not has_placeholders(text):
            return text
        if ref.expression in chain:
            logger.debug(
                "Cyclic reference to '%s' (chain: %s); leaving placeholder unresolved",
                ref.expression,
                " -> ".join(sorted(chain)),
            )
            return raw
        return self._render(text, view, chain | {ref.expression})

    @staticmethod
    def _call_args(arguments: list[CallArg], view: Mapping[str, Any]) -> list[str]:
        resolved: list[str] = []
        for arg in arguments:
            text = arg.text
            if not arg.quoted and text and not _is_number(text):
                name, _, rest = text.partition(".")
                if name in view:
                    value = walk(view[name], tuple(rest.split(".")) if rest else ())
                    if value is not MISSING:
                        text = to_text(value)
            resolved.append(text)
        return resolved


def _is_number(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True
