"""Variable storage for restified.

:class:`ScopeStore` holds the global and local variable scopes that DSL
steps write to (often with values extracted from a previous response) and
that :class:`~restified.templating.TemplateResolver` reads when it
materialises request URLs, headers and bodies.

:mod:`restified.stores.values` defines the tagged JSON value model the
store validates against.
"""

from restified.stores.scope import ScopeStore
from restified.stores.values import ValueKind, classify, to_text

__all__ = ["ScopeStore", "ValueKind", "classify", "to_text"]
