"""Placeholder parsing and resolution.

* :mod:`restified.templating.parser` -- recursive-descent parser for
  ``{{...}}`` spans and builtin call arguments.
* :mod:`restified.templating.resolver` -- :class:`TemplateResolver`, which
  substitutes variables and builtin results.
"""

from restified.templating.parser import (
    BuiltinCall,
    CallArg,
    Literal,
    Placeholder,
    VariableRef,
    parse_call_args,
    parse_expression,
    parse_template,
    split_call_args,
)
from restified.templating.resolver import TemplateResolver

__all__ = [
    "BuiltinCall",
    "CallArg",
    "Literal",
    "Placeholder",
    "TemplateResolver",
    "VariableRef",
    "parse_call_args",
    "parse_expression",
    "parse_template",
    "split_call_args",
]
