"""Abstract base class for builtin ``$namespace`` function families.

A builtin namespace turns a placeholder such as ``{{$random.int(1, 6)}}``
into a string. The resolver hands it the dotted *path* after the namespace
(``"int"``) and the parsed argument list (``["1", "6"]``); arguments are
always strings, and each namespace decides how to interpret them.

Subclasses implement :attr:`name` and :meth:`call`. Plain callables with
the same ``(path, args) -> str`` signature can be registered too; this base
class only adds a description and a few argument helpers.

Example::

    class UpperNamespace(BuiltinNamespace):
        @property
        def name(self) -> str:
            return "shout"

        def call(self, path: str, args: list[str]) -> str:
            return path.upper()
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Callable, Optional, Union

from restified.exceptions import BuiltinFunctionError

Handler = Callable[[str, list[str]], str]
"""Signature of a builtin handler: ``(path, args) -> str``."""


class BuiltinNamespace(ABC):
    """Base class for builtin namespaces.

    Instances are callable, so they can be registered anywhere a plain
    :data:`Handler` is accepted.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the namespace name used after ``$`` in placeholders."""
        ...

    @property
    def description(self) -> str:
        """Return a one-line description for ``restified builtins``."""
        return ""

    @abstractmethod
    def call(self, path: str, args: list[str]) -> str:
        """Produce the substitution text for ``$<name>.<path>(<args>)``.

        Raises:
            BuiltinFunctionError: If *path* is not a function of this
                namespace or the arguments are invalid.
        """
        ...

    def __call__(self, path: str, args: list[str]) -> str:
        return self.call(path, args)

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def fail(self, path: str, reason: str) -> BuiltinFunctionError:
        """Build a :class:`BuiltinFunctionError` for this namespace (raise it yourself)."""
        return BuiltinFunctionError(self.name, path, reason)

    def unknown(self, path: str) -> BuiltinFunctionError:
        return self.fail(path, f"unknown function '{path}'")

    def number_arg(
        self,
        path: str,
        args: list[str],
        index: int,
        default: Optional[float] = None,
    ) -> float:
        """Return ``args[index]`` as a float, or *default* when the argument is absent."""
        if index >= len(args) or args[index] == "":
            if default is None:
                raise self.fail(path, f"missing argument #{index + 1}")
            return default
        return parse_number(self.name, path, args[index])

    def int_arg(
        self,
        path: str,
        args: list[str],
        index: int,
        default: Optional[int] = None,
    ) -> int:
        """Return ``args[index]`` as an int, or *default* when the argument is absent."""
        value = self.number_arg(
            path, args, index, None if default is None else float(default)
        )
        if value != int(value):
            raise self.fail(path, f"argument #{index + 1} must be an integer")
        return int(value)

    def str_arg(self, path: str, args: list[str], index: int, default: Optional[str] = None) -> str:
        if index >= len(args):
            if default is None:
                raise self.fail(path, f"missing argument #{index + 1}")
            return default
        return args[index]


def parse_number(namespace: str, path: str, text: str) -> float:
    """Parse a numeric argument, raising :class:`BuiltinFunctionError` on failure."""
    try:
        value = float(text)
    except ValueError:
        raise BuiltinFunctionError(namespace, path, f"'{text}' is not a number") from None
    if not math.isfinite(value):
        raise BuiltinFunctionError(namespace, path, f"'{text}' is not a finite number")
    return value


def format_number(value: Union[int, float]) -> str:
    """Render a number without a trailing ``.0`` when it is integral."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
