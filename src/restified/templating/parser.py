"""Recursive-descent parser for ``{{...}}`` placeholders.

Parsing happens in two layers:

* :func:`parse_template` scans a string left to right and splits it into
  :class:`Literal` and :class:`Placeholder` segments. A placeholder span
  may not contain ``{`` or ``}``. For ``{{{id}}}`` the scanner emits one
  literal brace and retries from the next position, so the innermost
  well-formed span wins; a stray ``}`` inside a span makes the opening
  ``{{`` literal. Empty spans and an unterminated ``{{`` are kept as
  literal text.
* :func:`parse_expression` turns the trimmed inside of a span into either
  a :class:`VariableRef` (``user.profile.name``) or a :class:`BuiltinCall`
  (``$random.int(1, 10)``).

:func:`parse_call_args` implements the builtin argument grammar: split on
top-level commas, respecting quoted strings and nested parentheses, trim
whitespace and strip one pair of matching quotes. :func:`split_call_args`
keeps whether each argument was quoted, since a bare word may name a
variable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple, Union

from restified.exceptions import TemplateSyntaxError

OPEN = "{{"
CLOSE = "}}"
BUILTIN_PREFIX = "$"
_QUOTES = ("'", '"')


@dataclass(frozen=True)
class Literal:
    """Plain text between placeholders."""

    text: str


@dataclass(frozen=True)
class Placeholder:
    """A ``{{expr}}`` span. ``raw`` is the full span text including braces."""

    expression: str
    raw: str


Segment = Union[Literal, Placeholder]


@dataclass(frozen=True)
class VariableRef:
    """A dotted variable path such as ``items.0.name``."""

    expression: str
    name: str
    path: tuple[str, ...] = ()


class CallArg(NamedTuple):
    """One builtin argument with its quotes stripped."""

    text: str
    quoted: bool = False


@dataclass(frozen=True)
class BuiltinCall:
    """A ``$namespace.path(args)`` call."""

    expression: str
    namespace: str
    path: str = ""
    arguments: list[CallArg] = field(default_factory=list)

    @property
    def args(self) -> list[str]:
        return [arg.text for arg in self.arguments]


Expression = Union[VariableRef, BuiltinCall]


def parse_template(text: str) -> list[Segment]:
    """Split *text* into literal and placeholder segments.

    Adjacent literal characters are merged into a single :class:`Literal`.

    Example::

        parse_template("id={{user.id}}!")
        # [Literal("id="), Placeholder("user.id", "{{user.id}}"), Literal("!")]
    """
    segments: list[Segment] = []
    buffer: list[str] = []
    pos = 0
    length = len(text)

    while pos < length:
        start = text.find(OPEN, pos)
        if start == -1:
            buffer.append(text[pos:])
            break
        buffer.append(text[pos:start])
        end = text.find(CLOSE, start + len(OPEN))
        if end == -1:
            buffer.append(text[start:])
            break

        inner = text[start + len(OPEN):end]
        if "{" in inner:
            # Skip one brace so a later "{{" inside the span gets its chance.
            buffer.append(text[start])
            pos = start + 1
            continue
        if "}" in inner:
            buffer.append(OPEN)
            pos = start + len(OPEN)
            continue

        expression = inner.strip()
        raw = text[start:end + len(CLOSE)]
        if not expression:
            buffer.append(raw)
        else:
            if buffer:
                _flush(buffer, segments)
            segments.append(Placeholder(expression=expression, raw=raw))
        pos = end + len(CLOSE)

    _flush(buffer, segments)
    return segments


def _flush(buffer: list[str], segments: list[Segment]) -> None:
    text = "".join(buffer)
    buffer.clear()
    if text:
        segments.append(Literal(text))


def has_placeholders(text: str) -> bool:
    """Return ``True`` if *text* contains at least one well-formed placeholder."""
    if OPEN not in text:
        return False
    return any(isinstance(seg, Placeholder) for seg in parse_template(text))


def parse_expression(expression: str) -> Expression:
    """Classify and parse the trimmed inside of a placeholder.

    Raises:
        TemplateSyntaxError: If a builtin call is malformed (missing
            namespace, unbalanced parentheses, text after the closing
            parenthesis).
    """
    expression = expression.strip()
    if expression.startswith(BUILTIN_PREFIX):
        return _parse_builtin(expression)

    parts = expression.split(".")
    return VariableRef(expression=expression, name=parts[0], path=tuple(parts[1:]))


def _parse_builtin(expression: str) -> BuiltinCall:
    body = expression[len(BUILTIN_PREFIX):]

    paren = body.find("(")
    head = body if paren == -1 else body[:paren]
    head = head.strip()
    namespace, _, path = head.partition(".")
    if not namespace:
        raise TemplateSyntaxError(expression, "missing builtin namespace")

    arguments: list[CallArg] = []
    if paren != -1:
        if not body.rstrip().endswith(")"):
            raise TemplateSyntaxError(expression, "expected ')' at end of call")
        inner = body[paren + 1:body.rstrip().rfind(")")]
        arguments = split_call_args(inner, expression)

    return BuiltinCall(
        expression=expression,
        namespace=namespace.strip(),
        path=path.strip(),
        arguments=arguments,
    )


def parse_call_args(text: str, expression: str = "") -> list[str]:
    """Split a builtin argument list on top-level commas.

    Quoted strings may contain commas and parentheses. One pair of matching
    outer quotes is stripped from each argument; numeric-looking arguments
    are returned as their literal text.

    Example::

        parse_call_args("'a, b', 2 , \\"x\\"")   # ["a, b", "2", "x"]

    Raises:
        TemplateSyntaxError: On an unterminated quote or unbalanced
            parentheses.
    """
    return [arg.text for arg in split_call_args(text, expression)]


def split_call_args(text: str, expression: str = "") -> list[CallArg]:
    """Like :func:`parse_call_args` but keep whether each argument was quoted.

    Example::

        split_call_args("name, 'name'")
        # [CallArg("name", False), CallArg("name", True)]
    """
    if not text.strip():
        return []

    args: list[CallArg] = []
    current: list[str] = []
    quote: str | None = None
    depth = 0

    for char in text:
        if quote is not None:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in _QUOTES:
            quote = char
            current.append(char)
        elif char == "(":
            depth += 1
            current.append(char)
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise TemplateSyntaxError(expression or text, "unbalanced ')'")
            current.append(char)
        elif char == "," and depth == 0:
            args.append(_clean_arg("".join(current)))
            current = []
        else:
            current.append(char)

    if quote is not None:
        raise TemplateSyntaxError(expression or text, f"unterminated {quote} quote")
    if depth != 0:
        raise TemplateSyntaxError(expression or text, "unbalanced '('")

    args.append(_clean_arg("".join(current)))
    return args


def _clean_arg(arg: str) -> CallArg:
    arg = arg.strip()
    if len(arg) >= 2 and arg[0] in _QUOTES and arg[-1] == arg[0]:
        return CallArg(arg[1:-1], quoted=True)
    return CallArg(arg)
