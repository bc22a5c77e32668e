"""``$string`` -- casing and simple string manipulation.

The first argument is the subject string. A bare word names a variable, so
``{{$string.upper(name)}}`` upper-cases the value bound to ``name``::

    {{$string.upper('hello')}}              HELLO
    {{$string.lower('HeLLo')}}              hello
    {{$string.capitalize('hELLO')}}         Hello
    {{$string.title('hello world')}}        Hello World
    {{$string.trim('  x  ')}}               x
    {{$string.length('hello')}}             5
    {{$string.substring('hello', 1, 3)}}    el
    {{$string.replace('a-b-c', '-', '+')}}  a+b+c   (all occurrences)
    {{$string.snake('Hello World')}}        hello_world
    {{$string.camel('hello world')}}        helloWorld
    {{$string.kebab('HelloWorld')}}         hello-world
"""

from __future__ import annotations

import re

from restified.builtins.base import BuiltinNamespace

_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|[^A-Za-z0-9]+")
_FUNCTIONS = frozenset(
    ("upper", "lower", "capitalize", "title", "trim", "length",
     "substring", "replace", "snake", "kebab", "camel")
)


def _words(text: str) -> list[str]:
    return [w for w in _WORD_BOUNDARY.split(text) if w]


class StringNamespace(BuiltinNamespace):
    @property
    def name(self) -> str:
        return "string"

    @property
    def description(self) -> str:
        return "Casing, trimming, substring and replace on a string argument"

    def call(self, path: str, args: list[str]) -> str:
        if path not in _FUNCTIONS:
            raise self.unknown(path)
        subject = self.str_arg(path, args, 0)
        if path == "upper":
            return subject.upper()
        if path == "lower":
            return subject.lower()
        if path == "capitalize":
            return subject[:1].upper() + subject[1:].lower()
        if path == "title":
            return subject.title()
        if path == "trim":
            return subject.strip()
        if path == "length":
            return str(len(subject))
        if path == "substring":
            start = self.int_arg(path, args, 1, 0)
            end = self.int_arg(path, args, 2) if len(args) > 2 else None
            return subject[start:end]
        if path == "replace":
            old = self.str_arg(path, args, 1)
            new = self.str_arg(path, args, 2, "")
            if not old:
                raise self.fail(path, "search string must not be empty")
            return subject.replace(old, new)
        if path == "snake":
            return "_".join(w.lower() for w in _words(subject))
        if path == "kebab":
            return "-".join(w.lower() for w in _words(subject))
        if path == "camel":
            words = _words(subject)
            if not words:
                return ""
            return words[0].lower() + "".join(w[:1].upper() + w[1:].lower() for w in words[1:])
        return subject
