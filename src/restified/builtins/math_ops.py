"""``$math`` -- constants, rounding and basic arithmetic.

Functions::

    {{$math.pi}}, {{$math.e}}
    {{$math.random(1, 10)}}                 float in [1, 10)
    {{$math.round(2.567, 2)}}               2.57
    {{$math.floor(2.5)}}, {{$math.ceil(2.1)}}, {{$math.abs(-3)}}
    {{$math.min(3, 1, 2)}}, {{$math.max(3, 1, 2)}}
    {{$math.add(1, 2, 3)}}                  6
    {{$math.subtract(10, 4)}}               6
    {{$math.multiply(2, 3, 4)}}             24
    {{$math.divide(7, 2)}}                  3.5
    {{$math.mod(7, 2)}}                     1

Integral results are rendered without a trailing ``.0``.
"""

from __future__ import annotations

import math
import random
from functools import reduce
from typing import Optional

from restified.builtins.base import BuiltinNamespace, format_number, parse_number


class MathNamespace(BuiltinNamespace):
    """Arithmetic helpers operating on numeric-looking arguments."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    @property
    def name(self) -> str:
        return "math"

    @property
    def description(self) -> str:
        return "Constants, rounding, min/max and arithmetic on numeric arguments"

    def call(self, path: str, args: list[str]) -> str:
        if path == "pi":
            return str(math.pi)
        if path == "e":
            return str(math.e)

        if path == "random":
            low = self.number_arg(path, args, 0, 0.0)
            high = self.number_arg(path, args, 1, 1.0 if len(args) < 2 else None)
            return str(self._rng.uniform(low, high))
        if path == "round":
            digits = self.int_arg(path, args, 1, 0)
            value = self.number_arg(path, args, 0)
            return format_number(round(value, digits) if digits else float(math.floor(value + 0.5)))
        if path == "floor":
            return str(math.floor(self.number_arg(path, args, 0)))
        if path == "ceil":
            return str(math.ceil(self.number_arg(path, args, 0)))
        if path == "abs":
            return format_number(abs(self.number_arg(path, args, 0)))

        numbers = self._all_numbers(path, args)
        if path == "min":
            return format_number(min(numbers))
        if path == "max":
            return format_number(max(numbers))
        if path == "add":
            return format_number(math.fsum(numbers))
        if path == "multiply":
            return format_number(reduce(lambda a, b: a * b, numbers, 1.0))
        if path in ("subtract", "divide", "mod"):
            if len(numbers) != 2:
                raise self.fail(path, "expects exactly 2 arguments")
            left, right = numbers
            if path == "subtract":
                return format_number(left - right)
            if right == 0:
                raise self.fail(path, "division by zero")
            if path == "divide":
                return format_number(left / right)
            return format_number(math.fmod(left, right))
        raise self.unknown(path)

    def _all_numbers(self, path: str, args: list[str]) -> list[float]:
        if path not in ("min", "max", "add", "multiply", "subtract", "divide", "mod"):
            raise self.unknown(path)
        if not args:
            raise self.fail(path, "expects at least 1 argument")
        return [parse_number(self.name, path, arg) for arg in args]
