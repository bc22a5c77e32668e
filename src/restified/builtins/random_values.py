"""``$random`` -- UUIDs and random scalar values.

Functions::

    {{$random.uuid}}            version-4 UUID
    {{$random.int}}             integer in [0, 999]
    {{$random.int(1, 100)}}     integer in [1, 100] (inclusive)
    {{$random.float}}           float in [0, 1)
    {{$random.float(1.5, 3)}}   float in [1.5, 3)
    {{$random.boolean}}         "true" or "false"
    {{$random.string}}          10 lowercase alphanumerics
    {{$random.string(24)}}      24 lowercase alphanumerics
    {{$random.hex(8)}}          8 hex digits
"""

from __future__ import annotations

import random
import string
import uuid
from typing import Optional

from restified.builtins.base import BuiltinNamespace

_ALPHABET = string.ascii_lowercase + string.digits


class RandomNamespace(BuiltinNamespace):
    """Random identifiers and numbers.

    Args:
        rng: Optional :class:`random.Random` instance, for reproducible output.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    @property
    def name(self) -> str:
        return "random"

    @property
    def description(self) -> str:
        return "UUIDs, random integers, floats, booleans and strings"

    def call(self, path: str, args: list[str]) -> str:
        if path == "uuid":
            return str(uuid.UUID(int=self._rng.getrandbits(128), version=4))
        if path == "int":
            low = self.int_arg(path, args, 0, 0)
            high = self.int_arg(path, args, 1, 999 if not args else None)
            if low > high:
                raise self.fail(path, f"min {low} is greater than max {high}")
            return str(self._rng.randint(low, high))
        if path == "float":
            low = self.number_arg(path, args, 0, 0.0)
            high = self.number_arg(path, args, 1, 1.0 if not args else None)
            if low > high:
                raise self.fail(path, f"min {low} is greater than max {high}")
            return str(self._rng.uniform(low, high))
        if path == "boolean":
            return "true" if self._rng.random() < 0.5 else "false"
        if path == "string":
            length = self.int_arg(path, args, 0, 10)
            if length < 0:
                raise self.fail(path, "length must not be negative")
            return "".join(self._rng.choice(_ALPHABET) for _ in range(length))
        if path == "hex":
            length = self.int_arg(path, args, 0, 32)
            if length < 0:
                raise self.fail(path, "length must not be negative")
            return "".join(self._rng.choice("0123456789abcdef") for _ in range(length))
        raise self.unknown(path)
