"""Example third-party namespace: per-name sequence counters.

Install it by declaring an entry point in the plugin's own packaging::

    [project.entry-points."restified.builtins"]
    seq = "example_namespace.plugin:SequenceNamespace"

after which ``{{$seq.next}}`` yields ``1``, ``2``, ... and
``{{$seq.next(orders)}}`` keeps a separate counter named ``orders``.
"""

from __future__ import annotations

import threading

from restified.builtins.base import BuiltinNamespace


class SequenceNamespace(BuiltinNamespace):
    """Monotonic counters, one per name."""

    def __init__(self, start: int = 1) -> None:
        self._start = start
        self._counters: dict[str, int] = {}
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "seq"

    @property
    def description(self) -> str:
        return "Sequence counters: next, current, reset"

    def call(self, path: str, args: list[str]) -> str:
        counter = self.str_arg(path, args, 0, default="default")
        with self._lock:
            if path == "next":
                value = self._counters.get(counter, self._start - 1) + 1
                self._counters[counter] = value
                return str(value)
            if path == "current":
                return str(self._counters.get(counter, self._start - 1))
            if path == "reset":
                self._counters.pop(counter, None)
                return ""
        raise self.unknown(path)
