"""``$faker`` -- realistic fake data via the :mod:`faker` library.

The path names a Faker provider method::

    {{$faker.name}}                 Ada Lovelace
    {{$faker.email}}                ada@example.org
    {{$faker.first_name}}           Ada
    {{$faker.pyint(1, 10)}}         7
    {{$faker.date_of_birth}}        1815-12-10

camelCase segments are mapped to snake_case and a leading category segment
in the style of other faker ports is tolerated, so
``{{$faker.person.firstName}}`` and ``{{$faker.internet.email}}`` work as
well. Numeric-looking arguments are passed to the provider as numbers.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Any, Optional

from faker import Faker

from restified.builtins.base import BuiltinNamespace

logger = logging.getLogger(__name__)

_CAMEL = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

_ALIASES = {
    "full_name": "name",
    "fullname": "name",
    "username": "user_name",
    "phone": "phone_number",
    "street": "street_address",
    "zip": "postcode",
    "zip_code": "postcode",
    "uuid": "uuid4",
}


def _snake(segment: str) -> str:
    return _CAMEL.sub("_", segment).lower()


def _coerce(arg: str) -> Any:
    try:
        return int(arg)
    except ValueError:
        pass
    try:
        return float(arg)
    except ValueError:
        return arg


class FakerNamespace(BuiltinNamespace):
    """Fake-data generator backed by a lazily created :class:`faker.Faker`.

    Args:
        locale: Faker locale (e.g. ``"de_DE"``); ``None`` uses Faker's default.
        seed: Optional seed for reproducible values.
    """

    def __init__(self, locale: Optional[str] = None, seed: Optional[int] = None) -> None:
        self._locale = locale
        self._seed = seed
        self._faker: Optional[Faker] = None
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "faker"

    @property
    def description(self) -> str:
        return "Fake data from Faker providers: name, email, address, pyint(1, 10), ..."

    @property
    def faker(self) -> Faker:
        """The shared :class:`Faker` instance, created once on first use."""
        with self._lock:
            if self._faker is None:
                faker = Faker(self._locale) if self._locale else Faker()
                if self._seed is not None:
                    faker.seed_instance(self._seed)
                self._faker = faker
                logger.debug("Created Faker instance (locale=%s, seed=%s)", self._locale, self._seed)
            return self._faker

    def call(self, path: str, args: list[str]) -> str:
        if not path:
            raise self.fail(path, "missing provider name")
        provider = self._lookup(path)
        if provider is None:
            raise self.unknown(path)
        value = provider(*[_coerce(a) for a in args]) if callable(provider) else provider
        return str(value)

    def _lookup(self, path: str) -> Any:
        segments = [_snake(s) for s in path.split(".") if s]
        # Try the full dotted path first, then just the method name.
        candidates = [segments]
        if len(segments) > 1:
            candidates.append(segments[-1:])

        for candidate in candidates:
            target: Any = self.faker
            for index, segment in enumerate(candidate):
                if segment.startswith("_"):
                    target = None
                    break
                is_last = index == len(candidate) - 1
                name = _ALIASES.get(segment, segment) if is_last else segment
                try:
                    target = getattr(target, name)
                except AttributeError:
                    target = None
                    break
            if target is not None:
                return target
        return None
