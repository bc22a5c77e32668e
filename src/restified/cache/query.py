"""Payload accessors and predicates for the response-cache query engine.

Cached payloads are opaque to :class:`~restified.cache.ResponseCache`, but
queries need a status code, a URL and (optionally) an HTTP method. The
accessors here read those from the shapes a caller is likely to store:

* mappings -- ``status`` / ``status_code``, ``url`` or ``request.url``,
  ``method`` or ``request.method``;
* objects -- the same names as attributes, which covers
  :class:`~restified.cache.response.CachedResponse` and
  :class:`httpx.Response`.

A payload that exposes none of them simply never matches a status/URL
query; it is still returned by :meth:`~restified.cache.ResponseCache.find`.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Callable, NamedTuple, Optional, Union

Predicate = Callable[[str, Any], bool]
UrlMatcher = Union[str, "re.Pattern[str]"]
TimePoint = Union[datetime, float, int]


class CacheHit(NamedTuple):
    """One query result: the entry's key and (a copy of) its payload."""

    key: str
    payload: Any


def _field(payload: Any, name: str) -> Any:
    if isinstance(payload, dict):
        return payload.get(name)
    try:
        return getattr(payload, name, None)
    except RuntimeError:
        # httpx raises RuntimeError for properties that need an attached request.
        return None


def payload_status(payload: Any) -> Optional[int]:
    """Return the status code of *payload*, or ``None`` if it has none."""
    for name in ("status_code", "status"):
        value = _field(payload, name)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def payload_url(payload: Any) -> Optional[str]:
    """Return the request URL of *payload*, or ``None`` if it has none."""
    value = _field(payload, "url")
    if value is None:
        request = _field(payload, "request")
        if request is not None:
            value = _field(request, "url")
    if value is None or value == "":
        return None
    return str(value)


def payload_method(payload: Any) -> Optional[str]:
    """Return the upper-cased HTTP method of *payload*, or ``None``."""
    value = _field(payload, "method")
    if value is None:
        request = _field(payload, "request")
        if request is not None:
            value = _field(request, "method")
    return str(value).upper() if value else None


def to_epoch(point: TimePoint) -> float:
    """Convert a datetime (naive datetimes are local time) or epoch seconds to a float."""
    if isinstance(point, datetime):
        return point.timestamp()
    return float(point)


# ------------------------------------------------------------------
# Predicate factories
# ------------------------------------------------------------------


def status_is(code: int) -> Predicate:
    return lambda _key, payload: payload_status(payload) == code


def url_matches(matcher: UrlMatcher) -> Predicate:
    """Substring containment for a ``str`` matcher, ``pattern.search`` for a compiled regex."""
    if isinstance(matcher, re.Pattern):
        def _match(_key: str, payload: Any) -> bool:
            url = payload_url(payload)
            return url is not None and matcher.search(url) is not None
    else:
        needle = str(matcher)

        def _match(_key: str, payload: Any) -> bool:
            url = payload_url(payload)
            return url is not None and needle in url
    return _match


def method_is(method: str) -> Predicate:
    wanted = method.upper()
    return lambda _key, payload: payload_method(payload) == wanted


def all_of(*predicates: Predicate) -> Predicate:
    return lambda key, payload: all(p(key, payload) for p in predicates)
