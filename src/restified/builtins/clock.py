"""``$date`` -- current time in various renderings (UTC).

Functions::

    {{$date.now}} / {{$date.iso}}     ISO 8601 timestamp, millisecond precision
    {{$date.today}}                   YYYY-MM-DD
    {{$date.yesterday}}               YYYY-MM-DD
    {{$date.tomorrow}}                YYYY-MM-DD
    {{$date.timestamp}}               epoch milliseconds
    {{$date.unix}}                    epoch seconds
    {{$date.format('%Y/%m/%d')}}      strftime format of now
    {{$date.format('YYYY-MM-DD')}}     moment-style tokens are accepted too
    {{$date.add(3, 'days')}}          ISO timestamp 3 days from now
    {{$date.subtract(2, 'hours')}}    ISO timestamp 2 hours ago

A format containing ``%`` is passed to ``strftime``. Otherwise the
moment-style tokens ``YYYY YY MMMM MMM MM DD dddd ddd HH hh mm ss SSS A Z``
are replaced and everything else, including ``[bracketed]`` text, is kept.
``add``/``subtract`` take an optional third argument, a format for the
shifted time.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from restified.builtins.base import BuiltinNamespace

_UNITS = {
    "second": "seconds",
    "seconds": "seconds",
    "s": "seconds",
    "minute": "minutes",
    "minutes": "minutes",
    "m": "minutes",
    "hour": "hours",
    "hours": "hours",
    "h": "hours",
    "day": "days",
    "days": "days",
    "d": "days",
    "week": "weeks",
    "weeks": "weeks",
    "w": "weeks",
}


def _iso(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


_MOMENT_TOKENS = re.compile(r"\[[^\]]*\]|YYYY|YY|MMMM|MMM|MM|DD|dddd|ddd|HH|hh|mm|ss|SSS|A|Z")
_STRFTIME = {
    "YYYY": "%Y",
    "YY": "%y",
    "MMMM": "%B",
    "MMM": "%b",
    "MM": "%m",
    "DD": "%d",
    "dddd": "%A",
    "ddd": "%a",
    "HH": "%H",
    "hh": "%I",
    "mm": "%M",
    "ss": "%S",
    "A": "%p",
}


def format_moment(moment: datetime, fmt: str) -> str:
    """Render *moment* with a strftime format or moment-style tokens."""
    if "%" in fmt:
        return moment.strftime(fmt)

    def _token(match: re.Match) -> str:
        token = match.group(0)
        if token.startswith("["):
            return token[1:-1]
        if token == "SSS":
            return f"{moment.microsecond // 1000:03d}"
        if token == "Z":
            offset = moment.strftime("%z")
            return f"{offset[:3]}:{offset[3:]}" if offset else ""
        return moment.strftime(_STRFTIME[token])

    return _MOMENT_TOKENS.sub(_token, fmt)


class ClockNamespace(BuiltinNamespace):
    """Clock reader.

    Args:
        now: Callable returning the current aware datetime; defaults to
            ``datetime.now(timezone.utc)``. Tests inject a fixed clock.
    """

    def __init__(self, now: Optional[Callable[[], datetime]] = None) -> None:
        self._now = now or (lambda: datetime.now(timezone.utc))

    @property
    def name(self) -> str:
        return "date"

    @property
    def description(self) -> str:
        return "Current date/time (UTC): now, today, timestamp, format, add, subtract"

    def call(self, path: str, args: list[str]) -> str:
        now = self._now()
        if path in ("now", "iso"):
            return _iso(now)
        if path == "today":
            return now.date().isoformat()
        if path == "yesterday":
            return (now - timedelta(days=1)).date().isoformat()
        if path == "tomorrow":
            return (now + timedelta(days=1)).date().isoformat()
        if path == "timestamp":
            return str(int(now.timestamp() * 1000))
        if path == "unix":
            return str(int(now.timestamp()))
        if path == "format":
            return format_moment(now, self.str_arg(path, args, 0))
        if path in ("add", "subtract"):
            amount = self.number_arg(path, args, 0)
            unit = self.str_arg(path, args, 1, "days").strip().lower()
            if unit not in _UNITS:
                raise self.fail(path, f"unknown unit '{unit}'")
            delta = timedelta(**{_UNITS[unit]: amount})
            shifted = now + delta if path == "add" else now - delta
            if len(args) > 2:
                return format_moment(shifted, args[2])
            return _iso(shifted)
        raise self.unknown(path)
