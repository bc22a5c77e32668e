"""Cacheable snapshot of an HTTP response.

:class:`CachedResponse` is the payload the DSL layer stores in the
:class:`~restified.cache.ResponseCache` after each request. It is built
from an :class:`httpx.Response` by :meth:`CachedResponse.from_httpx`, which
decodes the body the same way for every consumer: JSON when possible, raw
text otherwise, ``None`` for an empty body.

The cache itself treats payloads as opaque; it only reads ``status_code``
and ``url`` (see :mod:`restified.cache.query`), so plain dicts work too.
"""

from __future__ import annotations

import time
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field


class CachedResponse(BaseModel):
    """Status, headers, decoded body and timing of one request/response pair."""

    status_code: int
    reason: str = ""
    method: str = "GET"
    url: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None
    elapsed_ms: Optional[float] = None
    received_at: float = Field(
        default_factory=time.time, description="Epoch seconds when the response arrived"
    )

    @classmethod
    def from_httpx(
        cls,
        response: httpx.Response,
        elapsed_ms: Optional[float] = None,
    ) -> "CachedResponse":
        """Build a payload from an :class:`httpx.Response`.

        Args:
            response: A response with an attached request (as returned by
                any ``httpx`` client).
            elapsed_ms: Explicit timing; when omitted, ``response.elapsed``
                is used if the response has been read or closed.
        """
        if elapsed_ms is None:
            try:
                elapsed_ms = response.elapsed.total_seconds() * 1000
            except RuntimeError:
                elapsed_ms = None

        try:
            request = response.request
        except RuntimeError:
            request = None

        return cls(
            status_code=response.status_code,
            reason=response.reason_phrase or "",
            method=request.method if request is not None else "GET",
            url=str(request.url) if request is not None else "",
            headers=dict(response.headers),
            body=extract_response_data(response),
            elapsed_ms=elapsed_ms,
        )

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def extract_response_data(response: httpx.Response) -> Any:
    """Extract the body from an HTTP response.

    Attempts to parse the body as JSON first. If that fails (e.g. the
    response is HTML or plain text), returns the raw text. Returns ``None``
    for responses with no content.
    """
    if not response.content:
        return None

    try:
        return response.json()
    except ValueError:
        pass

    return response.text
