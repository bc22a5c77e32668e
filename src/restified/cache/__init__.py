"""In-memory response cache.

* :class:`ResponseCache` -- bounded FIFO cache with per-entry TTL and a
  small query engine (status, URL, time range, arbitrary predicates).
* :class:`CachedResponse` -- cacheable snapshot of an :class:`httpx.Response`.
* :mod:`restified.cache.query` -- payload accessors and predicate factories.
"""

from restified.cache.cache import CacheEntry, ResponseCache, validate_cache_config
from restified.cache.query import CacheHit, payload_method, payload_status, payload_url
from restified.cache.response import CachedResponse, extract_response_data

__all__ = [
    "CacheEntry",
    "CacheHit",
    "CachedResponse",
    "ResponseCache",
    "extract_response_data",
    "payload_method",
    "payload_status",
    "payload_url",
    "validate_cache_config",
]
