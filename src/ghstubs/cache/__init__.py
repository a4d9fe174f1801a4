"""HTTP response caching for ghstubs.

* :class:`HttpCache` -- the shared hishel SQLite storage with its byte
  quota, created once per process by
  :class:`~ghstubs.transport.TransportClient`.
* :class:`CachingTransport` -- the :class:`httpx.BaseTransport` that
  runs hishel's cache transport on top of that store and records
  provenance on every response.
"""

from ghstubs.cache.store import HttpCache
from ghstubs.cache.transport import CachingTransport, cache_status, network_status

__all__ = [
    "CachingTransport",
    "HttpCache",
    "cache_status",
    "network_status",
]
