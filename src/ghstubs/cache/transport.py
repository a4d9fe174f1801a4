"""HTTP cache semantics as an :class:`httpx.BaseTransport`.

:class:`CachingTransport` sits between the application stages and the
network stages of a derived client (see
:mod:`ghstubs.pipeline.assembler`)::

    app stages -> CachingTransport -> network stages -> wire

so network stages only ever see traffic that actually leaves the
process, and the clamped ``Cache-Control`` they produce is what gets
stored. Freshness, conditional revalidation and storage decisions for
GET and HEAD requests are delegated to hishel's
:class:`~hishel.httpx.SyncCacheTransport`.

Unsafe methods go straight to the network. When they succeed, the next
read of the same URL carries ``Cache-Control: no-cache`` and is
revalidated against the origin.

Provenance is recorded on every response in ``response.extensions``:
``network_status`` (status of the network leg, or ``None``) and
``cache_status`` (status of the stored response used, or ``None``).
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from hishel.httpx import SyncCacheTransport

from ghstubs.cache.store import HttpCache

logger = logging.getLogger(__name__)

NETWORK_STATUS = "network_status"
CACHE_STATUS = "cache_status"

_CACHED_METHODS = frozenset({"GET", "HEAD"})
_UNSAFE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def network_status(response: httpx.Response) -> Optional[int]:
    """Status code of the network leg of *response*, ``None`` for a pure cache hit."""
    return response.extensions.get(NETWORK_STATUS)


def cache_status(response: httpx.Response) -> Optional[int]:
    """Status code of the stored response used for *response*, ``None`` if none was."""
    return response.extensions.get(CACHE_STATUS)


def _record_provenance(response: httpx.Response) -> httpx.Response:
    extensions = response.extensions
    if extensions.get("hishel_from_cache"):
        network = 304 if extensions.get("hishel_revalidated") else None
        cached: Optional[int] = response.status_code
    else:
        network, cached = response.status_code, None
    response.extensions = {**extensions, NETWORK_STATUS: network, CACHE_STATUS: cached}
    return response


def _require_revalidation(request: httpx.Request) -> None:
    existing = request.headers.get("cache-control")
    request.headers["Cache-Control"] = f"{existing}, no-cache" if existing else "no-cache"


class CachingTransport(httpx.BaseTransport):
    """Transport applying HTTP cache semantics on top of *transport*.

    Args:
        transport: The next transport towards the network.
        cache: The shared store, or ``None`` to disable caching.
    """

    def __init__(self, transport: httpx.BaseTransport, cache: Optional[HttpCache]) -> None:
        self._transport = transport
        self._cache = cache
        self._cached: Optional[SyncCacheTransport] = None
        if cache is not None:
            self._cached = SyncCacheTransport(
                next_transport=transport,
                storage=cache.storage,
                policy=cache.policy,
            )

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        if self._cached is None or request.method not in _CACHED_METHODS:
            return self._forward_uncached(request)

        if self._cache.consume_invalidation(str(request.url)):
            _require_revalidation(request)
        self._cache.enforce_quota()
        return _record_provenance(self._cached.handle_request(request))

    def close(self) -> None:
        # hishel storage belongs to the shared HttpCache; leave it open.
        self._transport.close()

    def _forward_uncached(self, request: httpx.Request) -> httpx.Response:
        response = self._transport.handle_request(request)
        if (
            self._cache is not None
            and request.method in _UNSAFE_METHODS
            and response.status_code < 400
        ):
            self._cache.invalidate(str(request.url))
        return _record_provenance(response)
