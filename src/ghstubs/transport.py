"""The process-wide transport client and the builder that branches off it.

:class:`TransportClient` owns the two resources every stub shares: the
connection pool (an :class:`httpx.HTTPTransport`) and the disk response
cache. Exactly one exists per process; it is created by
:func:`~ghstubs.factory.init_client`.

Derived clients are built with :meth:`TransportClient.new_builder`. The
builder copies the shared configuration and stacks a client's own
stages around the shared resources::

    httpx.Client
      -> application stages      (InterceptorTransport)
      -> CachingTransport        (hishel over the shared HttpCache)
      -> network stages          (InterceptorTransport)
      -> shared HTTPTransport

Building never mutates the shared client, and closing a derived client
leaves the shared pool and cache open for everybody else.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ghstubs.cache import CachingTransport, HttpCache
from ghstubs.config import get_http_cache_dir
from ghstubs.models import ClientSettings
from ghstubs.pipeline.chain import Interceptor, InterceptorChain, InterceptorTransport

logger = logging.getLogger(__name__)


class _SharedTransport(httpx.BaseTransport):
    """View of the shared transport that derived clients cannot close."""

    def __init__(self, transport: httpx.BaseTransport) -> None:
        self._transport = transport

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        return self._transport.handle_request(request)

    def close(self) -> None:
        pass


class TransportClient:
    """The shared network client: base URL, connection pool and disk cache.

    Args:
        settings: Effective client settings.
        transport: Transport to the network; an :class:`httpx.HTTPTransport`
            honouring ``settings.verify_ssl`` when omitted. Tests pass an
            :class:`httpx.MockTransport`.
        cache: Response cache to share; created from ``settings.cache``
            when omitted and caching is enabled.
    """

    def __init__(
        self,
        settings: ClientSettings,
        transport: Optional[httpx.BaseTransport] = None,
        cache: Optional[HttpCache] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport or httpx.HTTPTransport(verify=settings.verify_ssl)
        if cache is None and settings.cache.enabled:
            directory = get_http_cache_dir(settings)
            cache = HttpCache(directory, settings.cache.max_size_bytes)
            logger.debug(
                "HTTP cache at %s (quota %d bytes)", directory, settings.cache.max_size_bytes
            )
        self._cache = cache

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def base_url(self) -> str:
        return self._settings.base_url

    @property
    def cache(self) -> Optional[HttpCache]:
        return self._cache

    def new_builder(self) -> ClientBuilder:
        """Return a builder pre-loaded with this client's configuration."""
        return ClientBuilder(self)

    def close(self) -> None:
        """Close the disk cache and the connection pool."""
        if self._cache is not None:
            self._cache.close()
        self._transport.close()


class ClientBuilder:
    """Collects stages for one derived client.

    Every ``add_*`` method returns the builder so calls can be chained::

        client = shared.new_builder().add_chain(chain).build()
    """

    def __init__(self, shared: TransportClient) -> None:
        self._shared = shared
        self._application: list[Interceptor] = []
        self._network: list[Interceptor] = []
        self._base_url = shared.base_url
        self._timeout = shared.settings.timeout

    def add_interceptor(self, interceptor: Interceptor) -> ClientBuilder:
        """Append an application stage (runs once per call, above the cache)."""
        self._application.append(interceptor)
        return self

    def add_network_interceptor(self, interceptor: Interceptor) -> ClientBuilder:
        """Append a network stage (runs only for traffic that reaches the network)."""
        self._network.append(interceptor)
        return self

    def add_chain(self, chain: InterceptorChain) -> ClientBuilder:
        """Append every stage of *chain*, each to the side its ``network`` flag names."""
        for stage in chain.stages:
            if stage.network:
                self.add_network_interceptor(stage)
            else:
                self.add_interceptor(stage)
        return self

    def base_url(self, base_url: str) -> ClientBuilder:
        self._base_url = base_url
        return self

    def timeout(self, seconds: float) -> ClientBuilder:
        self._timeout = seconds
        return self

    def build(self) -> httpx.Client:
        """Build the derived :class:`httpx.Client`.

        The client sends no ``Accept`` header of its own, so the
        augmentation stage can tell whether a caller set one. Redirects
        are returned to the caller rather than followed.
        """
        network = InterceptorTransport(self._network, _SharedTransport(self._shared._transport))
        cached = CachingTransport(network, self._shared.cache)
        transport = InterceptorTransport(self._application, cached)
        client = httpx.Client(
            base_url=self._base_url,
            transport=transport,
            timeout=self._timeout,
            headers={"User-Agent": self._shared.settings.user_agent},
            follow_redirects=False,
        )
        del client.headers["Accept"]
        return client
