"""Build, memoize and hand out service stubs.

Callers ask for "a stub of descriptor X configured with Y"::

    from ghstubs.factory import init_client, get_factory
    from ghstubs.stubs import UserService

    init_client(resolve_settings())
    users = get_factory().get(UserService, page_size=50)
    page = users.list_followers("octocat")

The first request for a configuration assembles an interceptor chain,
branches a derived client off the shared :class:`TransportClient` and
generates the stub. Every later request with the same configuration is
a dictionary lookup returning the same instance.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, TypeVar

import httpx

from ghstubs.app_state import TokenProvider, VisitedUrlTracker
from ghstubs.exceptions import InvalidUsageError, NotInitializedError
from ghstubs.models import ClientSettings, StubIdentity
from ghstubs.pipeline import PipelineAssembler
from ghstubs.stubs import Service, ServiceGenerator, validate_descriptor
from ghstubs.transport import ClientBuilder, TransportClient

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Service)


class StubCache:
    """At most one stub per :class:`StubIdentity`, built at most once.

    A global lock guards the mapping; construction runs under a
    per-identity lock so that concurrent first use of one identity builds
    once while other identities build in parallel. Entries live for the
    lifetime of the cache.
    """

    def __init__(self) -> None:
        self._entries: dict[StubIdentity, Service] = {}
        self._building: dict[StubIdentity, threading.Lock] = {}
        self._lock = threading.Lock()

    def get(self, identity: StubIdentity, build: Callable[[StubIdentity], Service]) -> Service:
        """Return the stub for *identity*, calling *build* only on a miss.

        If *build* raises, nothing is stored and the exception propagates;
        the next caller retries.
        """
        with self._lock:
            stub = self._entries.get(identity)
            if stub is not None:
                return stub
            building = self._building.setdefault(identity, threading.Lock())

        with building:
            with self._lock:
                stub = self._entries.get(identity)
            if stub is not None:
                return stub
            try:
                stub = build(identity)
                with self._lock:
                    self._entries[identity] = stub
            finally:
                with self._lock:
                    if self._building.get(identity) is building:
                        del self._building[identity]
            return stub

    def values(self) -> list[Service]:
        with self._lock:
            return list(self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._entries


class ServiceFactory:
    """Orchestrates stub creation on top of one shared transport client.

    Args:
        settings: Effective client settings. ``settings.debug`` adds the
            diagnostic stages to every stub this factory builds.
        transport: Network transport for the shared client (tests pass an
            :class:`httpx.MockTransport`).
        token_provider: Ambient token source; built from
            ``settings.token_source`` when omitted.
        tracker: Visited-URL tracker; a fresh one when omitted.
    """

    def __init__(
        self,
        settings: ClientSettings,
        transport: Optional[httpx.BaseTransport] = None,
        token_provider: Optional[TokenProvider] = None,
        tracker: Optional[VisitedUrlTracker] = None,
    ) -> None:
        self._settings = settings
        self._shared = TransportClient(settings, transport=transport)
        self._token_provider = token_provider or TokenProvider(settings.token_source)
        self._tracker = tracker or VisitedUrlTracker()
        self._assembler = PipelineAssembler(
            self._token_provider,
            self._tracker,
            settings.default_accept,
            debug=settings.debug,
        )
        self._generator = ServiceGenerator()
        self._stubs = StubCache()

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def shared_client(self) -> TransportClient:
        return self._shared

    @property
    def token_provider(self) -> TokenProvider:
        return self._token_provider

    @property
    def tracker(self) -> VisitedUrlTracker:
        return self._tracker

    @property
    def stub_count(self) -> int:
        return len(self._stubs)

    def get(
        self,
        descriptor: type[S],
        bypass_cache: bool = False,
        accept_header: Optional[str] = None,
        token: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> S:
        """Return the stub of *descriptor* for this configuration.

        Args:
            descriptor: A :class:`~ghstubs.stubs.Service` subclass.
            bypass_cache: Skip cached reads for this stub's requests;
                responses are still stored for other stubs.
            accept_header: ``Accept`` value used when a request carries none.
            token: Token used instead of the ambient one.
            page_size: Value of the ``per_page`` query parameter.

        Raises:
            StubDefinitionError: If *descriptor* is missing or not a descriptor.
            InvalidUsageError: If *page_size* is not a positive integer.
        """
        validate_descriptor(descriptor)
        if page_size is not None and (
            isinstance(page_size, bool) or not isinstance(page_size, int) or page_size <= 0
        ):
            raise InvalidUsageError(f"page_size must be a positive integer, got {page_size!r}")

        identity = StubIdentity(
            descriptor=descriptor,
            bypass_cache=bool(bypass_cache),
            accept_header=accept_header,
            token=token,
            page_size=page_size,
        )
        return self._stubs.get(identity, self._build)  # type: ignore[return-value]

    def _build(self, identity: StubIdentity) -> Service:
        chain = self._assembler.build(identity)
        client = self._shared.new_builder().add_chain(chain).build()
        logger.debug("Built stub %s with stages %s", identity.describe(), ", ".join(chain.names))
        return self._generator.create(client, identity.descriptor)

    def http_client_builder(self) -> ClientBuilder:
        """Return a builder branching off the shared client, for non-stub callers."""
        return self._shared.new_builder()

    def close(self) -> None:
        """Close every derived client, then the shared pool and disk cache."""
        for stub in self._stubs.values():
            stub.client.close()
        self._shared.close()


# ---------------------------------------------------------------------------
# Process-wide instance
# ---------------------------------------------------------------------------

_factory: Optional[ServiceFactory] = None
_factory_lock = threading.Lock()


def init_client(
    settings: ClientSettings,
    transport: Optional[httpx.BaseTransport] = None,
) -> ServiceFactory:
    """Create the process-wide factory and its shared transport client.

    Calling it again replaces (and closes) the previous factory.
    """
    global _factory
    with _factory_lock:
        previous = _factory
        factory = _factory = ServiceFactory(settings, transport=transport)
    if previous is not None:
        previous.close()
    logger.debug("Initialized client for %s", settings.base_url)
    return factory


def get_factory() -> ServiceFactory:
    """Return the process-wide factory.

    Raises:
        NotInitializedError: If :func:`init_client` has not been called.
    """
    factory = _factory
    if factory is None:
        raise NotInitializedError("Client not initialized; call init_client() first")
    return factory


def reset_factory() -> None:
    """Close and forget the process-wide factory."""
    global _factory
    with _factory_lock:
        factory, _factory = _factory, None
    if factory is not None:
        factory.close()
