"""ghstubs -- cached, configurable GitHub REST service stubs.

A :class:`~ghstubs.factory.ServiceFactory` hands out stubs of service
descriptors (``UserService``, ``IssueService``, ...). Each distinct
configuration (token override, page size, ``Accept`` header, cache
bypass) gets one stub whose requests pass through an interceptor
pipeline and a shared on-disk HTTP cache whose freshness is clamped to
a couple of seconds.

Typical use::

    from ghstubs.config import resolve_settings
    from ghstubs.factory import get_factory, init_client
    from ghstubs.stubs import RepositoryService

    init_client(resolve_settings())
    repos = get_factory().get(RepositoryService, page_size=100)
    response = repos.get_repository("encode", "httpx")

Modules:
    app: Typer CLI entry point.
    factory: Stub memoization and the process-wide client lifecycle.
    pipeline: Interceptor chain and its stages.
    cache: hishel-backed response cache and the caching transport.
    cache_control: Cache-Control parsing and the freshness clamp.
    stubs: Service descriptors and stub generation.
    config: XDG paths, settings file and credential sources.
"""

__version__ = "0.1.0"
