"""Assemble the interceptor chain for one stub configuration.

The stage order is part of the contract:

1. ``pagination`` -- outermost, so it sees the final response.
2. ``cache-max-age`` -- network stage, clamps freshness before storage.
3. ``augment`` -- auth, ``per_page`` and ``Accept``.
4. ``http-logging`` and ``cache-status`` -- only in debug mode.
5. ``cache-bypass`` -- only for stubs built with ``bypass_cache``.

A chain is built fresh for every stub and never modified afterwards.
"""

from __future__ import annotations

from ghstubs.app_state import TokenProvider, VisitedUrlTracker
from ghstubs.cache_control import MAX_AGE_SECONDS
from ghstubs.models import StubIdentity
from ghstubs.pipeline.chain import Interceptor, InterceptorChain
from ghstubs.pipeline.interceptors import (
    CacheBypassInterceptor,
    CacheMaxAgeInterceptor,
    CacheStatusInterceptor,
    HttpLoggingInterceptor,
    PaginationInterceptor,
    RequestAugmenter,
)


class PipelineAssembler:
    """Build :class:`~ghstubs.pipeline.chain.InterceptorChain` instances.

    Args:
        token_provider: Ambient token source handed to each augmenter.
        tracker: Visited-URL tracker handed to each augmenter.
        default_accept: Module-wide default ``Accept`` value.
        debug: Add the diagnostic stages to every chain.
        max_age: Freshness bound applied by the clamp stage.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        tracker: VisitedUrlTracker,
        default_accept: str,
        debug: bool = False,
        max_age: int = MAX_AGE_SECONDS,
    ) -> None:
        self._token_provider = token_provider
        self._tracker = tracker
        self._default_accept = default_accept
        self._debug = debug
        self._max_age = max_age

    def build(self, identity: StubIdentity) -> InterceptorChain:
        """Return the chain of stages for a stub described by *identity*."""
        stages: list[Interceptor] = [
            PaginationInterceptor(),
            CacheMaxAgeInterceptor(self._max_age),
            RequestAugmenter(
                self._token_provider,
                self._tracker,
                self._default_accept,
                token=identity.token,
                page_size=identity.page_size,
                accept_header=identity.accept_header,
            ),
        ]
        if self._debug:
            stages.append(HttpLoggingInterceptor())
            stages.append(CacheStatusInterceptor())
        if identity.bypass_cache:
            stages.append(CacheBypassInterceptor())
        return InterceptorChain(tuple(stages))
