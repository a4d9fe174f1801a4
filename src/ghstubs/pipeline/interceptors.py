"""The named stages a derived client runs its traffic through.

Stages, in the order :class:`~ghstubs.pipeline.assembler.PipelineAssembler`
installs them:

* :class:`PaginationInterceptor` -- ``Link`` header -> :class:`~ghstubs.models.PageLinks`.
* :class:`CacheMaxAgeInterceptor` -- network only; clamps ``Cache-Control``.
* :class:`RequestAugmenter` -- auth token, ``per_page`` and ``Accept``.
* :class:`HttpLoggingInterceptor`, :class:`CacheStatusInterceptor` -- debug only.
* :class:`CacheBypassInterceptor` -- opt-in ``Cache-Control: no-cache``.
"""

from __future__ import annotations

import logging
import time
from typing import Optional
from urllib.parse import parse_qs, urlsplit

import httpx

from ghstubs.app_state import TokenProvider, VisitedUrlTracker
from ghstubs.cache.transport import cache_status, network_status
from ghstubs.cache_control import MAX_AGE_SECONDS, clamp_response
from ghstubs.models import PageLinks
from ghstubs.pipeline.chain import Chain, Interceptor

http_logger = logging.getLogger("ghstubs.http")

PAGE_LINKS = "page_links"


def _rebuild(
    request: httpx.Request,
    url: Optional[httpx.URL] = None,
    headers: Optional[httpx.Headers] = None,
) -> httpx.Request:
    """Copy *request*, replacing its URL and/or headers but keeping body and extensions."""
    return httpx.Request(
        request.method,
        url if url is not None else request.url,
        headers=headers if headers is not None else request.headers,
        stream=request.stream,
        extensions=request.extensions,
    )


def page_links(response: httpx.Response) -> PageLinks:
    """Return the pagination metadata attached to *response* (empty when none)."""
    links = response.extensions.get(PAGE_LINKS)
    return links if isinstance(links, PageLinks) else PageLinks()


def _page_number(url: str) -> Optional[int]:
    values = parse_qs(urlsplit(url).query).get("page")
    if not values:
        return None
    try:
        return int(values[0])
    except ValueError:
        return None


class PaginationInterceptor(Interceptor):
    """Expose GitHub's ``Link`` header as :class:`~ghstubs.models.PageLinks`.

    The parsed links are stored in ``response.extensions["page_links"]``
    and read back with :func:`page_links`.
    """

    name = "pagination"

    def intercept(self, chain: Chain) -> httpx.Response:
        response = chain.proceed(chain.request)
        if "link" not in response.headers:
            return response

        urls = {rel: link["url"] for rel, link in response.links.items() if "url" in link}
        links = PageLinks(
            next=_page_number(urls["next"]) if "next" in urls else None,
            prev=_page_number(urls["prev"]) if "prev" in urls else None,
            first=_page_number(urls["first"]) if "first" in urls else None,
            last=_page_number(urls["last"]) if "last" in urls else None,
            urls=urls,
        )
        response.extensions = {**response.extensions, PAGE_LINKS: links}
        return response


class CacheMaxAgeInterceptor(Interceptor):
    """Clamp the ``max-age`` of network responses before they are cached.

    Must be installed as a network stage: responses served from the
    cache never pass through it.
    """

    name = "cache-max-age"
    network = True

    def __init__(self, max_age: int = MAX_AGE_SECONDS) -> None:
        self._max_age = max_age

    def intercept(self, chain: Chain) -> httpx.Response:
        return clamp_response(chain.proceed(chain.request), self._max_age)


class RequestAugmenter(Interceptor):
    """Add the authorization header, page size and default ``Accept`` to requests.

    Args:
        token_provider: Source of the ambient token, used when no
            *token* override is given.
        tracker: Receives the final URL of every request passing through.
        default_accept: ``Accept`` value used when neither the request
            nor *accept_header* provides one.
        token: Per-stub token override.
        page_size: Value of the ``per_page`` query parameter, if any.
        accept_header: Per-stub ``Accept`` override.
    """

    name = "augment"

    def __init__(
        self,
        token_provider: TokenProvider,
        tracker: VisitedUrlTracker,
        default_accept: str,
        token: Optional[str] = None,
        page_size: Optional[int] = None,
        accept_header: Optional[str] = None,
    ) -> None:
        self._token_provider = token_provider
        self._tracker = tracker
        self._default_accept = default_accept
        self._token = token
        self._page_size = page_size
        self._accept_header = accept_header

    def intercept(self, chain: Chain) -> httpx.Response:
        original = chain.request
        headers = original.headers.copy()

        token = self._token if self._token is not None else self._token_provider.get_auth_token()
        if token is not None:
            headers["Authorization"] = f"Token {token}"

        url = original.url
        if self._page_size is not None:
            url = url.copy_add_param("per_page", str(self._page_size))

        if "accept" not in original.headers:
            headers["Accept"] = (
                self._accept_header if self._accept_header is not None else self._default_accept
            )

        request = _rebuild(original, url=url, headers=headers)
        self._tracker.track(str(request.url))
        return chain.proceed(request)


class HttpLoggingInterceptor(Interceptor):
    """Log the request line and the response line of every call."""

    name = "http-logging"

    def intercept(self, chain: Chain) -> httpx.Response:
        request = chain.request
        http_logger.info("--> %s %s", request.method, request.url)
        started = time.perf_counter()
        try:
            response = chain.proceed(request)
        except Exception as exc:
            http_logger.info("<-- HTTP FAILED: %s", exc)
            raise
        elapsed_ms = (time.perf_counter() - started) * 1000
        http_logger.info(
            "<-- %d %s %s (%.0fms)",
            response.status_code,
            response.reason_phrase,
            request.url,
            elapsed_ms,
        )
        return response


class CacheStatusInterceptor(Interceptor):
    """Log whether a response came from the network, the cache, or both."""

    name = "cache-status"

    def intercept(self, chain: Chain) -> httpx.Response:
        response = chain.proceed(chain.request)
        net = network_status(response)
        cached = cache_status(response)
        http_logger.info(
            "For %s: network return code %d, cache %d",
            chain.request.url,
            net if net is not None else -1,
            cached if cached is not None else -1,
        )
        return response


class CacheBypassInterceptor(Interceptor):
    """Ask the cache to skip stored copies while still storing the answer."""

    name = "cache-bypass"

    def intercept(self, chain: Chain) -> httpx.Response:
        original = chain.request
        headers = httpx.Headers(
            list(original.headers.multi_items()) + [("Cache-Control", "no-cache")]
        )
        return chain.proceed(_rebuild(original, headers=headers))
