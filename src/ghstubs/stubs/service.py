"""Declaring service descriptors.

A descriptor is a :class:`Service` subclass whose methods are decorated
with the HTTP verb they map to. Method bodies are never run; the
signature alone describes the call::

    class UserService(Service):
        @get("/users/{username}")
        def get_user(self, username: str) -> httpx.Response: ...

        @get("/users/{username}/followers", paged=True)
        def list_followers(self, username: str, page: int | None = None) -> Page: ...

Argument binding rules, applied by
:class:`~ghstubs.stubs.generator.ServiceGenerator`:

* parameters named in ``{...}`` placeholders fill the path,
* ``body`` is sent as JSON,
* ``headers`` is a mapping of extra request headers,
* every other argument that is not ``None`` becomes a query parameter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

import httpx

F = TypeVar("F", bound=Callable[..., Any])

ENDPOINT_ATTR = "__ghstubs_endpoint__"


@dataclass(frozen=True)
class Endpoint:
    """HTTP mapping of one descriptor method.

    Attributes:
        method: Upper-case HTTP method.
        path: Path template relative to the base URL, e.g. ``/repos/{owner}/{repo}``.
        paged: Return a :class:`~ghstubs.stubs.page.Page` instead of the raw response.
        accept: ``Accept`` header this endpoint always sends, if any.
    """

    method: str
    path: str
    paged: bool = False
    accept: Optional[str] = None


def _endpoint(method: str) -> Callable[..., Callable[[F], F]]:
    def decorator_factory(
        path: str, *, paged: bool = False, accept: Optional[str] = None
    ) -> Callable[[F], F]:
        def decorator(func: F) -> F:
            setattr(func, ENDPOINT_ATTR, Endpoint(method, path, paged, accept))
            return func

        return decorator

    return decorator_factory


get = _endpoint("GET")
post = _endpoint("POST")
put = _endpoint("PUT")
patch = _endpoint("PATCH")
delete = _endpoint("DELETE")


class Service:
    """Base class of every service descriptor and of the stubs generated from them."""

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    @property
    def client(self) -> httpx.Client:
        """The derived client this stub sends its requests through."""
        return self._client

    @classmethod
    def endpoints(cls) -> dict[str, tuple[Endpoint, Callable[..., Any]]]:
        """Return ``{method name: (endpoint, declared function)}`` across the MRO."""
        found: dict[str, tuple[Endpoint, Callable[..., Any]]] = {}
        for klass in reversed(cls.__mro__):
            for name, value in vars(klass).items():
                endpoint = getattr(value, ENDPOINT_ATTR, None)
                if isinstance(endpoint, Endpoint):
                    found[name] = (endpoint, value)
        return found
