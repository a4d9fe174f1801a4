"""Interceptor primitives: stages, the chain they run in, and the transport hosting them.

An :class:`Interceptor` sees one request, may rewrite it, hands it on
with :meth:`Chain.proceed`, and may inspect or rewrite the response that
comes back. Interceptors never catch transport exceptions: whatever the
lower stage raises propagates through every stage unchanged.

:class:`InterceptorTransport` runs an ordered tuple of interceptors in
front of another :class:`httpx.BaseTransport`, which makes a chain
pluggable anywhere httpx accepts a transport.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Sequence

import httpx


class Interceptor(ABC):
    """A single named request/response transform.

    Subclasses set :attr:`name` and implement :meth:`intercept`, calling
    ``chain.proceed(request)`` exactly once to reach the next stage.
    Stages with :attr:`network` set run below the response cache and only
    see traffic that reaches the network.
    """

    name: str = "interceptor"
    network: bool = False

    @abstractmethod
    def intercept(self, chain: Chain) -> httpx.Response:
        """Process ``chain.request``, forward it, and return the response."""
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class Chain:
    """Position of a request inside a tuple of interceptors."""

    def __init__(
        self,
        interceptors: tuple[Interceptor, ...],
        index: int,
        request: httpx.Request,
        terminal: Callable[[httpx.Request], httpx.Response],
    ) -> None:
        self._interceptors = interceptors
        self._index = index
        self._request = request
        self._terminal = terminal

    @property
    def request(self) -> httpx.Request:
        return self._request

    def proceed(self, request: httpx.Request) -> httpx.Response:
        """Hand *request* to the next interceptor, or to the terminal transport."""
        if self._index >= len(self._interceptors):
            return self._terminal(request)
        following = Chain(self._interceptors, self._index + 1, request, self._terminal)
        return self._interceptors[self._index].intercept(following)


@dataclass(frozen=True)
class InterceptorChain:
    """The ordered stages of one derived client.

    Application stages run once per call, in front of the response cache,
    in the order given. Network stages run, in the order given, only for
    requests that reach the network.
    """

    stages: tuple[Interceptor, ...] = ()

    @property
    def application(self) -> tuple[Interceptor, ...]:
        return tuple(s for s in self.stages if not s.network)

    @property
    def network(self) -> tuple[Interceptor, ...]:
        return tuple(s for s in self.stages if s.network)

    @property
    def names(self) -> list[str]:
        return [s.name for s in self.stages]


class InterceptorTransport(httpx.BaseTransport):
    """Run *interceptors* in order before delegating to *transport*."""

    def __init__(self, interceptors: Sequence[Interceptor], transport: httpx.BaseTransport) -> None:
        self._interceptors = tuple(interceptors)
        self._transport = transport

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        chain = Chain(self._interceptors, 0, request, self._transport.handle_request)
        return chain.proceed(request)

    def close(self) -> None:
        self._transport.close()
