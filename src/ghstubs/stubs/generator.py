"""Generate concrete stubs from service descriptors.

:class:`ServiceGenerator` turns a :class:`~ghstubs.stubs.service.Service`
subclass into a concrete subclass whose decorated methods issue real
requests through a derived :class:`httpx.Client`. Generated classes are
built once per descriptor and reused; instances are cheap.
"""

from __future__ import annotations

import functools
import inspect
import logging
import re
from typing import Any, Callable, Optional
from urllib.parse import quote

import httpx

from ghstubs.exceptions import StubDefinitionError
from ghstubs.stubs.page import Page
from ghstubs.stubs.service import Endpoint, Service

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")

# Parameter names with a fixed meaning.
BODY_PARAM = "body"
HEADERS_PARAM = "headers"


def _query_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def _make_method(name: str, endpoint: Endpoint, declared: Callable[..., Any]) -> Callable[..., Any]:
    """Build the implementation of one descriptor method."""
    signature = inspect.signature(declared)
    placeholders = _PLACEHOLDER_RE.findall(endpoint.path)
    for placeholder in placeholders:
        if placeholder not in signature.parameters:
            raise StubDefinitionError(
                f"{declared.__qualname__}: path placeholder '{{{placeholder}}}' "
                f"has no matching parameter"
            )

    def method(self: Service, *args: Any, **kwargs: Any) -> Any:
        try:
            bound = signature.bind(self, *args, **kwargs)
        except TypeError as exc:
            raise TypeError(f"{name}(): {exc}") from exc
        bound.apply_defaults()
        arguments = dict(bound.arguments)
        arguments.pop(next(iter(signature.parameters)), None)

        path = endpoint.path
        for placeholder in placeholders:
            value = arguments.pop(placeholder)
            if value is None:
                raise ValueError(f"{name}(): '{placeholder}' must not be None")
            path = path.replace("{%s}" % placeholder, quote(str(value), safe=""))

        body = arguments.pop(BODY_PARAM, None)
        headers = dict(arguments.pop(HEADERS_PARAM, None) or {})
        if endpoint.accept and not any(k.lower() == "accept" for k in headers):
            headers["Accept"] = endpoint.accept

        params = {k: _query_value(v) for k, v in arguments.items() if v is not None}

        response = self.client.request(
            endpoint.method,
            path,
            params=params or None,
            json=body,
            headers=headers or None,
        )
        if endpoint.paged:
            return Page.from_response(response)
        return response

    functools.update_wrapper(method, declared)
    return method


@functools.lru_cache(maxsize=None)
def _stub_class(descriptor: type[Service]) -> type[Service]:
    endpoints = descriptor.endpoints()
    if not endpoints:
        raise StubDefinitionError(f"{descriptor.__name__} declares no endpoints")
    namespace: dict[str, Any] = {
        name: _make_method(name, endpoint, declared)
        for name, (endpoint, declared) in endpoints.items()
    }
    namespace["__module__"] = descriptor.__module__
    namespace["__doc__"] = descriptor.__doc__
    logger.debug("Generated stub class for %s (%d endpoints)", descriptor.__name__, len(namespace) - 2)
    return type(f"{descriptor.__name__}Stub", (descriptor,), namespace)


def validate_descriptor(descriptor: Any) -> type[Service]:
    """Return *descriptor* if it is a usable service descriptor.

    Raises:
        StubDefinitionError: If *descriptor* is ``None``, not a class, or
            not a :class:`Service` subclass.
    """
    if descriptor is None:
        raise StubDefinitionError("Service descriptor must not be None")
    if not isinstance(descriptor, type) or not issubclass(descriptor, Service):
        raise StubDefinitionError(
            f"{descriptor!r} is not a service descriptor (expected a Service subclass)"
        )
    if descriptor is Service:
        raise StubDefinitionError("Service itself is not a descriptor; subclass it")
    return descriptor


class ServiceGenerator:
    """Create stub instances bound to a derived client."""

    def create(self, client: httpx.Client, descriptor: type[Service]) -> Service:
        """Return a stub implementing *descriptor* that sends through *client*.

        Raises:
            StubDefinitionError: If *descriptor* cannot be turned into a stub.
        """
        stub_class = _stub_class(validate_descriptor(descriptor))
        return stub_class(client)

    @staticmethod
    def describe(descriptor: type[Service]) -> list[tuple[str, Endpoint, Optional[str]]]:
        """List ``(method name, endpoint, first docstring line)`` for *descriptor*."""
        rows = []
        for name, (endpoint, declared) in sorted(validate_descriptor(descriptor).endpoints().items()):
            doc = inspect.getdoc(declared)
            rows.append((name, endpoint, doc.splitlines()[0] if doc else None))
        return rows
