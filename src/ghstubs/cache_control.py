"""Cache-Control parsing, serialisation and freshness clamping.

GitHub answers most reads with ``Cache-Control: private, max-age=60``.
A client that edits something and immediately reloads it would then be
served its own stale copy for up to a minute. :func:`clamp_response`
rewrites such responses, before they are stored, to a short freshness
window (:data:`MAX_AGE_SECONDS`). That is just enough to collapse
identical loads issued at the same moment; afterwards the cache
revalidates with the entity tag, which costs a round trip but no body.

Parsing is lenient: a missing or malformed header yields an empty
:class:`DirectiveSet`, and a directive with an unparseable value is
treated as absent.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional

import httpx

logger = logging.getLogger(__name__)

MAX_AGE_SECONDS = 2
"""Upper bound applied to the ``max-age`` of every network response."""

# directive, optionally followed by =token or ="quoted string"
_DIRECTIVE_RE = re.compile(r'\s*([^\s=,;"]+)\s*(?:=\s*(?:"([^"]*)"|([^\s,;"]*)))?\s*')


@dataclass(frozen=True)
class DirectiveSet:
    """Parsed ``Cache-Control`` directives.

    Durations are seconds, ``None`` means the directive was not present.
    A bare ``max-stale`` (any staleness is acceptable) sets
    ``max_stale_any`` and leaves ``max_stale`` unset.
    """

    no_cache: bool = False
    no_store: bool = False
    no_transform: bool = False
    max_age: Optional[int] = None
    s_maxage: Optional[int] = None
    max_stale: Optional[int] = None
    max_stale_any: bool = False
    min_fresh: Optional[int] = None
    private: bool = False
    public: bool = False
    must_revalidate: bool = False
    only_if_cached: bool = False
    immutable: bool = False

    def serialize(self) -> str:
        """Render the directives as a header value (empty string when none)."""
        parts: list[str] = []
        if self.no_cache:
            parts.append("no-cache")
        if self.no_store:
            parts.append("no-store")
        if self.max_age is not None:
            parts.append(f"max-age={self.max_age}")
        if self.s_maxage is not None:
            parts.append(f"s-maxage={self.s_maxage}")
        if self.private:
            parts.append("private")
        if self.public:
            parts.append("public")
        if self.must_revalidate:
            parts.append("must-revalidate")
        if self.max_stale_any:
            parts.append("max-stale")
        elif self.max_stale is not None:
            parts.append(f"max-stale={self.max_stale}")
        if self.min_fresh is not None:
            parts.append(f"min-fresh={self.min_fresh}")
        if self.only_if_cached:
            parts.append("only-if-cached")
        if self.no_transform:
            parts.append("no-transform")
        if self.immutable:
            parts.append("immutable")
        return ", ".join(parts)

    def __str__(self) -> str:
        return self.serialize()


_FLAGS = {
    "no-cache": "no_cache",
    "no-store": "no_store",
    "no-transform": "no_transform",
    "private": "private",
    "public": "public",
    "must-revalidate": "must_revalidate",
    "only-if-cached": "only_if_cached",
    "immutable": "immutable",
}

_DURATIONS = {
    "max-age": "max_age",
    "s-maxage": "s_maxage",
    "max-stale": "max_stale",
    "min-fresh": "min_fresh",
}


def _parse_seconds(name: str, raw: Optional[str]) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except ValueError:
        logger.debug("Ignoring malformed %s value %r", name, raw)
        return None
    return max(value, 0)


def parse_directives(values: Iterable[str]) -> DirectiveSet:
    """Parse one or more ``Cache-Control`` header values into a :class:`DirectiveSet`.

    Repeated header lines are combined. Unknown directives are ignored.
    For a directive given more than once the first occurrence wins.

    Examples::

        >>> parse_directives(["max-age=60, max-stale=30"]).max_age
        60
        >>> parse_directives(["no-store"]).max_age is None
        True
    """
    fields: dict[str, object] = {}
    for value in values:
        if not value:
            continue
        for item in value.split(","):
            match = _DIRECTIVE_RE.fullmatch(item)
            if match is None:
                if item.strip():
                    logger.debug("Ignoring malformed cache directive %r", item)
                continue
            name = match.group(1).lower()
            raw = match.group(2) if match.group(2) is not None else match.group(3)
            if name in _FLAGS:
                fields.setdefault(_FLAGS[name], True)
            elif name == "max-stale" and ("max_stale" in fields or "max_stale_any" in fields):
                continue
            elif name == "max-stale" and not raw:
                fields["max_stale_any"] = True
            elif name in _DURATIONS and _DURATIONS[name] not in fields:
                seconds = _parse_seconds(name, raw)
                if seconds is not None:
                    fields[_DURATIONS[name]] = seconds
    return DirectiveSet(**fields)  # type: ignore[arg-type]


def parse_headers(headers: httpx.Headers) -> DirectiveSet:
    """Parse every ``Cache-Control`` line of *headers*."""
    return parse_directives(headers.get_list("cache-control"))


def clamp_directives(
    directives: DirectiveSet, max_age: int = MAX_AGE_SECONDS
) -> DirectiveSet:
    """Bound the freshness window of *directives* to *max_age* seconds.

    Returns *directives* itself when there is no ``max-age`` or it is
    already ``<= max_age``. Otherwise returns a new set holding
    ``max-age=<max_age>`` plus the ``max-stale``, ``min-fresh``,
    ``no-cache``, ``no-store`` and ``no-transform`` values of the input,
    exactly as given. All other directives are dropped.

    The function is idempotent: clamping a clamped set returns it
    unchanged.
    """
    if directives.max_age is None or directives.max_age <= max_age:
        return directives
    return DirectiveSet(
        max_age=max_age,
        max_stale=directives.max_stale,
        max_stale_any=directives.max_stale_any,
        min_fresh=directives.min_fresh,
        no_cache=directives.no_cache,
        no_store=directives.no_store,
        no_transform=directives.no_transform,
    )


def clamp_response(
    response: httpx.Response, max_age: int = MAX_AGE_SECONDS
) -> httpx.Response:
    """Return *response* with its ``Cache-Control`` header clamped.

    The original response is returned untouched when no rewrite is
    needed. Otherwise a new :class:`httpx.Response` sharing the unread
    body stream is built, in which only ``Cache-Control`` differs.
    """
    directives = parse_headers(response.headers)
    clamped = clamp_directives(directives, max_age)
    if clamped is directives:
        return response

    headers = response.headers.copy()
    headers["Cache-Control"] = clamped.serialize()
    return httpx.Response(
        status_code=response.status_code,
        headers=headers,
        stream=response.stream,
        extensions=response.extensions,
    )
