"""Data shapes shared across ghstubs.

**Configuration models** (pydantic, persisted as JSON in the user's
config directory): :class:`CacheConfig` and :class:`ClientSettings`.

**Runtime values**:

* :class:`StubIdentity` -- the memoization key of a built stub. It is a
  frozen dataclass so that it hashes and compares on all five fields and
  can be used directly as a mapping key.
* :class:`PageLinks` -- continuation metadata parsed from a ``Link``
  response header.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_BASE_URL = "https://api.github.com"

DEFAULT_ACCEPT = (
    "application/vnd.github.squirrel-girl-preview,application/vnd.github.v3.full+json"
)

DEFAULT_CACHE_SIZE = 20 * 1024 * 1024


class CacheConfig(BaseModel):
    """On-disk HTTP response cache settings."""

    enabled: bool = Field(default=True, description="Enable the disk response cache")
    directory: Optional[str] = Field(
        default=None,
        description="Cache directory; defaults to <XDG cache>/ghstubs/http",
    )
    max_size_bytes: int = Field(
        default=DEFAULT_CACHE_SIZE, gt=0, description="Byte quota of the disk cache"
    )


class ClientSettings(BaseModel):
    """Settings of the process-wide transport client.

    Loaded by :func:`~ghstubs.config.load_settings` and layered with
    environment and CLI overrides by
    :func:`~ghstubs.config.resolve_settings`. ``debug`` is the single
    process-wide switch that adds the diagnostic stages to every stub
    built afterwards.
    """

    base_url: str = Field(default=DEFAULT_BASE_URL, description="API base URL")
    debug: bool = Field(default=False, description="Add diagnostic logging stages")
    timeout: float = Field(default=30, gt=0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    default_accept: str = Field(
        default=DEFAULT_ACCEPT,
        description="Accept header sent when neither the caller nor the stub sets one",
    )
    user_agent: str = Field(default="ghstubs", description="User-Agent header")
    token_source: Optional[str] = Field(
        default=None,
        description="Ambient auth token source: env:VAR, file:/path or prompt",
    )
    cache: CacheConfig = Field(default_factory=CacheConfig)


@dataclass(frozen=True)
class StubIdentity:
    """Everything a built stub depends on.

    Two identities are equal iff all five fields are equal. ``token`` and
    ``accept_header`` compare as plain strings, so two spellings of an
    equivalent media type are distinct keys.
    """

    descriptor: type
    bypass_cache: bool = False
    accept_header: Optional[str] = None
    token: Optional[str] = None
    page_size: Optional[int] = None

    def describe(self) -> str:
        """Return a log-safe summary; the token is reduced to a presence flag."""
        return (
            f"{self.descriptor.__qualname__}(bypass_cache={self.bypass_cache}, "
            f"accept={self.accept_header!r}, token={'set' if self.token else 'unset'}, "
            f"page_size={self.page_size})"
        )


class PageLinks(BaseModel):
    """Page numbers and URLs advertised by a ``Link`` response header."""

    next: Optional[int] = None
    prev: Optional[int] = None
    first: Optional[int] = None
    last: Optional[int] = None
    urls: dict[str, str] = Field(default_factory=dict)

    @property
    def has_next(self) -> bool:
        return self.next is not None
