"""One page of a paginated listing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

import httpx

from ghstubs.models import PageLinks
from ghstubs.pipeline.interceptors import page_links


@dataclass
class Page:
    """Items of one page plus the links to its neighbours.

    ``response`` is kept so callers can inspect the status; an error
    status yields an empty ``items`` list rather than an exception.
    """

    response: httpx.Response
    items: list[Any] = field(default_factory=list)
    links: PageLinks = field(default_factory=PageLinks)

    @classmethod
    def from_response(cls, response: httpx.Response) -> Page:
        """Decode *response* into a page.

        Plain JSON arrays are taken as the items; search results, which
        wrap them in an object, contribute their ``items`` field.

        Raises:
            ValueError: If a successful response body is not valid JSON.
        """
        items: list[Any] = []
        if response.is_success and response.content:
            data = response.json()
            if isinstance(data, dict):
                items = list(data.get("items") or [])
            elif isinstance(data, list):
                items = data
        return cls(response=response, items=items, links=page_links(response))

    @property
    def next_page(self) -> int | None:
        return self.links.next

    @property
    def last_page(self) -> int | None:
        return self.links.last

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)
