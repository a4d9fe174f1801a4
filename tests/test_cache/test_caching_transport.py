"""Tests for CachingTransport: hits, revalidation, bypass and invalidation."""

from __future__ import annotations

import time
from email.utils import formatdate
from pathlib import Path

import httpx
import pytest

from ghstubs.cache import CachingTransport, HttpCache, cache_status, network_status

URL = "https://api.github.test/repos/octo/hello"


class Origin:
    """Mock origin server returning queued responses."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: list[httpx.Response] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            return self.responses.pop(0)
        return httpx.Response(200, json={"n": len(self.requests)})


@pytest.fixture
def store(tmp_path: Path) -> HttpCache:
    cache = HttpCache(tmp_path / "http", 1024 * 1024)
    yield cache
    cache.close()


@pytest.fixture
def origin() -> Origin:
    return Origin()


@pytest.fixture
def client(store: HttpCache, origin: Origin) -> httpx.Client:
    transport = CachingTransport(httpx.MockTransport(origin), store)
    with httpx.Client(transport=transport) as c:
        yield c


def _ok(body: dict, **headers: str) -> httpx.Response:
    return httpx.Response(200, json=body, headers=headers)


def _seconds_ago(seconds: int) -> str:
    return formatdate(time.time() - seconds, usegmt=True)


# ---------------------------------------------------------------------------
# Fresh hits
# ---------------------------------------------------------------------------


class TestFreshness:
    def test_fresh_entry_served_without_network(
        self, client: httpx.Client, origin: Origin
    ) -> None:
        origin.responses.append(_ok({"v": 1}, **{"Cache-Control": "max-age=60"}))

        first = client.get(URL)
        second = client.get(URL)

        assert len(origin.requests) == 1
        assert network_status(first) == 200
        assert cache_status(first) is None
        assert network_status(second) is None
        assert cache_status(second) == 200
        assert second.json() == {"v": 1}

    def test_stale_entry_refetched(self, client: httpx.Client, origin: Origin) -> None:
        origin.responses.append(
            _ok({"v": 1}, **{"Cache-Control": "max-age=2", "Date": _seconds_ago(10)})
        )
        origin.responses.append(_ok({"v": 2}, **{"Cache-Control": "max-age=60"}))

        client.get(URL)
        second = client.get(URL)

        assert len(origin.requests) == 2
        assert second.json() == {"v": 2}
        assert network_status(second) == 200

    def test_no_store_not_reused(self, client: httpx.Client, origin: Origin) -> None:
        origin.responses.append(_ok({"v": 1}, **{"Cache-Control": "no-store"}))

        client.get(URL)
        client.get(URL)

        assert len(origin.requests) == 2

    def test_query_is_part_of_the_key(self, client: httpx.Client, origin: Origin) -> None:
        origin.responses.append(_ok({"v": 1}, **{"Cache-Control": "max-age=60"}))
        origin.responses.append(_ok({"v": 2}, **{"Cache-Control": "max-age=60"}))

        client.get(URL, params={"page": 1})
        second = client.get(URL, params={"page": 2})

        assert len(origin.requests) == 2
        assert second.json() == {"v": 2}


# ---------------------------------------------------------------------------
# Revalidation
# ---------------------------------------------------------------------------


class TestRevalidation:
    def test_not_modified_serves_stored_body(
        self, client: httpx.Client, origin: Origin
    ) -> None:
        origin.responses.append(
            _ok(
                {"v": 1},
                **{"Cache-Control": "max-age=2", "ETag": '"e1"', "Date": _seconds_ago(10)},
            )
        )
        origin.responses.append(
            httpx.Response(304, headers={"ETag": '"e1"', "Cache-Control": "max-age=2"})
        )

        client.get(URL)
        second = client.get(URL)

        assert origin.requests[1].headers["if-none-match"] == '"e1"'
        assert second.status_code == 200
        assert second.json() == {"v": 1}
        assert network_status(second) == 304
        assert cache_status(second) == 200

    def test_no_cache_request_revalidates(self, client: httpx.Client, origin: Origin) -> None:
        origin.responses.append(_ok({"v": 1}, **{"Cache-Control": "max-age=60"}))
        origin.responses.append(_ok({"v": 2}, **{"Cache-Control": "max-age=60"}))

        client.get(URL)
        second = client.get(URL, headers={"Cache-Control": "no-cache"})
        third = client.get(URL)

        assert len(origin.requests) == 2
        assert second.json() == {"v": 2}
        assert network_status(second) == 200
        assert third.json() == {"v": 2}
        assert network_status(third) is None


# ---------------------------------------------------------------------------
# Unsafe methods
# ---------------------------------------------------------------------------


class TestUnsafeMethods:
    def test_post_passes_through(self, client: httpx.Client, origin: Origin) -> None:
        origin.responses.append(
            httpx.Response(201, json={"id": 1}, headers={"Cache-Control": "max-age=60"})
        )

        response = client.post(URL, json={"title": "x"})

        assert response.status_code == 201
        assert network_status(response) == 201
        assert cache_status(response) is None

    def test_successful_patch_forces_revalidation(
        self, client: httpx.Client, origin: Origin
    ) -> None:
        origin.responses.append(_ok({"v": 1}, **{"Cache-Control": "max-age=60"}))
        origin.responses.append(_ok({"v": 2}))
        origin.responses.append(_ok({"v": 2}, **{"Cache-Control": "max-age=60"}))

        client.get(URL)
        client.patch(URL, json={"v": 2})
        after = client.get(URL)

        assert [r.method for r in origin.requests] == ["GET", "PATCH", "GET"]
        assert "no-cache" in origin.requests[2].headers["cache-control"]
        assert after.json() == {"v": 2}

    def test_failed_delete_keeps_entry(self, client: httpx.Client, origin: Origin) -> None:
        origin.responses.append(_ok({"v": 1}, **{"Cache-Control": "max-age=60"}))
        origin.responses.append(httpx.Response(422, json={"message": "nope"}))

        client.get(URL)
        client.delete(URL)
        after = client.get(URL)

        assert len(origin.requests) == 2
        assert cache_status(after) == 200

    def test_invalidation_applies_once(self, client: httpx.Client, origin: Origin) -> None:
        origin.responses.append(_ok({"v": 1}, **{"Cache-Control": "max-age=60"}))
        origin.responses.append(httpx.Response(204))
        origin.responses.append(_ok({"v": 2}, **{"Cache-Control": "max-age=60"}))

        client.get(URL)
        client.delete(URL)
        client.get(URL)
        last = client.get(URL)

        assert len(origin.requests) == 3
        assert last.json() == {"v": 2}
        assert network_status(last) is None


# ---------------------------------------------------------------------------
# Store maintenance
# ---------------------------------------------------------------------------


class TestMaintenance:
    def test_clear_forces_refetch(
        self, client: httpx.Client, store: HttpCache, origin: Origin
    ) -> None:
        origin.responses.append(_ok({"v": 1}, **{"Cache-Control": "max-age=60"}))
        origin.responses.append(_ok({"v": 2}, **{"Cache-Control": "max-age=60"}))

        client.get(URL)
        client.get(URL)
        store.clear()
        after = client.get(URL)

        assert len(origin.requests) == 2
        assert after.json() == {"v": 2}

    def test_over_quota_not_reused(self, tmp_path: Path, origin: Origin) -> None:
        cache = HttpCache(tmp_path / "tiny", 1)
        transport = CachingTransport(httpx.MockTransport(origin), cache)
        origin.responses.append(_ok({"v": 1}, **{"Cache-Control": "max-age=60"}))
        origin.responses.append(_ok({"v": 2}, **{"Cache-Control": "max-age=60"}))
        try:
            with httpx.Client(transport=transport) as client:
                client.get(URL)
                second = client.get(URL)
        finally:
            cache.close()

        assert len(origin.requests) == 2
        assert second.json() == {"v": 2}


# ---------------------------------------------------------------------------
# Disabled cache and errors
# ---------------------------------------------------------------------------


class TestPassThrough:
    def test_disabled_cache_records_provenance(self, origin: Origin) -> None:
        transport = CachingTransport(httpx.MockTransport(origin), None)
        with httpx.Client(transport=transport) as client:
            first = client.get(URL)
            client.get(URL)

        assert len(origin.requests) == 2
        assert network_status(first) == 200
        assert cache_status(first) is None

    def test_transport_errors_propagate(self, store: HttpCache) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        transport = CachingTransport(httpx.MockTransport(fail), store)
        with httpx.Client(transport=transport) as client:
            with pytest.raises(httpx.ConnectError):
                client.get(URL)
